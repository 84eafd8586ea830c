# =============================================================================
# contract_core/errors/handlers.py
# Error Handling Utilities for the Contract Management Core
# =============================================================================

from __future__ import annotations
import traceback
from typing import Optional
import streamlit as st

from contract_core.logging import get_logger
from .exceptions import ContractCoreError

logger = get_logger(__name__)


def handle_error(
    error: Exception,
    show_user_message: bool = True,
    log_error: bool = True,
    user_message: Optional[str] = None,
) -> None:
    """
    Centralized error handling function.

    Args:
        error: The exception to handle
        show_user_message: Whether to display error to user via st.error
        log_error: Whether to log the error
        user_message: Custom message to show user (uses error message if None)
    """
    if isinstance(error, ContractCoreError):
        message = user_message or error.message
        code = error.code
        details = error.details
        recoverable = error.recoverable
    else:
        message = user_message or str(error)
        code = "UNKNOWN"
        details = {"traceback": traceback.format_exc()}
        recoverable = True

    if log_error:
        logger.error(
            f"[{code}] {message}",
            extra={"details": details},
            exc_info=error,
        )

    if show_user_message:
        if recoverable:
            st.error(f"Lỗi: {message}")
        else:
            st.error(f"Lỗi nghiêm trọng: {message}. Vui lòng liên hệ quản trị viên.")


class ErrorContext:
    """
    Context manager for error handling with automatic logging and user feedback.

    Usage:
        with ErrorContext("Migrating contracts", show_user_message=False):
            remote.bulk_create("contracts", records)

        # On error, logs "Error during: Migrating contracts" and continues
    """

    def __init__(
        self,
        operation: str,
        recoverable: bool = True,
        show_user_message: bool = True,
    ):
        self.operation = operation
        self.recoverable = recoverable
        self.show_user_message = show_user_message
        self.error: Optional[BaseException] = None

    def __enter__(self) -> ErrorContext:
        logger.info(f"Starting: {self.operation}")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        if exc_type is None:
            logger.info(f"Completed: {self.operation}")
            return False

        if not isinstance(exc_val, Exception):
            return False

        self.error = exc_val
        if isinstance(exc_val, ContractCoreError):
            handle_error(exc_val, show_user_message=self.show_user_message)
        else:
            handle_error(
                exc_val,
                show_user_message=self.show_user_message,
                user_message=f"Error during: {self.operation}",
            )

        # Suppress exception if recoverable
        return self.recoverable

    @property
    def failed(self) -> bool:
        return self.error is not None
