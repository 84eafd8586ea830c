# =============================================================================
# contract_core/services/base_service.py
# Shared Plumbing for Long-Running Data Services
# =============================================================================
"""
Base pieces for services that run multi-step jobs over the data layer.

``ServiceResult`` is the compact outcome handed to callers that only need
ok/failed plus a code. ``BaseService`` gives a service its own logger,
timed operation logging and a percentage progress channel for UI bars.
"""

from __future__ import annotations
from abc import ABC
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from contract_core.logging import LogContext, get_logger

ProgressCallback = Callable[[int, str], None]


@dataclass
class ServiceResult:
    success: bool
    data: Optional[Any] = None
    error: Optional[str] = None
    error_code: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None

    def __bool__(self) -> bool:
        return self.success

    @classmethod
    def ok(cls, data: Any = None, metadata: Optional[Dict[str, Any]] = None) -> ServiceResult:
        return cls(success=True, data=data, metadata=metadata)

    @classmethod
    def fail(
        cls,
        error: str,
        error_code: str = "UNKNOWN",
        metadata: Optional[Dict[str, Any]] = None,
    ) -> ServiceResult:
        return cls(success=False, error=error, error_code=error_code, metadata=metadata)


class BaseService(ABC):
    """
    Base class for import-style services.

    Progress is reported as (percentage, message); the percentage is clamped
    to 0-100 and the last value is kept on ``progress``.
    """

    def __init__(self):
        self.logger = get_logger(self.__class__.__name__)
        self.progress = 0
        self._progress_callback: Optional[ProgressCallback] = None

    def set_progress_callback(self, callback: Optional[ProgressCallback]) -> None:
        self._progress_callback = callback

    def _update_progress(self, percentage: int, message: str = "") -> None:
        self.progress = max(0, min(100, int(percentage)))
        if self._progress_callback:
            self._progress_callback(self.progress, message)

    def log_operation(self, operation: str) -> LogContext:
        """Time ``operation`` and log its start, end and failure."""
        return LogContext(self.logger, operation)
