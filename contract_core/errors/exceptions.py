# =============================================================================
# contract_core/errors/exceptions.py
# Custom Exception Hierarchy for the Contract Management Core
# =============================================================================

from typing import Optional, Dict, Any


class ContractCoreError(Exception):
    """
    Base exception for all contract core errors.

    Attributes:
        message: Human-readable error description
        code: Machine-readable error code (e.g., "STORE_404")
        details: Additional context as a dictionary
        recoverable: Whether the error can be recovered from
    """

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        recoverable: bool = True,
    ):
        super().__init__(message)
        self.message = message
        self.code = code or "CC_000"
        self.details = details or {}
        self.recoverable = recoverable

    def __str__(self) -> str:
        base = f"[{self.code}] {self.message}"
        if self.details:
            base += f" | Details: {self.details}"
        return base

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/serialization"""
        return {
            "error_type": self.__class__.__name__,
            "code": self.code,
            "message": self.message,
            "details": self.details,
            "recoverable": self.recoverable,
        }


# =============================================================================
# BACKEND / CONNECTIVITY EXCEPTIONS
# =============================================================================

class ConnectivityError(ContractCoreError):
    """Raised when the remote backend is unreachable or misconfigured"""

    def __init__(
        self,
        message: str,
        host: Optional[str] = None,
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        if host:
            details["host"] = host

        super().__init__(
            message=message,
            code="CONN_001",
            details=details,
            **kwargs,
        )


class TransientRemoteError(ContractCoreError):
    """Raised when a remote call fails after startup"""

    def __init__(
        self,
        message: str,
        collection: Optional[str] = None,
        operation: Optional[str] = None,
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        if collection:
            details["collection"] = collection
        if operation:
            details["operation"] = operation

        super().__init__(
            message=message,
            code="REMOTE_001",
            details=details,
            **kwargs,
        )


# =============================================================================
# STORE EXCEPTIONS
# =============================================================================

class NotFoundError(ContractCoreError):
    """Raised when an update targets a record id that does not exist"""

    def __init__(
        self,
        message: str,
        collection: Optional[str] = None,
        record_id: Optional[str] = None,
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        if collection:
            details["collection"] = collection
        if record_id:
            details["record_id"] = record_id

        super().__init__(
            message=message,
            code="STORE_404",
            details=details,
            **kwargs,
        )


class SerializationError(ContractCoreError):
    """Raised when persisted JSON cannot be read or written"""

    def __init__(
        self,
        message: str,
        key: Optional[str] = None,
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        if key:
            details["key"] = key

        super().__init__(
            message=message,
            code="STORE_002",
            details=details,
            **kwargs,
        )


# =============================================================================
# DATA LAYER EXCEPTIONS
# =============================================================================

class ValidationError(ContractCoreError):
    """Raised when a record or import row fails validation checks"""

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        row: Optional[int] = None,
        code: str = "DATA_001",
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        if field:
            details["field"] = field
        if row is not None:
            details["row"] = row

        super().__init__(
            message=message,
            code=code,
            details=details,
            **kwargs,
        )

    @property
    def field(self) -> Optional[str]:
        return self.details.get("field")


class FieldMappingError(ValidationError):
    """Raised when a field name has no entry in the storage naming table"""

    def __init__(self, message: str, field: Optional[str] = None, **kwargs):
        super().__init__(message, field=field, code="DATA_002", **kwargs)


class DataIngestionError(ContractCoreError):
    """Raised when an import file cannot be read"""

    def __init__(
        self,
        message: str,
        source: Optional[str] = None,
        file_type: Optional[str] = None,
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        if source:
            details["source"] = source
        if file_type:
            details["file_type"] = file_type

        super().__init__(
            message=message,
            code="DATA_003",
            details=details,
            **kwargs,
        )


# =============================================================================
# CONFIGURATION EXCEPTIONS
# =============================================================================

class ConfigurationError(ContractCoreError):
    """Raised when configuration is invalid or missing"""

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        expected_type: Optional[str] = None,
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        if config_key:
            details["config_key"] = config_key
        if expected_type:
            details["expected_type"] = expected_type

        super().__init__(
            message=message,
            code="CONFIG_001",
            details=details,
            recoverable=False,
            **kwargs,
        )
