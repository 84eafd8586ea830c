# =============================================================================
# contract_core/errors/__init__.py
# Centralized Error Handling for the Contract Management Core
# =============================================================================

from .exceptions import (
    ContractCoreError,
    ConnectivityError,
    TransientRemoteError,
    NotFoundError,
    SerializationError,
    ValidationError,
    FieldMappingError,
    DataIngestionError,
    ConfigurationError,
)

from .handlers import (
    handle_error,
    ErrorContext,
)

__all__ = [
    # Exceptions
    "ContractCoreError",
    "ConnectivityError",
    "TransientRemoteError",
    "NotFoundError",
    "SerializationError",
    "ValidationError",
    "FieldMappingError",
    "DataIngestionError",
    "ConfigurationError",
    # Handlers
    "handle_error",
    "ErrorContext",
]
