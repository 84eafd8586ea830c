# =============================================================================
# contract_core/models/__init__.py
# Entity Models and Collection Schema
# =============================================================================

from .schema import (
    COLLECTIONS,
    COLLECTION_FIELDS,
    CONTRACTS,
    WORKS,
    PARTNERS,
    CHANNELS,
    USERS,
    METADATA_KEY,
    SCHEMA_VERSION,
)

from .entities import (
    Contract,
    Work,
    Partner,
    Channel,
    User,
    ContractStatus,
    Platform,
    ChannelStatus,
    UserRole,
    UserStatus,
    new_id,
    utc_now_iso,
    parse_amount,
    channel_platform,
)

__all__ = [
    # Schema
    "COLLECTIONS",
    "COLLECTION_FIELDS",
    "CONTRACTS",
    "WORKS",
    "PARTNERS",
    "CHANNELS",
    "USERS",
    "METADATA_KEY",
    "SCHEMA_VERSION",
    # Entities
    "Contract",
    "Work",
    "Partner",
    "Channel",
    "User",
    # Enums
    "ContractStatus",
    "Platform",
    "ChannelStatus",
    "UserRole",
    "UserStatus",
    # Helpers
    "new_id",
    "utc_now_iso",
    "parse_amount",
    "channel_platform",
]
