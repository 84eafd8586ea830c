# =============================================================================
# contract_core/storage/__init__.py
# Remote/Local Data Access for Contract Management
# =============================================================================
"""
Storage Module

Architecture:
------------
┌─────────────────────────────────────────────────────────────┐
│                   UnifiedDataService                         │
│        (Single API - mode REMOTE or LOCAL)                   │
└─────────────────────────────────────────────────────────────┘
        │                    │                      │
        ▼                    ▼                      ▼
┌────────────────┐  ┌──────────────────┐  ┌──────────────────┐
│ ConnectionMgr  │  │ ListenerRegistry │  │ MigrationEngine  │
│ (probe/monitor)│  │ (local writes)   │  │ (local -> remote)│
└────────────────┘  └──────────────────┘  └──────────────────┘
        │                                          │
        ▼                                          ▼
┌────────────────┐   field_names (camel<->snake)  ┌──────────┐
│  RemoteStore   │◄──────────────────────────────►│LocalStore│
│  (Supabase)    │                                │ (SQLite) │
└────────────────┘                                └──────────┘
"""

from .backend import DataBackend, Record, check_collection

from .field_names import (
    to_storage_name,
    to_app_name,
    to_storage_record,
    to_app_record,
)

from .local_store import LocalStore

from .remote_store import RemoteStore

from .supabase_client import create_supabase_client

from .connection_manager import (
    ConnectionManager,
    ConnectionState,
    ConnectionStatus,
)

from .listeners import ListenerRegistry

from .migration import MigrationEngine, MigrationState

from .unified_data_service import UnifiedDataService, DataMode

__all__ = [
    # Backends
    "DataBackend",
    "Record",
    "check_collection",
    "LocalStore",
    "RemoteStore",
    "create_supabase_client",
    # Field names
    "to_storage_name",
    "to_app_name",
    "to_storage_record",
    "to_app_record",
    # Connection
    "ConnectionManager",
    "ConnectionState",
    "ConnectionStatus",
    # Notification / migration
    "ListenerRegistry",
    "MigrationEngine",
    "MigrationState",
    # Service
    "UnifiedDataService",
    "DataMode",
]
