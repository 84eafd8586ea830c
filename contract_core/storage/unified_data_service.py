# =============================================================================
# contract_core/storage/unified_data_service.py
# Unified Data Service - Single API for Remote/Local Operations
# =============================================================================
"""
UnifiedDataService - the primary API for all collection operations.

The service runs in one of two modes:
- REMOTE: operations go to the hosted backend first and fall back to local
  storage when a call fails. The mode is not downgraded by a failed call;
  the next call tries the backend again.
- LOCAL: operations go to local storage only.

Change notification:
- Writes served by local storage notify in-process listeners.
- Writes served by the hosted backend reach listeners through the realtime
  feed opened for each subscriber while in REMOTE mode.

Usage:
------
from contract_core.bootstrap import build_data_service

service = build_data_service(settings)
contracts = service.get_all("contracts")
unsubscribe = service.subscribe("contracts", refresh)
"""

from __future__ import annotations
import itertools
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Tuple
import logging

from contract_core.errors import TransientRemoteError
from contract_core.models import COLLECTIONS
from .backend import DataBackend, Record, check_collection
from .connection_manager import ConnectionManager, ConnectionState, ConnectionStatus
from .listeners import ListenerRegistry
from .local_store import LocalStore
from .migration import MigrationEngine
from .remote_store import RemoteStore

logger = logging.getLogger(__name__)


class DataMode(Enum):
    REMOTE = "remote"
    LOCAL = "local"


@dataclass
class _Subscription:
    collection: str
    callback: Callable[[], None]
    local_unsubscribe: Callable[[], None]
    remote_unsubscribe: Optional[Callable[[], None]] = None


class UnifiedDataService:
    """
    Mode-aware facade over RemoteStore and LocalStore.

    Construct one per application (the Streamlit entry point caches it) and
    call ``initialize()`` before use.
    """

    def __init__(
        self,
        local: LocalStore,
        remote: Optional[RemoteStore] = None,
        connection_manager: Optional[ConnectionManager] = None,
        notify_delay: float = 0.0,
    ):
        self.local = local
        self.remote = remote
        self.connection_manager = connection_manager
        self.notify_delay = notify_delay
        self.listeners = ListenerRegistry()
        self.migration = MigrationEngine(local, remote) if remote is not None else None

        self._mode = DataMode.LOCAL
        self._subscriptions: Dict[int, _Subscription] = {}
        self._subscription_ids = itertools.count(1)
        self._lock = threading.RLock()
        self._initialized = False

    # =========================================================================
    # PROPERTIES
    # =========================================================================

    @property
    def mode(self) -> DataMode:
        return self._mode

    @property
    def is_remote(self) -> bool:
        return self._mode == DataMode.REMOTE and self.remote is not None

    # =========================================================================
    # INITIALIZATION
    # =========================================================================

    def initialize(self, start_monitoring: bool = False) -> None:
        """
        Prepare local storage and pick the starting mode with one probe.

        Args:
            start_monitoring: Whether to keep re-checking connectivity in the background
        """
        if self._initialized:
            return

        self.local.initialize()

        if self.connection_manager is not None and self.remote is not None:
            state = self.connection_manager.check_connection()
            self.connection_manager.register_callback(self._on_connection_change)
            self._set_mode(
                DataMode.REMOTE if state.status == ConnectionStatus.ONLINE else DataMode.LOCAL
            )
            if start_monitoring:
                self.connection_manager.start_monitoring()

        self._initialized = True
        logger.info(f"UnifiedDataService initialized. Mode: {self._mode.value}")

    def _on_connection_change(self, state: ConnectionState) -> None:
        online = state.status == ConnectionStatus.ONLINE
        logger.info(f"Connection changed: online={online}")
        self._set_mode(DataMode.REMOTE if online else DataMode.LOCAL)

    def _set_mode(self, mode: DataMode) -> None:
        if mode == DataMode.REMOTE and self.remote is None:
            mode = DataMode.LOCAL

        with self._lock:
            previous = self._mode
            self._mode = mode
            subscriptions = list(self._subscriptions.values())

        if previous == mode:
            return

        logger.info(f"Data mode: {previous.value} -> {mode.value}")
        if mode == DataMode.REMOTE:
            for subscription in subscriptions:
                self._open_feed(subscription)
            self._start_migration()
        else:
            for subscription in subscriptions:
                self._close_feed(subscription)

    def _start_migration(self) -> None:
        try:
            if self.migration is not None and self.local.has_data():
                logger.info("Local data found, starting migration to remote backend")
                self.migration.start()
        except Exception as e:
            logger.error(f"Could not start migration: {e}")

    # =========================================================================
    # DISPATCH
    # =========================================================================

    def _execute(
        self,
        operation: str,
        collection: Optional[str],
        call: Callable[[DataBackend], Any],
    ) -> Tuple[Any, DataBackend]:
        """
        Run ``call`` against the backend for the current mode.

        In REMOTE mode any failing remote call is retried once against local
        storage. ``collection`` is None for calls spanning every collection.

        Returns:
            (result, backend that served the call)
        """
        if collection is not None:
            check_collection(collection)
        if self.is_remote:
            try:
                return call(self.remote), self.remote
            except Exception as e:
                error = e if isinstance(e, TransientRemoteError) else TransientRemoteError(
                    str(e), collection=collection, operation=operation
                )
                logger.warning(f"Remote {operation} failed, using local storage: {error}")
        return call(self.local), self.local

    def _notify(self, collection: str, served_by: DataBackend) -> None:
        if served_by is self.local:
            self.listeners.notify(collection, delay=self.notify_delay)

    # =========================================================================
    # READS
    # =========================================================================

    def get_all(self, collection: str) -> List[Record]:
        records, _ = self._execute("get_all", collection, lambda b: b.get_all(collection))
        return records

    def get_by_id(self, collection: str, record_id: str) -> Optional[Record]:
        record, _ = self._execute(
            "get_by_id", collection, lambda b: b.get_by_id(collection, record_id)
        )
        return record

    def get_stats(self) -> Dict[str, int]:
        stats, _ = self._execute("get_stats", None, lambda b: b.get_stats())
        return stats

    # =========================================================================
    # WRITES
    # =========================================================================

    def create(self, collection: str, record: Record) -> Record:
        created, served_by = self._execute(
            "create", collection, lambda b: b.create(collection, record)
        )
        self._notify(collection, served_by)
        return created

    def update(self, collection: str, record_id: str, partial: Record) -> Record:
        updated, served_by = self._execute(
            "update", collection, lambda b: b.update(collection, record_id, partial)
        )
        self._notify(collection, served_by)
        return updated

    def delete(self, collection: str, record_id: str) -> bool:
        removed, served_by = self._execute(
            "delete", collection, lambda b: b.delete(collection, record_id)
        )
        if removed:
            self._notify(collection, served_by)
        return removed

    def bulk_create(self, collection: str, records: List[Record]) -> List[Record]:
        created, served_by = self._execute(
            "bulk_create", collection, lambda b: b.bulk_create(collection, records)
        )
        if created:
            self._notify(collection, served_by)
        return created

    def bulk_update(self, collection: str, records: List[Record]) -> List[Record]:
        updated, served_by = self._execute(
            "bulk_update", collection, lambda b: b.bulk_update(collection, records)
        )
        if updated:
            self._notify(collection, served_by)
        return updated

    # =========================================================================
    # SUBSCRIPTIONS
    # =========================================================================

    def subscribe(self, collection: str, callback: Callable[[], None]) -> Callable[[], None]:
        """
        Register ``callback`` for changes to ``collection``.

        Returns:
            Unsubscribe function; calling it again is a no-op
        """
        check_collection(collection)
        subscription = _Subscription(
            collection=collection,
            callback=callback,
            local_unsubscribe=self.listeners.add(collection, callback),
        )
        with self._lock:
            subscription_id = next(self._subscription_ids)
            self._subscriptions[subscription_id] = subscription
            remote_active = self.is_remote

        if remote_active:
            self._open_feed(subscription)

        def unsubscribe() -> None:
            with self._lock:
                active = self._subscriptions.pop(subscription_id, None)
            if active is None:
                return
            active.local_unsubscribe()
            self._close_feed(active)

        return unsubscribe

    def _open_feed(self, subscription: _Subscription) -> None:
        if subscription.remote_unsubscribe is not None or self.remote is None:
            return
        try:
            subscription.remote_unsubscribe = self.remote.subscribe(
                subscription.collection, subscription.callback
            )
        except Exception as e:
            logger.warning(f"Realtime feed for {subscription.collection} unavailable: {e}")

    def _close_feed(self, subscription: _Subscription) -> None:
        remote_unsubscribe, subscription.remote_unsubscribe = subscription.remote_unsubscribe, None
        if remote_unsubscribe is not None:
            remote_unsubscribe()

    # =========================================================================
    # BACKUP / MAINTENANCE
    # =========================================================================

    def export_all(self) -> str:
        """JSON backup of local storage."""
        return self.local.export_all()

    def import_all(self, backup: str) -> Dict[str, int]:
        counts = self.local.import_all(backup)
        for collection in counts:
            self.listeners.notify(collection, delay=self.notify_delay)
        return counts

    def clear_all(self) -> None:
        """Wipe local storage and tell every listener."""
        self.local.clear_all()
        for collection in COLLECTIONS:
            self.listeners.notify(collection, delay=self.notify_delay)

    def get_status(self) -> Dict[str, Any]:
        """Diagnostics for status displays."""
        migration = self.migration.state if self.migration is not None else None
        return {
            "mode": self._mode.value,
            "remote_configured": self.remote is not None,
            "connection": (
                self.connection_manager.get_status_display()
                if self.connection_manager is not None else None
            ),
            "local_stats": self.local.get_stats(),
            "subscriptions": len(self._subscriptions),
            "migration": {
                "running": migration.is_running,
                "last_run": migration.last_run.isoformat() if migration.last_run else None,
                "migrated": dict(migration.migrated),
                "failed": list(migration.failed),
            } if migration is not None else None,
            "device_id": self.local.get_metadata().get("deviceId"),
        }

    def close(self) -> None:
        """Tear down subscriptions, monitoring and connections."""
        with self._lock:
            subscriptions = list(self._subscriptions.values())
            self._subscriptions.clear()
        for subscription in subscriptions:
            subscription.local_unsubscribe()
            self._close_feed(subscription)

        if self.connection_manager is not None:
            self.connection_manager.unregister_callback(self._on_connection_change)
            self.connection_manager.stop_monitoring()
        if self.remote is not None:
            self.remote.close()
        self.listeners.clear()
        self.local.close()
        self._initialized = False
        logger.info("UnifiedDataService closed")
