# =============================================================================
# contract_core/storage/migration.py
# One-Shot Migration of Local Records to the Hosted Backend
# =============================================================================
"""
MigrationEngine - copies LocalStore contents into RemoteStore.

Collections are copied one at a time in the fixed order contracts, works,
partners, channels, users. Ids of copied records are kept in the local
metadata under ``migrated`` so a record is sent at most once, and a
repeated run only sends what is new. A failing collection is logged and
skipped; ``run()`` itself never raises.
"""

from __future__ import annotations
import threading
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional
import logging

from contract_core.errors import ErrorContext
from contract_core.models import COLLECTIONS, utc_now_iso
from .local_store import LocalStore
from .remote_store import RemoteStore

logger = logging.getLogger(__name__)


@dataclass
class MigrationState:
    """Outcome of the most recent migration run."""
    is_running: bool = False
    last_run: Optional[datetime] = None
    last_success: Optional[datetime] = None
    migrated: Dict[str, int] = field(default_factory=dict)
    failed: List[str] = field(default_factory=list)


class MigrationEngine:
    """
    Usage:
        engine = MigrationEngine(local, remote)
        engine.start()          # background, fire-and-forget
        engine.join(timeout=30)
    """

    def __init__(self, local: LocalStore, remote: RemoteStore):
        self.local = local
        self.remote = remote
        self._state = MigrationState()
        self._run_lock = threading.Lock()
        self._thread: Optional[threading.Thread] = None

    @property
    def state(self) -> MigrationState:
        return self._state

    @property
    def is_running(self) -> bool:
        return self._state.is_running

    def run(self) -> MigrationState:
        """Copy every not-yet-migrated local record to the remote backend."""
        if not self._run_lock.acquire(blocking=False):
            logger.debug("Migration already running")
            return self._state

        try:
            self._state = MigrationState(is_running=True, last_run=datetime.now())
            migrated_ids: Dict[str, List[str]] = dict(self.local.get_metadata().get("migrated", {}))

            for collection in COLLECTIONS:
                with ErrorContext(f"Migrating {collection}", show_user_message=False) as ctx:
                    self._state.migrated[collection] = self._migrate_collection(
                        collection, migrated_ids
                    )
                if ctx.failed:
                    self._state.failed.append(collection)

            self.local.update_metadata(lastSync=utc_now_iso())
            if not self._state.failed:
                self._state.last_success = datetime.now()
            logger.info(
                f"Migration complete: {self._state.migrated}, failed: {self._state.failed}"
            )
        except Exception as e:
            logger.error(f"Migration aborted: {e}", exc_info=True)
        finally:
            self._state.is_running = False
            self._run_lock.release()

        return self._state

    def _migrate_collection(self, collection: str, migrated_ids: Dict[str, List[str]]) -> int:
        done = set(migrated_ids.get(collection, []))
        pending = [r for r in self.local.get_all(collection) if r.get("id") not in done]
        if not pending:
            return 0

        self.remote.bulk_create(collection, pending)

        done.update(r["id"] for r in pending if r.get("id"))
        migrated_ids[collection] = sorted(done)
        self.local.update_metadata(migrated=migrated_ids)
        logger.info(f"Migrated {len(pending)} {collection}")
        return len(pending)

    def start(self) -> None:
        """Run the migration on a daemon thread and return immediately."""
        if self._thread is not None and self._thread.is_alive():
            return
        self._thread = threading.Thread(target=self.run, daemon=True, name="Migration")
        self._thread.start()

    def join(self, timeout: Optional[float] = None) -> bool:
        """Wait for a background run; returns True when no run is in flight."""
        if self._thread is not None:
            self._thread.join(timeout)
            return not self._thread.is_alive()
        return True
