# =============================================================================
# contract_core/storage/remote_store.py
# Hosted (Supabase) Storage Backend
# =============================================================================
"""
RemoteStore - collection CRUD against the hosted Supabase database.

All records cross this boundary through the field-name table: callers use
camelCase fields, the database stores snake_case columns. Every backend
failure is logged and re-raised as TransientRemoteError; there are no
retries at this level.
"""

from __future__ import annotations
import logging
import threading
from contextlib import contextmanager
from typing import Any, Callable, Dict, List

from supabase import Client

from contract_core.errors import ContractCoreError, NotFoundError, TransientRemoteError
from contract_core.models import COLLECTIONS, utc_now_iso
from .backend import DataBackend, Record, check_collection
from .field_names import to_app_record, to_storage_record
from .local_store import clean_record

logger = logging.getLogger(__name__)

Unsubscribe = Callable[[], None]


class RemoteStore(DataBackend):
    """
    Supabase-backed storage for all collections.

    Usage:
        remote = RemoteStore(create_supabase_client(settings))
        contracts = remote.get_all("contracts")
    """

    name = "remote"
    PAGE_SIZE = 1000        # PostgREST default row limit
    ORDER_COLUMN = "created_at"

    def __init__(self, client: Client):
        self.client = client
        self._channels: Dict[int, Any] = {}
        self._channel_lock = threading.Lock()

    @contextmanager
    def _remote_call(self, collection: str, operation: str):
        """Wrap backend exceptions as TransientRemoteError."""
        try:
            yield
        except ContractCoreError:
            raise
        except Exception as e:
            logger.error(f"Remote {operation} on {collection} failed: {e}")
            raise TransientRemoteError(
                f"Remote {operation} failed: {e}",
                collection=collection,
                operation=operation,
            ) from e

    def _to_storage(self, collection: str, record: Record) -> Record:
        return to_storage_record(clean_record(record), collection)

    def _to_app(self, collection: str, rows: List[Record]) -> List[Record]:
        return [to_app_record(row, collection) for row in rows or []]

    # =========================================================================
    # READS
    # =========================================================================

    def get_all(self, collection: str) -> List[Record]:
        """Fetch every row, paging past the 1000-row limit, newest first."""
        check_collection(collection)
        rows: List[Record] = []
        offset = 0
        with self._remote_call(collection, "get_all"):
            while True:
                response = (
                    self.client.table(collection)
                    .select("*")
                    .order(self.ORDER_COLUMN, desc=True)
                    .range(offset, offset + self.PAGE_SIZE - 1)
                    .execute()
                )
                batch = response.data or []
                rows.extend(batch)
                if len(batch) < self.PAGE_SIZE:
                    break
                offset += self.PAGE_SIZE
        return self._to_app(collection, rows)

    def get_by_id(self, collection: str, record_id: str):
        check_collection(collection)
        with self._remote_call(collection, "get_by_id"):
            response = self.client.table(collection).select("*").eq("id", record_id).execute()
        rows = self._to_app(collection, response.data)
        return rows[0] if rows else None

    def get_stats(self) -> Dict[str, int]:
        """Exact row count per collection."""
        stats: Dict[str, int] = {}
        for collection in COLLECTIONS:
            with self._remote_call(collection, "count"):
                response = (
                    self.client.table(collection)
                    .select("id", count="exact", head=True)
                    .execute()
                )
            stats[collection] = response.count or 0
        return stats

    def probe(self) -> None:
        """Minimal query proving the backend answers; raises TransientRemoteError."""
        with self._remote_call(COLLECTIONS[0], "probe"):
            self.client.table(COLLECTIONS[0]).select("id").limit(1).execute()

    # =========================================================================
    # WRITES
    # =========================================================================

    def create(self, collection: str, record: Record) -> Record:
        check_collection(collection)
        payload = self._to_storage(collection, record)
        with self._remote_call(collection, "create"):
            response = self.client.table(collection).insert(payload).execute()
        rows = self._to_app(collection, response.data)
        return rows[0] if rows else to_app_record(payload, collection)

    def update(self, collection: str, record_id: str, partial: Record) -> Record:
        check_collection(collection)
        changes = {k: v for k, v in partial.items() if k not in ("id", "createdAt")}
        changes["updatedAt"] = utc_now_iso()
        payload = self._to_storage(collection, changes)
        with self._remote_call(collection, "update"):
            response = (
                self.client.table(collection)
                .update(payload)
                .eq("id", record_id)
                .execute()
            )
        rows = self._to_app(collection, response.data)
        if not rows:
            raise NotFoundError(
                f"Record not found in {collection}: {record_id}",
                collection=collection,
                record_id=record_id,
            )
        return rows[0]

    def delete(self, collection: str, record_id: str) -> bool:
        check_collection(collection)
        with self._remote_call(collection, "delete"):
            response = self.client.table(collection).delete().eq("id", record_id).execute()
        return bool(response.data)

    def bulk_create(self, collection: str, records: List[Record]) -> List[Record]:
        check_collection(collection)
        if not records:
            return []
        payload = [self._to_storage(collection, r) for r in records]
        with self._remote_call(collection, "bulk_create"):
            response = self.client.table(collection).insert(payload).execute()
        return self._to_app(collection, response.data)

    def bulk_update(self, collection: str, records: List[Record]) -> List[Record]:
        """
        Update rows whose id already exists; other ids are skipped.

        Rows are updated one request at a time, so the batch is not atomic:
        if a request fails mid-batch, the rows before it stay updated
        remotely. A caller falling back to local storage then replays the
        whole batch there, where ids the local store does not hold are
        skipped as usual.
        """
        check_collection(collection)
        ids = [r.get("id") for r in records if r.get("id")]
        if not ids:
            return []
        with self._remote_call(collection, "bulk_update"):
            response = self.client.table(collection).select("id").in_("id", ids).execute()
        existing = {row["id"] for row in response.data or []}

        written: List[Record] = []
        for record in records:
            record_id = record.get("id")
            if record_id not in existing:
                logger.debug(f"Skipping update for unknown id {record_id} in {collection}")
                continue
            written.append(self.update(collection, record_id, record))
        return written

    # =========================================================================
    # REALTIME
    # =========================================================================

    def subscribe(self, collection: str, on_change: Callable[[], None]) -> Unsubscribe:
        """
        Open a realtime feed for every change to ``collection``.

        ``on_change`` is called with no arguments; callers re-read the
        collection. The returned function closes the feed and is safe to
        call more than once.
        """
        check_collection(collection)

        def handler(_payload: Any) -> None:
            try:
                on_change()
            except Exception as e:
                logger.error(f"Error in {collection} change listener: {e}")

        with self._remote_call(collection, "subscribe"):
            channel = self.client.channel(f"{collection}_changes")
            channel.on_postgres_changes(
                event="*",
                schema="public",
                table=collection,
                callback=handler,
            ).subscribe()

        token = id(channel)
        with self._channel_lock:
            self._channels[token] = channel

        def unsubscribe() -> None:
            with self._channel_lock:
                active = self._channels.pop(token, None)
            if active is None:
                return
            try:
                self.client.remove_channel(active)
            except Exception as e:
                logger.warning(f"Failed to close {collection} feed: {e}")

        return unsubscribe

    def close(self) -> None:
        """Close every open realtime feed."""
        with self._channel_lock:
            channels = list(self._channels.values())
            self._channels.clear()
        for channel in channels:
            try:
                self.client.remove_channel(channel)
            except Exception as e:
                logger.warning(f"Failed to close realtime channel: {e}")
