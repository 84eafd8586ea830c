# =============================================================================
# contract_core/storage/local_store.py
# Device-Local Key-Value Storage for Offline Operations
# =============================================================================
"""
LocalStore - SQLite-backed key-value storage used when the hosted backend is
unavailable or not configured.

Layout:
- One ``kv_store`` table with ``key`` / ``value`` columns
- Each collection is stored as a JSON array under its own key
- ``db_metadata`` holds {version, lastSync, deviceId, migrated}

Every write rewrites the whole collection value. Within one process writes
are serialized by a lock; two processes sharing the same file are
last-write-wins.
"""

from __future__ import annotations
import json
import random
import sqlite3
import string
import threading
from contextlib import contextmanager
from datetime import date, datetime
from pathlib import Path
from typing import Any, Dict, List, Optional
import logging

import numpy as np
import pandas as pd

from contract_core.config import DEFAULT_DB_PATH
from contract_core.errors import NotFoundError, SerializationError, ValidationError
from contract_core.models import COLLECTIONS, METADATA_KEY, SCHEMA_VERSION, new_id, utc_now_iso
from .backend import DataBackend, Record, check_collection

logger = logging.getLogger(__name__)


def _generate_device_id() -> str:
    suffix = "".join(random.choices(string.ascii_lowercase + string.digits, k=9))
    return f"device_{suffix}"


def clean_value(value: Any) -> Any:
    """Convert numpy/pandas scalars and dates into JSON-native values."""
    if isinstance(value, (pd.Timestamp, datetime, date)):
        return value.isoformat()
    if isinstance(value, np.bool_):
        return bool(value)
    if isinstance(value, np.integer):
        return int(value)
    if isinstance(value, np.floating):
        return None if np.isnan(value) else float(value)
    if pd.api.types.is_scalar(value) and pd.isna(value):
        return None
    return value


def clean_record(record: Record) -> Record:
    return {key: clean_value(value) for key, value in record.items()}


class LocalStore(DataBackend):
    """
    Persisted per-device storage for all collections.

    Usage:
        store = LocalStore(Path("local_data/contracts.db"))
        store.initialize()
        record = store.create("contracts", {"soHopDong": "HD-01"})
    """

    name = "local"

    SCHEMA = """
        CREATE TABLE IF NOT EXISTS kv_store (
            key TEXT PRIMARY KEY,
            value TEXT NOT NULL,
            updated_at TEXT DEFAULT CURRENT_TIMESTAMP
        )
    """

    def __init__(self, db_path: Optional[Path] = None):
        """
        Args:
            db_path: Path to the SQLite file (created if missing)
        """
        self.db_path = Path(db_path or DEFAULT_DB_PATH)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._local = threading.local()
        self._write_lock = threading.RLock()
        self._initialized = False

    # =========================================================================
    # CONNECTION
    # =========================================================================

    def _get_connection(self) -> sqlite3.Connection:
        """Get thread-local database connection."""
        if getattr(self._local, "connection", None) is None:
            self._local.connection = sqlite3.connect(
                str(self.db_path),
                check_same_thread=False,
            )
            self._local.connection.execute(self.SCHEMA)
        return self._local.connection

    @contextmanager
    def transaction(self):
        """Context manager for database transactions."""
        conn = self._get_connection()
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise

    def close(self) -> None:
        """Close the connection owned by the calling thread."""
        conn = getattr(self._local, "connection", None)
        if conn is not None:
            conn.close()
            self._local.connection = None

    def initialize(self) -> None:
        """Create the table, empty collections and metadata where missing."""
        if self._initialized:
            return

        with self._write_lock, self.transaction() as conn:
            for collection in COLLECTIONS:
                conn.execute(
                    "INSERT OR IGNORE INTO kv_store (key, value) VALUES (?, ?)",
                    [collection, "[]"],
                )
            metadata = {
                "version": SCHEMA_VERSION,
                "lastSync": None,
                "deviceId": _generate_device_id(),
                "migrated": {},
            }
            conn.execute(
                "INSERT OR IGNORE INTO kv_store (key, value) VALUES (?, ?)",
                [METADATA_KEY, json.dumps(metadata)],
            )

        self._initialized = True
        logger.info(f"Local store initialized at: {self.db_path}")

    # =========================================================================
    # RAW KEY ACCESS
    # =========================================================================

    def _read_raw(self, key: str) -> Optional[str]:
        row = self._get_connection().execute(
            "SELECT value FROM kv_store WHERE key = ?", [key]
        ).fetchone()
        return row[0] if row else None

    def _read(self, collection: str) -> List[Record]:
        """Read a collection; missing or unreadable values count as empty."""
        raw = self._read_raw(collection)
        if raw is None:
            return []
        try:
            value = json.loads(raw)
        except ValueError as e:
            error = SerializationError(f"Corrupt JSON under {collection!r}: {e}", key=collection)
            logger.error(str(error))
            return []
        if not isinstance(value, list):
            error = SerializationError(
                f"Expected a list under {collection!r}, found {type(value).__name__}",
                key=collection,
            )
            logger.error(str(error))
            return []
        return value

    @staticmethod
    def _serialize(key: str, value: Any) -> str:
        try:
            return json.dumps(value, ensure_ascii=False)
        except (TypeError, ValueError) as e:
            raise SerializationError(f"Cannot serialize {key!r}: {e}", key=key) from e

    def _write(self, payloads: Dict[str, str]) -> None:
        """Write already-serialized values for one or more keys in one transaction."""
        now = utc_now_iso()
        with self.transaction() as conn:
            conn.executemany(
                "INSERT OR REPLACE INTO kv_store (key, value, updated_at) VALUES (?, ?, ?)",
                [(key, payload, now) for key, payload in payloads.items()],
            )

    def _write_collection(self, collection: str, records: List[Record]) -> None:
        self._write({collection: self._serialize(collection, records)})

    # =========================================================================
    # CRUD
    # =========================================================================

    def get_all(self, collection: str) -> List[Record]:
        check_collection(collection)
        return self._read(collection)

    def _prepare_new(self, record: Record) -> Record:
        now = utc_now_iso()
        prepared = clean_record(record)
        prepared["id"] = prepared.get("id") or new_id()
        prepared["createdAt"] = prepared.get("createdAt") or now
        prepared["updatedAt"] = now
        return prepared

    @staticmethod
    def _merge(existing: Record, partial: Record) -> Record:
        merged = {**existing, **clean_record(partial)}
        merged["id"] = existing["id"]
        if "createdAt" in existing:
            merged["createdAt"] = existing["createdAt"]
        merged["updatedAt"] = utc_now_iso()
        return merged

    def create(self, collection: str, record: Record) -> Record:
        check_collection(collection)
        with self._write_lock:
            records = self._read(collection)
            prepared = self._prepare_new(record)
            if any(r.get("id") == prepared["id"] for r in records):
                raise ValidationError(
                    f"Record {prepared['id']} already exists in {collection}",
                    field="id",
                )
            records.append(prepared)
            self._write_collection(collection, records)
        return prepared

    def update(self, collection: str, record_id: str, partial: Record) -> Record:
        check_collection(collection)
        with self._write_lock:
            records = self._read(collection)
            for index, existing in enumerate(records):
                if existing.get("id") == record_id:
                    records[index] = self._merge(existing, partial)
                    self._write_collection(collection, records)
                    return records[index]
        raise NotFoundError(
            f"Record not found in {collection}: {record_id}",
            collection=collection,
            record_id=record_id,
        )

    def delete(self, collection: str, record_id: str) -> bool:
        check_collection(collection)
        with self._write_lock:
            records = self._read(collection)
            remaining = [r for r in records if r.get("id") != record_id]
            if len(remaining) == len(records):
                return False
            self._write_collection(collection, remaining)
        return True

    def bulk_create(self, collection: str, records: List[Record]) -> List[Record]:
        """Append all records in one write; nothing is written if serialization fails."""
        check_collection(collection)
        if not records:
            return []
        with self._write_lock:
            existing = self._read(collection)
            prepared = [self._prepare_new(r) for r in records]
            payload = self._serialize(collection, existing + prepared)
            self._write({collection: payload})
        logger.debug(f"Bulk created {len(prepared)} records in {collection}")
        return prepared

    def bulk_update(self, collection: str, records: List[Record]) -> List[Record]:
        """
        Update every record whose id already exists; unknown ids are skipped.

        Returns:
            Only the records actually written
        """
        check_collection(collection)
        if not records:
            return []
        with self._write_lock:
            existing = self._read(collection)
            positions = {r.get("id"): i for i, r in enumerate(existing)}
            written: List[Record] = []
            for update in records:
                index = positions.get(update.get("id"))
                if index is None:
                    logger.debug(f"Skipping update for unknown id {update.get('id')} in {collection}")
                    continue
                existing[index] = self._merge(existing[index], update)
                written.append(existing[index])
            if not written:
                return []
            payload = self._serialize(collection, existing)
            self._write({collection: payload})
        return written

    def get_stats(self) -> Dict[str, int]:
        return {collection: len(self._read(collection)) for collection in COLLECTIONS}

    def has_data(self) -> bool:
        """True when any collection holds at least one record."""
        return any(self._read(collection) for collection in COLLECTIONS)

    # =========================================================================
    # METADATA
    # =========================================================================

    def get_metadata(self) -> Dict[str, Any]:
        raw = self._read_raw(METADATA_KEY)
        if raw is not None:
            try:
                value = json.loads(raw)
                if isinstance(value, dict):
                    value.setdefault("migrated", {})
                    return value
            except ValueError as e:
                logger.error(str(SerializationError(f"Corrupt metadata: {e}", key=METADATA_KEY)))
        return {"version": SCHEMA_VERSION, "lastSync": None, "deviceId": _generate_device_id(), "migrated": {}}

    def update_metadata(self, **changes: Any) -> Dict[str, Any]:
        with self._write_lock:
            metadata = self.get_metadata()
            metadata.update(changes)
            self._write({METADATA_KEY: self._serialize(METADATA_KEY, metadata)})
        return metadata

    # =========================================================================
    # BACKUP
    # =========================================================================

    def clear_all(self) -> None:
        """Remove every collection and the metadata, then re-initialize."""
        with self._write_lock:
            with self.transaction() as conn:
                conn.execute("DELETE FROM kv_store")
            self._initialized = False
            self.initialize()
        logger.info("Local store cleared")

    def export_all(self) -> str:
        """Serialize every collection plus metadata into one JSON backup."""
        backup: Dict[str, Any] = {c: self._read(c) for c in COLLECTIONS}
        backup[METADATA_KEY] = self.get_metadata()
        backup["exportedAt"] = utc_now_iso()
        return json.dumps(backup, ensure_ascii=False, indent=2)

    def import_all(self, backup: str) -> Dict[str, int]:
        """
        Restore collections from a backup produced by export_all.

        Only known keys are restored; all of them are written in one
        transaction.

        Returns:
            Record count restored per collection
        """
        try:
            data = json.loads(backup)
        except ValueError as e:
            raise SerializationError(f"Backup is not valid JSON: {e}", key="backup") from e
        if not isinstance(data, dict):
            raise SerializationError("Backup must be a JSON object", key="backup")

        payloads: Dict[str, str] = {}
        counts: Dict[str, int] = {}
        for collection in COLLECTIONS:
            records = data.get(collection)
            if isinstance(records, list):
                payloads[collection] = self._serialize(collection, records)
                counts[collection] = len(records)
        if isinstance(data.get(METADATA_KEY), dict):
            payloads[METADATA_KEY] = self._serialize(METADATA_KEY, data[METADATA_KEY])

        if payloads:
            with self._write_lock:
                self._write(payloads)
        logger.info(f"Imported backup: {counts}")
        return counts
