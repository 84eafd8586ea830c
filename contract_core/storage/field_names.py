# =============================================================================
# contract_core/storage/field_names.py
# Field Name Translation Between Application and Storage Conventions
# =============================================================================
"""
Bidirectional field-name translation.

Records travel through the application with camelCase keys and are stored in
the hosted database with snake_case columns. The translation is driven by the
explicit table in ``contract_core.models.schema`` and is verified to be a
bijection when this module is imported. Single-name lookups are strict;
whole-record translation passes unknown keys through in both directions.
"""

from __future__ import annotations
import logging
from typing import Any, Dict, Iterable, Optional, Tuple

from contract_core.errors import FieldMappingError, ValidationError
from contract_core.models.schema import COLLECTION_FIELDS

logger = logging.getLogger(__name__)


def _build_tables(
    pairs: Iterable[Tuple[str, str]],
) -> Tuple[Dict[str, str], Dict[str, str]]:
    to_storage: Dict[str, str] = {}
    to_app: Dict[str, str] = {}
    for app_name, storage_name in pairs:
        if to_storage.get(app_name, storage_name) != storage_name:
            raise FieldMappingError(
                f"Field {app_name!r} maps to both {to_storage[app_name]!r} and {storage_name!r}",
                field=app_name,
            )
        if to_app.get(storage_name, app_name) != app_name:
            raise FieldMappingError(
                f"Column {storage_name!r} maps back to both {to_app[storage_name]!r} and {app_name!r}",
                field=storage_name,
            )
        to_storage[app_name] = storage_name
        to_app[storage_name] = app_name
    return to_storage, to_app


# Global tables (union of all collections) plus one pair per collection
APP_TO_STORAGE, STORAGE_TO_APP = _build_tables(
    pair for fields in COLLECTION_FIELDS.values() for pair in fields
)
_COLLECTION_TABLES = {
    collection: _build_tables(fields)
    for collection, fields in COLLECTION_FIELDS.items()
}


def _tables(collection: Optional[str]) -> Tuple[Dict[str, str], Dict[str, str]]:
    if collection is None:
        return APP_TO_STORAGE, STORAGE_TO_APP
    try:
        return _COLLECTION_TABLES[collection]
    except KeyError:
        raise ValidationError(
            f"Unknown collection: {collection}",
            field="collection",
        ) from None


def to_storage_name(name: str, collection: Optional[str] = None) -> str:
    """Translate an application field name (camelCase) to its storage column."""
    to_storage, _ = _tables(collection)
    try:
        return to_storage[name]
    except KeyError:
        raise FieldMappingError(
            f"No storage column for field {name!r}",
            field=name,
            details={"collection": collection} if collection else {},
        ) from None


def to_app_name(name: str, collection: Optional[str] = None) -> str:
    """Translate a storage column (snake_case) to its application field name."""
    _, to_app = _tables(collection)
    try:
        return to_app[name]
    except KeyError:
        raise FieldMappingError(
            f"No application field for column {name!r}",
            field=name,
            details={"collection": collection} if collection else {},
        ) from None


def to_storage_record(record: Dict[str, Any], collection: Optional[str] = None) -> Dict[str, Any]:
    """
    Translate every key of an application record to storage columns.

    Keys that are not in the naming table are passed through unchanged, so a
    record read with ``to_app_record`` can always be written back.
    """
    to_storage, _ = _tables(collection)
    row: Dict[str, Any] = {}
    for key, value in record.items():
        column = to_storage.get(key)
        if column is None:
            logger.debug(f"Passing through unmapped field {key!r}")
            column = key
        row[column] = value
    return row


def to_app_record(row: Dict[str, Any], collection: Optional[str] = None) -> Dict[str, Any]:
    """
    Translate a storage row to an application record.

    Columns that are not in the naming table are passed through unchanged.
    """
    _, to_app = _tables(collection)
    record: Dict[str, Any] = {}
    for key, value in row.items():
        app_key = to_app.get(key)
        if app_key is None:
            logger.debug(f"Passing through unmapped column {key!r}")
            app_key = key
        record[app_key] = value
    return record
