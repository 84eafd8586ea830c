# =============================================================================
# contract_core/storage/backend.py
# Common Interface for Local and Remote Storage
# =============================================================================

from __future__ import annotations
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from contract_core.errors import ValidationError
from contract_core.models import COLLECTIONS

Record = Dict[str, Any]


def check_collection(collection: str) -> str:
    """Raise ValidationError for anything that is not a known collection name."""
    if collection not in COLLECTIONS:
        raise ValidationError(
            f"Unknown collection: {collection}",
            field="collection",
            details={"known": list(COLLECTIONS)},
        )
    return collection


class DataBackend(ABC):
    """
    Storage backend contract shared by RemoteStore and LocalStore.

    Records use application (camelCase) field names on both sides of this
    interface. ``update`` raises NotFoundError for an absent id; ``delete``
    reports whether a record was removed; ``bulk_update`` skips ids that do
    not exist and returns only the records it wrote.
    """

    name: str = "backend"

    @abstractmethod
    def get_all(self, collection: str) -> List[Record]:
        ...

    def get_by_id(self, collection: str, record_id: str) -> Optional[Record]:
        for record in self.get_all(collection):
            if record.get("id") == record_id:
                return record
        return None

    @abstractmethod
    def create(self, collection: str, record: Record) -> Record:
        ...

    @abstractmethod
    def update(self, collection: str, record_id: str, partial: Record) -> Record:
        ...

    @abstractmethod
    def delete(self, collection: str, record_id: str) -> bool:
        ...

    @abstractmethod
    def bulk_create(self, collection: str, records: List[Record]) -> List[Record]:
        ...

    @abstractmethod
    def bulk_update(self, collection: str, records: List[Record]) -> List[Record]:
        ...

    @abstractmethod
    def get_stats(self) -> Dict[str, int]:
        ...
