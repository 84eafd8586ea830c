# =============================================================================
# tests/conftest.py
# Pytest Configuration and Fixtures
# =============================================================================

import itertools
import uuid
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Optional

import pytest

from contract_core.config import Settings
from contract_core.storage import (
    ConnectionManager,
    LocalStore,
    RemoteStore,
    UnifiedDataService,
)


# =============================================================================
# FAKE SUPABASE CLIENT
# =============================================================================

class FakeResponse:
    def __init__(self, data=None, count=None):
        self.data = data
        self.count = count


class FakeQuery:
    """Chainable stand-in for the PostgREST query builder."""

    def __init__(self, client: "FakeSupabaseClient", table: str):
        self.client = client
        self.table = table
        self.action = "select"
        self.payload: Any = None
        self.filters: List[Callable[[Dict[str, Any]], bool]] = []
        self.order_by: Optional[str] = None
        self.descending = False
        self.window: Optional[tuple] = None
        self.max_rows: Optional[int] = None
        self.count_mode: Optional[str] = None
        self.head = False

    def select(self, columns="*", count=None, head=False):
        self.action = "select"
        self.count_mode = count
        self.head = head
        return self

    def insert(self, payload):
        self.action = "insert"
        self.payload = payload
        return self

    def update(self, payload):
        self.action = "update"
        self.payload = payload
        return self

    def delete(self):
        self.action = "delete"
        return self

    def eq(self, column, value):
        self.filters.append(lambda row: row.get(column) == value)
        return self

    def in_(self, column, values):
        values = list(values)
        self.filters.append(lambda row: row.get(column) in values)
        return self

    def order(self, column, desc=False):
        self.order_by = column
        self.descending = desc
        return self

    def range(self, start, end):
        self.window = (start, end)
        return self

    def limit(self, size):
        self.max_rows = size
        return self

    def _matching(self) -> List[Dict[str, Any]]:
        rows = self.client.tables.setdefault(self.table, [])
        return [row for row in rows if all(f(row) for f in self.filters)]

    def execute(self) -> FakeResponse:
        self.client.calls.append((self.table, self.action))
        if self.client.failing:
            raise ConnectionError("simulated backend outage")

        rows = self.client.tables.setdefault(self.table, [])

        if self.action == "select":
            found = self._matching()
            if self.order_by:
                found = sorted(found, key=lambda r: r.get(self.order_by) or "", reverse=self.descending)
            if self.window:
                found = found[self.window[0]:self.window[1] + 1]
            if self.max_rows is not None:
                found = found[:self.max_rows]
            count = len(self._matching()) if self.count_mode == "exact" else None
            return FakeResponse([] if self.head else [dict(r) for r in found], count)

        if self.action == "insert":
            payload = self.payload if isinstance(self.payload, list) else [self.payload]
            inserted = []
            for item in payload:
                row = dict(item)
                row.setdefault("id", str(uuid.uuid4()))
                row.setdefault("created_at", self.client.next_timestamp())
                row.setdefault("updated_at", row["created_at"])
                rows.append(row)
                inserted.append(dict(row))
            self.client.emit(self.table, "INSERT")
            return FakeResponse(inserted)

        if self.action == "update":
            changed = []
            for row in self._matching():
                row.update(self.payload)
                changed.append(dict(row))
            if changed:
                self.client.emit(self.table, "UPDATE")
            return FakeResponse(changed)

        if self.action == "delete":
            doomed = self._matching()
            self.client.tables[self.table] = [r for r in rows if r not in doomed]
            if doomed:
                self.client.emit(self.table, "DELETE")
            return FakeResponse([dict(r) for r in doomed])

        raise AssertionError(f"unknown action {self.action}")


class FakeChannel:
    def __init__(self, client: "FakeSupabaseClient", name: str):
        self.client = client
        self.name = name
        self.table: Optional[str] = None
        self.callback = None
        self.subscribed = False

    def on_postgres_changes(self, event, callback, table=None, schema=None, filter=None):
        self.table = table
        self.callback = callback
        return self

    def subscribe(self, callback=None):
        self.subscribed = True
        return self


class FakeSupabaseClient:
    """In-memory Supabase client with realtime change events."""

    def __init__(self):
        self.tables: Dict[str, List[Dict[str, Any]]] = {}
        self.channels: List[FakeChannel] = []
        self.removed: List[FakeChannel] = []
        self.calls: List[tuple] = []
        self.failing = False
        self._clock = itertools.count()
        self._base = datetime(2024, 1, 1)

    def next_timestamp(self) -> str:
        return (self._base + timedelta(seconds=next(self._clock))).isoformat()

    def table(self, name: str) -> FakeQuery:
        return FakeQuery(self, name)

    def channel(self, name: str) -> FakeChannel:
        if self.failing:
            raise ConnectionError("simulated realtime outage")
        channel = FakeChannel(self, name)
        self.channels.append(channel)
        return channel

    def remove_channel(self, channel: FakeChannel) -> None:
        self.removed.append(channel)
        if channel in self.channels:
            self.channels.remove(channel)

    def emit(self, table: str, event: str) -> None:
        for channel in list(self.channels):
            if channel.subscribed and channel.table == table and channel.callback:
                channel.callback({"eventType": event, "table": table})


# =============================================================================
# FIXTURES
# =============================================================================

@pytest.fixture
def fake_client():
    return FakeSupabaseClient()


@pytest.fixture
def remote_store(fake_client):
    return RemoteStore(fake_client)


@pytest.fixture
def local_store(tmp_path):
    store = LocalStore(tmp_path / "contracts.db")
    store.initialize()
    yield store
    store.close()


@pytest.fixture
def settings(tmp_path):
    return Settings(
        supabase_url="https://example.supabase.co",
        supabase_key="test-key",
        local_db_path=tmp_path / "contracts.db",
        probe_timeout=1.0,
    )


@pytest.fixture
def reachable_host(monkeypatch):
    """Pretend the backend host accepts TCP connections."""
    monkeypatch.setattr(ConnectionManager, "_check_host", lambda self: True)


@pytest.fixture
def remote_service(settings, local_store, remote_store, reachable_host):
    """UnifiedDataService that starts in REMOTE mode against the fake client."""
    manager = ConnectionManager(settings, remote_store)
    service = UnifiedDataService(local_store, remote=remote_store, connection_manager=manager)
    service.initialize()
    yield service
    service.close()


@pytest.fixture
def local_service(local_store):
    """UnifiedDataService with no remote backend configured."""
    service = UnifiedDataService(local_store)
    service.initialize()
    yield service
    service.close()


# =============================================================================
# SAMPLE IMPORT ROWS
# =============================================================================

@pytest.fixture
def info_rows():
    """Info file rows as parsed from a spreadsheet (Vietnamese headers)."""
    return [
        {
            "STT": "1", "Lĩnh vực": "SCTT", "Ngày ký": "01/02/2024",
            "Số hợp đồng": "HD-001", "Số phụ lục": "PL-1",
            "Tên đơn vị": "Công ty A", "Địa chỉ": "Hà Nội",
            "ID Kênh": "UC123", "Tên kênh": "Kênh A",
            "Mức nhuận bút": "1,500,000", "Người phụ trách": "Lan", "Tình trạng": "Đã ký",
        },
        {
            "STT": "2", "Lĩnh vực": "SCTT", "Ngày ký": "05/02/2024",
            "Số hợp đồng": "HD-002", "Số phụ lục": "",
            "Tên đơn vị": "Công ty B", "Địa chỉ": "Huế",
            "ID Kênh": "fb-77", "Tên kênh": "Trang B",
            "Mức nhuận bút": "200,000", "Người phụ trách": "Minh", "Tình trạng": "Đã ký",
        },
    ]


def worklist_row(stt, contract, code, revenue="100", **overrides):
    row = {
        "STT": str(stt), "Lĩnh vực": "SCTT", "Ngày ký": "01/03/2024",
        "Số hợp đồng": contract, "Số phụ lục": "",
        "ID Kênh": "UC999", "Tên kênh": "Kênh Nhạc",
        "Người phụ trách": "Lan", "Tình trạng": "Đã ký",
        "Code": code, "Tên tác phẩm": f"Bài {code}", "Tác giả": "Tác giả X",
        "Ngày bắt đầu": "01/03/2024", "Ngày kết thúc": "01/03/2025",
        "Hình thức": "Audio", "Mức nhuận bút": revenue,
    }
    row.update(overrides)
    return row


@pytest.fixture
def make_worklist_row():
    return worklist_row
