# =============================================================================
# contract_core/importing/import_service.py
# Import Orchestration: Parse, Reconcile, Persist
# =============================================================================

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional

from contract_core.errors import ContractCoreError, DataIngestionError, handle_error
from contract_core.models import CHANNELS, CONTRACTS, PARTNERS, WORKS
from contract_core.services import BaseService, ServiceResult
from contract_core.storage import UnifiedDataService
from .file_io import Source, read_rows
from .reconciler import ImportFlow, ImportReconciler, ReconciliationResult


class ImportState(Enum):
    IDLE = "idle"
    PARSING = "parsing"
    RECONCILING = "reconciling"
    PERSISTING = "persisting"
    SUCCESS = "success"
    PARTIAL_SUCCESS = "partial_success"
    FAILURE = "failure"


@dataclass
class ImportResult:
    success: bool
    state: ImportState
    message: str
    total_records: int = 0
    new_records: int = 0
    updated_records: int = 0
    errors: List[str] = field(default_factory=list)
    new_works: int = 0
    updated_works: int = 0
    new_partners: int = 0
    updated_partners: int = 0
    new_channels: int = 0

    def to_service_result(self) -> ServiceResult:
        if self.success:
            return ServiceResult.ok(self, metadata={"state": self.state.value})
        return ServiceResult.fail(self.message, error_code="IMPORT_FAILED", metadata={"errors": self.errors})


class ImportService(BaseService):
    """
    Runs one Info or WorkList import against the data service.

    Usage:
        importer = ImportService(service)
        importer.set_progress_callback(lambda pct, msg: bar.progress(pct, msg))
        result = importer.import_file(ImportFlow.INFO, upload, upload.name)
    """

    def __init__(self, data_service: UnifiedDataService):
        super().__init__()
        self.data_service = data_service
        self.state = ImportState.IDLE

    def _fail(self, message: str, errors: Optional[List[str]] = None) -> ImportResult:
        self.state = ImportState.FAILURE
        self._update_progress(100, message)
        return ImportResult(
            success=False,
            state=ImportState.FAILURE,
            message=message,
            errors=errors if errors is not None else [message],
        )

    def import_file(self, flow: ImportFlow, source: Source, filename: Optional[str] = None) -> ImportResult:
        """Parse a CSV/Excel file and import its rows."""
        self.state = ImportState.PARSING
        self._update_progress(10, "Đang đọc file...")
        try:
            rows = read_rows(source, filename)
        except DataIngestionError as e:
            handle_error(e, show_user_message=False)
            return self._fail(e.message)
        return self.import_rows(flow, rows)

    def import_rows(self, flow: ImportFlow, rows: Iterable[Mapping[Any, Any]]) -> ImportResult:
        """Reconcile parsed rows against stored data and persist the outcome."""
        rows = list(rows)
        if not rows:
            return self._fail("File không có dữ liệu")

        with self.log_operation(f"Importing {len(rows)} {flow.value} rows"):
            self.state = ImportState.RECONCILING
            self._update_progress(30, "Đang đối chiếu dữ liệu...")
            try:
                reconciliation = ImportReconciler(
                    flow,
                    contracts=self.data_service.get_all(CONTRACTS),
                    works=self.data_service.get_all(WORKS),
                    partners=self.data_service.get_all(PARTNERS),
                    channels=self.data_service.get_all(CHANNELS),
                ).reconcile(rows)
            except ContractCoreError as e:
                handle_error(e, show_user_message=False)
                return self._fail(f"Lỗi khi import {flow.value}: {e.message}")

            errors = reconciliation.error_messages
            if reconciliation.total_records == 0:
                return self._fail("Không có bản ghi hợp lệ để import", errors=errors)

            self.state = ImportState.PERSISTING
            written: Dict[str, int] = {}
            persist_error: Optional[str] = None
            try:
                self._persist(reconciliation, written)
            except Exception as e:
                handle_error(e, show_user_message=False)
                message = e.message if isinstance(e, ContractCoreError) else str(e)
                persist_error = f"Lỗi khi lưu dữ liệu: {message}"
                if not any(written.values()):
                    return self._fail(persist_error, errors=errors + [message])
                errors = errors + [persist_error]

        def count(key: str, records: List[Any]) -> int:
            return written.get(key, 0) if persist_error else len(records)

        new_records = count("contracts_create", reconciliation.new_records)
        updated_records = count("contracts_update", reconciliation.updated_records)
        if persist_error:
            message = (
                f"Import {flow.value} chưa hoàn tất: {new_records} bản ghi mới, "
                f"cập nhật {updated_records} bản ghi. {persist_error}"
            )
        else:
            message = (
                f"Import {flow.value} thành công: {new_records} bản ghi mới, "
                f"cập nhật {updated_records} bản ghi"
            )

        state = ImportState.PARTIAL_SUCCESS if errors else ImportState.SUCCESS
        self.state = state
        result = ImportResult(
            success=True,
            state=state,
            message=message,
            total_records=reconciliation.total_records,
            new_records=new_records,
            updated_records=updated_records,
            errors=errors,
            new_works=count("works_create", reconciliation.new_works),
            updated_works=count("works_update", reconciliation.updated_works),
            new_partners=count("partners_create", reconciliation.new_partners),
            updated_partners=count("partners_update", reconciliation.updated_partners),
            new_channels=count("channels_create", reconciliation.new_channels),
        )
        self._update_progress(100, result.message)
        self.logger.info(f"{result.message}; {len(errors)} errors")
        return result

    def _persist(self, reconciliation: ReconciliationResult, written: Dict[str, int]) -> None:
        """
        One bulk call per collection and kind, contracts first.

        ``written`` is filled as each step completes, so it still holds the
        earlier counts when a later step raises.
        """
        steps = [
            (CONTRACTS, "create", reconciliation.new_records),
            (CONTRACTS, "update", reconciliation.updated_records),
            (WORKS, "create", reconciliation.new_works),
            (WORKS, "update", reconciliation.updated_works),
            (PARTNERS, "create", reconciliation.new_partners),
            (PARTNERS, "update", reconciliation.updated_partners),
            (CHANNELS, "create", reconciliation.new_channels),
        ]
        for position, (collection, kind, records) in enumerate(steps, start=1):
            if not records:
                continue
            if kind == "create":
                saved = self.data_service.bulk_create(collection, records)
            else:
                saved = self.data_service.bulk_update(collection, records)
            written[f"{collection}_{kind}"] = len(saved)
            self._update_progress(
                60 + int(35 * position / len(steps)),
                f"Đã lưu {collection}",
            )
