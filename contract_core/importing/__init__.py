# =============================================================================
# contract_core/importing/__init__.py
# Spreadsheet Import and Export
# =============================================================================

from .columns import FIELD_ALIASES, fold_header, normalize_row, format_date, cell_text

from .reconciler import (
    ImportFlow,
    ImportReconciler,
    ReconciliationResult,
    RowError,
    build_contract,
    business_key,
)

from .file_io import read_rows, export_records, records_to_frame

from .import_service import ImportService, ImportResult, ImportState

__all__ = [
    # Columns
    "FIELD_ALIASES",
    "fold_header",
    "normalize_row",
    "format_date",
    "cell_text",
    # Reconciliation
    "ImportFlow",
    "ImportReconciler",
    "ReconciliationResult",
    "RowError",
    "build_contract",
    "business_key",
    # Files
    "read_rows",
    "export_records",
    "records_to_frame",
    # Service
    "ImportService",
    "ImportResult",
    "ImportState",
]
