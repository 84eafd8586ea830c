# =============================================================================
# contract_core/importing/file_io.py
# Reading Import Files and Writing Exports
# =============================================================================

from __future__ import annotations
import io
from pathlib import Path
from typing import Any, BinaryIO, Dict, List, Optional, Union
import logging

import pandas as pd

from contract_core.errors import DataIngestionError, ValidationError
from contract_core.models import COLLECTION_FIELDS
from contract_core.models.schema import AUDIT_FIELDS
from .columns import FIELD_ALIASES

logger = logging.getLogger(__name__)

Source = Union[str, Path, bytes, BinaryIO]

CSV_EXTENSIONS = (".csv",)
EXCEL_EXTENSIONS = (".xlsx", ".xls")

# Column headers for exported fields that are not import columns
EXTRA_LABELS: Dict[str, str] = {
    "totalContracts": "Số hợp đồng đã ký",
    "totalRevenue": "Tổng doanh thu",
    "nguoiDaiDien": "Người đại diện",
    "soDienThoai": "Số điện thoại",
    "email": "Email",
    "website": "Website",
    "soHopDongDaKy": "Số hợp đồng đã ký",
    "tongDoanhThu": "Tổng doanh thu",
    "ghiChu": "Ghi chú",
    "platform": "Nền tảng",
    "subscribers": "Người đăng ký",
    "views": "Lượt xem",
    "ngayTao": "Ngày tạo",
    "trangThai": "Trạng thái",
    "username": "Tên đăng nhập",
    "fullName": "Họ tên",
    "role": "Vai trò",
    "status": "Trạng thái",
    "lastLogin": "Đăng nhập lần cuối",
}


def _as_buffer(source: Source):
    if isinstance(source, bytes):
        return io.BytesIO(source)
    return source


def read_rows(source: Source, filename: Optional[str] = None) -> List[Dict[str, Any]]:
    """
    Parse a CSV or Excel file into raw rows keyed by header.

    Args:
        source: Path, raw bytes or a binary file object (e.g. a Streamlit upload)
        filename: Name used to pick the parser; defaults to the path name

    Raises:
        DataIngestionError: for unsupported extensions or unreadable files
    """
    name = filename or (str(source) if isinstance(source, (str, Path)) else getattr(source, "name", ""))
    suffix = Path(name).suffix.lower()

    try:
        if suffix in CSV_EXTENSIONS:
            df = pd.read_csv(_as_buffer(source), dtype=str, keep_default_na=False, encoding="utf-8-sig")
        elif suffix in EXCEL_EXTENSIONS:
            df = pd.read_excel(_as_buffer(source))
        else:
            raise DataIngestionError(
                "File không đúng định dạng. Chỉ hỗ trợ CSV hoặc Excel.",
                source=name,
                file_type=suffix or None,
            )
    except DataIngestionError:
        raise
    except Exception as e:
        raise DataIngestionError(f"Cannot read {name}: {e}", source=name, file_type=suffix) from e

    df.columns = [str(c).strip() for c in df.columns]
    df = df.replace("", pd.NA).dropna(how="all")
    logger.info(f"Read {len(df)} rows from {name}")
    return df.to_dict(orient="records")


def column_label(field: str) -> str:
    aliases = FIELD_ALIASES.get(field)
    return aliases[0] if aliases else EXTRA_LABELS.get(field, field)


def records_to_frame(collection: str, records: List[Dict[str, Any]]) -> pd.DataFrame:
    """Tabulate records with user-facing column headers; audit fields and the change log are left out."""
    if collection not in COLLECTION_FIELDS:
        raise ValidationError(f"Unknown collection: {collection}", field="collection")
    excluded = {app for app, _ in AUDIT_FIELDS} | {"nhatKy"}
    fields = [app for app, _ in COLLECTION_FIELDS[collection] if app not in excluded]
    df = pd.DataFrame(records, columns=fields).fillna("")
    return df.rename(columns={f: column_label(f) for f in fields})


def export_records(collection: str, records: List[Dict[str, Any]], fmt: str = "csv") -> bytes:
    """
    Render records as CSV (UTF-8 with BOM, opens cleanly in Excel) or XLSX bytes.
    """
    df = records_to_frame(collection, records)
    fmt = fmt.lower()
    if fmt == "csv":
        return df.to_csv(index=False).encode("utf-8-sig")
    if fmt in ("excel", "xlsx"):
        buffer = io.BytesIO()
        df.to_excel(buffer, index=False, sheet_name=collection, engine="openpyxl")
        return buffer.getvalue()
    raise ValidationError(f"Định dạng không hỗ trợ: {fmt}", field="fmt")
