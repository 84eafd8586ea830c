# =============================================================================
# contract_core/importing/columns.py
# Import Column Headers and Cell Normalization
# =============================================================================
"""
Maps spreadsheet headers onto record fields.

Headers are compared after folding: Unicode NFC, trimmed, whitespace
collapsed, case-folded and stripped of Vietnamese diacritics, so
"Số hợp đồng", "So hop dong" and "SO HOP DONG" all land on ``soHopDong``.
"""

from __future__ import annotations
import re
import unicodedata
from datetime import date, datetime
from typing import Any, Dict, Mapping, Optional, Tuple
import logging

import numpy as np
import pandas as pd

logger = logging.getLogger(__name__)

DATE_FORMAT = "%d/%m/%Y"

# Record field -> accepted headers (compared after folding)
FIELD_ALIASES: Dict[str, Tuple[str, ...]] = {
    "stt": ("STT", "Số thứ tự"),
    "linhVuc": ("Lĩnh vực",),
    "ngayKy": ("Ngày ký",),
    "soHopDong": ("Số hợp đồng", "Số HĐ"),
    "soPhuLuc": ("Số phụ lục",),
    "tenDonVi": ("Tên đơn vị", "Đối tác"),
    "diaChi": ("Địa chỉ",),
    "idKenh": ("ID Kênh", "Mã kênh"),
    "tenKenh": ("Tên kênh",),
    "mucNhuanBut": ("Mức nhuận bút", "Nhuận bút"),
    "nguoiPhuTrach": ("Người phụ trách",),
    "tinhTrang": ("Tình trạng",),
    "idVideo": ("ID Video",),
    "code": ("Code", "Mã tác phẩm"),
    "tenTacPham": ("Tên tác phẩm",),
    "tacGia": ("Tác giả",),
    "tacGiaNhac": ("Tác giả nhạc",),
    "tacGiaLoi": ("Tác giả lời",),
    "ngayBatDau": ("Ngày bắt đầu",),
    "ngayKetThuc": ("Ngày kết thúc",),
    "thoiGian": ("Thời gian",),
    "thoiLuong": ("Thời lượng",),
    "hinhThuc": ("Hình thức", "Video/Audio", "Loại"),
    "ghiChu1": ("Ghi chú 1",),
    "ghiChu2": ("Ghi chú 2",),
}

_WHITESPACE = re.compile(r"\s+")


def fold_header(text: str) -> str:
    """Accent- and case-insensitive form of a header."""
    text = unicodedata.normalize("NFC", str(text)).strip()
    text = _WHITESPACE.sub(" ", text).casefold().replace("đ", "d")
    decomposed = unicodedata.normalize("NFD", text)
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return unicodedata.normalize("NFC", stripped)


def _build_header_index() -> Dict[str, str]:
    index: Dict[str, str] = {}
    for field, aliases in FIELD_ALIASES.items():
        for alias in aliases + (field,):
            folded = fold_header(alias)
            if index.get(folded, field) != field:
                raise ValueError(f"Header {alias!r} is claimed by {index[folded]!r} and {field!r}")
            index[folded] = field
    return index


HEADER_INDEX = _build_header_index()


def field_for_header(header: Any) -> Optional[str]:
    return HEADER_INDEX.get(fold_header(header))


def cell_text(value: Any) -> str:
    """
    Render a parsed cell as text.

    Empty cells become "", integral floats lose their ".0" and timestamps are
    written as dd/mm/yyyy.
    """
    if value is None:
        return ""
    if isinstance(value, (pd.Timestamp, datetime, date)):
        if pd.isna(value):
            return ""
        return value.strftime(DATE_FORMAT)
    if isinstance(value, (bool, np.bool_)):
        return str(bool(value))
    if isinstance(value, (int, np.integer)):
        return str(int(value))
    if isinstance(value, (float, np.floating)):
        if np.isnan(value):
            return ""
        return str(int(value)) if float(value).is_integer() else str(float(value))
    if pd.api.types.is_scalar(value) and pd.isna(value):
        return ""
    return str(value).strip()


def normalize_row(raw: Mapping[Any, Any]) -> Dict[str, str]:
    """
    Map one parsed row onto record fields.

    Unknown headers are dropped. When several headers map to the same field
    the first non-empty value wins.
    """
    row: Dict[str, str] = {}
    for header, value in raw.items():
        field = field_for_header(header)
        if field is None:
            logger.debug(f"Ignoring unknown column {header!r}")
            continue
        text = cell_text(value)
        if text and not row.get(field):
            row[field] = text
        else:
            row.setdefault(field, "")
    return row


def format_date(value: Any) -> str:
    """
    Normalize a date cell to dd/mm/yyyy.

    Text already split into three "/" parts is kept as written. Anything
    pandas cannot parse is returned unchanged.
    """
    text = cell_text(value)
    if not text:
        return ""
    if len(text.split("/")) == 3:
        return text
    try:
        parsed = pd.to_datetime(text)
    except (ValueError, TypeError, OverflowError):
        return text
    if pd.isna(parsed):
        return text
    return parsed.strftime(DATE_FORMAT)
