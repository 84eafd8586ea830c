# =============================================================================
# tests/unit/test_columns.py
# Unit Tests for Import Header Matching and Cell Normalization
# =============================================================================

import numpy as np
import pandas as pd
import pytest

from contract_core.importing import cell_text, fold_header, format_date, normalize_row
from contract_core.importing.columns import field_for_header


class TestHeaderFolding:
    def test_accents_and_case_are_ignored(self):
        assert fold_header("Số hợp đồng") == "so hop dong"
        assert fold_header("SO HOP DONG") == "so hop dong"
        assert fold_header("  Số   hợp\tđồng ") == "so hop dong"

    @pytest.mark.parametrize("header, field", [
        ("Số hợp đồng", "soHopDong"),
        ("so hd", "soHopDong"),
        ("Video/Audio", "hinhThuc"),
        ("Loại", "hinhThuc"),
        ("Mã tác phẩm", "code"),
        ("ID KÊNH", "idKenh"),
        ("soHopDong", "soHopDong"),
        ("ghi chu 1", "ghiChu1"),
    ])
    def test_aliases(self, header, field):
        assert field_for_header(header) == field

    def test_unknown_header(self):
        assert field_for_header("Cột lạ") is None


class TestCellText:
    @pytest.mark.parametrize("value, expected", [
        (None, ""),
        (np.nan, ""),
        (pd.NA, ""),
        (12.0, "12"),
        (12.5, "12.5"),
        (np.int64(7), "7"),
        (" HD-1 ", "HD-1"),
        (pd.Timestamp("2024-03-05"), "05/03/2024"),
    ])
    def test_cell_text(self, value, expected):
        assert cell_text(value) == expected


class TestNormalizeRow:
    def test_unknown_columns_dropped(self):
        row = normalize_row({"Số hợp đồng": "HD-1", "Extra": "x"})
        assert row == {"soHopDong": "HD-1"}

    def test_first_non_empty_alias_wins(self):
        assert normalize_row({"Hình thức": "", "Loại": "Video"})["hinhThuc"] == "Video"
        assert normalize_row({"Hình thức": "Audio", "Loại": "Video"})["hinhThuc"] == "Audio"

    def test_empty_cells_are_kept_as_blank(self):
        assert normalize_row({"Số phụ lục": np.nan}) == {"soPhuLuc": ""}


class TestFormatDate:
    @pytest.mark.parametrize("value, expected", [
        ("1/2/2024", "1/2/2024"),
        ("2024-02-01", "01/02/2024"),
        (pd.Timestamp("2024-12-31"), "31/12/2024"),
        ("not a date", "not a date"),
        ("", ""),
        (None, ""),
    ])
    def test_format_date(self, value, expected):
        assert format_date(value) == expected
