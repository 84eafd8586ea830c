# =============================================================================
# tests/integration/test_import_pipeline.py
# Integration Tests: Spreadsheet File -> Reconcile -> Storage -> Export
# =============================================================================

import io

import pandas as pd
import pytest

from contract_core.errors import ValidationError
from contract_core.importing import ImportFlow, ImportService, ImportState, export_records, read_rows


@pytest.fixture
def info_csv(tmp_path, info_rows):
    path = tmp_path / "thong_tin_hop_dong.csv"
    pd.DataFrame(info_rows).to_csv(path, index=False, encoding="utf-8-sig")
    return path


@pytest.fixture
def worklist_xlsx(tmp_path, make_worklist_row):
    rows = [
        make_worklist_row(1, "HD-001", "W1", revenue="100", **{"Số phụ lục": "PL-1"}),
        make_worklist_row(2, "HD-002", "W1", revenue="200"),
        make_worklist_row(3, "HD-002", "W2", revenue="50", **{"Tác giả": ""}),
    ]
    path = tmp_path / "danh_sach_tac_pham.xlsx"
    pd.DataFrame(rows).to_excel(path, index=False)
    return path


class TestReadRows:
    def test_csv_keeps_text(self, info_csv):
        rows = read_rows(info_csv)
        assert len(rows) == 2
        assert rows[0]["Số hợp đồng"] == "HD-001"
        assert rows[0]["Mức nhuận bút"] == "1,500,000"

    def test_excel(self, worklist_xlsx):
        rows = read_rows(worklist_xlsx)
        assert len(rows) == 3
        assert rows[0]["Code"] == "W1"

    def test_file_object_with_name(self, info_csv):
        with open(info_csv, "rb") as handle:
            assert len(read_rows(handle, "upload.CSV")) == 2


class TestLocalImportPipeline:
    def test_info_then_worklist(self, local_service, info_csv, worklist_xlsx):
        importer = ImportService(local_service)

        info = importer.import_file(ImportFlow.INFO, info_csv)
        assert info.state == ImportState.SUCCESS
        assert info.new_records == 2

        worklist = importer.import_file(ImportFlow.WORKLIST, worklist_xlsx)
        assert worklist.state == ImportState.PARTIAL_SUCCESS
        assert worklist.new_records == 2
        assert worklist.errors == ["Dòng 4: Thiếu thông tin bắt buộc (Tác giả)"]

        works = {w["code"]: w for w in local_service.get_all("works")}
        assert works["W1"]["totalContracts"] == 2
        assert works["W1"]["totalRevenue"] == 300

        # WorkList rows take the partner from the Info contract with the same numbers
        by_code = {c["code"]: c for c in local_service.get_all("contracts") if c.get("code")}
        assert by_code["W1"]["tenDonVi"] in ("Công ty A", "Công ty B")
        assert local_service.get_stats()["contracts"] == 4

    def test_export_round_trip(self, local_service, info_csv):
        ImportService(local_service).import_file(ImportFlow.INFO, info_csv)
        contracts = local_service.get_all("contracts")

        csv_bytes = export_records("contracts", contracts, "csv")
        assert csv_bytes.startswith(b"\xef\xbb\xbf")
        exported = pd.read_csv(io.BytesIO(csv_bytes), dtype=str, encoding="utf-8-sig")
        assert "Số hợp đồng" in exported.columns
        assert "createdAt" not in exported.columns
        assert "nhatKy" not in exported.columns
        assert sorted(exported["Số hợp đồng"]) == ["HD-001", "HD-002"]

        xlsx = pd.read_excel(io.BytesIO(export_records("contracts", contracts, "xlsx")))
        assert len(xlsx) == 2

        with pytest.raises(ValidationError):
            export_records("contracts", contracts, "pdf")


class TestRemoteImportPipeline:
    def test_import_writes_snake_case_rows(self, remote_service, fake_client, info_csv):
        result = ImportService(remote_service).import_file(ImportFlow.INFO, info_csv)

        assert result.state == ImportState.SUCCESS
        numbers = sorted(r["so_hop_dong"] for r in fake_client.tables["contracts"])
        assert numbers == ["HD-001", "HD-002"]
        assert {r["ten_don_vi"] for r in fake_client.tables["partners"]} == {"Công ty A", "Công ty B"}

    def test_reimport_updates_remote_rows(self, remote_service, fake_client, info_csv):
        importer = ImportService(remote_service)
        importer.import_file(ImportFlow.INFO, info_csv)
        result = importer.import_file(ImportFlow.INFO, info_csv)

        assert (result.new_records, result.updated_records) == (0, 2)
        assert len(fake_client.tables["contracts"]) == 2
        totals = {r["ten_don_vi"]: r["so_hop_dong_da_ky"] for r in fake_client.tables["partners"]}
        assert totals == {"Công ty A": 2, "Công ty B": 2}
