# =============================================================================
# tests/unit/test_import_service.py
# Unit Tests for ImportService
# =============================================================================

import pytest

from contract_core.importing import ImportFlow, ImportService, ImportState


@pytest.fixture
def importer(local_service):
    return ImportService(local_service)


class TestImportRows:
    def test_info_import_persists_everything(self, importer, local_service, info_rows):
        progress = []
        importer.set_progress_callback(lambda pct, msg: progress.append(pct))

        result = importer.import_rows(ImportFlow.INFO, info_rows)

        assert result.success
        assert result.state == ImportState.SUCCESS
        assert (result.new_records, result.updated_records) == (2, 0)
        stats = local_service.get_stats()
        assert stats["contracts"] == 2
        assert stats["partners"] == 2
        assert stats["channels"] == 2
        assert progress[-1] == 100
        assert progress == sorted(progress)

    def test_reimport_updates_in_place(self, importer, local_service, info_rows):
        importer.import_rows(ImportFlow.INFO, info_rows)
        ids = sorted(r["id"] for r in local_service.get_all("contracts"))

        result = importer.import_rows(ImportFlow.INFO, info_rows)

        assert (result.new_records, result.updated_records) == (0, 2)
        assert sorted(r["id"] for r in local_service.get_all("contracts")) == ids
        partners = {p["tenDonVi"]: p for p in local_service.get_all("partners")}
        assert partners["Công ty A"]["soHopDongDaKy"] == 2
        assert local_service.get_stats()["channels"] == 2

    def test_partial_success(self, importer, make_worklist_row):
        rows = [make_worklist_row(1, "HD-1", "W1"), make_worklist_row(2, "", "W2")]
        result = importer.import_rows(ImportFlow.WORKLIST, rows)

        assert result.success
        assert result.state == ImportState.PARTIAL_SUCCESS
        assert result.new_records == 1
        assert result.errors == ["Dòng 3: Thiếu thông tin bắt buộc (Số hợp đồng)"]

    def test_empty_input_fails(self, importer):
        result = importer.import_rows(ImportFlow.INFO, [])
        assert not result.success
        assert result.message == "File không có dữ liệu"

    def test_no_valid_rows_fails(self, importer, local_service):
        result = importer.import_rows(ImportFlow.INFO, [{"STT": "1"}])
        assert result.state == ImportState.FAILURE
        assert result.message == "Không có bản ghi hợp lệ để import"
        assert result.errors[0].startswith("Dòng 2:")
        assert local_service.get_stats()["contracts"] == 0

    def test_persist_failure_is_reported(self, importer, local_service, info_rows, monkeypatch):
        def broken(collection, records):
            raise OSError("disk full")

        monkeypatch.setattr(local_service, "bulk_create", broken)
        result = importer.import_rows(ImportFlow.INFO, info_rows)

        assert result.state == ImportState.FAILURE
        assert result.message == "Lỗi khi lưu dữ liệu: disk full"
        assert importer.state == ImportState.FAILURE

    def test_failure_after_contracts_saved_is_partial(self, importer, local_service, make_worklist_row, monkeypatch):
        """Contracts already written are reported when a later step fails"""
        bulk_create = local_service.bulk_create

        def works_fail(collection, records):
            if collection == "works":
                raise OSError("disk full")
            return bulk_create(collection, records)

        monkeypatch.setattr(local_service, "bulk_create", works_fail)
        rows = [make_worklist_row(1, "HD-1", "W1"), make_worklist_row(2, "HD-2", "W2")]
        result = importer.import_rows(ImportFlow.WORKLIST, rows)

        assert result.state == ImportState.PARTIAL_SUCCESS
        assert result.new_records == 2
        assert result.new_works == 0
        assert result.errors == ["Lỗi khi lưu dữ liệu: disk full"]
        assert "disk full" in result.message
        assert local_service.get_stats()["contracts"] == 2
        assert local_service.get_stats()["works"] == 0

    def test_subscribers_hear_about_import(self, importer, local_service, info_rows):
        seen = []
        local_service.subscribe("contracts", lambda: seen.append("contracts"))
        local_service.subscribe("channels", lambda: seen.append("channels"))
        importer.import_rows(ImportFlow.INFO, info_rows)
        assert seen == ["contracts", "channels"]


class TestImportFile:
    def test_unsupported_extension(self, importer):
        result = importer.import_file(ImportFlow.INFO, b"%PDF-1.4", "contracts.pdf")
        assert not result.success
        assert result.message.startswith("File không đúng định dạng")

    def test_csv_bytes(self, importer, local_service):
        csv = "STT,Lĩnh vực,Ngày ký,Số hợp đồng\n1,SCTT,01/01/2024,HD-1\n,,,\n".encode("utf-8-sig")
        result = importer.import_file(ImportFlow.INFO, csv, "upload.csv")
        assert result.state == ImportState.SUCCESS
        assert local_service.get_all("contracts")[0]["soHopDong"] == "HD-1"


class TestServiceResult:
    def test_success(self, importer, info_rows):
        service_result = importer.import_rows(ImportFlow.INFO, info_rows).to_service_result()
        assert service_result.success
        assert service_result.metadata == {"state": "success"}

    def test_failure(self, importer):
        service_result = importer.import_rows(ImportFlow.INFO, []).to_service_result()
        assert not service_result
        assert service_result.error_code == "IMPORT_FAILED"


class TestProgress:
    def test_progress_is_clamped_and_kept(self, importer):
        seen = []
        importer.set_progress_callback(lambda pct, msg: seen.append(pct))
        importer._update_progress(140, "done")
        importer._update_progress(-5)
        assert seen == [100, 0]
        assert importer.progress == 0
