# =============================================================================
# contract_core/importing/reconciler.py
# Reconciliation of Imported Contract Rows Against Stored Collections
# =============================================================================
"""
ImportReconciler - decides, row by row, what an import batch writes.

For each row:
1. Map headers onto fields and check the mandatory fields of the flow.
   A row that fails is reported with its spreadsheet line and skipped.
2. Compute the business key (contract number, addendum number and channel
   id for Info files; work code instead of channel id for WorkList files).
3. A key already stored becomes an update of that record, a new key a new
   record. Later rows with the same key in the batch merge into the same
   pending insert or update, so one key never yields two writes.
4. Work, Partner and Channel records are derived from the row, with the
   running totals of works and partners increased per row.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple
import logging

from contract_core.errors import ValidationError
from contract_core.models import (
    Channel,
    ChannelStatus,
    Contract,
    ContractStatus,
    Partner,
    Work,
    channel_platform,
    new_id,
    parse_amount,
)
from .columns import FIELD_ALIASES, format_date, normalize_row

logger = logging.getLogger(__name__)

Record = Dict[str, Any]


class ImportFlow(Enum):
    INFO = "info"
    WORKLIST = "worklist"


INFO_REQUIRED: Tuple[str, ...] = ("stt", "linhVuc", "ngayKy", "soHopDong")
WORKLIST_REQUIRED: Tuple[str, ...] = INFO_REQUIRED + (
    "code", "tenTacPham", "tacGia", "ngayBatDau", "ngayKetThuc", "hinhThuc",
)

# Fields each file type carries; nothing else is overwritten on update
INFO_FIELDS: Tuple[str, ...] = (
    "stt", "linhVuc", "ngayKy", "soHopDong", "soPhuLuc", "tenDonVi", "diaChi",
    "idKenh", "tenKenh", "mucNhuanBut", "nguoiPhuTrach", "tinhTrang",
)
WORKLIST_FIELDS: Tuple[str, ...] = (
    "stt", "linhVuc", "ngayKy", "soHopDong", "soPhuLuc", "idKenh", "tenKenh",
    "nguoiPhuTrach", "tinhTrang", "idVideo", "code", "tenTacPham", "tacGia",
    "tacGiaNhac", "tacGiaLoi", "ngayBatDau", "ngayKetThuc", "thoiGian",
    "thoiLuong", "hinhThuc", "mucNhuanBut", "ghiChu1", "ghiChu2",
)

BUSINESS_KEYS = {
    ImportFlow.INFO: ("soHopDong", "soPhuLuc", "idKenh"),
    ImportFlow.WORKLIST: ("soHopDong", "soPhuLuc", "code"),
}

REQUIRED_FIELDS = {
    ImportFlow.INFO: INFO_REQUIRED,
    ImportFlow.WORKLIST: WORKLIST_REQUIRED,
}

FLOW_FIELDS = {
    ImportFlow.INFO: INFO_FIELDS,
    ImportFlow.WORKLIST: WORKLIST_FIELDS,
}

DATE_FIELDS = ("ngayKy", "ngayBatDau", "ngayKetThuc")

# Work fields refreshed from the latest contract row carrying that code
WORK_DETAIL_FIELDS: Tuple[str, ...] = (
    "soHopDong", "soPhuLuc", "idKenh", "tenKenh", "tenTacPham", "tacGia",
    "tacGiaNhac", "tacGiaLoi", "ngayBatDau", "ngayKetThuc", "thoiLuong",
    "hinhThuc", "mucNhuanBut", "tinhTrang",
)


def field_label(name: str) -> str:
    """Column header shown to users for a record field."""
    aliases = FIELD_ALIASES.get(name)
    return aliases[0] if aliases else name


def _text(record: Mapping[str, Any], name: str) -> str:
    value = record.get(name)
    return "" if value is None else str(value).strip()


def business_key(record: Mapping[str, Any], flow: ImportFlow) -> Tuple[str, ...]:
    return tuple(_text(record, name) for name in BUSINESS_KEYS[flow])


@dataclass
class RowError:
    """A rejected import row."""
    row_number: int                 # 1-based position among data rows
    missing_fields: List[str] = field(default_factory=list)

    @property
    def line_number(self) -> int:
        """Spreadsheet line, counting the header line."""
        return self.row_number + 1

    @property
    def message(self) -> str:
        labels = ", ".join(field_label(name) for name in self.missing_fields)
        return f"Dòng {self.line_number}: Thiếu thông tin bắt buộc ({labels})"

    def __str__(self) -> str:
        return self.message


@dataclass
class ReconciliationResult:
    new_records: List[Record] = field(default_factory=list)
    updated_records: List[Record] = field(default_factory=list)
    errors: List[RowError] = field(default_factory=list)
    new_works: List[Record] = field(default_factory=list)
    updated_works: List[Record] = field(default_factory=list)
    new_partners: List[Record] = field(default_factory=list)
    updated_partners: List[Record] = field(default_factory=list)
    new_channels: List[Record] = field(default_factory=list)

    @property
    def total_records(self) -> int:
        return len(self.new_records) + len(self.updated_records)

    @property
    def error_messages(self) -> List[str]:
        return [error.message for error in self.errors]


def build_contract(
    row: Mapping[str, str],
    flow: ImportFlow,
    row_number: int,
    inherited: Optional[Mapping[str, Any]] = None,
) -> Tuple[Optional[Contract], List[ValidationError]]:
    """
    Build a Contract from a normalized row, or report what is missing.

    Args:
        row: Row keyed by record field names (see normalize_row)
        flow: Which file type the row comes from
        row_number: 1-based data row position, used in errors
        inherited: Stored contract with the same contract and addendum
            numbers; WorkList rows take the partner name and address from it

    Returns:
        (contract, []) when valid, (None, errors) otherwise
    """
    missing = [name for name in REQUIRED_FIELDS[flow] if not _text(row, name)]
    if missing:
        return None, [
            ValidationError(
                f"Thiếu thông tin bắt buộc: {field_label(name)}",
                field=name,
                row=row_number,
            )
            for name in missing
        ]

    values: Record = {name: _text(row, name) for name in FLOW_FIELDS[flow]}
    values["id"] = new_id()
    for name in DATE_FIELDS:
        if name in values:
            values[name] = format_date(values[name])
    values["tinhTrang"] = values.get("tinhTrang") or ContractStatus.SIGNED.value
    values["mucNhuanBut"] = values.get("mucNhuanBut") or "0"

    if flow == ImportFlow.WORKLIST and inherited:
        values["tenDonVi"] = _text(inherited, "tenDonVi")
        values["diaChi"] = _text(inherited, "diaChi")

    return Contract.from_record(values), []


class ImportReconciler:
    """
    Usage:
        reconciler = ImportReconciler(
            ImportFlow.WORKLIST,
            contracts=service.get_all("contracts"),
            works=service.get_all("works"),
            partners=service.get_all("partners"),
            channels=service.get_all("channels"),
        )
        result = reconciler.reconcile(rows)
    """

    def __init__(
        self,
        flow: ImportFlow,
        contracts: Iterable[Record] = (),
        works: Iterable[Record] = (),
        partners: Iterable[Record] = (),
        channels: Iterable[Record] = (),
    ):
        self.flow = flow
        self._contracts = list(contracts)
        self._works = list(works)
        self._partners = list(partners)
        self._channels = list(channels)

    def reconcile(self, rows: Iterable[Mapping[Any, Any]]) -> ReconciliationResult:
        """Partition rows into inserts, updates and errors; derive related records."""
        flow = self.flow

        stored_by_key: Dict[Tuple[str, ...], Record] = {}
        partner_source: Dict[Tuple[str, str], Record] = {}
        for contract in self._contracts:
            stored_by_key.setdefault(business_key(contract, flow), contract)
            number = (_text(contract, "soHopDong"), _text(contract, "soPhuLuc"))
            if _text(contract, "tenDonVi"):
                partner_source.setdefault(number, contract)

        stored_works = {_text(w, "code"): w for w in self._works if _text(w, "code")}
        stored_partners = {_text(p, "tenDonVi"): p for p in self._partners if _text(p, "tenDonVi")}
        known_channels = {_text(c, "idKenh") for c in self._channels if _text(c, "idKenh")}

        new_by_key: Dict[Tuple[str, ...], Record] = {}
        updated_by_id: Dict[str, Record] = {}
        new_works: Dict[str, Record] = {}
        updated_works: Dict[str, Record] = {}
        new_partners: Dict[str, Record] = {}
        updated_partners: Dict[str, Record] = {}
        new_channels: Dict[str, Record] = {}
        errors: List[RowError] = []

        for index, raw in enumerate(rows):
            row_number = index + 1
            row = normalize_row(raw)
            number = (_text(row, "soHopDong"), _text(row, "soPhuLuc"))
            inherited = partner_source.get(number) if flow == ImportFlow.WORKLIST else None

            contract, problems = build_contract(row, flow, row_number, inherited)
            if contract is None:
                error = RowError(row_number, [p.field for p in problems])
                logger.debug(error.message)
                errors.append(error)
                continue

            record = contract.to_record()
            changes = self._carried_fields(record, row, inherited)
            key = business_key(record, flow)

            if key in new_by_key:
                new_by_key[key].update(changes)
            elif key in stored_by_key:
                stored = stored_by_key[key]
                updated_by_id.setdefault(stored["id"], dict(stored)).update(changes)
            else:
                new_by_key[key] = record

            revenue = contract.revenue
            if flow == ImportFlow.WORKLIST and contract.code and contract.ten_tac_pham:
                self._count_work(record, revenue, stored_works, new_works, updated_works)
            if contract.ten_don_vi:
                self._count_partner(record, revenue, stored_partners, new_partners, updated_partners)
            if contract.id_kenh and contract.ten_kenh:
                if contract.id_kenh not in known_channels and contract.id_kenh not in new_channels:
                    new_channels[contract.id_kenh] = self._new_channel(record)

        result = ReconciliationResult(
            new_records=list(new_by_key.values()),
            updated_records=list(updated_by_id.values()),
            errors=errors,
            new_works=list(new_works.values()),
            updated_works=list(updated_works.values()),
            new_partners=list(new_partners.values()),
            updated_partners=list(updated_partners.values()),
            new_channels=list(new_channels.values()),
        )
        logger.info(
            f"Reconciled {flow.value}: {len(result.new_records)} new, "
            f"{len(result.updated_records)} updated, {len(result.errors)} errors"
        )
        return result

    def _carried_fields(
        self,
        record: Record,
        row: Mapping[str, str],
        inherited: Optional[Mapping[str, Any]],
    ) -> Record:
        """Fields an update may overwrite: the flow's columns present in the file."""
        changes = {name: record[name] for name in FLOW_FIELDS[self.flow] if name in row}
        if self.flow == ImportFlow.WORKLIST and inherited:
            changes["tenDonVi"] = record["tenDonVi"]
            changes["diaChi"] = record["diaChi"]
        return changes

    @staticmethod
    def _count_work(
        record: Record,
        revenue: int,
        stored: Dict[str, Record],
        new: Dict[str, Record],
        updated: Dict[str, Record],
    ) -> None:
        code = record["code"]
        details = {name: record.get(name, "") for name in WORK_DETAIL_FIELDS}

        if code in new:
            target = new[code]
        elif code in stored:
            target = updated.setdefault(stored[code]["id"], dict(stored[code]))
            target.update(details)
        else:
            work = Work.from_record({"id": new_id(), "code": code, **details})
            target = new[code] = work.to_record()

        target["totalContracts"] = parse_amount(target.get("totalContracts")) + 1
        target["totalRevenue"] = parse_amount(target.get("totalRevenue")) + revenue

    @staticmethod
    def _count_partner(
        record: Record,
        revenue: int,
        stored: Dict[str, Record],
        new: Dict[str, Record],
        updated: Dict[str, Record],
    ) -> None:
        name = record["tenDonVi"]
        if name in new:
            target = new[name]
        elif name in stored:
            target = updated.setdefault(stored[name]["id"], dict(stored[name]))
        else:
            partner = Partner(id=new_id(), ten_don_vi=name, dia_chi=record.get("diaChi", ""))
            new[name] = partner.to_record()
            target = new[name]

        if not _text(target, "diaChi") and record.get("diaChi"):
            target["diaChi"] = record["diaChi"]
        target["soHopDongDaKy"] = parse_amount(target.get("soHopDongDaKy")) + 1
        target["tongDoanhThu"] = parse_amount(target.get("tongDoanhThu")) + revenue

    @staticmethod
    def _new_channel(record: Record) -> Record:
        channel = Channel(
            id=new_id(),
            id_kenh=record["idKenh"],
            ten_kenh=record["tenKenh"],
            platform=channel_platform(record["idKenh"]).value,
            nguoi_phu_trach=record.get("nguoiPhuTrach", ""),
            ngay_tao=format_date(record.get("ngayKy", "")),
            trang_thai=ChannelStatus.ACTIVE.value,
        )
        return channel.to_record()
