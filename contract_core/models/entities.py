# =============================================================================
# contract_core/models/entities.py
# Entity Dataclasses and Status Enums
# =============================================================================
"""
Typed views of the five entity kinds.

Storage-facing APIs pass plain records (``Dict[str, Any]`` with camelCase
keys). The dataclasses here are used where records are built from scratch,
mostly by the import reconciler, and convert to and from records with
``to_record()`` / ``from_record()``.
"""

from __future__ import annotations
import re
import uuid
from dataclasses import dataclass, field, fields
from datetime import datetime, timezone
from enum import Enum
from typing import Any, ClassVar, Dict, List, Optional

from .schema import (
    CHANNELS,
    COLLECTION_FIELDS,
    CONTRACTS,
    PARTNERS,
    USERS,
    WORKS,
)


# =============================================================================
# ENUMS
# =============================================================================

class ContractStatus(str, Enum):
    SIGNED = "Đã ký"
    RENEWED = "Tái ký"
    SURVEY = "Khảo sát"
    NEGOTIATING = "Đàm phán"
    NEW = "Ký mới"


class Platform(str, Enum):
    YOUTUBE = "YouTube"
    FACEBOOK = "Facebook"
    TIKTOK = "TikTok"
    OTHER = "Khác"


class ChannelStatus(str, Enum):
    ACTIVE = "Hoạt động"
    SUSPENDED = "Tạm ngưng"
    DELETED = "Đã xóa"


class UserRole(str, Enum):
    ADMIN = "admin"
    MANAGER = "manager"
    USER = "user"


class UserStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


DEFAULT_FIELD = "SCTT"
DEFAULT_REVENUE = "0"


# =============================================================================
# HELPERS
# =============================================================================

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


def new_id() -> str:
    """Generate a fresh record id."""
    return str(uuid.uuid4())


def utc_now_iso() -> str:
    """Current UTC time as an ISO-8601 string."""
    return datetime.now(timezone.utc).isoformat()


def parse_amount(value: Any) -> int:
    """
    Parse a royalty amount such as ``"1,500,000"`` into an integer.

    Thousands commas are removed and the leading integer is read, so
    ``"2,000 VND"`` gives 2000. Anything unparsable gives 0.
    """
    if value is None:
        return 0
    if isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return 0 if value != value else int(value)
    match = _LEADING_INT.match(str(value).replace(",", ""))
    return int(match.group(1)) if match else 0


def channel_platform(channel_id: str) -> Platform:
    """YouTube channel ids carry the ``UC`` prefix; everything else is Other."""
    return Platform.YOUTUBE if "UC" in (channel_id or "") else Platform.OTHER


# =============================================================================
# ENTITIES
# =============================================================================

class RecordMixin:
    """Conversion between dataclass attributes (snake_case) and records (camelCase)."""

    COLLECTION: ClassVar[str]

    def to_record(self) -> Dict[str, Any]:
        to_app = {storage: app for app, storage in COLLECTION_FIELDS[self.COLLECTION]}
        record: Dict[str, Any] = {}
        for f in fields(self):
            value = getattr(self, f.name)
            # Unset timestamps are left for the backend to fill in
            if value is None and f.name in ("created_at", "updated_at"):
                continue
            if isinstance(value, Enum):
                value = value.value
            record[to_app[f.name]] = value
        return record

    @classmethod
    def from_record(cls, record: Dict[str, Any]):
        to_storage = dict(COLLECTION_FIELDS[cls.COLLECTION])
        known = {f.name for f in fields(cls)}
        kwargs = {}
        for key, value in record.items():
            attr = to_storage.get(key)
            if attr in known:
                kwargs[attr] = value
        return cls(**kwargs)


@dataclass
class Contract(RecordMixin):
    COLLECTION: ClassVar[str] = CONTRACTS

    id: str = ""
    stt: str = ""
    linh_vuc: str = DEFAULT_FIELD
    ngay_ky: str = ""
    so_hop_dong: str = ""
    so_phu_luc: str = ""
    id_kenh: str = ""
    ten_kenh: str = ""
    ten_don_vi: str = ""
    dia_chi: str = ""
    nguoi_phu_trach: str = ""
    tinh_trang: str = ContractStatus.SIGNED.value
    id_video: str = ""
    code: str = ""
    ten_tac_pham: str = ""
    tac_gia: str = ""
    tac_gia_nhac: str = ""
    tac_gia_loi: str = ""
    ngay_bat_dau: str = ""
    ngay_ket_thuc: str = ""
    thoi_gian: str = ""
    thoi_luong: str = ""
    hinh_thuc: str = ""
    muc_nhuan_but: str = DEFAULT_REVENUE
    ghi_chu_1: str = ""
    ghi_chu_2: str = ""
    nhat_ky: List[Dict[str, Any]] = field(default_factory=list)
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @property
    def revenue(self) -> int:
        return parse_amount(self.muc_nhuan_but)


@dataclass
class Work(RecordMixin):
    COLLECTION: ClassVar[str] = WORKS

    id: str = ""
    code: str = ""
    so_hop_dong: str = ""
    so_phu_luc: str = ""
    id_kenh: str = ""
    ten_kenh: str = ""
    ten_tac_pham: str = ""
    tac_gia: str = ""
    tac_gia_nhac: str = ""
    tac_gia_loi: str = ""
    ngay_bat_dau: str = ""
    ngay_ket_thuc: str = ""
    thoi_luong: str = ""
    hinh_thuc: str = ""
    muc_nhuan_but: str = DEFAULT_REVENUE
    tinh_trang: str = ContractStatus.SIGNED.value
    total_contracts: int = 0
    total_revenue: int = 0
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


@dataclass
class Partner(RecordMixin):
    COLLECTION: ClassVar[str] = PARTNERS

    id: str = ""
    ten_don_vi: str = ""
    dia_chi: str = ""
    nguoi_dai_dien: str = ""
    so_dien_thoai: str = ""
    email: str = ""
    website: str = ""
    so_hop_dong_da_ky: int = 0
    tong_doanh_thu: int = 0
    ghi_chu: str = ""
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


@dataclass
class Channel(RecordMixin):
    COLLECTION: ClassVar[str] = CHANNELS

    id: str = ""
    id_kenh: str = ""
    ten_kenh: str = ""
    platform: str = Platform.OTHER.value
    subscribers: int = 0
    views: int = 0
    nguoi_phu_trach: str = ""
    ngay_tao: str = ""
    trang_thai: str = ChannelStatus.ACTIVE.value
    ghi_chu: str = ""
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


@dataclass
class User(RecordMixin):
    COLLECTION: ClassVar[str] = USERS

    id: str = ""
    username: str = ""
    full_name: str = ""
    email: str = ""
    role: str = UserRole.USER.value
    status: str = UserStatus.ACTIVE.value
    last_login: Optional[str] = None
    avatar: str = ""
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
