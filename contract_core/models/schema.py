# =============================================================================
# contract_core/models/schema.py
# Collection Names and Field Naming Table
# =============================================================================
"""
Every field of every collection, as (application name, storage column) pairs.

The application side uses camelCase record keys; the hosted database uses
snake_case columns. Pairs are written out by hand so that names such as
``ghiChu1 -> ghi_chu_1`` translate exactly in both directions.
"""

from typing import Dict, Tuple

CONTRACTS = "contracts"
WORKS = "works"
PARTNERS = "partners"
CHANNELS = "channels"
USERS = "users"

# Migration order: contracts first, users last
COLLECTIONS: Tuple[str, ...] = (CONTRACTS, WORKS, PARTNERS, CHANNELS, USERS)

METADATA_KEY = "db_metadata"
SCHEMA_VERSION = 1

AUDIT_FIELDS: Tuple[Tuple[str, str], ...] = (
    ("id", "id"),
    ("createdAt", "created_at"),
    ("updatedAt", "updated_at"),
)

CONTRACT_FIELDS: Tuple[Tuple[str, str], ...] = (
    ("stt", "stt"),
    ("linhVuc", "linh_vuc"),
    ("ngayKy", "ngay_ky"),
    ("soHopDong", "so_hop_dong"),
    ("soPhuLuc", "so_phu_luc"),
    ("idKenh", "id_kenh"),
    ("tenKenh", "ten_kenh"),
    ("tenDonVi", "ten_don_vi"),
    ("diaChi", "dia_chi"),
    ("nguoiPhuTrach", "nguoi_phu_trach"),
    ("tinhTrang", "tinh_trang"),
    ("idVideo", "id_video"),
    ("code", "code"),
    ("tenTacPham", "ten_tac_pham"),
    ("tacGia", "tac_gia"),
    ("tacGiaNhac", "tac_gia_nhac"),
    ("tacGiaLoi", "tac_gia_loi"),
    ("ngayBatDau", "ngay_bat_dau"),
    ("ngayKetThuc", "ngay_ket_thuc"),
    ("thoiGian", "thoi_gian"),
    ("thoiLuong", "thoi_luong"),
    ("hinhThuc", "hinh_thuc"),
    ("mucNhuanBut", "muc_nhuan_but"),
    ("ghiChu1", "ghi_chu_1"),
    ("ghiChu2", "ghi_chu_2"),
    ("nhatKy", "nhat_ky"),
)

WORK_FIELDS: Tuple[Tuple[str, str], ...] = (
    ("code", "code"),
    ("soHopDong", "so_hop_dong"),
    ("soPhuLuc", "so_phu_luc"),
    ("idKenh", "id_kenh"),
    ("tenKenh", "ten_kenh"),
    ("tenTacPham", "ten_tac_pham"),
    ("tacGia", "tac_gia"),
    ("tacGiaNhac", "tac_gia_nhac"),
    ("tacGiaLoi", "tac_gia_loi"),
    ("ngayBatDau", "ngay_bat_dau"),
    ("ngayKetThuc", "ngay_ket_thuc"),
    ("thoiLuong", "thoi_luong"),
    ("hinhThuc", "hinh_thuc"),
    ("mucNhuanBut", "muc_nhuan_but"),
    ("tinhTrang", "tinh_trang"),
    ("totalContracts", "total_contracts"),
    ("totalRevenue", "total_revenue"),
)

PARTNER_FIELDS: Tuple[Tuple[str, str], ...] = (
    ("tenDonVi", "ten_don_vi"),
    ("diaChi", "dia_chi"),
    ("nguoiDaiDien", "nguoi_dai_dien"),
    ("soDienThoai", "so_dien_thoai"),
    ("email", "email"),
    ("website", "website"),
    ("soHopDongDaKy", "so_hop_dong_da_ky"),
    ("tongDoanhThu", "tong_doanh_thu"),
    ("ghiChu", "ghi_chu"),
)

CHANNEL_FIELDS: Tuple[Tuple[str, str], ...] = (
    ("idKenh", "id_kenh"),
    ("tenKenh", "ten_kenh"),
    ("platform", "platform"),
    ("subscribers", "subscribers"),
    ("views", "views"),
    ("nguoiPhuTrach", "nguoi_phu_trach"),
    ("ngayTao", "ngay_tao"),
    ("trangThai", "trang_thai"),
    ("ghiChu", "ghi_chu"),
)

USER_FIELDS: Tuple[Tuple[str, str], ...] = (
    ("username", "username"),
    ("fullName", "full_name"),
    ("email", "email"),
    ("role", "role"),
    ("status", "status"),
    ("lastLogin", "last_login"),
    ("avatar", "avatar"),
)

COLLECTION_FIELDS: Dict[str, Tuple[Tuple[str, str], ...]] = {
    CONTRACTS: AUDIT_FIELDS + CONTRACT_FIELDS,
    WORKS: AUDIT_FIELDS + WORK_FIELDS,
    PARTNERS: AUDIT_FIELDS + PARTNER_FIELDS,
    CHANNELS: AUDIT_FIELDS + CHANNEL_FIELDS,
    USERS: AUDIT_FIELDS + USER_FIELDS,
}
