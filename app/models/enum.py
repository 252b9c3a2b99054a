# app/models/enum.py
from enum import Enum


class AssetStatus(str, Enum):
    INSTOCK = "Instock"
    DIPINJAM = "Dipinjam"      # Sedang dipinjam oleh pegawai


class BorrowStatus(str, Enum):
    DIPINJAM = "Dipinjam"
    DIKEMBALIKAN = "Dikembalikan"


class UserRole(str, Enum):
    ADMIN = "admin"
    USER = "user"


class WebhookEvent(str, Enum):
    BORROW = "borrow"
    RETURN = "return"


class DeliveryStatus(str, Enum):
    PENDING = "pending"
    DELIVERED = "delivered"
    FAILED = "failed"          # Sudah mencapai batas percobaan


class BarcodeType(str, Enum):
    EAN13 = "EAN-13"
    EAN8 = "EAN-8"
    UPCA = "UPC-A"
