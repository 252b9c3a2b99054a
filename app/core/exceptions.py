# app/core/exceptions.py
from typing import Optional


class InventoryError(Exception):
    """Base class for domain errors; status_code dipakai oleh exception handler di main.py."""
    status_code: int = 400

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class ValidationFailedError(InventoryError):
    status_code = 400


class DuplicateError(InventoryError):
    status_code = 400


class NotFoundError(InventoryError):
    status_code = 404


class PermissionDeniedError(InventoryError):
    status_code = 403


class AssetUnavailableError(InventoryError):
    status_code = 409

    def __init__(self, detail: str, asset_ids: Optional[list] = None):
        super().__init__(detail)
        self.asset_ids = asset_ids or []


class CategoryInUseError(InventoryError):
    status_code = 409

    def __init__(self, category_name: str, asset_count: int):
        super().__init__(
            f"Kategori '{category_name}' masih digunakan oleh {asset_count} asset."
        )
        self.category_name = category_name
        self.asset_count = asset_count


class ConcurrentModificationError(InventoryError):
    status_code = 409

    def __init__(self, slot: str):
        super().__init__(f"Storage slot '{slot}' was modified concurrently.")
        self.slot = slot


class ImportFormatError(InventoryError):
    status_code = 400


class BarcodeError(InventoryError):
    status_code = 422


class BarcodeFormatError(BarcodeError):
    pass


class BarcodeChecksumError(BarcodeError):
    pass


class WebhookDeliveryError(Exception):
    """Raised by the HTTP sender; ditangkap oleh notifier, tidak pernah sampai ke client."""
