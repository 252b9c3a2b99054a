# app/models/barcode.py
from pydantic import BaseModel

from .enum import BarcodeType


class BarcodeCheck(BaseModel):
    """Hasil scan barcode yang akan dipakai sebagai SKU."""
    code: str

    class Result(BaseModel):
        code: str
        type: BarcodeType
        valid: bool = True


class SkuSuggestion(BaseModel):
    sku: str
