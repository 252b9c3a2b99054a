# app/models/asset.py
from typing import Optional
from pydantic import BaseModel, Field

from .enum import AssetStatus


class Asset(BaseModel):
    """Barang inventaris yang bisa dipinjamkan."""
    id: str
    nama: str = Field(..., max_length=200)
    sku: Optional[str] = None
    deskripsi: Optional[str] = None
    # Referensi kategori berdasarkan NAMA, bukan id
    kategori: str
    nilai: float = Field(..., ge=0)
    qty: int = Field(..., ge=0)
    status: AssetStatus = AssetStatus.INSTOCK

    class Config:
        populate_by_name = True

    # --- Pydantic Schemas for API ---
    class Create(BaseModel):
        nama: str = Field(..., max_length=200)
        sku: Optional[str] = None
        deskripsi: Optional[str] = None
        kategori: str
        nilai: float
        qty: int

    class Update(BaseModel):
        nama: Optional[str] = Field(None, max_length=200)
        sku: Optional[str] = None
        deskripsi: Optional[str] = None
        kategori: Optional[str] = None
        nilai: Optional[float] = None
        qty: Optional[int] = None
