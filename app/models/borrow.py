# app/models/borrow.py
from typing import Optional, List
from datetime import date
from pydantic import BaseModel, Field

from .asset import Asset
from .enum import BorrowStatus


class BorrowRecord(BaseModel):
    """Catatan peminjaman: satu pegawai, satu atau lebih asset."""
    id: str
    id_pegawai: str = Field(..., alias="idPegawai")
    nama_pegawai: str = Field(..., alias="namaPegawai")
    assets: List[str] = Field(default_factory=list)
    lama_dipinjam: int = Field(..., ge=1, alias="lamaDipinjam", description="Durasi pinjam dalam hari")
    kebutuhan: str
    status: BorrowStatus = BorrowStatus.DIPINJAM
    tanggal_pinjam: date = Field(..., alias="tanggalPinjam")
    tanggal_kembali: Optional[date] = Field(None, alias="tanggalKembali")

    class Config:
        populate_by_name = True

    # --- Pydantic Schemas ---
    class Create(BaseModel):
        id_pegawai: str = Field(..., alias="idPegawai")
        nama_pegawai: str = Field(..., alias="namaPegawai")
        assets: List[str]
        lama_dipinjam: int = Field(..., alias="lamaDipinjam")
        kebutuhan: str

        class Config:
            populate_by_name = True

    # --- Response Schema (dengan info jatuh tempo) ---
    class Detail(BaseModel):
        record: "BorrowRecord"
        asset_details: List[Asset] = Field(default_factory=list, alias="assetDetails")
        due_date: date = Field(..., alias="dueDate")
        is_overdue: bool = Field(..., alias="isOverdue")
        days_overdue: int = Field(..., alias="daysOverdue")

        class Config:
            populate_by_name = True


BorrowRecord.Detail.model_rebuild()
