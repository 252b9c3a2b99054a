# app/models/category.py
from pydantic import BaseModel, Field


class Category(BaseModel):
    id: str
    nama: str = Field(..., max_length=100)

    class Config:
        populate_by_name = True

    # --- Pydantic Schemas ---
    class Create(BaseModel):
        """Skema untuk membuat kategori baru."""
        nama: str = Field(..., max_length=100)

    class Update(BaseModel):
        """Skema untuk mengganti nama kategori."""
        nama: str = Field(..., max_length=100)

    class Usage(BaseModel):
        """Jumlah asset yang masih memakai kategori."""
        id: str
        nama: str
        asset_count: int = Field(..., alias="assetCount")

        class Config:
            populate_by_name = True
