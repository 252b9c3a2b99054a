# app/models/report.py
from typing import List
from pydantic import BaseModel, Field

from .borrow import BorrowRecord


class InventorySummary(BaseModel):
    total_assets: int = Field(..., alias="totalAssets")
    instock_assets: int = Field(..., alias="instockAssets")
    borrowed_assets: int = Field(..., alias="borrowedAssets")
    total_value: float = Field(..., alias="totalValue")
    total_categories: int = Field(..., alias="totalCategories")
    active_borrows: int = Field(..., alias="activeBorrows")
    overdue_borrows: int = Field(..., alias="overdueBorrows")
    returned_borrows: int = Field(..., alias="returnedBorrows")

    class Config:
        populate_by_name = True


class ActiveBorrowsReport(BaseModel):
    total: int
    overdue: int
    borrows: List[BorrowRecord.Detail]
