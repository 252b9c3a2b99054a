# app/api/v1/endpoints/reports.py
from fastapi import APIRouter, Depends

from app.api.deps import get_engine
from app.core import reports
from app.core.inventory import InventoryEngine
from app.core.security import require_user_or_admin
from app.models.report import ActiveBorrowsReport, InventorySummary

router = APIRouter(
    prefix="/reports",
    tags=["Reports"],
    dependencies=[Depends(require_user_or_admin)],
)


# --- 1. Ringkasan Dashboard ---
@router.get("/summary", response_model=InventorySummary, summary="Inventory Summary")
async def get_summary(engine: InventoryEngine = Depends(get_engine)):
    return await reports.inventory_summary(engine)


# --- 2. Peminjaman Aktif (termasuk yang terlambat) ---
@router.get("/active-borrows", response_model=ActiveBorrowsReport, summary="Active and Overdue Borrows")
async def get_active_borrows(engine: InventoryEngine = Depends(get_engine)):
    return await reports.active_borrows(engine)
