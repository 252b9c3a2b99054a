# app/api/v1/endpoints/borrows.py
from typing import List, Optional

from fastapi import APIRouter, Body, Depends, Path, Query, status

from app.api.deps import get_engine
from app.core.inventory import InventoryEngine
from app.core.security import require_user_or_admin
from app.models.borrow import BorrowRecord
from app.models.enum import BorrowStatus
from app.models.user import UserAccount

router = APIRouter(
    tags=["Borrows"],
    dependencies=[Depends(require_user_or_admin)],
)


@router.get("/", response_model=List[BorrowRecord.Detail], summary="List Borrow Records")
async def read_borrows(
    status_filter: Optional[BorrowStatus] = Query(None, alias="status"),
    overdue: bool = Query(False, description="Hanya peminjaman yang terlambat"),
    search: Optional[str] = Query(None, description="Cari ID peminjaman, ID atau nama pegawai"),
    engine: InventoryEngine = Depends(get_engine),
):
    return await engine.list_loans(status=status_filter, overdue_only=overdue, search=search)


@router.post("/", response_model=BorrowRecord, status_code=status.HTTP_201_CREATED)
async def create_borrow(
    borrow_in: BorrowRecord.Create = Body(...),
    current_user: UserAccount = Depends(require_user_or_admin),
    engine: InventoryEngine = Depends(get_engine),
):
    return await engine.create_loan(
        borrower_id=borrow_in.id_pegawai,
        borrower_name=borrow_in.nama_pegawai,
        asset_ids=borrow_in.assets,
        duration_days=borrow_in.lama_dipinjam,
        purpose=borrow_in.kebutuhan,
        actor=current_user.username,
    )


@router.get("/{borrow_id}", response_model=BorrowRecord.Detail)
async def read_borrow(borrow_id: str = Path(...), engine: InventoryEngine = Depends(get_engine)):
    return await engine.loan_detail(borrow_id)


@router.post("/{borrow_id}/return", response_model=BorrowRecord, summary="Process Return")
async def return_borrow(
    borrow_id: str = Path(...),
    current_user: UserAccount = Depends(require_user_or_admin),
    engine: InventoryEngine = Depends(get_engine),
):
    return await engine.return_loan(borrow_id, actor=current_user.username)
