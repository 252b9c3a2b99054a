# app/api/v1/endpoints/guest.py
"""
Akses tamu tanpa login: lihat asset tersedia, pinjam, dan kembalikan.
Semua aktivitas dicatat atas nama user "Guest".
"""
from typing import List, Optional

from fastapi import APIRouter, Body, Depends, Path, Query, Request, status

from app.api.deps import get_engine, get_store
from app.core import catalog
from app.core.activity import GUEST_USER
from app.core.exceptions import NotFoundError
from app.core.inventory import InventoryEngine
from app.core.rate_limiter import limiter
from app.db.store import InventoryStore
from app.models.asset import Asset
from app.models.borrow import BorrowRecord

router = APIRouter(tags=["Guest Access"])


@router.get("/assets", response_model=List[Asset], summary="Available Assets")
@limiter.limit("60/minute")
async def read_available_assets(
    request: Request,
    search: Optional[str] = Query(None),
    store: InventoryStore = Depends(get_store),
):
    return await catalog.available_assets(store, search=search)


@router.post("/borrows", response_model=BorrowRecord, status_code=status.HTTP_201_CREATED)
@limiter.limit("20/minute")
async def guest_create_borrow(
    request: Request,
    borrow_in: BorrowRecord.Create = Body(...),
    engine: InventoryEngine = Depends(get_engine),
):
    return await engine.create_loan(
        borrower_id=borrow_in.id_pegawai,
        borrower_name=borrow_in.nama_pegawai,
        asset_ids=borrow_in.assets,
        duration_days=borrow_in.lama_dipinjam,
        purpose=borrow_in.kebutuhan,
        actor=GUEST_USER,
    )


@router.get("/borrows/{borrow_id}", response_model=BorrowRecord.Detail, summary="Find Active Borrow")
@limiter.limit("60/minute")
async def guest_find_borrow(
    request: Request,
    borrow_id: str = Path(...),
    engine: InventoryEngine = Depends(get_engine),
):
    """Hanya peminjaman yang masih aktif; dipakai layar pengembalian."""
    record = await engine.find_active_loan(borrow_id)
    if record is None:
        raise NotFoundError(f"ID peminjaman '{borrow_id}' tidak ditemukan atau sudah dikembalikan.")
    return engine.detail(record, await engine.store.get_assets())


@router.post("/borrows/{borrow_id}/return", response_model=BorrowRecord)
@limiter.limit("20/minute")
async def guest_return_borrow(
    request: Request,
    borrow_id: str = Path(...),
    engine: InventoryEngine = Depends(get_engine),
):
    return await engine.return_loan(borrow_id, actor=GUEST_USER)
