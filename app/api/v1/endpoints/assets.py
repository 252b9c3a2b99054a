# app/api/v1/endpoints/assets.py
from typing import List, Optional

from fastapi import APIRouter, Body, Depends, Path, Query, status
from loguru import logger

from app.api.deps import get_store
from app.core import catalog
from app.core.barcode import generate_sku, validate_barcode
from app.core.security import require_user_or_admin
from app.db.store import InventoryStore
from app.models.asset import Asset
from app.models.barcode import BarcodeCheck, SkuSuggestion
from app.models.enum import AssetStatus
from app.models.user import UserAccount

router = APIRouter(
    tags=["Assets"],
    dependencies=[Depends(require_user_or_admin)],
)


@router.get("/", response_model=List[Asset], summary="List Assets")
async def read_assets(
    status_filter: Optional[AssetStatus] = Query(None, alias="status"),
    kategori: Optional[str] = Query(None),
    search: Optional[str] = Query(None, description="Cari berdasarkan nama atau SKU"),
    available: bool = Query(False, description="Hanya asset Instock dengan qty > 0"),
    store: InventoryStore = Depends(get_store),
):
    if available:
        assets = await catalog.available_assets(store, search=search)
        return [a for a in assets if not kategori or a.kategori == kategori]
    return await catalog.list_assets(store, status=status_filter, kategori=kategori, search=search)


@router.post("/", response_model=Asset, status_code=status.HTTP_201_CREATED)
async def create_asset(
    asset_in: Asset.Create = Body(...),
    current_user: UserAccount = Depends(require_user_or_admin),
    store: InventoryStore = Depends(get_store),
):
    return await catalog.create_asset(store, asset_in, current_user.username)


# --- SKU & Barcode ---
@router.post("/sku/generate", response_model=SkuSuggestion, summary="Generate Random SKU")
async def generate_asset_sku(store: InventoryStore = Depends(get_store)):
    assets = await store.get_assets()
    return SkuSuggestion(sku=generate_sku(a.sku for a in assets))


@router.post("/barcode/validate", response_model=BarcodeCheck.Result, summary="Validate EAN-13/EAN-8/UPC-A")
async def validate_asset_barcode(check: BarcodeCheck = Body(...)):
    """422 jika format atau checksum salah; kode yang valid bisa dipakai sebagai SKU."""
    code = check.code.strip()
    barcode_type = validate_barcode(code)
    logger.debug(f"Barcode {code} accepted as {barcode_type.value}.")
    return BarcodeCheck.Result(code=code, type=barcode_type)


@router.get("/{asset_id}", response_model=Asset)
async def read_asset(asset_id: str = Path(...), store: InventoryStore = Depends(get_store)):
    return await catalog.get_asset(store, asset_id)


@router.put("/{asset_id}", response_model=Asset)
async def update_asset(
    asset_id: str = Path(...),
    asset_in: Asset.Update = Body(...),
    current_user: UserAccount = Depends(require_user_or_admin),
    store: InventoryStore = Depends(get_store),
):
    """Update asset details. Status tidak bisa diubah di sini (lewat pinjam/kembali)."""
    return await catalog.update_asset(store, asset_id, asset_in, current_user.username)


@router.delete("/{asset_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_asset(
    asset_id: str = Path(...),
    current_user: UserAccount = Depends(require_user_or_admin),
    store: InventoryStore = Depends(get_store),
):
    await catalog.delete_asset(store, asset_id, current_user.username)
    return None
