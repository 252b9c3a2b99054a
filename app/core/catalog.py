# app/core/catalog.py
"""Asset dan kategori: CRUD, rename kategori, dan pengecekan pemakaian."""
from typing import List, Optional

from loguru import logger

from app.core.activity import add_log
from app.core.exceptions import CategoryInUseError, DuplicateError, NotFoundError, ValidationFailedError
from app.db.store import InventoryStore, StoreTransaction, new_id
from app.models.asset import Asset
from app.models.category import Category
from app.models.enum import AssetStatus


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


def _check_sku_unique(assets: List[Asset], sku: Optional[str], exclude_id: Optional[str] = None) -> None:
    if not sku:
        return
    for asset in assets:
        if asset.id != exclude_id and asset.sku and asset.sku.upper() == sku.upper():
            raise DuplicateError(f"SKU '{sku}' sudah dipakai oleh asset '{asset.nama}'.")


def _check_category_exists(categories: List[Category], nama: str) -> None:
    if not any(c.nama == nama for c in categories):
        raise ValidationFailedError(f"Kategori '{nama}' tidak ditemukan.")


# --- Assets ---
async def list_assets(
    store: InventoryStore,
    status: Optional[AssetStatus] = None,
    kategori: Optional[str] = None,
    search: Optional[str] = None,
) -> List[Asset]:
    assets = await store.get_assets()
    if status is not None:
        assets = [a for a in assets if a.status == status]
    if kategori:
        assets = [a for a in assets if a.kategori == kategori]
    if search:
        needle = search.lower()
        assets = [
            a for a in assets
            if needle in a.nama.lower() or (a.sku and needle in a.sku.lower())
        ]
    return assets


async def available_assets(store: InventoryStore, search: Optional[str] = None) -> List[Asset]:
    """Asset yang bisa dipinjam: status Instock dan qty > 0."""
    assets = await list_assets(store, status=AssetStatus.INSTOCK, search=search)
    return [a for a in assets if a.qty > 0]


async def get_asset(store: InventoryStore, asset_id: str) -> Asset:
    for asset in await store.get_assets():
        if asset.id == asset_id:
            return asset
    raise NotFoundError(f"Asset dengan ID '{asset_id}' tidak ditemukan.")


async def create_asset(store: InventoryStore, asset_in: Asset.Create, actor: str) -> Asset:
    nama = _clean(asset_in.nama)
    kategori = _clean(asset_in.kategori)
    if not nama or not kategori:
        raise ValidationFailedError("Nama dan kategori asset wajib diisi.")
    if asset_in.nilai is None or asset_in.nilai < 0:
        raise ValidationFailedError("Nilai asset tidak boleh negatif.")
    if asset_in.qty is None or asset_in.qty < 1:
        raise ValidationFailedError("Quantity minimal 1.")
    sku = _clean(asset_in.sku)

    async def work(tx: StoreTransaction) -> Asset:
        _check_category_exists(await tx.get_categories(), kategori)
        assets = await tx.get_assets()
        _check_sku_unique(assets, sku)
        asset = Asset(
            id=new_id(),
            nama=nama,
            sku=sku,
            deskripsi=_clean(asset_in.deskripsi),
            kategori=kategori,
            nilai=asset_in.nilai,
            qty=asset_in.qty,
            status=AssetStatus.INSTOCK,
        )
        assets.append(asset)
        await tx.set_assets(assets)
        await add_log(tx, actor, "Create Asset", f"Created new asset: {asset.nama}")
        return asset

    asset = await store.run_transaction(work)
    logger.info(f"Asset '{asset.nama}' ({asset.id}) created by {actor}.")
    return asset


async def update_asset(store: InventoryStore, asset_id: str, asset_in: Asset.Update, actor: str) -> Asset:
    update_data = asset_in.model_dump(exclude_unset=True)
    if not update_data:
        raise ValidationFailedError("Tidak ada data yang diubah.")
    for field in ("nama", "kategori"):
        if field in update_data and not _clean(update_data[field]):
            raise ValidationFailedError(f"{field.capitalize()} asset wajib diisi.")
    if "nilai" in update_data and (update_data["nilai"] is None or update_data["nilai"] < 0):
        raise ValidationFailedError("Nilai asset tidak boleh negatif.")
    if "qty" in update_data and (update_data["qty"] is None or update_data["qty"] < 0):
        raise ValidationFailedError("Quantity tidak boleh negatif.")
    for field in ("nama", "kategori", "sku", "deskripsi"):
        if field in update_data:
            update_data[field] = _clean(update_data[field])

    async def work(tx: StoreTransaction) -> Asset:
        assets = await tx.get_assets()
        idx = next((i for i, a in enumerate(assets) if a.id == asset_id), None)
        if idx is None:
            raise NotFoundError(f"Asset dengan ID '{asset_id}' tidak ditemukan.")
        if "kategori" in update_data and update_data["kategori"] != assets[idx].kategori:
            _check_category_exists(await tx.get_categories(), update_data["kategori"])
        if update_data.get("sku"):
            _check_sku_unique(assets, update_data["sku"], exclude_id=asset_id)
        # Status hanya diubah lewat peminjaman/pengembalian
        updated = assets[idx].model_copy(update=update_data)
        assets[idx] = updated
        await tx.set_assets(assets)
        await add_log(tx, actor, "Update Asset", f"Updated asset: {updated.nama}")
        return updated

    return await store.run_transaction(work)


async def delete_asset(store: InventoryStore, asset_id: str, actor: str) -> Asset:
    async def work(tx: StoreTransaction) -> Asset:
        assets = await tx.get_assets()
        target = next((a for a in assets if a.id == asset_id), None)
        if target is None:
            raise NotFoundError(f"Asset dengan ID '{asset_id}' tidak ditemukan.")
        await tx.set_assets([a for a in assets if a.id != asset_id])
        await add_log(tx, actor, "Delete Asset", f"Deleted asset: {target.nama}")
        return target

    deleted = await store.run_transaction(work)
    if deleted.status == AssetStatus.DIPINJAM:
        logger.warning(f"Asset '{deleted.nama}' ({deleted.id}) deleted while still borrowed.")
    return deleted


# --- Categories ---
async def list_categories(store: InventoryStore) -> List[Category]:
    return sorted(await store.get_categories(), key=lambda c: c.nama.lower())


def category_usage(assets: List[Asset], nama: str) -> int:
    return sum(1 for a in assets if a.kategori == nama)


async def category_usages(store: InventoryStore) -> List[Category.Usage]:
    assets = await store.get_assets()
    return [
        Category.Usage(id=c.id, nama=c.nama, asset_count=category_usage(assets, c.nama))
        for c in await list_categories(store)
    ]


def _check_category_name(categories: List[Category], nama: str, exclude_id: Optional[str] = None) -> None:
    for c in categories:
        if c.id != exclude_id and c.nama.lower() == nama.lower():
            raise DuplicateError(f"Kategori '{nama}' sudah ada.")


async def create_category(store: InventoryStore, category_in: Category.Create, actor: str) -> Category:
    nama = _clean(category_in.nama)
    if not nama:
        raise ValidationFailedError("Nama kategori wajib diisi.")

    async def work(tx: StoreTransaction) -> Category:
        categories = await tx.get_categories()
        _check_category_name(categories, nama)
        category = Category(id=new_id(), nama=nama)
        categories.append(category)
        await tx.set_categories(categories)
        await add_log(tx, actor, "Create Category", f"Created new category: {category.nama}")
        return category

    return await store.run_transaction(work)


async def update_category(store: InventoryStore, category_id: str, category_in: Category.Update, actor: str) -> Category:
    """Ganti nama kategori; asset yang memakai nama lama ikut dipindahkan."""
    nama = _clean(category_in.nama)
    if not nama:
        raise ValidationFailedError("Nama kategori wajib diisi.")

    async def work(tx: StoreTransaction) -> Category:
        categories = await tx.get_categories()
        idx = next((i for i, c in enumerate(categories) if c.id == category_id), None)
        if idx is None:
            raise NotFoundError(f"Kategori dengan ID '{category_id}' tidak ditemukan.")
        _check_category_name(categories, nama, exclude_id=category_id)
        old_name = categories[idx].nama
        categories[idx] = categories[idx].model_copy(update={"nama": nama})
        await tx.set_categories(categories)

        if old_name != nama:
            assets = await tx.get_assets()
            moved = 0
            for i, asset in enumerate(assets):
                if asset.kategori == old_name:
                    assets[i] = asset.model_copy(update={"kategori": nama})
                    moved += 1
            if moved:
                await tx.set_assets(assets)
                logger.info(f"Category rename '{old_name}' -> '{nama}' moved {moved} assets.")
        await add_log(tx, actor, "Update Category", f"Updated category: {nama}")
        return categories[idx]

    return await store.run_transaction(work)


async def delete_category(store: InventoryStore, category_id: str, actor: str) -> Category:
    async def work(tx: StoreTransaction) -> Category:
        categories = await tx.get_categories()
        target = next((c for c in categories if c.id == category_id), None)
        if target is None:
            raise NotFoundError(f"Kategori dengan ID '{category_id}' tidak ditemukan.")
        in_use = category_usage(await tx.get_assets(), target.nama)
        if in_use > 0:
            raise CategoryInUseError(target.nama, in_use)
        await tx.set_categories([c for c in categories if c.id != category_id])
        await add_log(tx, actor, "Delete Category", f"Deleted category: {target.nama}")
        return target

    return await store.run_transaction(work)
