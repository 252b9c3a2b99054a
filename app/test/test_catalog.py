"""Asset and category management."""
import pytest

from app.core import catalog
from app.core.exceptions import CategoryInUseError, DuplicateError, NotFoundError, ValidationFailedError
from app.models.asset import Asset
from app.models.category import Category
from app.models.enum import AssetStatus


def new_asset(**overrides):
    data = dict(nama="ThinkPad X1", sku="4006381333931", deskripsi="Laptop kantor", kategori="Laptop", nilai=15000000, qty=1)
    data.update(overrides)
    return Asset.Create(**data)


@pytest.fixture
async def laptop(store):
    return await catalog.create_category(store, Category.Create(nama="Laptop"), "admin")


async def test_create_asset(store, laptop):
    asset = await catalog.create_asset(store, new_asset(), "admin")
    assert asset.status == AssetStatus.INSTOCK
    assert asset.id
    assert [log.action for log in await store.get_logs()] == ["Create Category", "Create Asset"]


async def test_create_asset_requires_existing_category(store, laptop):
    with pytest.raises(ValidationFailedError):
        await catalog.create_asset(store, new_asset(kategori="Monitor"), "admin")


@pytest.mark.parametrize("overrides", [{"nama": " "}, {"qty": 0}, {"nilai": -1}])
async def test_create_asset_validation(store, laptop, overrides):
    with pytest.raises(ValidationFailedError):
        await catalog.create_asset(store, new_asset(**overrides), "admin")
    assert await store.get_assets() == []


async def test_duplicate_sku_rejected(store, laptop):
    await catalog.create_asset(store, new_asset(), "admin")
    with pytest.raises(DuplicateError):
        await catalog.create_asset(store, new_asset(nama="Other"), "admin")
    # Tanpa SKU boleh lebih dari satu
    await catalog.create_asset(store, new_asset(sku=None), "admin")
    await catalog.create_asset(store, new_asset(sku=""), "admin")


async def test_update_asset_keeps_status(store, laptop):
    asset = await catalog.create_asset(store, new_asset(), "admin")
    assets = await store.get_assets()
    assets[0] = assets[0].model_copy(update={"status": AssetStatus.DIPINJAM})
    await store.set_assets(assets)

    updated = await catalog.update_asset(store, asset.id, Asset.Update(nama="ThinkPad X1 Gen 11", qty=2), "admin")
    assert updated.nama == "ThinkPad X1 Gen 11"
    assert updated.qty == 2
    assert updated.status == AssetStatus.DIPINJAM
    assert updated.sku == asset.sku


async def test_update_missing_asset(store):
    with pytest.raises(NotFoundError):
        await catalog.update_asset(store, "missing", Asset.Update(nama="x"), "admin")


async def test_delete_asset(store, laptop):
    asset = await catalog.create_asset(store, new_asset(), "admin")
    await catalog.delete_asset(store, asset.id, "admin")
    assert await store.get_assets() == []
    with pytest.raises(NotFoundError):
        await catalog.delete_asset(store, asset.id, "admin")


async def test_list_and_available_assets(store, laptop):
    a = await catalog.create_asset(store, new_asset(nama="Laptop A", sku="A1"), "admin")
    await catalog.create_asset(store, new_asset(nama="Laptop B", sku="B1"), "admin")
    assets = await store.get_assets()
    assets = [x.model_copy(update={"status": AssetStatus.DIPINJAM}) if x.id == a.id else x for x in assets]
    await store.set_assets(assets)

    assert [x.nama for x in await catalog.available_assets(store)] == ["Laptop B"]
    assert [x.nama for x in await catalog.list_assets(store, search="laptop a")] == ["Laptop A"]
    assert [x.nama for x in await catalog.list_assets(store, status=AssetStatus.DIPINJAM)] == ["Laptop A"]


async def test_duplicate_category_name(store, laptop):
    with pytest.raises(DuplicateError):
        await catalog.create_category(store, Category.Create(nama="laptop"), "admin")


async def test_rename_category_moves_assets(store, laptop):
    await catalog.create_asset(store, new_asset(), "admin")
    renamed = await catalog.update_category(store, laptop.id, Category.Update(nama="Notebook"), "admin")

    assert renamed.nama == "Notebook"
    assert [a.kategori for a in await store.get_assets()] == ["Notebook"]
    usage = await catalog.category_usages(store)
    assert [(u.nama, u.asset_count) for u in usage] == [("Notebook", 1)]


async def test_delete_category_in_use(store, laptop):
    await catalog.create_asset(store, new_asset(), "admin")
    await catalog.create_asset(store, new_asset(sku="other"), "admin")
    with pytest.raises(CategoryInUseError) as exc_info:
        await catalog.delete_category(store, laptop.id, "admin")
    assert exc_info.value.asset_count == 2
    assert len(await store.get_categories()) == 1


async def test_delete_unused_category(store, laptop):
    await catalog.delete_category(store, laptop.id, "admin")
    assert await store.get_categories() == []
    assert (await store.get_logs())[-1].action == "Delete Category"


async def test_delete_category_after_last_asset_moves(store, laptop):
    await catalog.create_category(store, Category.Create(nama="Monitor"), "admin")
    asset = await catalog.create_asset(store, new_asset(), "admin")
    with pytest.raises(CategoryInUseError):
        await catalog.delete_category(store, laptop.id, "admin")

    await catalog.update_asset(store, asset.id, Asset.Update(kategori="Monitor"), "admin")
    await catalog.delete_category(store, laptop.id, "admin")
    assert [c.nama for c in await store.get_categories()] == ["Monitor"]
