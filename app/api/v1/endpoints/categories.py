# app/api/v1/endpoints/categories.py
from typing import List

from fastapi import APIRouter, Body, Depends, Path, status
from loguru import logger

from app.api.deps import get_store
from app.core import catalog
from app.core.security import require_user_or_admin
from app.db.store import InventoryStore
from app.models.category import Category
from app.models.user import UserAccount

router = APIRouter(
    tags=["Categories"],
    dependencies=[Depends(require_user_or_admin)],
)


@router.get("/", response_model=List[Category.Usage], summary="List Categories with Asset Count")
async def read_categories(store: InventoryStore = Depends(get_store)):
    return await catalog.category_usages(store)


@router.post("/", response_model=Category, status_code=status.HTTP_201_CREATED)
async def create_category(
    category_in: Category.Create = Body(...),
    current_user: UserAccount = Depends(require_user_or_admin),
    store: InventoryStore = Depends(get_store),
):
    logger.info(f"User '{current_user.username}' creating category: {category_in.nama}")
    return await catalog.create_category(store, category_in, current_user.username)


@router.put("/{category_id}", response_model=Category, summary="Rename Category")
async def update_category(
    category_id: str = Path(...),
    category_in: Category.Update = Body(...),
    current_user: UserAccount = Depends(require_user_or_admin),
    store: InventoryStore = Depends(get_store),
):
    """Asset yang memakai nama lama ikut dipindahkan ke nama baru."""
    return await catalog.update_category(store, category_id, category_in, current_user.username)


@router.delete("/{category_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_category(
    category_id: str = Path(...),
    current_user: UserAccount = Depends(require_user_or_admin),
    store: InventoryStore = Depends(get_store),
):
    """Delete a category ONLY if no asset uses it."""
    logger.warning(f"User '{current_user.username}' attempting to delete category: {category_id}")
    await catalog.delete_category(store, category_id, current_user.username)
    return None
