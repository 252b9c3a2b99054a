# app/api/v1/endpoints/users.py
from typing import List

from fastapi import APIRouter, Body, Depends, Path, Request, status
from loguru import logger

from app.api.deps import get_store
from app.core import accounts
from app.core.rate_limiter import limiter
from app.core.security import require_admin
from app.db.store import InventoryStore
from app.models.user import UserAccount

router = APIRouter(
    tags=["Users - Admin"],
    dependencies=[Depends(require_admin)],
)


def to_response(account: UserAccount) -> UserAccount.Response:
    # Password hash tidak pernah dikirim ke client
    return UserAccount.Response.model_validate(account.model_dump())


@router.get("/", response_model=List[UserAccount.Response], summary="List All Users (Admin Only)")
@limiter.limit("30/minute")
async def read_users(request: Request, store: InventoryStore = Depends(get_store)):
    return [to_response(acc) for acc in await accounts.list_accounts(store)]


@router.post(
    "/",
    response_model=UserAccount.Response,
    status_code=status.HTTP_201_CREATED,
    summary="Create User (Admin Only)",
)
async def create_user(
    account_in: UserAccount.Create = Body(...),
    current_user: UserAccount = Depends(require_admin),
    store: InventoryStore = Depends(get_store),
):
    logger.info(f"Admin '{current_user.username}' creating user '{account_in.username}'.")
    return to_response(await accounts.create_account(store, account_in, current_user.username))


@router.put("/{account_id}", response_model=UserAccount.Response, summary="Update User (Admin Only)")
async def update_user(
    account_id: str = Path(...),
    account_in: UserAccount.Update = Body(...),
    current_user: UserAccount = Depends(require_admin),
    store: InventoryStore = Depends(get_store),
):
    return to_response(await accounts.update_account(store, account_id, account_in, current_user.username))


@router.delete("/{account_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Delete User (Admin Only)")
async def delete_user(
    account_id: str = Path(...),
    current_user: UserAccount = Depends(require_admin),
    store: InventoryStore = Depends(get_store),
):
    logger.warning(f"Admin '{current_user.username}' deleting user {account_id}.")
    await accounts.delete_account(store, account_id, current_user.username)
    return None


@router.patch("/{account_id}/toggle-status", response_model=UserAccount.Response, summary="Activate/Deactivate User")
async def toggle_user_status(
    account_id: str = Path(...),
    current_user: UserAccount = Depends(require_admin),
    store: InventoryStore = Depends(get_store),
):
    return to_response(await accounts.toggle_account_status(store, account_id, current_user.username))
