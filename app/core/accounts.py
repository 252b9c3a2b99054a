# app/core/accounts.py
"""User accounts: login, CRUD, dan aktif/nonaktif akun."""
from datetime import datetime, timezone
from typing import List, Optional

from loguru import logger

from app.core.activity import add_log
from app.core.exceptions import DuplicateError, NotFoundError, PermissionDeniedError, ValidationFailedError
from app.core.security import get_password_hash, verify_password
from app.db.store import InventoryStore, StoreTransaction, new_id
from app.models.user import UserAccount


def _check_username(accounts: List[UserAccount], username: str, exclude_id: Optional[str] = None) -> None:
    if any(acc.username == username and acc.id != exclude_id for acc in accounts):
        raise DuplicateError("Username sudah digunakan.")


async def authenticate(store: InventoryStore, username: str, password: str) -> Optional[UserAccount]:
    """Returns the account when the credentials match an ACTIVE account; logs the login."""
    accounts = await store.get_user_accounts()
    account = next((acc for acc in accounts if acc.username == username), None)
    if account is None or not verify_password(password, account.password):
        logger.warning(f"Login failed for username '{username}'.")
        return None
    if not account.is_active:
        logger.warning(f"Login rejected for inactive account '{username}'.")
        return None
    await add_log(store, account.username, "Login", f"User {account.username} logged in as {account.role.value}")
    return account


async def record_logout(store: InventoryStore, account: UserAccount) -> None:
    await add_log(store, account.username, "Logout", f"User {account.username} logged out")


async def list_accounts(store: InventoryStore) -> List[UserAccount]:
    return await store.get_user_accounts()


async def create_account(store: InventoryStore, account_in: UserAccount.Create, actor: str) -> UserAccount:
    username = (account_in.username or "").strip()
    if not username or not (account_in.password or "").strip():
        raise ValidationFailedError("Username dan password harus diisi.")

    async def work(tx: StoreTransaction) -> UserAccount:
        accounts = await tx.get_user_accounts()
        _check_username(accounts, username)
        account = UserAccount(
            id=new_id(),
            username=username,
            password=get_password_hash(account_in.password),
            role=account_in.role,
            is_active=account_in.is_active,
            created_at=datetime.now(timezone.utc),
            created_by=actor,
        )
        accounts.append(account)
        await tx.set_user_accounts(accounts)
        await add_log(tx, actor, "Create User", f"Created user account: {account.username} ({account.role.value})")
        return account

    return await store.run_transaction(work)


async def update_account(
    store: InventoryStore, account_id: str, account_in: UserAccount.Update, actor: str
) -> UserAccount:
    update_data = account_in.model_dump(exclude_unset=True)
    if "username" in update_data:
        update_data["username"] = (update_data["username"] or "").strip()
        if not update_data["username"]:
            raise ValidationFailedError("Username harus diisi.")
    # Password kosong = tidak diganti
    password = update_data.pop("password", None)
    if password and password.strip():
        update_data["password"] = get_password_hash(password)
    for field in ("role", "is_active"):
        if field in update_data and update_data[field] is None:
            update_data.pop(field)

    async def work(tx: StoreTransaction) -> UserAccount:
        accounts = await tx.get_user_accounts()
        idx = next((i for i, acc in enumerate(accounts) if acc.id == account_id), None)
        if idx is None:
            raise NotFoundError(f"Akun dengan ID '{account_id}' tidak ditemukan.")
        current = accounts[idx]
        if "username" in update_data:
            _check_username(accounts, update_data["username"], exclude_id=account_id)
        if current.username == actor and update_data.get("is_active") is False:
            raise PermissionDeniedError("Tidak dapat menonaktifkan akun sendiri.")
        updated = current.model_copy(update=update_data)
        accounts[idx] = updated
        await tx.set_user_accounts(accounts)
        await add_log(tx, actor, "Update User", f"Updated user account: {updated.username} ({updated.role.value})")
        return updated

    return await store.run_transaction(work)


async def delete_account(store: InventoryStore, account_id: str, actor: str) -> UserAccount:
    async def work(tx: StoreTransaction) -> UserAccount:
        accounts = await tx.get_user_accounts()
        target = next((acc for acc in accounts if acc.id == account_id), None)
        if target is None:
            raise NotFoundError(f"Akun dengan ID '{account_id}' tidak ditemukan.")
        if target.username == actor:
            raise PermissionDeniedError("Tidak dapat menghapus akun sendiri.")
        await tx.set_user_accounts([acc for acc in accounts if acc.id != account_id])
        await add_log(tx, actor, "Delete User", f"Deleted user account: {target.username}")
        return target

    return await store.run_transaction(work)


async def toggle_account_status(store: InventoryStore, account_id: str, actor: str) -> UserAccount:
    async def work(tx: StoreTransaction) -> UserAccount:
        accounts = await tx.get_user_accounts()
        idx = next((i for i, acc in enumerate(accounts) if acc.id == account_id), None)
        if idx is None:
            raise NotFoundError(f"Akun dengan ID '{account_id}' tidak ditemukan.")
        target = accounts[idx]
        if target.username == actor:
            raise PermissionDeniedError("Tidak dapat menonaktifkan akun sendiri.")
        updated = target.model_copy(update={"is_active": not target.is_active})
        accounts[idx] = updated
        await tx.set_user_accounts(accounts)
        await add_log(
            tx, actor, "Toggle User Status",
            f"{'Deactivated' if target.is_active else 'Activated'} user account: {target.username}",
        )
        return updated

    return await store.run_transaction(work)
