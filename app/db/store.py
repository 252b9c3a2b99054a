# app/db/store.py
import copy
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional, Type, TypeVar

from loguru import logger
from pydantic import BaseModel

from app.core.exceptions import ConcurrentModificationError
from app.core.security import get_password_hash
from app.db.backend import StorageBackend
from app.models.asset import Asset
from app.models.borrow import BorrowRecord
from app.models.category import Category
from app.models.enum import UserRole
from app.models.log import LogEntry
from app.models.user import UserAccount
from app.models.webhook import WebhookConfig, WebhookDelivery

T = TypeVar("T")
M = TypeVar("M", bound=BaseModel)

TRANSACTION_ATTEMPTS = 3


class StorageKey(str, Enum):
    ASSETS = "assets"
    CATEGORIES = "categories"
    BORROWS = "borrows"
    LOGS = "logs"
    USER_ACCOUNTS = "user_accounts"
    WEBHOOKS = "webhooks"
    WEBHOOK_OUTBOX = "webhook_outbox"


def new_id() -> str:
    return uuid.uuid4().hex


def default_accounts() -> List[UserAccount]:
    now = datetime.now(timezone.utc)
    return [
        UserAccount(id="admin-default", username="admin", password=get_password_hash("admin"),
                    role=UserRole.ADMIN, is_active=True, created_at=now, created_by="system"),
        UserAccount(id="user-default", username="user", password=get_password_hash("user"),
                    role=UserRole.USER, is_active=True, created_at=now, created_by="system"),
    ]


def _load_list(model: Type[M], raw: Any) -> List[M]:
    if not raw:
        return []
    return [model.model_validate(item) for item in raw]


def _dump_list(items: List[BaseModel]) -> List[Dict[str, Any]]:
    return [item.model_dump(mode="json", by_alias=True) for item in items]


class SlotAccessors:
    """Typed get/set per entity, dipakai oleh store langsung maupun transaksi."""

    async def _read_slot(self, key: StorageKey) -> Any:
        raise NotImplementedError

    async def _write_slot(self, key: StorageKey, value: Any) -> None:
        raise NotImplementedError

    # Assets
    async def get_assets(self) -> List[Asset]:
        return _load_list(Asset, await self._read_slot(StorageKey.ASSETS))

    async def set_assets(self, assets: List[Asset]) -> None:
        await self._write_slot(StorageKey.ASSETS, _dump_list(assets))

    # Categories
    async def get_categories(self) -> List[Category]:
        return _load_list(Category, await self._read_slot(StorageKey.CATEGORIES))

    async def set_categories(self, categories: List[Category]) -> None:
        await self._write_slot(StorageKey.CATEGORIES, _dump_list(categories))

    # Borrow records
    async def get_borrows(self) -> List[BorrowRecord]:
        return _load_list(BorrowRecord, await self._read_slot(StorageKey.BORROWS))

    async def set_borrows(self, borrows: List[BorrowRecord]) -> None:
        await self._write_slot(StorageKey.BORROWS, _dump_list(borrows))

    # Logs
    async def get_logs(self) -> List[LogEntry]:
        return _load_list(LogEntry, await self._read_slot(StorageKey.LOGS))

    async def set_logs(self, logs: List[LogEntry]) -> None:
        await self._write_slot(StorageKey.LOGS, _dump_list(logs))

    # User accounts (seeded dengan admin/user saat pertama kali dibaca)
    async def get_user_accounts(self) -> List[UserAccount]:
        raw = await self._read_slot(StorageKey.USER_ACCOUNTS)
        if raw is None:
            accounts = default_accounts()
            await self.set_user_accounts(accounts)
            logger.info("Seeded default user accounts (admin, user).")
            return accounts
        return _load_list(UserAccount, raw)

    async def set_user_accounts(self, accounts: List[UserAccount]) -> None:
        await self._write_slot(StorageKey.USER_ACCOUNTS, _dump_list(accounts))

    # Webhook config
    async def get_webhook_config(self) -> WebhookConfig:
        raw = await self._read_slot(StorageKey.WEBHOOKS)
        return WebhookConfig.model_validate(raw) if raw else WebhookConfig()

    async def set_webhook_config(self, webhook_config: WebhookConfig) -> None:
        await self._write_slot(StorageKey.WEBHOOKS, webhook_config.model_dump(mode="json", by_alias=True))

    # Webhook outbox
    async def get_webhook_deliveries(self) -> List[WebhookDelivery]:
        return _load_list(WebhookDelivery, await self._read_slot(StorageKey.WEBHOOK_OUTBOX))

    async def set_webhook_deliveries(self, deliveries: List[WebhookDelivery]) -> None:
        await self._write_slot(StorageKey.WEBHOOK_OUTBOX, _dump_list(deliveries))


class StoreTransaction(SlotAccessors):
    """
    Unit of work. Reads remember the slot version they saw, writes are
    buffered; on exit everything is committed at once, provided none of the
    slots read has changed in the meantime.
    """

    def __init__(self, backend: StorageBackend):
        self._backend = backend
        self._versions: Dict[str, Optional[int]] = {}
        self._writes: Dict[str, Any] = {}
        self._closed = False

    async def _read_slot(self, key: StorageKey) -> Any:
        if key.value in self._writes:
            return copy.deepcopy(self._writes[key.value])
        version, value = await self._backend.read(key.value)
        self._versions.setdefault(key.value, version)
        return value

    async def _write_slot(self, key: StorageKey, value: Any) -> None:
        if self._closed:
            raise RuntimeError("Transaction already finished.")
        # Tulis tanpa baca: tidak ada pengecekan versi untuk slot ini
        self._versions.setdefault(key.value, None)
        self._writes[key.value] = copy.deepcopy(value)

    async def commit(self) -> None:
        self._closed = True
        if not self._writes:
            return
        await self._backend.commit(dict(self._versions), dict(self._writes))
        logger.debug(f"Committed slots: {', '.join(self._writes)}")

    def rollback(self) -> None:
        self._closed = True
        self._writes.clear()

    async def __aenter__(self) -> "StoreTransaction":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> bool:
        if exc_type is not None:
            self.rollback()
            return False
        await self.commit()
        return False


class InventoryStore(SlotAccessors):
    """Repository yang diinjeksikan ke engine; tiap slot dibaca/ditulis utuh."""

    def __init__(self, backend: StorageBackend):
        self.backend = backend

    async def _read_slot(self, key: StorageKey) -> Any:
        _version, value = await self.backend.read(key.value)
        return value

    async def _write_slot(self, key: StorageKey, value: Any) -> None:
        await self.backend.write(key.value, value)

    def transaction(self) -> StoreTransaction:
        return StoreTransaction(self.backend)

    async def run_transaction(
        self,
        work: Callable[[StoreTransaction], Awaitable[T]],
        attempts: int = TRANSACTION_ATTEMPTS,
    ) -> T:
        """Run ``work`` in a fresh transaction, re-running it after a version conflict."""
        for attempt in range(1, attempts + 1):
            try:
                async with self.transaction() as tx:
                    result = await work(tx)
                return result
            except ConcurrentModificationError as e:
                if attempt >= attempts:
                    logger.error(f"Transaction gave up after {attempts} attempts: {e.detail}")
                    raise
                logger.warning(f"Transaction conflict on '{e.slot}' (attempt {attempt}/{attempts}), retrying.")
        raise RuntimeError("unreachable")

    async def next_sequence(self, name: str) -> int:
        return await self.backend.next_sequence(name)

    async def close(self) -> None:
        await self.backend.close()
