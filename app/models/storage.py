# app/models/storage.py
from typing import Any
from datetime import datetime, timezone
from beanie import Document
from pydantic import Field


class StorageSlot(Document):
    """Satu slot key-value: seluruh koleksi entitas disimpan sebagai satu nilai."""
    # _id = nama slot (assets, borrows, ...)
    id: str
    value: Any = None
    version: int = 0
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    class Settings:
        name = "storage_slots"
