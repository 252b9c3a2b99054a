# app/db/database.py
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Tuple

import motor.motor_asyncio
from beanie import init_beanie
from loguru import logger
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError, OperationFailure

from app.core import config
from app.core.exceptions import ConcurrentModificationError
from app.db.backend import StorageBackend, MemoryBackend
from app.models.counter import SequenceCounter
from app.models.storage import StorageSlot


class MongoBackend(StorageBackend):
    """
    Slot disimpan sebagai dokumen ``storage_slots`` {_id, value, version}.
    Multi-slot commit berjalan di dalam transaksi Motor (butuh replica set),
    dengan compare-and-set pada field version per slot.
    """

    def __init__(self, client: motor.motor_asyncio.AsyncIOMotorClient):
        self._client = client

    @staticmethod
    def _slots():
        return StorageSlot.get_motor_collection()

    async def read(self, key: str) -> Tuple[int, Any]:
        doc = await self._slots().find_one({"_id": key})
        if not doc:
            return 0, None
        return doc.get("version", 0), doc.get("value")

    async def write(self, key: str, value: Any) -> int:
        updated = await self._slots().find_one_and_update(
            {"_id": key},
            {"$set": {"value": value, "updated_at": datetime.now(timezone.utc)}, "$inc": {"version": 1}},
            upsert=True,
            return_document=ReturnDocument.AFTER,
        )
        return updated["version"]

    async def commit(self, expected: Dict[str, Optional[int]], writes: Dict[str, Any]) -> None:
        collection = self._slots()
        now = datetime.now(timezone.utc)
        try:
            async with await self._client.start_session() as session:
                async with session.start_transaction():
                    # Slot yang hanya dibaca: pastikan versinya belum berubah
                    for key, version in expected.items():
                        if key in writes or version is None:
                            continue
                        doc = await collection.find_one({"_id": key}, {"version": 1}, session=session)
                        current = doc.get("version", 0) if doc else 0
                        if current != version:
                            raise ConcurrentModificationError(key)

                    for key, value in writes.items():
                        version = expected.get(key)
                        update = {"$set": {"value": value, "updated_at": now}, "$inc": {"version": 1}}
                        if version is None:
                            await collection.update_one({"_id": key}, update, upsert=True, session=session)
                        elif version == 0:
                            try:
                                await collection.insert_one(
                                    {"_id": key, "value": value, "version": 1, "updated_at": now}, session=session
                                )
                            except DuplicateKeyError as e:
                                raise ConcurrentModificationError(key) from e
                        else:
                            result = await collection.update_one(
                                {"_id": key, "version": version}, update, session=session
                            )
                            if result.matched_count == 0:
                                raise ConcurrentModificationError(key)
        except OperationFailure as e:
            if e.has_error_label("TransientTransactionError"):
                logger.warning(f"Transient transaction error during commit: {e}")
                raise ConcurrentModificationError(",".join(writes)) from e
            raise

    async def next_sequence(self, name: str) -> int:
        """Gets the next value for a named sequence, incrementing it atomically."""
        logger.debug(f"Attempting to get next sequence value for: {name}")
        updated_doc = await SequenceCounter.get_motor_collection().find_one_and_update(
            {"_id": name},
            {"$inc": {"value": 1}},
            upsert=True,
            return_document=ReturnDocument.AFTER,
        )
        return updated_doc["value"]

    async def close(self) -> None:
        self._client.close()
        logger.info("MongoDB client closed.")


async def init_db() -> StorageBackend:
    """Inisialisasi backend storage sesuai STORAGE_BACKEND."""
    if config.STORAGE_BACKEND == "memory":
        logger.warning("Using in-memory storage backend; data hilang saat proses berhenti.")
        return MemoryBackend()

    logger.info("Connecting to MongoDB...")
    client = motor.motor_asyncio.AsyncIOMotorClient(config.MONGODB_URL)
    database = client[config.DATABASE_NAME]
    logger.info(f"Using database: {config.DATABASE_NAME}")

    await init_beanie(database=database, document_models=[StorageSlot, SequenceCounter])
    logger.info("Beanie initialization complete for storage models.")
    return MongoBackend(client)
