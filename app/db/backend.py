# app/db/backend.py
import asyncio
import copy
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional, Tuple

from loguru import logger

from app.core.exceptions import ConcurrentModificationError


class StorageBackend(ABC):
    """
    Raw key-value storage. Every slot holds one JSON-compatible value and a
    version number that grows by one on every write (0 = slot never written).
    """

    @abstractmethod
    async def read(self, key: str) -> Tuple[int, Any]:
        """Return (version, value); (0, None) for a missing slot."""

    @abstractmethod
    async def write(self, key: str, value: Any) -> int:
        """Unconditional write (last write wins). Returns the new version."""

    @abstractmethod
    async def commit(self, expected: Dict[str, Optional[int]], writes: Dict[str, Any]) -> None:
        """
        Apply all ``writes`` atomically, but only if every slot in ``expected``
        still has the given version (None = no check). Raises
        ConcurrentModificationError and writes nothing otherwise.
        """

    @abstractmethod
    async def next_sequence(self, name: str) -> int:
        """Atomically increment and return a named counter."""

    async def close(self) -> None:
        return None


class MemoryBackend(StorageBackend):
    """In-process backend: tests dan penggunaan single-process."""

    def __init__(self):
        self._slots: Dict[str, Tuple[int, Any]] = {}
        self._sequences: Dict[str, int] = {}
        self._lock = asyncio.Lock()

    async def read(self, key: str) -> Tuple[int, Any]:
        version, value = self._slots.get(key, (0, None))
        return version, copy.deepcopy(value)

    async def write(self, key: str, value: Any) -> int:
        async with self._lock:
            version = self._slots.get(key, (0, None))[0] + 1
            self._slots[key] = (version, copy.deepcopy(value))
            return version

    async def commit(self, expected: Dict[str, Optional[int]], writes: Dict[str, Any]) -> None:
        async with self._lock:
            for key, version in expected.items():
                if version is None:
                    continue
                current = self._slots.get(key, (0, None))[0]
                if current != version:
                    logger.debug(f"Commit rejected: slot '{key}' at version {current}, expected {version}")
                    raise ConcurrentModificationError(key)
            for key, value in writes.items():
                new_version = self._slots.get(key, (0, None))[0] + 1
                self._slots[key] = (new_version, copy.deepcopy(value))

    async def next_sequence(self, name: str) -> int:
        async with self._lock:
            self._sequences[name] = self._sequences.get(name, 0) + 1
            return self._sequences[name]
