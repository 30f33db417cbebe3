"""In-memory storage backend implementation.

Simplified implementation for development and testing.
"""

import copy
import threading
from typing import Any

from zephyr.core.storage.base import StorageBackend


class MemoryStorageBackend(StorageBackend):
    """In-memory storage backend using Python dict.

    Records live only as long as the backend instance. For a store that
    survives restarts, use RedisStorageBackend.
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._data: dict[str, dict[str, Any]] = {}
        self._index: dict[str, int] = {}
        self._schema: dict[str, Any] = {}

    async def connect(self) -> None:
        pass

    async def get_schema_version(self) -> int:
        with self._lock:
            return int(self._schema.get("version", 0))

    async def apply_schema(self, version: int, index_field: str) -> None:
        with self._lock:
            self._schema["version"] = version
            self._schema["index"] = index_field

    async def get(self, key: str) -> dict[str, Any] | None:
        with self._lock:
            entry = self._data.get(key)
            return copy.deepcopy(entry) if entry is not None else None

    async def set(self, key: str, value: dict[str, Any], valid_until: int) -> None:
        with self._lock:
            self._data[key] = copy.deepcopy(value)
            self._index[key] = valid_until

    async def delete(self, key: str) -> bool:
        with self._lock:
            deleted = self._data.pop(key, None) is not None
            self._index.pop(key, None)
            return deleted

    async def items(self) -> list[tuple[str, dict[str, Any] | None]]:
        with self._lock:
            ordered = sorted(self._index.items(), key=lambda x: x[1])
            return [(k, copy.deepcopy(self._data.get(k))) for k, _ in ordered]

    async def expired_keys(self, now: int) -> list[str]:
        with self._lock:
            return [k for k, valid_until in self._index.items() if valid_until < now]

    async def size(self) -> int:
        with self._lock:
            return len(self._index)

    async def clear(self) -> None:
        with self._lock:
            self._data.clear()
            self._index.clear()

    async def close(self) -> None:
        pass
