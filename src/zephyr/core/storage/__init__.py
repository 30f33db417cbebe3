"""Storage backends for response records.

- StorageBackend: Abstract interface shared by all backends
- MemoryStorageBackend: In-memory storage for development/testing
- RedisStorageBackend: Redis-based durable storage for production
"""

from zephyr.core.storage.base import StorageBackend
from zephyr.core.storage.config import create_storage_backend
from zephyr.core.storage.memory import MemoryStorageBackend
from zephyr.core.storage.redis import RedisStorageBackend

__all__ = [
    "StorageBackend",
    "MemoryStorageBackend",
    "RedisStorageBackend",
    "create_storage_backend",
]
