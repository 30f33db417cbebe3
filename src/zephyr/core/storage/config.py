"""Factory function for creating storage backends from config."""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from zephyr.core.config import StorageBackendConfig
    from zephyr.core.storage.base import StorageBackend


def create_storage_backend(config: "StorageBackendConfig") -> "StorageBackend":
    """Create storage backend instance from config.

    Args:
        config: Storage backend configuration

    Returns:
        Storage backend instance (MemoryStorageBackend or RedisStorageBackend)

    Raises:
        ValueError: If redis backend is selected but redis config is missing
    """
    if config.backend_type == "redis":
        from zephyr.core.storage.redis import RedisStorageBackend

        redis_config = config.redis
        if redis_config is None:
            raise ValueError("Redis config required for redis backend")

        if redis_config.is_url_based():
            return RedisStorageBackend(
                url=redis_config.url,
                prefix=config.prefix,
                store_name=config.store_name,
            )
        return RedisStorageBackend(
            host=redis_config.host or "localhost",
            port=redis_config.port,
            db=redis_config.db,
            password=redis_config.password,
            prefix=config.prefix,
            store_name=config.store_name,
        )

    from zephyr.core.storage.memory import MemoryStorageBackend

    return MemoryStorageBackend()
