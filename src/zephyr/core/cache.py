"""Persistent response record store."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import Any

from zephyr.core.config import StorageBackendConfig
from zephyr.core.exceptions import RecordMalformed, StoreError, StoreUnavailable
from zephyr.core.models import CacheRecord
from zephyr.core.storage.base import StorageBackend
from zephyr.core.utils import now_ms

logger = logging.getLogger(__name__)

SCHEMA_VERSION = 1
INDEX_FIELD = "key"


class ResponseCache:
    """Durable key to record mapping used by the interceptor.

    Wraps a storage backend with the record format and the schema contract.
    ``open()`` must be awaited before any other operation; it is idempotent
    and returns the cache itself, so the instance doubles as the open store
    handle.

    Records are returned verbatim, expired ones included. Deciding whether a
    record may be served is left to the caller.

    Example:
        # Default in-memory store
        cache = await ResponseCache().open()

        # Durable store from config
        from zephyr.core.config import RedisConfig, StorageBackendConfig

        cache = ResponseCache(
            config=StorageBackendConfig(
                backend_type="redis",
                redis=RedisConfig(url="redis://localhost:6379/0"),
            )
        )
        async with cache:
            await cache.put(record)
            stored = await cache.get(record.key)
    """

    def __init__(
        self,
        config: StorageBackendConfig | None = None,
        storage: StorageBackend | None = None,
        clock: Callable[[], int] | None = None,
    ) -> None:
        self.config = config or StorageBackendConfig()
        self._clock = clock or now_ms

        if storage is not None:
            self._storage = storage
        else:
            from zephyr.core.storage.config import create_storage_backend

            self._storage = create_storage_backend(self.config)

        self._open_lock = asyncio.Lock()
        self._opened = False

    @property
    def storage(self) -> StorageBackend:
        return self._storage

    @property
    def is_open(self) -> bool:
        return self._opened

    async def open(self) -> "ResponseCache":
        """Connect the backend and bring its schema up to date.

        Raises:
            StoreUnavailable: If the backend cannot be reached, its schema
                cannot be read or upgraded, or it was written by a newer
                schema version.
        """
        async with self._open_lock:
            if self._opened:
                return self
            await self._storage.connect()
            try:
                await self._upgrade()
            except StoreUnavailable:
                raise
            except (StoreError, ValueError) as exc:
                raise StoreUnavailable(
                    f"Could not upgrade store {self.config.store_name!r}: {exc}"
                ) from exc
            self._opened = True
        return self

    async def _upgrade(self) -> None:
        current = await self._storage.get_schema_version()
        if current > SCHEMA_VERSION:
            raise StoreUnavailable(
                f"Store {self.config.store_name!r} has schema version {current}, "
                f"newer than supported version {SCHEMA_VERSION}"
            )
        if current == SCHEMA_VERSION:
            return
        logger.info(
            "Upgrading store %r from schema version %d to %d",
            self.config.store_name,
            current,
            SCHEMA_VERSION,
        )
        await self._storage.apply_schema(SCHEMA_VERSION, INDEX_FIELD)

    def _require_open(self) -> None:
        if not self._opened:
            raise StoreUnavailable("Store has not been opened")

    async def put(self, record: CacheRecord) -> None:
        """Upsert ``record`` by key in a single atomic write."""
        self._require_open()
        await self._storage.set(record.key, record.to_dict(), record.valid_until)

    async def get(self, key: str) -> CacheRecord | None:
        """Return the record stored under ``key``, or None.

        Raises:
            RecordMalformed: If the stored data lacks required fields.
        """
        self._require_open()
        data = await self._storage.get(key)
        if data is None:
            return None
        return CacheRecord.from_dict(data, key=key)

    async def list_all(self) -> list[tuple[str, CacheRecord]]:
        """Enumerate every stored record, ordered by expiry.

        Unreadable records are skipped.
        """
        self._require_open()
        records: list[tuple[str, CacheRecord]] = []
        for key, data in await self._storage.items():
            if data is None:
                logger.warning("Skipping unreadable record %r", key)
                continue
            try:
                records.append((key, CacheRecord.from_dict(data, key=key)))
            except RecordMalformed as exc:
                logger.warning("Skipping record: %s", exc)
        return records

    async def purge_expired(self) -> int:
        """Delete every record whose expiry has passed.

        Expiry is otherwise enforced lazily at read time; this sweep only
        runs when called.

        Returns:
            Number of records deleted.
        """
        self._require_open()
        now = self._clock()
        removed = 0
        for key in await self._storage.expired_keys(now):
            if await self._storage.delete(key):
                removed += 1
        if removed:
            logger.info("Purged %d expired records", removed)
        return removed

    async def clear(self) -> None:
        """Remove all records."""
        self._require_open()
        await self._storage.clear()

    async def stats(self) -> dict[str, Any]:
        """Get store statistics."""
        self._require_open()
        now = self._clock()
        total = await self._storage.size()
        expired = len(await self._storage.expired_keys(now))
        return {
            "store_name": self.config.store_name,
            "backend": type(self._storage).__name__,
            "schema_version": SCHEMA_VERSION,
            "total_records": total,
            "expired_records": expired,
            "valid_records": total - expired,
        }

    async def close(self) -> None:
        """Clean up resources."""
        await self._storage.close()
        self._opened = False

    async def __aenter__(self) -> "ResponseCache":
        return await self.open()

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()
        return None
