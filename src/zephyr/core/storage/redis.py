"""Redis storage backend implementation.

Durable record storage with a ZSET index ordered by expiry.
"""

import json
from typing import Any

from redis import asyncio as aioredis
from redis.exceptions import RedisError

from zephyr.core.config import RedisConfig
from zephyr.core.exceptions import StoreError, StoreUnavailable
from zephyr.core.storage.base import StorageBackend


class RedisStorageBackend(StorageBackend):
    """Redis storage backend with ZSET-based expiry index.

    Uses Redis data structures, all under ``{prefix}{store_name}:``:
    - Hash: Schema metadata (key: schema, fields ``version`` and ``index``)
    - String: Record JSON (key: responses:{cache key})
    - ZSET: Record keys scored by ``valid_until`` (key: index)
    """

    def __init__(
        self,
        host: str = "localhost",
        port: int = 6379,
        db: int = 0,
        password: str | None = None,
        url: str | None = None,
        prefix: str = "zephyr:",
        store_name: str = "zephyr-cache-db",
    ) -> None:
        self._host = host
        self._port = port
        self._db = db
        self._password = password
        self._url = url
        self._namespace = f"{prefix}{store_name}:"
        self._client: aioredis.Redis | None = None

    @classmethod
    def from_env(
        cls,
        config: RedisConfig | None = None,
        prefix: str = "zephyr:",
        store_name: str = "zephyr-cache-db",
    ) -> "RedisStorageBackend":
        """Create backend from environment configuration."""
        if config is None:
            config = RedisConfig()
        if not config.is_configured():
            raise ValueError(
                "Redis not configured. Set REDIS_URL or REDIS_HOST environment variable."
            )
        if config.is_url_based():
            return cls(url=config.url, prefix=prefix, store_name=store_name)
        return cls(
            host=config.host or "localhost",
            port=config.port,
            db=config.db,
            password=config.password,
            prefix=prefix,
            store_name=store_name,
        )

    def _get_client(self) -> aioredis.Redis:
        if self._client is None:
            if self._url:
                self._client = aioredis.from_url(self._url, decode_responses=True)
            else:
                self._client = aioredis.Redis(
                    host=self._host,
                    port=self._port,
                    db=self._db,
                    password=self._password,
                    decode_responses=True,
                )
        return self._client

    def _schema_key(self) -> str:
        return f"{self._namespace}schema"

    def _entry_key(self, key: str) -> str:
        return f"{self._namespace}responses:{key}"

    def _index_key(self) -> str:
        return f"{self._namespace}index"

    def _deserialize(self, data: str | None) -> dict[str, Any] | None:
        if data is None:
            return None
        try:
            value = json.loads(data)
        except json.JSONDecodeError:
            return None
        return value if isinstance(value, dict) else None

    async def connect(self) -> None:
        client = self._get_client()
        try:
            await client.ping()
        except (RedisError, OSError) as exc:
            raise StoreUnavailable(f"Redis unreachable: {exc}") from exc

    async def get_schema_version(self) -> int:
        client = self._get_client()
        try:
            version = await client.hget(self._schema_key(), "version")
        except RedisError as exc:
            raise StoreError(str(exc)) from exc
        return int(version) if version is not None else 0

    async def apply_schema(self, version: int, index_field: str) -> None:
        client = self._get_client()
        try:
            await client.hset(
                self._schema_key(),
                mapping={"version": version, "index": index_field},
            )
        except RedisError as exc:
            raise StoreError(str(exc)) from exc

    async def get(self, key: str) -> dict[str, Any] | None:
        client = self._get_client()
        try:
            data = await client.get(self._entry_key(key))
        except RedisError as exc:
            raise StoreError(str(exc)) from exc
        return self._deserialize(data)

    async def set(self, key: str, value: dict[str, Any], valid_until: int) -> None:
        client = self._get_client()
        try:
            async with client.pipeline(transaction=True) as pipe:
                pipe.set(self._entry_key(key), json.dumps(value))
                pipe.zadd(self._index_key(), {key: valid_until})
                await pipe.execute()
        except RedisError as exc:
            raise StoreError(str(exc)) from exc

    async def delete(self, key: str) -> bool:
        client = self._get_client()
        try:
            async with client.pipeline(transaction=True) as pipe:
                pipe.delete(self._entry_key(key))
                pipe.zrem(self._index_key(), key)
                results = await pipe.execute()
        except RedisError as exc:
            raise StoreError(str(exc)) from exc
        return results[0] > 0

    async def items(self) -> list[tuple[str, dict[str, Any] | None]]:
        client = self._get_client()
        try:
            keys = await client.zrange(self._index_key(), 0, -1)
            if not keys:
                return []
            values = await client.mget([self._entry_key(k) for k in keys])
        except RedisError as exc:
            raise StoreError(str(exc)) from exc
        return [(k, self._deserialize(v)) for k, v in zip(keys, values)]

    async def expired_keys(self, now: int) -> list[str]:
        client = self._get_client()
        try:
            return list(await client.zrangebyscore(self._index_key(), "-inf", f"({now}"))
        except RedisError as exc:
            raise StoreError(str(exc)) from exc

    async def size(self) -> int:
        client = self._get_client()
        try:
            return await client.zcard(self._index_key())
        except RedisError as exc:
            raise StoreError(str(exc)) from exc

    async def clear(self) -> None:
        client = self._get_client()
        try:
            async for key in client.scan_iter(match=f"{self._namespace}responses:*"):
                await client.delete(key)
            await client.delete(self._index_key())
        except RedisError as exc:
            raise StoreError(str(exc)) from exc

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
