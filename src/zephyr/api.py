"""Zephyr admin API service."""

import os
from contextlib import asynccontextmanager
from typing import Dict, List, Optional

from fastapi import Depends, FastAPI, Request
from pydantic import BaseModel

from zephyr.core.cache import ResponseCache
from zephyr.core.config import ZephyrConfig, load_config
from zephyr.core.utils import now_ms


class RecordSummary(BaseModel):
    key: str
    content_type: str
    size: int
    status_code: int
    valid_until: int
    expired: bool
    headers: Dict[str, str]


class CacheStatsResponse(BaseModel):
    store_name: str
    backend: str
    schema_version: int
    total_records: int
    expired_records: int
    valid_records: int


class PurgeResponse(BaseModel):
    removed: int


def get_cache(request: Request) -> ResponseCache:
    """Return the store attached to the application."""
    return request.app.state.cache


def create_app(
    cache: Optional[ResponseCache] = None,
    config: Optional[ZephyrConfig] = None,
) -> FastAPI:
    """Build the admin app around ``cache``.

    When no cache is given one is created from ``config.storage``. The store
    is opened on startup and closed on shutdown.
    """
    if cache is None:
        config = config or ZephyrConfig()
        cache = ResponseCache(config=config.storage)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await cache.open()
        yield
        await cache.close()

    app = FastAPI(
        title="Zephyr Cache API",
        description="Inspection and maintenance of the response store",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.cache = cache

    @app.get("/api/cache/stats")
    async def get_cache_stats(cache: ResponseCache = Depends(get_cache)) -> CacheStatsResponse:
        """Store statistics."""
        return CacheStatsResponse(**await cache.stats())

    @app.get("/api/cache/records")
    async def list_records(cache: ResponseCache = Depends(get_cache)) -> List[RecordSummary]:
        """All stored records, expired ones included."""
        now = now_ms()
        return [
            RecordSummary(
                key=key,
                content_type=record.content_type,
                size=len(record.body),
                status_code=record.status_code,
                valid_until=record.valid_until,
                expired=not record.is_valid(now),
                headers=record.headers,
            )
            for key, record in await cache.list_all()
        ]

    @app.delete("/api/cache/expired")
    async def purge_expired(cache: ResponseCache = Depends(get_cache)) -> PurgeResponse:
        """Delete expired records."""
        return PurgeResponse(removed=await cache.purge_expired())

    @app.get("/health")
    async def health_check():
        """Health check."""
        return {"status": "healthy", "service": "zephyr-api"}

    return app


if __name__ == "__main__":
    import uvicorn

    host = os.getenv("APP_HOST", "0.0.0.0")
    port = int(os.getenv("APP_PORT", "8080"))
    config_path = os.getenv("ZEPHYR_CONFIG")

    app = create_app(config=load_config(config_path) if config_path else None)
    uvicorn.run(app, host=host, port=port)
