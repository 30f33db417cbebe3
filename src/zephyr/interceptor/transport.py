"""httpx transport that routes every request through a CacheInterceptor."""

from __future__ import annotations

from typing import Any

import httpx

from zephyr.core.cache import ResponseCache
from zephyr.core.config import ZephyrConfig
from zephyr.interceptor.wrapper import CacheInterceptor


class CachingTransport(httpx.AsyncBaseTransport):
    """Async transport wrapping an origin transport with the response cache.

    Usage:
        interceptor = CacheInterceptor(config=config)
        async with httpx.AsyncClient(transport=CachingTransport(interceptor)) as client:
            response = await client.post(url, json=payload)
    """

    def __init__(
        self,
        interceptor: CacheInterceptor,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.interceptor = interceptor
        self._transport = transport or httpx.AsyncHTTPTransport()

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        return await self.interceptor.handle(request, self._transport.handle_async_request)

    async def aclose(self) -> None:
        await self.interceptor.aclose()
        await self._transport.aclose()


def create_client(
    config: ZephyrConfig | None = None,
    cache: ResponseCache | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
    **client_kwargs: Any,
) -> httpx.AsyncClient:
    """Build an ``httpx.AsyncClient`` whose requests go through the cache.

    Args:
        config: Rules and storage settings
        cache: Store to use instead of one built from ``config.storage``
        transport: Origin transport (defaults to ``httpx.AsyncHTTPTransport``)
        **client_kwargs: Passed through to ``httpx.AsyncClient``
    """
    interceptor = CacheInterceptor(cache=cache, config=config)
    return httpx.AsyncClient(
        transport=CachingTransport(interceptor, transport=transport),
        **client_kwargs,
    )
