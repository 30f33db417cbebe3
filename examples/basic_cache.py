"""
Example: Caching httpx requests with the default in-memory store.

Repeated POSTs with the same body are answered from the store; a different
body gets its own record.
"""

import asyncio
import logging
from pathlib import Path

import httpx

from zephyr import CacheInterceptor, CachingTransport, load_config


def fake_origin(request: httpx.Request) -> httpx.Response:
    return httpx.Response(200, json={"query": request.content.decode(), "products": ["a", "b"]})


async def main():
    logging.basicConfig(level=logging.DEBUG)
    config = load_config(Path(__file__).parent / "zephyr.yaml")

    interceptor = CacheInterceptor(config=config)
    transport = CachingTransport(interceptor, transport=httpx.MockTransport(fake_origin))

    async with httpx.AsyncClient(transport=transport) as client:
        url = "https://shop.example.com/api/getProducts"

        print("=== First request (miss) ===")
        print((await client.post(url, json={"x": 1})).json())
        await interceptor.drain()

        print("=== Same payload (hit) ===")
        print((await client.post(url, json={"x": 1})).json())

        print("=== Different payload (miss) ===")
        print((await client.post(url, json={"x": 2})).json())
        await interceptor.drain()

        print("\n=== Interceptor Statistics ===")
        for key, value in interceptor.stats.items():
            print(f"{key}: {value}")

        print("\n=== Stored Records ===")
        for key, record in await interceptor.cache.list_all():
            print(f"{key} -> {len(record.body)} bytes, valid until {record.valid_until}")


if __name__ == "__main__":
    asyncio.run(main())
