import asyncio

from zephyr.core import (
    CacheRule,
    RedisConfig,
    ResponseCache,
    StorageBackendConfig,
    ZephyrConfig,
)
from zephyr.interceptor import create_client

RULES = [
    CacheRule(test=".*\\/api\\/getProducts$", method="POST", cache=1440),
    CacheRule(test=".*\\.(png|jpg|js)$", method="GET", cache=1),
]


async def example_memory_cache():
    config = ZephyrConfig(
        rules=RULES,
        storage=StorageBackendConfig(backend_type="memory"),
    )

    async with create_client(config) as client:
        response = await client.get("https://www.python.org/static/img/python-logo.png")
        print(response.status_code, response.headers.get("content-type"))


async def example_redis_cache():
    """Durable store on a Redis server."""
    config = ZephyrConfig(
        rules=RULES,
        storage=StorageBackendConfig(
            backend_type="redis",
            redis=RedisConfig(host="localhost", port=6379, db=0, password=None),
            prefix="my_app:",
        ),
    )

    async with create_client(config) as client:
        await client.get("https://www.python.org/static/img/python-logo.png")


async def example_env_based_cache():
    """Read Redis settings from the environment.

    Requires one of:
    - REDIS_URL=redis://localhost:6379/0
    - REDIS_HOST=localhost (with optional REDIS_PORT, REDIS_DB, REDIS_PASSWORD)
    """
    config = ZephyrConfig(
        rules=RULES,
        storage=StorageBackendConfig(backend_type="redis"),
    )

    cache = ResponseCache(config=config.storage)
    async with cache:
        print(await cache.stats())
        print("purged", await cache.purge_expired())


if __name__ == "__main__":
    asyncio.run(example_memory_cache())
