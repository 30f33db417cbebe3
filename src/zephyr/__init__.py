"""
Zephyr

A rule-driven HTTP response cache for httpx clients. Outgoing requests that
match a configured rule are answered from a persistent record store while the
stored copy is fresh, and fetched from the origin and written back otherwise.

Features:
- Ordered URL/method rules with per-rule TTL in minutes
- Payload-aware cache keys: POST bodies are hashed into the key
- Memory and Redis storage backends with a versioned schema
- Drop-in httpx transport; store writes never delay the response
"""

from zephyr.core.cache import ResponseCache
from zephyr.core.config import CacheRule, ZephyrConfig, load_config
from zephyr.core.models import CacheRecord
from zephyr.interceptor.transport import CachingTransport, create_client
from zephyr.interceptor.wrapper import CacheDecision, CacheInterceptor, DecisionResult

__version__ = "0.1.0"
__all__ = [
    "ResponseCache",
    "CacheRule",
    "ZephyrConfig",
    "load_config",
    "CacheRecord",
    "CachingTransport",
    "create_client",
    "CacheDecision",
    "CacheInterceptor",
    "DecisionResult",
]
