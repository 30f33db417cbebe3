"""Interception layer wiring the cache into httpx."""

from zephyr.interceptor.transport import CachingTransport, create_client
from zephyr.interceptor.wrapper import (
    CacheDecision,
    CacheInterceptor,
    DecisionResult,
    InterceptState,
)

__all__ = [
    "CacheDecision",
    "CacheInterceptor",
    "CachingTransport",
    "DecisionResult",
    "InterceptState",
    "create_client",
]
