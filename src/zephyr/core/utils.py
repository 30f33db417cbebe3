"""Utility functions for cache operations.

This module contains the cache key derivation and the small time helpers
shared by the store and the interceptor. None of them depend on class state.
"""

from __future__ import annotations

import hashlib
import time
from collections.abc import Collection

import httpx

from zephyr.core.exceptions import KeyDerivationFailed

DEFAULT_MUTATING_METHODS: tuple[str, ...] = ("POST",)
KEY_DELIMITER = "-"


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


def compute_valid_until(ttl_minutes: int, now: int) -> int:
    """Absolute expiry timestamp for a record stored at ``now``.

    Args:
        ttl_minutes: Time-to-live in minutes
        now: Store time in epoch milliseconds

    Returns:
        Expiry in epoch milliseconds

    Example:
        >>> compute_valid_until(1440, 0)
        86400000
    """
    return now + ttl_minutes * 60_000


def hash_payload(payload: str) -> str:
    """SHA-256 of the UTF-8 encoded payload as lowercase hex."""
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


async def generate_cache_key(
    request: httpx.Request,
    mutating_methods: Collection[str] = DEFAULT_MUTATING_METHODS,
) -> str:
    """Derive the cache key for a request.

    Non-mutating requests are keyed by their absolute URL. For mutating
    methods the body is appended as a SHA-256 hash so that two requests to
    the same URL with different payloads never share a record.

    The body is read through ``request.aread()``, which buffers it on the
    request, so the origin transport can still send it afterwards.

    Args:
        request: The outgoing request
        mutating_methods: Methods whose body takes part in the key

    Returns:
        ``url`` or ``url-<sha256 hex>``

    Raises:
        KeyDerivationFailed: If the body cannot be read or hashed
    """
    key = str(request.url)
    if request.method not in mutating_methods:
        return key

    try:
        content = await request.aread()
        digest = hashlib.sha256(content).hexdigest()
    except Exception as exc:
        raise KeyDerivationFailed(
            f"Could not hash body of {request.method} {key}: {exc}"
        ) from exc
    return f"{key}{KEY_DELIMITER}{digest}"
