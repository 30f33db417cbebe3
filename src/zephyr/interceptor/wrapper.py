"""Request interceptor that serves matching requests from the record store."""

from __future__ import annotations

import asyncio
import functools
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import Enum, auto
from typing import Any

import httpx

from zephyr.core.cache import ResponseCache
from zephyr.core.config import CacheRule, ZephyrConfig
from zephyr.core.exceptions import (
    KeyDerivationFailed,
    RecordMalformed,
    StoreError,
)
from zephyr.core.models import CacheRecord
from zephyr.core.rules import RuleMatcher
from zephyr.core.utils import compute_valid_until, generate_cache_key, now_ms

logger = logging.getLogger(__name__)

SendFunc = Callable[[httpx.Request], Awaitable[httpx.Response]]


class CacheDecision(Enum):
    """Decision on how to handle a request."""

    BYPASS = auto()
    HIT = auto()
    FETCH = auto()


class InterceptState(Enum):
    """Lifecycle states of an intercepted request."""

    RECEIVED = auto()
    RULE_EVALUATED = auto()
    CACHE_LOOKUP = auto()
    CACHE_HIT = auto()
    CACHE_MISS_FETCHING = auto()
    ORIGIN_RESPONDED = auto()
    STORED = auto()
    RESPONDED = auto()


@dataclass
class DecisionResult:
    """Result of cache decision making.

    ``cacheable`` is False when the store could not be opened; the request
    is then fetched from the origin without a write-back.
    """

    decision: CacheDecision
    rule: CacheRule | None = None
    key: str | None = None
    record: CacheRecord | None = None
    cacheable: bool = True


class CacheInterceptor:
    """
    Interceptor for outgoing HTTP requests with rule-driven caching.

    For every request the first matching rule decides whether the cache is
    consulted at all. Unmatched requests go straight to the origin and never
    touch the store. Matched requests are looked up by their derived key; a
    valid record is served as a 200 response, anything else is fetched from
    the origin and written back in a background task.

    The write-back never delays or fails the response: the caller gets the
    origin response as soon as its body has been buffered, and store errors
    are only logged. Use ``drain()`` to wait for outstanding writes.
    """

    def __init__(
        self,
        cache: ResponseCache | None = None,
        config: ZephyrConfig | None = None,
        clock: Callable[[], int] | None = None,
        on_cache_hit: Callable[[httpx.Request, CacheRecord], None] | None = None,
        on_cache_miss: Callable[[httpx.Request], None] | None = None,
    ) -> None:
        self.config = config or ZephyrConfig()
        self._clock = clock or now_ms
        self.cache = cache or ResponseCache(config=self.config.storage, clock=self._clock)
        self._matcher = RuleMatcher(self.config.rules)
        self._on_cache_hit = on_cache_hit
        self._on_cache_miss = on_cache_miss
        self._pending: set[asyncio.Task[Any]] = set()
        self._stats = {"hits": 0, "misses": 0, "bypassed": 0, "store_errors": 0}

    def _transition(self, request: httpx.Request, state: InterceptState) -> None:
        logger.debug("%s %s -> %s", request.method, request.url, state.name)

    async def _open_cache(self) -> ResponseCache | None:
        try:
            return await self.cache.open()
        except StoreError as exc:
            logger.warning("Response store unavailable, fetching uncached: %s", exc)
            return None

    async def decide(self, request: httpx.Request) -> DecisionResult:
        """
        Decide how to handle a request based on rules and cache state.

        Returns:
            DecisionResult with one of:
            - BYPASS: No rule matched, or the key could not be derived.
            - HIT: A well-formed, unexpired record exists for the key.
            - FETCH: The record is absent, expired, malformed or unreadable.
        """
        self._transition(request, InterceptState.RECEIVED)
        rule = self._matcher.match(request)
        self._transition(request, InterceptState.RULE_EVALUATED)
        if rule is None:
            return DecisionResult(decision=CacheDecision.BYPASS)

        try:
            key = await generate_cache_key(request, self.config.mutating_methods)
        except KeyDerivationFailed as exc:
            logger.warning("Not caching request: %s", exc)
            return DecisionResult(decision=CacheDecision.BYPASS, rule=rule)

        self._transition(request, InterceptState.CACHE_LOOKUP)
        cache = await self._open_cache()
        if cache is None:
            return DecisionResult(
                decision=CacheDecision.FETCH, rule=rule, key=key, cacheable=False
            )

        record: CacheRecord | None = None
        try:
            record = await cache.get(key)
        except RecordMalformed as exc:
            logger.warning("Ignoring stored record: %s", exc)
        except StoreError as exc:
            logger.warning("Store read failed for %s, treating as miss: %s", key, exc)

        if record is not None and record.is_valid(self._clock()):
            return DecisionResult(
                decision=CacheDecision.HIT, rule=rule, key=key, record=record
            )

        logger.debug("Record expired or not found for %s", request.url)
        return DecisionResult(decision=CacheDecision.FETCH, rule=rule, key=key)

    async def handle(self, request: httpx.Request, send: SendFunc) -> httpx.Response:
        """Serve ``request`` from the store or forward it with ``send``.

        Errors raised by ``send`` propagate unchanged.
        """
        self._maybe_dump_records(request)
        result = await self.decide(request)

        if result.decision == CacheDecision.BYPASS:
            self._stats["bypassed"] += 1
            response = await send(request)
            self._transition(request, InterceptState.RESPONDED)
            return response

        if result.decision == CacheDecision.HIT:
            assert result.record is not None
            self._stats["hits"] += 1
            self._transition(request, InterceptState.CACHE_HIT)
            logger.debug("Cache hit for %s", request.url)
            if self._on_cache_hit:
                self._on_cache_hit(request, result.record)
            response = self._build_cached_response(request, result.record)
            self._transition(request, InterceptState.RESPONDED)
            return response

        self._stats["misses"] += 1
        if self._on_cache_miss:
            self._on_cache_miss(request)

        self._transition(request, InterceptState.CACHE_MISS_FETCHING)
        response = await send(request)
        self._transition(request, InterceptState.ORIGIN_RESPONDED)

        if not result.cacheable or not response.is_success:
            self._transition(request, InterceptState.RESPONDED)
            return response

        assert result.rule is not None and result.key is not None
        # Raw bytes, still content-encoded; the client decodes on delivery.
        body = b"".join([chunk async for chunk in response.stream])
        await response.aclose()
        self._schedule_store(
            request,
            key=result.key,
            rule=result.rule,
            status_code=response.status_code,
            headers=dict(response.headers.items()),
            body=body,
        )
        self._transition(request, InterceptState.RESPONDED)
        return httpx.Response(
            status_code=response.status_code,
            headers=response.headers,
            stream=httpx.ByteStream(body),
            request=request,
            extensions=response.extensions,
        )

    def _build_cached_response(
        self, request: httpx.Request, record: CacheRecord
    ) -> httpx.Response:
        # Hits are always reported as 200 OK.
        return httpx.Response(
            status_code=200,
            headers=record.headers,
            stream=httpx.ByteStream(record.body),
            request=request,
        )

    def _schedule_store(
        self,
        request: httpx.Request,
        key: str,
        rule: CacheRule,
        status_code: int,
        headers: dict[str, str],
        body: bytes,
    ) -> None:
        record = CacheRecord(
            key=key,
            body=body,
            headers={k.lower(): v for k, v in headers.items()},
            valid_until=compute_valid_until(rule.ttl_minutes, self._clock()),
            status_code=status_code,
        )
        record.ensure_content_type(str(request.url))
        task = asyncio.create_task(self._store_record(request, record))
        self._track(task, "store")

    async def _store_record(self, request: httpx.Request, record: CacheRecord) -> None:
        cache = await self.cache.open()
        await cache.put(record)
        self._transition(request, InterceptState.STORED)

    def _track(self, task: asyncio.Task[Any], kind: str) -> None:
        self._pending.add(task)
        task.add_done_callback(functools.partial(self._on_task_done, kind))

    def _on_task_done(self, kind: str, task: asyncio.Task[Any]) -> None:
        self._pending.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is None:
            return
        if kind == "store":
            self._stats["store_errors"] += 1
        logger.error("Background %s task failed: %s", kind, exc, exc_info=exc)

    def _maybe_dump_records(self, request: httpx.Request) -> None:
        if request.url.params.get(self.config.debug_param) != "true":
            return
        logger.info("Debug mode activated by %s", request.url)
        task = asyncio.create_task(self._dump_records())
        self._track(task, "debug dump")

    async def _dump_records(self) -> None:
        cache = await self.cache.open()
        records = await cache.list_all()
        if not records:
            logger.info("No records found in the store")
            return
        now = self._clock()
        for key, record in records:
            logger.info(
                "%s content-type=%s bytes=%d valid_until=%d%s",
                key,
                record.content_type,
                len(record.body),
                record.valid_until,
                "" if record.is_valid(now) else " (expired)",
            )
        logger.info("Logged %d records from store", len(records))

    async def drain(self) -> None:
        """Wait for all outstanding background tasks."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    async def aclose(self) -> None:
        """Finish pending writes and close the store."""
        await self.drain()
        await self.cache.close()

    @property
    def stats(self) -> dict[str, Any]:
        """Get interceptor statistics."""
        served = self._stats["hits"] + self._stats["misses"]
        return {
            **self._stats,
            "hit_rate": self._stats["hits"] / served if served > 0 else 0.0,
        }

    def reset_stats(self) -> None:
        """Reset interceptor statistics."""
        self._stats = {"hits": 0, "misses": 0, "bypassed": 0, "store_errors": 0}
