"""Shared test fixtures."""

import sys
from pathlib import Path
from typing import Any, Callable

import httpx
import pytest

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from zephyr.core.cache import ResponseCache  # noqa: E402
from zephyr.core.exceptions import StoreError, StoreUnavailable  # noqa: E402
from zephyr.core.storage import MemoryStorageBackend  # noqa: E402

START_MS = 1_700_000_000_000


class FakeClock:
    """Manually advanced millisecond clock."""

    def __init__(self, now: int = START_MS) -> None:
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


class Origin:
    """Origin server stand-in that records every request it receives."""

    def __init__(self, handler: Callable[[httpx.Request], httpx.Response] | None = None) -> None:
        self.requests: list[httpx.Request] = []
        self._handler = handler or (lambda request: httpx.Response(200, content=b"origin"))

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self._handler(request)

    @property
    def calls(self) -> int:
        return len(self.requests)

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)


class SpyStorageBackend(MemoryStorageBackend):
    """Memory backend counting reads and writes."""

    def __init__(self) -> None:
        super().__init__()
        self.gets = 0
        self.sets = 0
        self.connects = 0

    async def connect(self) -> None:
        self.connects += 1

    async def get(self, key: str) -> dict[str, Any] | None:
        self.gets += 1
        return await super().get(key)

    async def set(self, key: str, value: dict[str, Any], valid_until: int) -> None:
        self.sets += 1
        await super().set(key, value, valid_until)


class UnreachableStorageBackend(MemoryStorageBackend):
    """Backend whose connection always fails."""

    async def connect(self) -> None:
        raise StoreUnavailable("persistence layer disabled")


class FailingWriteStorageBackend(MemoryStorageBackend):
    """Backend that accepts reads but rejects every write."""

    async def set(self, key: str, value: dict[str, Any], valid_until: int) -> None:
        raise StoreError("disk full")


class FailingReadStorageBackend(MemoryStorageBackend):
    """Backend that rejects every read."""

    async def get(self, key: str) -> dict[str, Any] | None:
        raise StoreError("read timeout")


class BrokenSchemaStorageBackend(MemoryStorageBackend):
    """Backend that connects but fails to report its schema version."""

    def __init__(self, error: Exception | None = None) -> None:
        super().__init__()
        self._error = error or StoreError("connection reset")

    async def get_schema_version(self) -> int:
        raise self._error


class FlakyStream(httpx.AsyncByteStream):
    """Request body whose first read fails and later reads succeed."""

    def __init__(self, body: bytes = b"") -> None:
        self._body = body
        self.reads = 0

    async def __aiter__(self):
        self.reads += 1
        if self.reads == 1:
            raise OSError("connection reset while reading body")
        yield self._body


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def storage() -> SpyStorageBackend:
    return SpyStorageBackend()


@pytest.fixture
def cache(storage: SpyStorageBackend, clock: FakeClock) -> ResponseCache:
    return ResponseCache(storage=storage, clock=clock)
