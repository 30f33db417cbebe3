"""Tests for cache key derivation and time helpers."""

import hashlib

import httpx
import pytest

from zephyr.core.exceptions import KeyDerivationFailed
from zephyr.core.utils import compute_valid_until, generate_cache_key, hash_payload

URL = "https://shop.example.com/api/getProducts"


class BrokenStream(httpx.AsyncByteStream):
    async def __aiter__(self):
        raise OSError("connection reset while reading body")
        yield b""  # pragma: no cover


class TestGenerateCacheKey:
    """Test cases for generate_cache_key."""

    @pytest.mark.asyncio
    async def test_get_uses_url_verbatim(self) -> None:
        request = httpx.Request("GET", f"{URL}?page=2")
        assert await generate_cache_key(request) == f"{URL}?page=2"

    @pytest.mark.asyncio
    async def test_get_key_is_stable_across_calls(self) -> None:
        request = httpx.Request("GET", URL)
        keys = {await generate_cache_key(request) for _ in range(3)}
        assert keys == {URL}

    @pytest.mark.asyncio
    async def test_get_ignores_body(self) -> None:
        a = httpx.Request("GET", URL, content=b"one")
        b = httpx.Request("GET", URL, content=b"two")
        assert await generate_cache_key(a) == await generate_cache_key(b) == URL

    @pytest.mark.asyncio
    async def test_post_appends_body_hash(self) -> None:
        request = httpx.Request("POST", URL, content=b'{"x":1}')
        expected = hashlib.sha256(b'{"x":1}').hexdigest()
        assert await generate_cache_key(request) == f"{URL}-{expected}"

    @pytest.mark.asyncio
    async def test_post_different_bodies_differ(self) -> None:
        a = httpx.Request("POST", URL, content=b'{"x":1}')
        b = httpx.Request("POST", URL, content=b'{"x":2}')
        assert await generate_cache_key(a) != await generate_cache_key(b)

    @pytest.mark.asyncio
    async def test_post_identical_bodies_match(self) -> None:
        a = httpx.Request("POST", URL, content=b'{"x":1}')
        b = httpx.Request("POST", URL, content=b'{"x":1}')
        assert await generate_cache_key(a) == await generate_cache_key(b)

    @pytest.mark.asyncio
    async def test_post_empty_body(self) -> None:
        request = httpx.Request("POST", URL)
        assert await generate_cache_key(request) == f"{URL}-{hash_payload('')}"

    @pytest.mark.asyncio
    async def test_body_remains_readable(self) -> None:
        request = httpx.Request("POST", URL, content=b'{"x":1}')
        await generate_cache_key(request)
        assert request.content == b'{"x":1}'
        assert await request.aread() == b'{"x":1}'

    @pytest.mark.asyncio
    async def test_put_is_not_mutating_by_default(self) -> None:
        request = httpx.Request("PUT", URL, content=b"payload")
        assert await generate_cache_key(request) == URL

    @pytest.mark.asyncio
    async def test_custom_mutating_methods(self) -> None:
        request = httpx.Request("PUT", URL, content=b"payload")
        key = await generate_cache_key(request, mutating_methods=("POST", "PUT"))
        assert key == f"{URL}-{hash_payload('payload')}"

    @pytest.mark.asyncio
    async def test_distinct_binary_bodies_get_distinct_keys(self) -> None:
        body = b"\xff\x01"
        first = await generate_cache_key(httpx.Request("POST", URL, content=body))
        second = await generate_cache_key(httpx.Request("POST", URL, content=b"\xfe\x01"))
        assert first != second
        assert first == f"{URL}-{hashlib.sha256(body).hexdigest()}"

    @pytest.mark.asyncio
    async def test_text_body_hash_matches_hash_payload(self) -> None:
        request = httpx.Request("POST", URL, content="héllo".encode("utf-8"))
        assert await generate_cache_key(request) == f"{URL}-{hash_payload('héllo')}"

    @pytest.mark.asyncio
    async def test_unreadable_body_raises(self) -> None:
        request = httpx.Request("POST", URL, stream=BrokenStream())
        with pytest.raises(KeyDerivationFailed):
            await generate_cache_key(request)


class TestHelpers:
    def test_hash_payload_is_lowercase_sha256(self) -> None:
        digest = hash_payload("héllo")
        assert digest == hashlib.sha256("héllo".encode("utf-8")).hexdigest()
        assert digest == digest.lower()
        assert len(digest) == 64

    def test_compute_valid_until(self) -> None:
        assert compute_valid_until(1440, 1_000) == 1_000 + 86_400_000
        assert compute_valid_until(1, 0) == 60_000
        assert compute_valid_until(0, 5) == 5
