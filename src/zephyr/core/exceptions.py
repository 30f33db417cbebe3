"""Exceptions raised by the cache core.

Origin failures are not represented here: errors raised by the wrapped
transport (``httpx.HTTPError`` and friends) reach the caller unchanged.
"""


class ZephyrError(Exception):
    """Base class for all cache errors."""


class StoreError(ZephyrError):
    """A storage backend operation failed."""


class StoreUnavailable(StoreError):
    """The persistence layer could not be opened or reached."""


class KeyDerivationFailed(ZephyrError):
    """The request body could not be read or hashed into a cache key."""


class RecordMalformed(ZephyrError):
    """A stored record is missing required fields or has the wrong types."""

    def __init__(self, key: str | None, reason: str) -> None:
        super().__init__(f"Malformed record {key!r}: {reason}")
        self.key = key
        self.reason = reason
