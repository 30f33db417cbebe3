"""Storage backend interface for response records."""

from abc import ABC, abstractmethod
from typing import Any


class StorageBackend(ABC):
    """Abstract interface for record storage backends.

    Backends store plain JSON-compatible dicts (see
    :meth:`zephyr.core.models.CacheRecord.to_dict`) and keep an index of
    record keys ordered by expiry.
    """

    @abstractmethod
    async def connect(self) -> None:
        """Establish the connection.

        Raises:
            StoreUnavailable: If the backend cannot be reached.
        """
        ...

    @abstractmethod
    async def get_schema_version(self) -> int:
        """Return the stored schema version, or 0 for a fresh store."""
        ...

    @abstractmethod
    async def apply_schema(self, version: int, index_field: str) -> None:
        """Create the record index and record ``version``.

        Must be a no-op when the index and version already exist.
        """
        ...

    @abstractmethod
    async def get(self, key: str) -> dict[str, Any] | None:
        """Return the raw record stored under ``key``."""
        ...

    @abstractmethod
    async def set(self, key: str, value: dict[str, Any], valid_until: int) -> None:
        """Upsert a record and its index entry atomically."""
        ...

    @abstractmethod
    async def delete(self, key: str) -> bool:
        """Delete a record. Returns whether it existed."""
        ...

    @abstractmethod
    async def items(self) -> list[tuple[str, dict[str, Any] | None]]:
        """All indexed keys with their raw records (None if unreadable)."""
        ...

    @abstractmethod
    async def expired_keys(self, now: int) -> list[str]:
        """Keys whose indexed expiry is strictly before ``now``."""
        ...

    @abstractmethod
    async def size(self) -> int:
        """Number of indexed records."""
        ...

    @abstractmethod
    async def clear(self) -> None:
        """Remove all records, keeping the schema."""
        ...

    @abstractmethod
    async def close(self) -> None:
        """Clean up resources."""
        ...
