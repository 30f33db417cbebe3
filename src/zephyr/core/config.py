"""Configuration for the cache system with pydantic-based settings."""

from __future__ import annotations

import json
import re
from pathlib import Path
from typing import Any, Literal, Optional, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from zephyr.core.utils import DEFAULT_MUTATING_METHODS

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


class CacheRule(BaseModel):
    """A single caching rule.

    Configuration files use the short names ``test`` and ``cache``; both the
    short names and the field names are accepted.

    Attributes:
        pattern: Regular expression searched for in the full request URL
        method: HTTP method the rule is limited to (case-sensitive), or None
        ttl_minutes: How long stored responses stay valid
        invalidate: Reserved scheduling hint, carried but not acted on
        key: Reserved key-strategy hint (``$payload``, ``$path``), not acted on
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    pattern: str = Field(alias="test", description="URL regular expression")
    method: Optional[str] = Field(default=None, description="HTTP method filter")
    ttl_minutes: int = Field(
        alias="cache", ge=0, description="Time-to-live in minutes"
    )
    invalidate: Optional[str] = Field(
        default=None, description="Reserved invalidation schedule"
    )
    key: Optional[str] = Field(default=None, description="Reserved key hint")

    @field_validator("pattern")
    @classmethod
    def validate_pattern(cls, v: str) -> str:
        """Reject patterns that do not compile."""
        try:
            re.compile(v)
        except re.error as exc:
            raise ValueError(f"invalid rule pattern {v!r}: {exc}") from exc
        return v

    @field_validator("method")
    @classmethod
    def empty_method_is_none(cls, v: Optional[str]) -> Optional[str]:
        return v or None

    @field_validator("invalidate", "key")
    @classmethod
    def empty_hint_is_none(cls, v: Optional[str]) -> Optional[str]:
        return v or None

    @field_validator("ttl_minutes", mode="before")
    @classmethod
    def parse_ttl(cls, v: Any) -> Any:
        """Accept ``"1440"`` as well as ``1440``; leading integer wins."""
        if isinstance(v, str):
            match = _LEADING_INT.match(v)
            if match is None:
                raise ValueError(f"cache TTL must be an integer, got {v!r}")
            return int(match.group(1))
        if isinstance(v, float):
            return int(v)
        return v


class RedisConfig(BaseSettings):
    """Configuration for Redis connectivity."""

    model_config = SettingsConfigDict(
        env_prefix="REDIS_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    url: Optional[str] = Field(default=None, description="Redis connection URL")
    host: Optional[str] = Field(default=None, description="Redis server host")
    port: int = Field(default=6379, description="Redis server port")
    db: int = Field(default=0, ge=0, description="Redis database number")
    password: Optional[str] = Field(default=None, description="Redis password")

    def is_configured(self) -> bool:
        """Check if Redis is configured."""
        return self.url is not None or self.host is not None

    def is_url_based(self) -> bool:
        """Check if Redis is configured using URL."""
        return self.url is not None


class StorageBackendConfig(BaseModel):
    """Configuration for storage backend selection and settings.

    Attributes:
        backend_type: Type of storage backend ('memory' or 'redis')
        redis: Redis connection configuration (required if backend_type='redis')
        prefix: Key prefix for storage backend
        store_name: Name of the physical store inside the backend
    """

    backend_type: Literal["memory", "redis"] = Field(
        default="memory", description="Storage backend type: 'memory' or 'redis'"
    )
    redis: Optional[RedisConfig] = Field(
        default=None,
        description="Redis configuration (required if backend_type='redis')",
    )
    prefix: str = Field(default="zephyr:", description="Key prefix for storage backend")
    store_name: str = Field(
        default="zephyr-cache-db", min_length=1, description="Physical store name"
    )

    @model_validator(mode="after")
    def validate_redis_required(self) -> "StorageBackendConfig":
        """Ensure Redis config is provided when backend_type is redis."""
        if self.backend_type == "redis" and self.redis is None:
            # Auto-create from environment
            self.redis = RedisConfig()
            if not self.redis.is_configured():
                raise ValueError(
                    "Redis configuration required when backend_type='redis'. "
                    "Set REDIS_URL or REDIS_HOST environment variable."
                )
        return self


class ZephyrConfig(BaseModel):
    """Top-level configuration for the response cache.

    Attributes:
        rules: Ordered caching rules; the first matching rule applies
        mutating_methods: Methods whose request body is hashed into the key
        debug_param: Query parameter that triggers a diagnostic record dump
        storage: Storage backend configuration
    """

    rules: list[CacheRule] = Field(default_factory=list, description="Ordered rules")
    mutating_methods: list[str] = Field(
        default_factory=lambda: list(DEFAULT_MUTATING_METHODS),
        description="Methods whose body takes part in the cache key",
    )
    debug_param: str = Field(
        default="zephyrDebug", description="Query parameter enabling debug dumps"
    )
    storage: Optional[StorageBackendConfig] = Field(
        default=None, description="Storage backend configuration"
    )

    @model_validator(mode="after")
    def default_storage(self) -> "ZephyrConfig":
        # Initialize storage config if not provided
        if self.storage is None:
            self.storage = StorageBackendConfig()
        return self


def load_config(path: Union[str, Path]) -> ZephyrConfig:
    """Load a :class:`ZephyrConfig` from a JSON or YAML file.

    ``.json`` files are parsed as JSON, anything else as YAML. A top-level
    list is taken to be the rule list.
    """
    path = Path(path)
    text = path.read_text(encoding="utf-8")
    if path.suffix.lower() == ".json":
        data = json.loads(text)
    else:
        data = yaml.safe_load(text)

    if data is None:
        data = {}
    if isinstance(data, list):
        data = {"rules": data}
    return ZephyrConfig.model_validate(data)
