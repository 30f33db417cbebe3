"""Core components for rule-driven response caching."""

from zephyr.core.cache import ResponseCache
from zephyr.core.config import (
    CacheRule,
    RedisConfig,
    StorageBackendConfig,
    ZephyrConfig,
    load_config,
)
from zephyr.core.content_type import guess_content_type
from zephyr.core.exceptions import (
    KeyDerivationFailed,
    RecordMalformed,
    StoreError,
    StoreUnavailable,
    ZephyrError,
)
from zephyr.core.models import CacheRecord
from zephyr.core.rules import RuleMatcher, match_rule
from zephyr.core.utils import generate_cache_key

__all__ = [
    "ResponseCache",
    "CacheRule",
    "RedisConfig",
    "StorageBackendConfig",
    "ZephyrConfig",
    "load_config",
    "guess_content_type",
    "KeyDerivationFailed",
    "RecordMalformed",
    "StoreError",
    "StoreUnavailable",
    "ZephyrError",
    "CacheRecord",
    "RuleMatcher",
    "match_rule",
    "generate_cache_key",
]
