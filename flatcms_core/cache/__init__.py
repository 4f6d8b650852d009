"""Cache module - File-backed TTL cache and key derivation.

This module provides the cache interface, its persisted entry format and
the key builder used by the content repository.
"""

from flatcms_core.cache.entry import CacheEntry
from flatcms_core.cache.keys import CacheKeyBuilder, QueryType
from flatcms_core.cache.cache import (
    FileCache,
    CacheConfig,
    CacheStats,
    CacheResult,
    CacheErrorKind,
)

__all__ = [
    "CacheEntry",
    "CacheKeyBuilder",
    "QueryType",
    "FileCache",
    "CacheConfig",
    "CacheStats",
    "CacheResult",
    "CacheErrorKind",
]
