"""Translation cache package.

Provides the in-memory recency cache, the persisted key/value stores and the three-tier
cache manager combining them.
"""

from __future__ import annotations

from core.cache.manager import CACHE_KEY_PREFIX, TranslationCacheManager
from core.cache.recency import RecencyCache, RecencyCacheStats
from core.cache.storage import (
    KeyValueStore,
    SessionStore,
    SQLiteStore,
    StorageError,
    StorageReadError,
    StorageWriteError,
)

__all__: list[str] = [
    "CACHE_KEY_PREFIX",
    "KeyValueStore",
    "RecencyCache",
    "RecencyCacheStats",
    "SQLiteStore",
    "SessionStore",
    "StorageError",
    "StorageReadError",
    "StorageWriteError",
    "TranslationCacheManager",
]
