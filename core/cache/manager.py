# ruff: noqa: BLE001
"""Translation cache manager.

Composes the in-memory recency cache, the session store and the durable store into one
lookup/write API. Lookups fall through the tiers in that order and promote hits upward.
Persisted tiers are best effort: their failures are logged and never reach the caller.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, ClassVar, Final

from core.cache.recency import RecencyCache
from core.cache.storage import KeyValueStore, SessionStore, SQLiteStore
from models.cache_models import CACHE_LAYERS, CacheEntry, CacheLayer, CacheStatistics
from utils.logger_utils import LoggerUtils
from utils.string_utils import StringUtils

if TYPE_CHECKING:
    import logging

    from models.config_models import Config

__all__: list[str] = ["CACHE_KEY_PREFIX", "TranslationCacheManager"]

logger: logging.Logger = LoggerUtils.get_logger(__name__)

CACHE_KEY_PREFIX: Final[str] = "translation:"


class TranslationCacheManager:
    """Three-tier translation cache.

    One instance is constructed per process and injected into the translation manager.
    Concurrent batches may read and write interleaved without locking; values for the same
    key are equivalent, so the last write wins.

    Attributes:
        DEFAULT_MEMORY_SIZE (ClassVar[int]): Recency cache capacity when not configured.
        memory_cache (RecencyCache): In-memory tier.
        session_store (KeyValueStore): Session-scoped tier.
        durable_store (KeyValueStore): Durable tier.
    """

    DEFAULT_MEMORY_SIZE: ClassVar[int] = 1000

    def __init__(
        self,
        config: Config,
        session_store: KeyValueStore | None = None,
        durable_store: KeyValueStore | None = None,
        memory_cache: RecencyCache | None = None,
    ) -> None:
        """Initialize the cache manager.

        Stores that are not supplied are built from the [CACHE] configuration section.

        Args:
            config (Config): Application configuration.
            session_store (KeyValueStore | None): Session-scoped store.
            durable_store (KeyValueStore | None): Durable store.
            memory_cache (RecencyCache | None): In-memory tier.
        """
        self.config: Config = config
        cache_config = config.CACHE
        self.memory_cache: RecencyCache = memory_cache or RecencyCache(
            max_size=cache_config.MEMORY_SIZE or self.DEFAULT_MEMORY_SIZE
        )
        self.session_store: KeyValueStore = session_store or SessionStore(quota=cache_config.SESSION_QUOTA)
        self.durable_store: KeyValueStore = durable_store or SQLiteStore(cache_config.DB_PATH)
        self._hits: int = 0
        self._misses: int = 0
        self._is_initialized: bool = False
        logger.debug("TranslationCacheManager instance created")

    @property
    def is_initialized(self) -> bool:
        return self._is_initialized

    async def component_load(self) -> None:
        """Open the persisted stores.

        A store that fails to open is logged; lookups then treat it as empty.
        """
        logger.info("TranslationCacheManager initialization started")
        for store in (self.session_store, self.durable_store):
            try:
                await store.component_load()
            except Exception as err:
                logger.error("Failed to open %s cache store, continuing without it: %s", store.name, err)
        self._is_initialized = True
        logger.info("TranslationCacheManager initialized successfully")

    async def component_teardown(self) -> None:
        """Close the persisted stores."""
        logger.info("TranslationCacheManager shutdown started")
        for store in (self.session_store, self.durable_store):
            try:
                await store.component_teardown()
            except Exception as err:
                logger.error("Error closing %s cache store: %s", store.name, err)
        self._is_initialized = False
        logger.info("TranslationCacheManager shutdown completed")

    @staticmethod
    def make_cache_key(text: str, target_lang: str) -> str:
        """Build the cache key for a source text and target language.

        Args:
            text (str): Source text. NFC-normalized before use.
            target_lang (str): Target language identifier.

        Returns:
            str: Key of the form "translation:<text>:<lang>".
        """
        return f"{CACHE_KEY_PREFIX}{StringUtils.normalize_text(text)}:{target_lang}"

    async def lookup(self, text: str, target_lang: str) -> str | None:
        """Find a cached translation, promoting persisted hits into faster tiers.

        Every call counts as one hit or one miss.

        Args:
            text (str): Source text.
            target_lang (str): Target language identifier.

        Returns:
            str | None: The cached translation, or None on a miss.
        """
        key: str = self.make_cache_key(text, target_lang)

        translation: str | None = self.memory_cache.get(key)
        if translation is not None:
            self._hits += 1
            return translation

        translation = await self._read(self.session_store, key)
        if translation is not None:
            self.memory_cache.set(key, translation)
            self._hits += 1
            logger.debug("Session cache hit: '%s'", StringUtils.preview(text))
            return translation

        translation = await self._read(self.durable_store, key)
        if translation is not None:
            self.memory_cache.set(key, translation)
            await self._write(self.session_store, key, self._encode(text, translation))
            self._hits += 1
            logger.debug("Durable cache hit: '%s'", StringUtils.preview(text))
            return translation

        self._misses += 1
        return None

    async def store(self, text: str, target_lang: str, translation: str) -> None:
        """Write a translation to all three tiers.

        Persisted writes are attempted independently; a failing one does not prevent the other.

        Args:
            text (str): Source text.
            target_lang (str): Target language identifier.
            translation (str): Translated text.
        """
        key: str = self.make_cache_key(text, target_lang)
        self.memory_cache.set(key, translation)
        payload: str = self._encode(text, translation)
        await self._write(self.session_store, key, payload)
        await self._write(self.durable_store, key, payload)

    @staticmethod
    def _encode(text: str, translation: str) -> str:
        return CacheEntry(text=StringUtils.normalize_text(text), translation=translation).to_json(ensure_ascii=False)

    async def _read(self, store: KeyValueStore, key: str) -> str | None:
        try:
            raw: str | None = await store.get(key)
        except Exception as err:
            logger.warning("%s cache read failed: %s", store.name.capitalize(), err)
            return None
        if raw is None:
            return None

        try:
            entry: CacheEntry = CacheEntry.from_json(raw)
        except Exception as err:
            logger.warning("Ignoring corrupt %s cache entry for '%s': %s", store.name, StringUtils.preview(key), err)
            return None
        if not isinstance(entry.translation, str):
            logger.warning("Ignoring corrupt %s cache entry for '%s'", store.name, StringUtils.preview(key))
            return None
        return entry.translation

    async def _write(self, store: KeyValueStore, key: str, payload: str) -> None:
        try:
            await store.set(key, payload)
        except Exception as err:
            logger.warning("%s cache write failed: %s", store.name.capitalize(), err)

    async def clear_cache(self, layer: CacheLayer = "all") -> None:
        """Remove translation entries from one tier or from all of them.

        Only keys with the translation prefix are removed from the persisted stores.

        Args:
            layer (CacheLayer): "memory", "session", "local" or "all".

        Raises:
            ValueError: If the layer name is unknown.
        """
        if layer not in CACHE_LAYERS:
            msg: str = f"Unknown cache layer '{layer}'. Expected one of: {', '.join(CACHE_LAYERS)}"
            raise ValueError(msg)

        if layer in ("memory", "all"):
            self.memory_cache.clear()
            logger.info("Memory cache cleared")
        if layer in ("session", "all"):
            await self._clear_store(self.session_store)
        if layer in ("local", "all"):
            await self._clear_store(self.durable_store)
        if layer == "all":
            logger.info("All caches cleared")

    async def _clear_store(self, store: KeyValueStore) -> None:
        try:
            keys: list[str] = [key for key in await store.keys() if key.startswith(CACHE_KEY_PREFIX)]
            for key in keys:
                await store.delete(key)
            logger.info("%s cache cleared (%d entries)", store.name.capitalize(), len(keys))
        except Exception as err:
            logger.error("%s cache clear failed: %s", store.name.capitalize(), err)

    async def _count_entries(self, store: KeyValueStore) -> int:
        try:
            return sum(1 for key in await store.keys() if key.startswith(CACHE_KEY_PREFIX))
        except Exception as err:
            logger.warning("%s cache access failed: %s", store.name.capitalize(), err)
            return 0

    @property
    def hit_rate(self) -> float:
        """Cumulative hit rate in percent, 0 when nothing has been looked up."""
        total: int = self._hits + self._misses
        return self._hits / total * 100 if total > 0 else 0.0

    async def get_cache_statistics(self) -> CacheStatistics:
        """Get occupancy of each tier and the cumulative hit rate.

        Returns:
            CacheStatistics: Current statistics.
        """
        session_count, local_count = await asyncio.gather(
            self._count_entries(self.session_store),
            self._count_entries(self.durable_store),
        )
        return CacheStatistics(
            memory=self.memory_cache.size(),
            session=session_count,
            local=local_count,
            hit_rate=self.hit_rate,
        )

    def compact_memory(self, ttl_sec: float | None = None) -> int:
        """Drop in-memory entries not used within the TTL.

        Args:
            ttl_sec (float | None): Maximum age in seconds. Defaults to the configured MEMORY_TTL.

        Returns:
            int: Number of removed entries.
        """
        ttl: float = self.config.CACHE.MEMORY_TTL if ttl_sec is None else ttl_sec
        removed: int = self.memory_cache.evict_older_than(ttl)
        if removed:
            logger.info("Compacted memory cache: %d entries removed", removed)
        return removed
