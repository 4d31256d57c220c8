"""Bounded in-memory cache with least-recently-used eviction."""

from __future__ import annotations

import time
from collections import OrderedDict
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from utils.logger_utils import LoggerUtils

if TYPE_CHECKING:
    import logging

__all__: list[str] = ["RecencyCache", "RecencyCacheStats"]

logger: logging.Logger = LoggerUtils.get_logger(__name__)


@dataclass
class _Slot:
    value: Any
    last_access: float


@dataclass
class RecencyCacheStats:
    """Occupancy of a RecencyCache.

    Attributes:
        size (int): Number of resident entries.
        max_size (int): Configured capacity.
        usage (float): Occupancy in percent.
    """

    size: int
    max_size: int
    usage: float


class RecencyCache:
    """Fixed-capacity key/value store evicting the least recently used entry.

    The most recently touched key sits at the end of the internal ordered mapping. `get` and
    `set` on a resident key move it to the end; inserting a new key at capacity drops the
    entry at the front. The size never exceeds `max_size`.
    """

    def __init__(self, max_size: int = 1000, clock: Callable[[], float] = time.monotonic) -> None:
        """Initialize the cache.

        Args:
            max_size (int): Maximum number of entries.
            clock (Callable[[], float]): Time source in seconds, used for age-based compaction.

        Raises:
            ValueError: If max_size is smaller than 1.
        """
        if max_size < 1:
            msg: str = f"Cache capacity must be at least 1 (got {max_size})"
            raise ValueError(msg)
        self._max_size: int = max_size
        self._clock: Callable[[], float] = clock
        self._entries: OrderedDict[str, _Slot] = OrderedDict()

    @property
    def max_size(self) -> int:
        return self._max_size

    def get(self, key: str) -> Any | None:
        """Return the value for key and mark it most recently used.

        Args:
            key (str): Cache key.

        Returns:
            Any | None: The cached value, or None if the key is absent.
        """
        slot: _Slot | None = self._entries.get(key)
        if slot is None:
            return None
        slot.last_access = self._clock()
        self._entries.move_to_end(key)
        return slot.value

    def set(self, key: str, value: Any) -> None:
        """Insert or replace a value and mark it most recently used.

        Args:
            key (str): Cache key.
            value (Any): Value to store.
        """
        now: float = self._clock()
        if key in self._entries:
            self._entries[key] = _Slot(value, now)
            self._entries.move_to_end(key)
            return

        if len(self._entries) >= self._max_size:
            oldest_key, _ = self._entries.popitem(last=False)
            logger.debug("Recency cache full, evicted '%s'", oldest_key)
        self._entries[key] = _Slot(value, now)

    def has(self, key: str) -> bool:
        """Check membership without touching recency."""
        return key in self._entries

    def delete(self, key: str) -> bool:
        """Remove a key.

        Returns:
            bool: True if the key was present.
        """
        return self._entries.pop(key, None) is not None

    def clear(self) -> None:
        self._entries.clear()

    def size(self) -> int:
        return len(self._entries)

    def keys(self) -> list[str]:
        """Resident keys, least recently used first."""
        return list(self._entries)

    def get_stats(self) -> RecencyCacheStats:
        size: int = len(self._entries)
        return RecencyCacheStats(size=size, max_size=self._max_size, usage=size / self._max_size * 100)

    def evict_older_than(self, ttl_sec: float) -> int:
        """Remove entries not touched within the given age.

        Maintenance path only; capacity eviction does not depend on it.

        Args:
            ttl_sec (float): Maximum age in seconds.

        Returns:
            int: Number of removed entries.
        """
        cutoff: float = self._clock() - ttl_sec
        expired: list[str] = [key for key, slot in self._entries.items() if slot.last_access < cutoff]
        for key in expired:
            del self._entries[key]
        if expired:
            logger.debug("Evicted %d expired entries from recency cache", len(expired))
        return len(expired)
