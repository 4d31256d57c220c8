"""Models for translation cache data.

Defines the persisted cache entry, the cache layer names and the cache statistics snapshot.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal, TypeAlias

from dataclasses_json import DataClassJsonMixin

__all__: list[str] = [
    "CACHE_LAYERS",
    "CacheEntry",
    "CacheLayer",
    "CacheStatistics",
]

CacheLayer: TypeAlias = Literal["memory", "session", "local", "all"]

CACHE_LAYERS: tuple[str, ...] = ("memory", "session", "local", "all")


@dataclass(frozen=True)
class CacheEntry(DataClassJsonMixin):
    """Translation cache entry as written to the persisted stores.

    Serialised as ``{"text": ..., "translation": ...}``. Entries are never merged; a newer
    translation for the same key overwrites the stored JSON.

    Attributes:
        text (str): Normalized source text.
        translation (str): Translated text.
    """

    text: str
    translation: str


@dataclass
class CacheStatistics:
    """Snapshot of cache occupancy and effectiveness.

    Attributes:
        memory (int): Entries held in the in-memory recency cache.
        session (int): Translation entries in the session store.
        local (int): Translation entries in the durable store.
        hit_rate (float): Cumulative lookup hit rate in percent (0 when nothing was looked up).
    """

    memory: int = 0
    session: int = 0
    local: int = 0
    hit_rate: float = 0.0
