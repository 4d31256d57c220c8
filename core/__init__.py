"""Core components of the batch translator.

This package contains the translation cache hierarchy and the translation orchestrator.
"""

from core.cache import TranslationCacheManager
from core.trans import TransManager

__all__: list[str] = [
    "TransManager",
    "TranslationCacheManager",
]
