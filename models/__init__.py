"""Data models for the batch translator.

This package contains dataclass definitions for configuration, cache entries, translation
requests and progress events, and the regular expressions used to clean model responses.
"""

from __future__ import annotations

from models.cache_models import CACHE_LAYERS, CacheEntry, CacheLayer, CacheStatistics
from models.config_models import Config
from models.re_models import (
    CODE_FENCE_PATTERN,
    INSTRUCTION_ECHO_PATTERNS,
    LEADING_LABEL_PATTERN,
    NUMBERED_ITEM_PATTERN,
    PARAGRAPH_BREAK_PATTERN,
)
from models.translation_models import (
    BatchProgress,
    BatchProgressCallback,
    ConnectionTestResult,
    ItemTranslatedCallback,
    RequestBudget,
    TranslationAttemptResult,
    TranslationBatch,
)

__all__: list[str] = [
    "CACHE_LAYERS",
    "CODE_FENCE_PATTERN",
    "INSTRUCTION_ECHO_PATTERNS",
    "LEADING_LABEL_PATTERN",
    "NUMBERED_ITEM_PATTERN",
    "PARAGRAPH_BREAK_PATTERN",
    "BatchProgress",
    "BatchProgressCallback",
    "CacheEntry",
    "CacheLayer",
    "CacheStatistics",
    "Config",
    "ConnectionTestResult",
    "ItemTranslatedCallback",
    "RequestBudget",
    "TranslationAttemptResult",
    "TranslationBatch",
]
