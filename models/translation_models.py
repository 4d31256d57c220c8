"""Models for translation-related data.

Defines the per-request budget, planned batches, attempt results and progress events used by
the translation orchestrator.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TypeAlias

__all__: list[str] = [
    "BatchProgress",
    "BatchProgressCallback",
    "ConnectionTestResult",
    "ItemTranslatedCallback",
    "RequestBudget",
    "TranslationAttemptResult",
    "TranslationBatch",
]

# (batch_index, translations, original_positions)
BatchProgressCallback: TypeAlias = Callable[[int, list[str], list[int]], None]

# (translation, item_index within the batch being recovered)
ItemTranslatedCallback: TypeAlias = Callable[[str, int], None]


@dataclass
class RequestBudget:
    """API call accounting for one top-level translation request.

    Created at the start of each batch translation call and dropped when it returns.
    Concurrent batches of the same call share it; increments never interleave because each
    one runs to completion on the event loop.

    Attributes:
        max_api_calls (int): Ceiling on remote calls for this request.
        api_calls (int): Remote calls issued so far.
        retry_attempts (int): Transient failures that were retried.
        fallback_single_count (int): Batches recovered item by item.
        fallback_split_count (int): Batches recovered by binary splitting.
        started_at (float): Monotonic start time in seconds.
    """

    max_api_calls: int
    api_calls: int = 0
    retry_attempts: int = 0
    fallback_single_count: int = 0
    fallback_split_count: int = 0
    started_at: float = field(default_factory=time.monotonic)

    @property
    def elapsed_sec(self) -> float:
        return time.monotonic() - self.started_at


@dataclass
class TranslationBatch:
    """A contiguous slice of the uncached texts sent in one remote call.

    Attributes:
        index (int): Batch number (0-indexed) within the request.
        texts (list[str]): Texts to translate.
        positions (list[int]): Index of each text in the caller's original input.
    """

    index: int
    texts: list[str] = field(default_factory=list)
    positions: list[int] = field(default_factory=list)

    @property
    def char_length(self) -> int:
        return sum(len(text) for text in self.texts)

    def __len__(self) -> int:
        return len(self.texts)


@dataclass
class TranslationAttemptResult:
    """Outcome of translating one batch.

    Attributes:
        translations (list[str]): One translation per batch item, in batch order.
        fallback_used (bool): True if the batch went through mismatch recovery, which reports
            progress per item instead of per batch.
    """

    translations: list[str]
    fallback_used: bool = False


@dataclass(frozen=True)
class BatchProgress:
    """Progress event emitted when a batch, or a recovered item, completes.

    Events arrive in completion order, not input order. Consumers place results by
    `original_positions`.

    Attributes:
        batch_index (int): Batch number the translations belong to.
        translations (list[str]): Completed translations.
        original_positions (list[int]): Index of each translation in the original input.
        completed (int): Positions filled so far, cached ones included.
        total (int): Number of texts in the request.
    """

    batch_index: int
    translations: list[str]
    original_positions: list[int]
    completed: int = 0
    total: int = 0

    @property
    def progress(self) -> float:
        """Completed fraction between 0.0 and 1.0."""
        if self.total <= 0:
            return 1.0
        return self.completed / self.total


@dataclass
class ConnectionTestResult:
    """Result of a connectivity check against the translation engine.

    Attributes:
        success (bool): Whether the check succeeded.
        message (str): Human readable success message.
        error (str): Human readable failure reason.
    """

    success: bool
    message: str = ""
    error: str = ""
