"""Translation orchestrator.

Serves what it can from the translation cache, plans the remaining texts into batches, runs the
batches through the retry envelope (recovering count mismatches), reports progress and writes new
translations back to the cache.
"""

from __future__ import annotations

import asyncio
import contextlib
import math
from collections.abc import AsyncIterator, Awaitable, Callable
from typing import TYPE_CHECKING, Final, TypeAlias

from core.trans.budget import BudgetGuard
from core.trans.engines import OpenRouterTranslation  # noqa: F401
from core.trans.interface import (
    ParseCountMismatchError,
    ResultIntegrityError,
    TransInterface,
    TranslateExceptionError,
)
from core.trans.planner import BatchPlanner
from core.trans.recovery import MismatchRecovery
from core.trans.retry import RetryEnvelope
from models.translation_models import BatchProgress, TranslationAttemptResult
from utils.logger_utils import LoggerUtils
from utils.string_utils import StringUtils

if TYPE_CHECKING:
    import logging

    from core.cache.manager import TranslationCacheManager
    from models.cache_models import CacheLayer, CacheStatistics
    from models.config_models import Config
    from models.translation_models import BatchProgressCallback, RequestBudget, TranslationBatch

__all__: list[str] = ["TransManager"]

logger: logging.Logger = LoggerUtils.get_logger(__name__)

ProgressSink: TypeAlias = Callable[[BatchProgress], None]

HIGH_COST_CALL_FACTOR: Final[int] = 6
HIGH_COST_BUDGET_RATIO: Final[float] = 0.8
HIGH_LATENCY_SEC: Final[float] = 8.0
CACHED_BATCH_INDEX: Final[int] = -1


class _RequestState:
    """Per-request bookkeeping: result slots, fill counts and progress reporting."""

    def __init__(
        self,
        texts: list[str],
        on_batch_complete: BatchProgressCallback | None,
        on_progress: ProgressSink | None,
    ) -> None:
        self.texts: list[str] = texts
        self.results: list[str | None] = [None] * len(texts)
        self.fill_counts: list[int] = [0] * len(texts)
        self.reported: int = 0
        self._on_batch_complete: BatchProgressCallback | None = on_batch_complete
        self._on_progress: ProgressSink | None = on_progress

    @property
    def wants_progress(self) -> bool:
        return self._on_batch_complete is not None or self._on_progress is not None

    def place(self, position: int, translation: str) -> None:
        self.results[position] = translation
        self.fill_counts[position] += 1

    def emit(self, batch_index: int, translations: list[str], positions: list[int]) -> None:
        """Report completed translations. Callback errors are logged and swallowed."""
        self.reported += len(positions)
        if self._on_batch_complete is not None:
            try:
                self._on_batch_complete(batch_index, translations, positions)
            except Exception as err:  # noqa: BLE001
                logger.warning("Batch complete callback error (batch %d): %s", batch_index, err)
        if self._on_progress is not None:
            self._on_progress(
                BatchProgress(
                    batch_index=batch_index,
                    translations=list(translations),
                    original_positions=list(positions),
                    completed=min(self.reported, len(self.texts)),
                    total=len(self.texts),
                )
            )


class TransManager:
    """Orchestrates batch translation with caching, retries and mismatch recovery.

    Attributes:
        config (Config): Application configuration.
        cache_manager (TranslationCacheManager): Three-tier translation cache.
        budget_guard (BudgetGuard): Per-request call ceiling.
        retry_envelope (RetryEnvelope): Retry policy for every remote call.
        planner (BatchPlanner): Batch builder.
    """

    def __init__(
        self,
        config: Config,
        cache_manager: TranslationCacheManager,
        engine: TransInterface | None = None,
        *,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        """Initialize the TransManager.

        Args:
            config (Config): Application configuration.
            cache_manager (TranslationCacheManager): Translation cache shared by all requests.
            engine (TransInterface | None): Engine to use. If None, the engine registered under the
                configured ENGINE name is created by initialize().
            sleep (Callable[[float], Awaitable[None]]): Backoff sleep, replaceable in tests.
        """
        self.config: Config = config
        self.cache_manager: TranslationCacheManager = cache_manager
        self.budget_guard: BudgetGuard = BudgetGuard(config)
        self.retry_envelope: RetryEnvelope = RetryEnvelope.from_config(config, sleep=sleep)
        self.planner: BatchPlanner = BatchPlanner(config.BATCH.BATCH_SIZE, config.BATCH.MAX_BATCH_LENGTH)
        self._engine: TransInterface | None = engine
        self._recovery: MismatchRecovery | None = None
        self._initialized: bool = False
        logger.debug("Registered translation engines: %s", TransInterface.registered)

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    @property
    def engine(self) -> TransInterface:
        """Get the translation engine.

        Raises:
            TranslateExceptionError: If no engine has been set up.
        """
        if self._engine is None:
            msg = "No translation engine available"
            raise TranslateExceptionError(msg)
        return self._engine

    async def initialize(self) -> None:
        """Set up the engine and open the cache.

        Raises:
            TranslateExceptionError: If the configured engine is unknown or cannot be initialized.
        """
        logger.info("TransManager initialization started")
        if self._engine is None:
            engine_name: str = self.config.API.ENGINE
            engine_cls: type[TransInterface] | None = TransInterface.registered.get(engine_name)
            if engine_cls is None:
                logger.critical("Translation class not found: '%s'", engine_name)
                msg: str = f"Unknown translation engine: '{engine_name}'"
                raise TranslateExceptionError(msg)
            self._engine = engine_cls()

        try:
            self._engine.initialize(self.config)
        except TranslateExceptionError as err:
            logger.critical("Exception in '%s' translation setup: %s", type(self._engine).__name__, err)
            raise
        logger.info("Translation engine initialized: '%s'", self._engine.engine_name)

        if not self.cache_manager.is_initialized:
            await self.cache_manager.component_load()

        self._recovery = MismatchRecovery(
            self._engine,
            self.retry_envelope,
            individual_threshold=self.config.BATCH.INDIVIDUAL_FALLBACK_THRESHOLD,
        )
        self._initialized = True
        logger.info("TransManager initialized successfully")

    async def shutdown(self) -> None:
        """Close the engine and the cache."""
        logger.info("TransManager shutdown started")
        if self._engine is not None:
            await self._engine.close()
        await self.cache_manager.component_teardown()
        self._initialized = False
        logger.info("TransManager shutdown completed")

    async def translate_batch(
        self,
        texts: list[str],
        target_lang: str,
        *,
        semi_parallel: bool = False,
        priority_count: int | None = None,
    ) -> list[str]:
        """Translate texts, running all batches concurrently.

        Args:
            texts (list[str]): Texts to translate.
            target_lang (str): Target language.
            semi_parallel (bool): If True, delegate to translate_batch_semi_parallel().
            priority_count (int | None): Sequential batches in semi-parallel mode.

        Returns:
            list[str]: Translations aligned index for index with texts.

        Raises:
            TranslateExceptionError: If the manager is not initialized or translation fails.
            BudgetExceededError: If the request exceeds its API call ceiling.
            ResultIntegrityError: If the assembled result is incomplete.
        """
        if semi_parallel:
            return await self.translate_batch_semi_parallel(texts, target_lang, priority_count)
        return await self._translate(texts, target_lang, 0, None, None, "translate_batch")

    async def translate_batch_semi_parallel(
        self,
        texts: list[str],
        target_lang: str,
        priority_count: int | None = None,
        on_batch_complete: BatchProgressCallback | None = None,
    ) -> list[str]:
        """Translate texts, running the first batches sequentially and the rest concurrently.

        Sequential priority batches surface the first results as early as possible. Progress is
        reported through on_batch_complete as (batch_index, translations, original_positions), in
        completion order; positions index into texts. Batches that needed mismatch recovery are
        reported item by item instead. If every text is cached, a single event covers all positions.

        Args:
            texts (list[str]): Texts to translate.
            target_lang (str): Target language.
            priority_count (int | None): Number of sequential batches. Defaults to PRIORITY_BATCHES.
            on_batch_complete (BatchProgressCallback | None): Progress callback.

        Returns:
            list[str]: Translations aligned index for index with texts.

        Raises:
            TranslateExceptionError: If the manager is not initialized or translation fails.
            BudgetExceededError: If the request exceeds its API call ceiling.
            ResultIntegrityError: If the assembled result is incomplete.
        """
        count: int = self.config.BATCH.PRIORITY_BATCHES if priority_count is None else priority_count
        return await self._translate(
            texts, target_lang, max(0, count), on_batch_complete, None, "translate_batch_semi_parallel"
        )

    async def stream_batch_progress(
        self,
        texts: list[str],
        target_lang: str,
        priority_count: int | None = None,
    ) -> AsyncIterator[BatchProgress]:
        """Translate texts in semi-parallel mode and yield progress events as batches complete.

        Unlike the callback, the stream also reports texts served from the cache (batch index -1),
        so the full result can be rebuilt from the events. Leaving the iteration early cancels the
        outstanding work; errors are raised from the iterator.

        Args:
            texts (list[str]): Texts to translate.
            target_lang (str): Target language.
            priority_count (int | None): Number of sequential batches. Defaults to PRIORITY_BATCHES.

        Yields:
            BatchProgress: Progress events in completion order.
        """
        count: int = self.config.BATCH.PRIORITY_BATCHES if priority_count is None else priority_count
        queue: asyncio.Queue[BatchProgress | None] = asyncio.Queue()
        task: asyncio.Task[list[str]] = asyncio.create_task(
            self._translate(texts, target_lang, max(0, count), None, queue.put_nowait, "stream_batch_progress")
        )
        task.add_done_callback(lambda _: queue.put_nowait(None))
        try:
            while (event := await queue.get()) is not None:
                yield event
            await task
        finally:
            if not task.done():
                task.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await task

    async def _translate(
        self,
        texts: list[str],
        target_lang: str,
        priority_count: int,
        on_batch_complete: BatchProgressCallback | None,
        on_progress: ProgressSink | None,
        context_name: str,
    ) -> list[str]:
        if not self._initialized or self._recovery is None:
            msg = "TransManager not initialized. Call initialize() first."
            raise TranslateExceptionError(msg)

        if not texts:
            return []

        logger.debug(
            "%s called: %d texts to '%s', first: '%s'",
            context_name,
            len(texts),
            target_lang,
            StringUtils.preview(texts[0]),
        )
        state = _RequestState(texts, on_batch_complete, on_progress)
        budget: RequestBudget = self.budget_guard.create_context(len(texts))

        uncached_positions: list[int] = []
        for position, text in enumerate(texts):
            cached: str | None = await self.cache_manager.lookup(text, target_lang)
            if cached is not None:
                state.place(position, cached)
            else:
                uncached_positions.append(position)

        cached_positions: list[int] = [p for p in range(len(texts)) if state.fill_counts[p]]
        if not uncached_positions:
            state.emit(0, [state.results[p] or "" for p in cached_positions], cached_positions)
            self._log_request_diagnostics(context_name, len(texts), 0, 0, budget)
            return self._assert_complete_results(state, context_name)
        if cached_positions and on_progress is not None:
            state.emit(CACHED_BATCH_INDEX, [state.results[p] or "" for p in cached_positions], cached_positions)

        batches: list[TranslationBatch] = self.planner.plan([texts[p] for p in uncached_positions], uncached_positions)
        priority_batches: list[TranslationBatch] = batches[:priority_count]
        remaining_batches: list[TranslationBatch] = batches[priority_count:]
        logger.info(
            "Translating %d uncached of %d texts in %d batches (%d sequential, %d parallel)",
            len(uncached_positions),
            len(texts),
            len(batches),
            len(priority_batches),
            len(remaining_batches),
        )

        for batch in priority_batches:
            await self._process_batch(batch, target_lang, budget, state)
        if remaining_batches:
            await asyncio.gather(*(self._process_batch(b, target_lang, budget, state) for b in remaining_batches))

        results: list[str] = self._assert_complete_results(state, context_name)
        self._log_request_diagnostics(context_name, len(texts), len(uncached_positions), len(batches), budget)
        return results

    async def _process_batch(
        self,
        batch: TranslationBatch,
        target_lang: str,
        budget: RequestBudget,
        state: _RequestState,
    ) -> None:
        def on_item_translated(translation: str, item_index: int) -> None:
            if 0 <= item_index < len(batch.positions):
                state.emit(batch.index, [translation], [batch.positions[item_index]])

        attempt: TranslationAttemptResult = await self._translate_with_retry(
            batch, target_lang, budget, on_item_translated if state.wants_progress else None
        )
        if len(attempt.translations) != len(batch):
            msg: str = (
                f"Batch {batch.index} returned {len(attempt.translations)} translations for {len(batch)} texts"
            )
            raise ResultIntegrityError(msg)

        for position, translation in zip(batch.positions, attempt.translations, strict=True):
            state.place(position, translation)
        if not attempt.fallback_used:
            state.emit(batch.index, attempt.translations, batch.positions)

        for text, translation in zip(batch.texts, attempt.translations, strict=True):
            await self.cache_manager.store(text, target_lang, translation)

    async def _translate_with_retry(
        self,
        batch: TranslationBatch,
        target_lang: str,
        budget: RequestBudget,
        on_item_translated: Callable[[str, int], None] | None,
    ) -> TranslationAttemptResult:
        engine: TransInterface = self.engine
        try:
            translations: list[str] = await self.retry_envelope.execute(
                lambda: engine.translate(batch.texts, target_lang),
                len(batch),
                budget,
                f"Batch {batch.index} translation",
            )
        except ParseCountMismatchError as err:
            if len(batch) <= 1 or self._recovery is None:
                raise
            translations = await self._recovery.recover(batch.texts, target_lang, budget, err, on_item_translated)
            return TranslationAttemptResult(translations=translations, fallback_used=True)
        return TranslationAttemptResult(translations=translations)

    @staticmethod
    def _assert_complete_results(state: _RequestState, context_name: str) -> list[str]:
        """Check that every position was filled exactly once.

        Raises:
            ResultIntegrityError: If a position is missing or was filled more than once.
        """
        expected_length: int = len(state.texts)
        if len(state.results) != expected_length:
            msg: str = f"[{context_name}] Result length mismatch: expected {expected_length}, got {len(state.results)}"
            raise ResultIntegrityError(msg)

        missing: list[int] = [i for i, count in enumerate(state.fill_counts) if count == 0]
        if missing:
            msg = f"[{context_name}] Incomplete translation results at indices: {', '.join(map(str, missing))}"
            raise ResultIntegrityError(msg)
        duplicated: list[int] = [i for i, count in enumerate(state.fill_counts) if count > 1]
        if duplicated:
            msg = f"[{context_name}] Translation results filled more than once at indices: " + ", ".join(
                map(str, duplicated)
            )
            raise ResultIntegrityError(msg)

        return [result if result is not None else "" for result in state.results]

    def _log_request_diagnostics(
        self,
        context_name: str,
        total_texts: int,
        uncached_count: int,
        batch_count: int,
        budget: RequestBudget,
    ) -> None:
        duration_sec: float = budget.elapsed_sec
        baseline_calls: int = max(1, math.ceil(max(uncached_count, 1) / self.config.BATCH.BATCH_SIZE))
        is_high_cost_risk: bool = (
            budget.api_calls > baseline_calls * HIGH_COST_CALL_FACTOR
            or budget.fallback_single_count > 0
            or budget.api_calls > math.floor(budget.max_api_calls * HIGH_COST_BUDGET_RATIO)
        )
        is_high_latency: bool = uncached_count > 0 and duration_sec > HIGH_LATENCY_SEC

        log = logger.warning if is_high_cost_risk or is_high_latency else logger.debug
        log(
            "%s diagnostics%s: texts=%d uncached=%d batches=%d duration=%.2fs api_calls=%d/%d retries=%d "
            "fallback_single=%d fallback_split=%d",
            context_name,
            " (potential risk detected)" if is_high_cost_risk or is_high_latency else "",
            total_texts,
            uncached_count,
            batch_count,
            duration_sec,
            budget.api_calls,
            budget.max_api_calls,
            budget.retry_attempts,
            budget.fallback_single_count,
            budget.fallback_split_count,
        )

    async def clear_cache(self, layer: CacheLayer = "all") -> None:
        """Clear one cache tier or all of them.

        Raises:
            ValueError: If the layer name is unknown.
        """
        await self.cache_manager.clear_cache(layer)

    async def get_cache_statistics(self) -> CacheStatistics:
        return await self.cache_manager.get_cache_statistics()
