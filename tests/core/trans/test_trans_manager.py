"""Unit tests for core.trans.manager module."""

from __future__ import annotations

from typing import TYPE_CHECKING, TypeAlias
from unittest.mock import AsyncMock

import pytest

from core.cache.manager import TranslationCacheManager
from core.cache.storage import SessionStore
from core.trans.interface import (
    BudgetExceededError,
    EngineAttributes,
    ParseCountMismatchError,
    TransientRemoteError,
    TransInterface,
    TranslateExceptionError,
)
from core.trans.manager import TransManager
from models.config_models import Config

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

    from models.translation_models import BatchProgress


class DummyEngine(TransInterface):
    """Minimal translation engine for TransManager tests.

    Requests larger than max_reliable_size are answered with a single merged translation, which
    triggers mismatch recovery in the manager.
    """

    def __init__(
        self,
        max_reliable_size: int | None = None,
        error: Exception | None = None,
        *,
        empty_response: bool = False,
    ) -> None:
        super().__init__()
        self.max_reliable_size: int | None = max_reliable_size
        self.error: Exception | None = error
        self.empty_response: bool = empty_response
        self.requests: list[list[str]] = []
        self.closed: bool = False

    @property
    def is_available(self) -> bool:
        return True

    @staticmethod
    def fetch_engine_name() -> str:
        return ""

    def initialize(self, config) -> None:
        _ = config
        self.engine_attributes = EngineAttributes(name="dummy")

    async def translate(self, texts: list[str], target_language: str) -> list[str]:
        self.requests.append(list(texts))
        if self.error is not None:
            raise self.error
        if self.empty_response:
            return []
        if self.max_reliable_size is not None and len(texts) > self.max_reliable_size:
            return [" | ".join(texts)]
        return [f"{text}->{target_language}" for text in texts]

    async def close(self) -> None:
        self.closed = True


async def _no_sleep(_: float) -> None:
    return None


ProgressEvent: TypeAlias = tuple[int, list[str], list[int]]


class EventRecorder:
    def __init__(self) -> None:
        self.events: list[ProgressEvent] = []

    def __call__(self, batch_index: int, translations: list[str], positions: list[int]) -> None:
        self.events.append((batch_index, list(translations), list(positions)))


@pytest.fixture
def config() -> Config:
    cfg = Config()
    cfg.BATCH.BATCH_SIZE = 2
    cfg.BATCH.PRIORITY_BATCHES = 1
    return cfg


@pytest.fixture
async def cache_manager(config: Config) -> AsyncGenerator[TranslationCacheManager]:
    manager = TranslationCacheManager(config, session_store=SessionStore(), durable_store=SessionStore())
    await manager.component_load()
    yield manager
    await manager.component_teardown()


@pytest.fixture
def engine() -> DummyEngine:
    return DummyEngine()


async def _make_manager(config: Config, cache_manager: TranslationCacheManager, engine: DummyEngine) -> TransManager:
    manager = TransManager(config, cache_manager, engine, sleep=_no_sleep)
    await manager.initialize()
    return manager


@pytest.fixture
async def trans_manager(config: Config, cache_manager: TranslationCacheManager, engine: DummyEngine) -> TransManager:
    return await _make_manager(config, cache_manager, engine)


@pytest.mark.asyncio
async def test_initialize_creates_registered_engine(
    monkeypatch: pytest.MonkeyPatch, config: Config, cache_manager: TranslationCacheManager
) -> None:
    monkeypatch.setattr(TransInterface, "registered", {"dummy": DummyEngine})
    config.API.ENGINE = "dummy"
    manager = TransManager(config, cache_manager)

    await manager.initialize()

    assert manager.is_initialized is True
    assert isinstance(manager.engine, DummyEngine)
    assert manager.engine.engine_name == "dummy"


@pytest.mark.asyncio
async def test_initialize_unknown_engine_raises(
    monkeypatch: pytest.MonkeyPatch, config: Config, cache_manager: TranslationCacheManager
) -> None:
    monkeypatch.setattr(TransInterface, "registered", {})
    config.API.ENGINE = "missing"
    manager = TransManager(config, cache_manager)

    with pytest.raises(TranslateExceptionError, match="Unknown translation engine"):
        await manager.initialize()
    assert manager.is_initialized is False


@pytest.mark.asyncio
async def test_initialize_opens_cache(config: Config, engine: DummyEngine) -> None:
    cache_manager = TranslationCacheManager(config, session_store=SessionStore(), durable_store=SessionStore())

    await _make_manager(config, cache_manager, engine)

    assert cache_manager.is_initialized is True


@pytest.mark.asyncio
async def test_translate_before_initialize_raises(
    config: Config, cache_manager: TranslationCacheManager, engine: DummyEngine
) -> None:
    manager = TransManager(config, cache_manager, engine)

    with pytest.raises(TranslateExceptionError, match="not initialized"):
        await manager.translate_batch(["Hello"], "ja")


@pytest.mark.asyncio
async def test_empty_input_makes_no_lookups_or_calls(
    monkeypatch: pytest.MonkeyPatch,
    trans_manager: TransManager,
    cache_manager: TranslationCacheManager,
    engine: DummyEngine,
) -> None:
    lookup_spy = AsyncMock(wraps=cache_manager.lookup)
    monkeypatch.setattr(cache_manager, "lookup", lookup_spy)
    recorder = EventRecorder()

    result: list[str] = await trans_manager.translate_batch_semi_parallel([], "ja", on_batch_complete=recorder)

    assert result == []
    lookup_spy.assert_not_awaited()
    assert engine.requests == []
    assert recorder.events == []


@pytest.mark.asyncio
async def test_translate_batch_preserves_input_order(trans_manager: TransManager, engine: DummyEngine) -> None:
    texts: list[str] = [f"t{i}" for i in range(5)]

    result: list[str] = await trans_manager.translate_batch(texts, "ja")

    assert result == [f"t{i}->ja" for i in range(5)]
    assert sorted(engine.requests) == [["t0", "t1"], ["t2", "t3"], ["t4"]]


@pytest.mark.asyncio
async def test_cached_positions_are_skipped_and_reported_by_original_index(
    trans_manager: TransManager, cache_manager: TranslationCacheManager, engine: DummyEngine
) -> None:
    texts: list[str] = [f"t{i}" for i in range(5)]
    for position in (0, 2, 4):
        await cache_manager.store(texts[position], "ja", f"cached{position}")
    recorder = EventRecorder()

    result: list[str] = await trans_manager.translate_batch_semi_parallel(texts, "ja", on_batch_complete=recorder)

    assert result == ["cached0", "t1->ja", "cached2", "t3->ja", "cached4"]
    assert engine.requests == [["t1", "t3"]]
    assert recorder.events == [(0, ["t1->ja", "t3->ja"], [1, 3])]


@pytest.mark.asyncio
async def test_all_cached_request_emits_single_event(
    trans_manager: TransManager, cache_manager: TranslationCacheManager, engine: DummyEngine
) -> None:
    texts: list[str] = ["a", "b", "c"]
    for text in texts:
        await cache_manager.store(text, "ja", text.upper())
    recorder = EventRecorder()

    result: list[str] = await trans_manager.translate_batch_semi_parallel(texts, "ja", on_batch_complete=recorder)

    assert result == ["A", "B", "C"]
    assert engine.requests == []
    assert recorder.events == [(0, ["A", "B", "C"], [0, 1, 2])]


@pytest.mark.asyncio
async def test_priority_batch_runs_first(trans_manager: TransManager, engine: DummyEngine) -> None:
    texts: list[str] = [f"t{i}" for i in range(5)]
    recorder = EventRecorder()

    result: list[str] = await trans_manager.translate_batch_semi_parallel(texts, "ja", on_batch_complete=recorder)

    assert result == [f"t{i}->ja" for i in range(5)]
    assert engine.requests[0] == ["t0", "t1"]
    assert recorder.events[0] == (0, ["t0->ja", "t1->ja"], [0, 1])
    reported: list[int] = sorted(p for _, _, positions in recorder.events for p in positions)
    assert reported == [0, 1, 2, 3, 4]


@pytest.mark.asyncio
async def test_semi_parallel_flag_delegates(trans_manager: TransManager, engine: DummyEngine) -> None:
    result: list[str] = await trans_manager.translate_batch(
        ["a", "b", "c"], "ja", semi_parallel=True, priority_count=2
    )

    assert result == ["a->ja", "b->ja", "c->ja"]
    assert engine.requests == [["a", "b"], ["c"]]


@pytest.mark.asyncio
async def test_callback_errors_do_not_abort_translation(trans_manager: TransManager) -> None:
    def failing_callback(batch_index: int, translations: list[str], positions: list[int]) -> None:
        _ = batch_index, translations, positions
        msg = "UI went away"
        raise RuntimeError(msg)

    result: list[str] = await trans_manager.translate_batch_semi_parallel(
        ["a", "b", "c"], "ja", on_batch_complete=failing_callback
    )

    assert result == ["a->ja", "b->ja", "c->ja"]


@pytest.mark.asyncio
async def test_translations_are_written_back_to_cache(trans_manager: TransManager, engine: DummyEngine) -> None:
    await trans_manager.translate_batch(["a", "b", "c"], "ja")
    engine.requests.clear()

    result: list[str] = await trans_manager.translate_batch(["c", "a"], "ja")

    assert result == ["c->ja", "a->ja"]
    assert engine.requests == []


@pytest.mark.asyncio
async def test_individual_fallback_reports_each_item(
    config: Config, cache_manager: TranslationCacheManager
) -> None:
    config.BATCH.BATCH_SIZE = 3
    engine = DummyEngine(max_reliable_size=1)
    manager: TransManager = await _make_manager(config, cache_manager, engine)
    recorder = EventRecorder()

    result: list[str] = await manager.translate_batch_semi_parallel(["a", "b", "c"], "ja", on_batch_complete=recorder)

    assert result == ["a->ja", "b->ja", "c->ja"]
    assert recorder.events == [(0, ["a->ja"], [0]), (0, ["b->ja"], [1]), (0, ["c->ja"], [2])]
    assert engine.requests == [["a", "b", "c"], ["a"], ["b"], ["c"]]


@pytest.mark.asyncio
async def test_binary_split_fallback_maps_items_to_original_positions(
    config: Config, cache_manager: TranslationCacheManager
) -> None:
    config.BATCH.BATCH_SIZE = 10
    engine = DummyEngine(max_reliable_size=2)
    manager: TransManager = await _make_manager(config, cache_manager, engine)
    texts: list[str] = [f"t{i}" for i in range(8)]
    await cache_manager.store("t0", "ja", "cached")
    recorder = EventRecorder()

    result: list[str] = await manager.translate_batch_semi_parallel(texts, "ja", on_batch_complete=recorder)

    assert result == ["cached", *[f"t{i}->ja" for i in range(1, 8)]]
    reported: dict[int, str] = {}
    for batch_index, translations, positions in recorder.events:
        assert batch_index == 0
        assert len(translations) == len(positions) == 1
        reported[positions[0]] = translations[0]
    assert reported == {i: f"t{i}->ja" for i in range(1, 8)}


@pytest.mark.asyncio
async def test_single_text_mismatch_propagates(config: Config, cache_manager: TranslationCacheManager) -> None:
    manager: TransManager = await _make_manager(config, cache_manager, DummyEngine(empty_response=True))

    with pytest.raises(ParseCountMismatchError):
        await manager.translate_batch(["only"], "ja")


@pytest.mark.asyncio
async def test_budget_exhaustion_aborts_request(config: Config, cache_manager: TranslationCacheManager) -> None:
    config.BUDGET.MIN_API_CALLS = 1
    config.BUDGET.MAX_API_CALLS = 1
    engine = DummyEngine(error=TransientRemoteError("Service unavailable", 503))
    manager: TransManager = await _make_manager(config, cache_manager, engine)

    with pytest.raises(BudgetExceededError, match="Safety stop"):
        await manager.translate_batch(["a"], "ja")
    assert len(engine.requests) == 1


@pytest.mark.asyncio
async def test_transient_errors_surface_after_retries(config: Config, cache_manager: TranslationCacheManager) -> None:
    config.RETRY.MAX_RETRIES = 2
    engine = DummyEngine(error=TransientRemoteError("Too many requests", 429, is_rate_limit=True))
    manager: TransManager = await _make_manager(config, cache_manager, engine)

    with pytest.raises(TransientRemoteError) as exc_info:
        await manager.translate_batch(["a"], "ja")

    assert exc_info.value.is_rate_limit is True
    assert len(engine.requests) == 3


@pytest.mark.asyncio
async def test_stream_reports_cached_and_translated_positions(
    trans_manager: TransManager, cache_manager: TranslationCacheManager
) -> None:
    texts: list[str] = ["t0", "t1", "t2", "t3"]
    await cache_manager.store("t2", "ja", "cached2")

    events: list[BatchProgress] = [event async for event in trans_manager.stream_batch_progress(texts, "ja")]

    assert events[0].batch_index == -1
    assert events[0].original_positions == [2]
    rebuilt: list[str | None] = [None] * len(texts)
    for event in events:
        for position, translation in zip(event.original_positions, event.translations, strict=True):
            rebuilt[position] = translation
    assert rebuilt == ["t0->ja", "t1->ja", "cached2", "t3->ja"]
    assert events[-1].completed == events[-1].total == 4
    assert events[-1].progress == 1.0


@pytest.mark.asyncio
async def test_stream_raises_translation_errors(config: Config, cache_manager: TranslationCacheManager) -> None:
    manager: TransManager = await _make_manager(config, cache_manager, DummyEngine(empty_response=True))

    with pytest.raises(ParseCountMismatchError):
        async for _ in manager.stream_batch_progress(["only"], "ja"):
            pass


@pytest.mark.asyncio
async def test_clear_cache_and_statistics_delegate(
    trans_manager: TransManager, cache_manager: TranslationCacheManager
) -> None:
    await trans_manager.translate_batch(["a", "b"], "ja")

    await trans_manager.clear_cache("memory")

    stats = await trans_manager.get_cache_statistics()
    assert stats.memory == 0
    assert stats.session == 2
    assert cache_manager.memory_cache.size() == 0


@pytest.mark.asyncio
async def test_shutdown_closes_engine(trans_manager: TransManager, engine: DummyEngine) -> None:
    await trans_manager.shutdown()

    assert engine.closed is True
    assert trans_manager.is_initialized is False
