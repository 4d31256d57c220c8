"""Unit tests for BatchPlanner."""

from __future__ import annotations

import pytest

from core.trans.planner import BatchPlanner
from models.translation_models import TranslationBatch


def test_chunk_respects_item_limit() -> None:
    planner = BatchPlanner(batch_size=3, max_batch_length=1000)
    texts: list[str] = [f"text{i}" for i in range(7)]

    chunks: list[list[str]] = planner.chunk(texts)

    assert [len(chunk) for chunk in chunks] == [3, 3, 1]
    assert [text for chunk in chunks for text in chunk] == texts


def test_chunk_respects_length_limit() -> None:
    planner = BatchPlanner(batch_size=10, max_batch_length=10)
    texts: list[str] = ["aaaa", "bbbb", "cccc", "dd"]

    chunks: list[list[str]] = planner.chunk(texts)

    assert chunks == [["aaaa", "bbbb"], ["cccc", "dd"]]


def test_oversized_text_gets_its_own_batch() -> None:
    planner = BatchPlanner(batch_size=10, max_batch_length=10)
    texts: list[str] = ["short", "x" * 25, "tail"]

    chunks: list[list[str]] = planner.chunk(texts)

    assert chunks == [["short"], ["x" * 25], ["tail"]]


def test_chunk_empty_input() -> None:
    assert BatchPlanner().chunk([]) == []


def test_plan_carries_original_positions() -> None:
    planner = BatchPlanner(batch_size=2, max_batch_length=1000)

    batches: list[TranslationBatch] = planner.plan(["b", "d", "e"], positions=[1, 3, 4])

    assert [batch.index for batch in batches] == [0, 1]
    assert [batch.texts for batch in batches] == [["b", "d"], ["e"]]
    assert [batch.positions for batch in batches] == [[1, 3], [4]]


def test_plan_defaults_to_sequential_positions() -> None:
    planner = BatchPlanner(batch_size=2, max_batch_length=1000)

    batches: list[TranslationBatch] = planner.plan(["a", "b", "c"])

    assert [batch.positions for batch in batches] == [[0, 1], [2]]


def test_plan_rejects_mismatched_positions() -> None:
    with pytest.raises(ValueError, match="positions"):
        BatchPlanner().plan(["a", "b"], positions=[0])


@pytest.mark.parametrize(("batch_size", "max_batch_length"), [(0, 100), (10, 0)])
def test_invalid_limits_raise(batch_size: int, max_batch_length: int) -> None:
    with pytest.raises(ValueError, match="must be positive"):
        BatchPlanner(batch_size=batch_size, max_batch_length=max_batch_length)
