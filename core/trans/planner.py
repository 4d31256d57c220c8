"""Splits pending texts into batches that respect the upstream size limits."""

from __future__ import annotations

from typing import TYPE_CHECKING

from models.translation_models import TranslationBatch
from utils.logger_utils import LoggerUtils

if TYPE_CHECKING:
    import logging

__all__: list[str] = ["BatchPlanner"]

logger: logging.Logger = LoggerUtils.get_logger(__name__)


class BatchPlanner:
    """Greedy left-to-right batch builder.

    A batch is closed when adding the next text would exceed batch_size items or max_batch_length
    characters. A single text longer than max_batch_length is placed in a batch of its own.
    """

    def __init__(self, batch_size: int = 10, max_batch_length: int = 5000) -> None:
        if batch_size < 1 or max_batch_length < 1:
            msg: str = f"Batch limits must be positive (size={batch_size}, length={max_batch_length})"
            raise ValueError(msg)
        self.batch_size: int = batch_size
        self.max_batch_length: int = max_batch_length

    def chunk(self, texts: list[str]) -> list[list[str]]:
        """Split texts into consecutive chunks whose concatenation equals texts."""
        chunks: list[list[str]] = []
        current: list[str] = []
        current_length: int = 0

        for text in texts:
            exceeds_size: bool = len(current) >= self.batch_size
            exceeds_length: bool = bool(current) and current_length + len(text) > self.max_batch_length
            if exceeds_size or exceeds_length:
                chunks.append(current)
                current = []
                current_length = 0
            current.append(text)
            current_length += len(text)

        if current:
            chunks.append(current)
        return chunks

    def plan(self, texts: list[str], positions: list[int] | None = None) -> list[TranslationBatch]:
        """Build batches carrying the original input position of every text.

        Args:
            texts (list[str]): Uncached texts in input order.
            positions (list[int] | None): Original index of each text. Defaults to 0..len(texts)-1.

        Returns:
            list[TranslationBatch]: Batches in order, numbered from 0.

        Raises:
            ValueError: If positions and texts differ in length.
        """
        if positions is None:
            positions = list(range(len(texts)))
        if len(positions) != len(texts):
            msg: str = f"Got {len(positions)} positions for {len(texts)} texts"
            raise ValueError(msg)

        batches: list[TranslationBatch] = []
        cursor: int = 0
        for index, chunk in enumerate(self.chunk(texts)):
            batch_positions: list[int] = positions[cursor : cursor + len(chunk)]
            batches.append(TranslationBatch(index=index, texts=chunk, positions=batch_positions))
            cursor += len(chunk)

        oversized: int = sum(1 for batch in batches if batch.char_length > self.max_batch_length)
        if oversized:
            logger.warning(
                "%d text(s) exceed the batch length limit of %d characters", oversized, self.max_batch_length
            )
        return batches
