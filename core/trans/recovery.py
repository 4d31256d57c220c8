"""Recovery of batches whose response carried the wrong number of translations.

Small batches are retranslated item by item. Larger batches are halved recursively so that only the
parts that keep mismatching pay for finer-grained calls.
"""

from __future__ import annotations

import asyncio
import math
from typing import TYPE_CHECKING, ClassVar

from core.trans.interface import ParseCountMismatchError, ResultIntegrityError
from utils.logger_utils import LoggerUtils

if TYPE_CHECKING:
    import logging

    from core.trans.interface import TransInterface
    from core.trans.retry import RetryEnvelope
    from models.translation_models import ItemTranslatedCallback, RequestBudget

__all__: list[str] = ["MismatchRecovery"]

logger: logging.Logger = LoggerUtils.get_logger(__name__)


class MismatchRecovery:
    """Chooses and runs a recovery strategy for a mismatching batch.

    Every recovered item is reported through the item callback with its index within the original
    batch, in completion order.

    Attributes:
        DEFAULT_INDIVIDUAL_THRESHOLD (ClassVar[int]): Largest batch recovered item by item.
        engine (TransInterface): Translation engine.
        retry_envelope (RetryEnvelope): Envelope wrapped around every recovery call.
        individual_threshold (int): Largest batch recovered item by item.
    """

    DEFAULT_INDIVIDUAL_THRESHOLD: ClassVar[int] = 6

    def __init__(
        self,
        engine: TransInterface,
        retry_envelope: RetryEnvelope,
        individual_threshold: int = DEFAULT_INDIVIDUAL_THRESHOLD,
    ) -> None:
        self.engine: TransInterface = engine
        self.retry_envelope: RetryEnvelope = retry_envelope
        self.individual_threshold: int = individual_threshold

    def uses_binary_split(self, batch_size: int) -> bool:
        return batch_size > self.individual_threshold

    async def recover(
        self,
        texts: list[str],
        target_lang: str,
        budget: RequestBudget,
        error: ParseCountMismatchError,
        on_item_translated: ItemTranslatedCallback | None = None,
    ) -> list[str]:
        """Retranslate a batch after a count mismatch.

        Args:
            texts (list[str]): Texts of the mismatching batch.
            target_lang (str): Target language.
            budget (RequestBudget): Budget of the current request.
            error (ParseCountMismatchError): The mismatch that triggered recovery.
            on_item_translated (ItemTranslatedCallback | None): Called with each recovered translation and
                its index within texts.

        Returns:
            list[str]: One translation per text, in order.

        Raises:
            ParseCountMismatchError: If the batch holds a single text, which cannot be subdivided.
        """
        if len(texts) <= 1:
            raise error

        if self.uses_binary_split(len(texts)):
            budget.fallback_split_count += 1
            strategy: str = "binary-split"
        else:
            budget.fallback_single_count += 1
            strategy = "single-text"
        logger.warning(
            "Count mismatch persists (expected=%d, actual=%d), falling back to %s translation for %d texts",
            error.expected_count,
            error.actual_count,
            strategy,
            len(texts),
        )

        if strategy == "binary-split":
            max_depth: int = math.ceil(math.log2(len(texts)))
            return await self.translate_by_binary_split(
                texts, target_lang, budget, on_item_translated, offset=0, depth=0, max_depth=max_depth
            )
        return await self.translate_individually(texts, target_lang, budget, on_item_translated)

    async def translate_individually(
        self,
        texts: list[str],
        target_lang: str,
        budget: RequestBudget,
        on_item_translated: ItemTranslatedCallback | None = None,
    ) -> list[str]:
        """Translate each text in its own call, one after another."""
        results: list[str] = []
        for index, text in enumerate(texts):
            translated: list[str] = await self._translate_chunk([text], target_lang, budget, "Single-text translation")
            results.append(translated[0])
            self._notify(on_item_translated, translated[0], index)
        return results

    async def translate_by_binary_split(
        self,
        texts: list[str],
        target_lang: str,
        budget: RequestBudget,
        on_item_translated: ItemTranslatedCallback | None = None,
        *,
        offset: int = 0,
        depth: int = 0,
        max_depth: int | None = None,
    ) -> list[str]:
        """Halve the texts and translate both halves concurrently, recursing into halves that mismatch.

        Args:
            texts (list[str]): Texts to translate.
            target_lang (str): Target language.
            budget (RequestBudget): Budget of the current request.
            on_item_translated (ItemTranslatedCallback | None): Item callback.
            offset (int): Index of texts[0] within the batch being recovered.
            depth (int): Current recursion depth.
            max_depth (int | None): Deepest allowed recursion. Defaults to ceil(log2(len(texts))).

        Returns:
            list[str]: One translation per text, in order.

        Raises:
            ResultIntegrityError: If the recursion goes deeper than max_depth.
        """
        if not texts:
            return []
        if max_depth is None:
            max_depth = math.ceil(math.log2(len(texts))) if len(texts) > 1 else 0
        if depth > max_depth:
            msg: str = f"Binary split recursion exceeded depth {max_depth} at offset {offset}"
            raise ResultIntegrityError(msg)

        if len(texts) == 1:
            translated: list[str] = await self._translate_chunk(texts, target_lang, budget, "Single-text translation")
            self._notify(on_item_translated, translated[0], offset)
            return translated

        split_index: int = math.ceil(len(texts) / 2)

        async def translate_half(half: list[str], half_offset: int) -> list[str]:
            try:
                half_translated: list[str] = await self._translate_chunk(
                    half, target_lang, budget, f"Fallback chunk translation ({len(half)} texts)"
                )
            except ParseCountMismatchError:
                if len(half) <= 1:
                    raise
                return await self.translate_by_binary_split(
                    half,
                    target_lang,
                    budget,
                    on_item_translated,
                    offset=half_offset,
                    depth=depth + 1,
                    max_depth=max_depth,
                )
            for index, translation in enumerate(half_translated):
                self._notify(on_item_translated, translation, half_offset + index)
            return half_translated

        left, right = await asyncio.gather(
            translate_half(texts[:split_index], offset),
            translate_half(texts[split_index:], offset + split_index),
        )
        return [*left, *right]

    async def _translate_chunk(
        self, texts: list[str], target_lang: str, budget: RequestBudget, context: str
    ) -> list[str]:
        return await self.retry_envelope.execute(
            lambda: self.engine.translate(texts, target_lang),
            len(texts),
            budget,
            context,
        )

    @staticmethod
    def _notify(callback: ItemTranslatedCallback | None, translation: str, index: int) -> None:
        if callback is None:
            return
        try:
            callback(translation, index)
        except Exception as err:  # noqa: BLE001
            logger.warning("Item translated callback error (item %d): %s", index, err)
