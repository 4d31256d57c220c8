"""Turns raw model output into an ordered list of per-item translations.

The normalizer is a best-effort heuristic and never raises. Whether the number of items matches the
request is checked by the retry envelope, not here.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, ClassVar

from models.re_models import (
    CODE_FENCE_PATTERN,
    INSTRUCTION_ECHO_PATTERNS,
    LEADING_LABEL_PATTERN,
    NUMBERED_ITEM_PATTERN,
    PARAGRAPH_BREAK_PATTERN,
)
from utils.logger_utils import LoggerUtils
from utils.string_utils import StringUtils

if TYPE_CHECKING:
    import logging

__all__: list[str] = ["ResponseNormalizer"]

logger: logging.Logger = LoggerUtils.get_logger(__name__)


class ResponseNormalizer:
    """Splits model output into translations.

    Attributes:
        ITEM_SEPARATOR (ClassVar[str]): Marker placed between texts in the request and expected back
            between translations in the response.
    """

    ITEM_SEPARATOR: ClassVar[str] = "[SPLIT]"

    @classmethod
    def join_texts(cls, texts: list[str]) -> str:
        """Join texts into one request body, separated by the item marker on its own line."""
        return f"\n{cls.ITEM_SEPARATOR}\n".join(texts)

    @staticmethod
    def strip_instruction_echoes(content: str) -> str:
        """Remove prompt fragments, code fences and answer labels repeated by the model.

        Args:
            content (str): Raw model output.

        Returns:
            str: Cleaned and trimmed content.
        """
        kept: list[str] = [
            line
            for line in content.split("\n")
            if not CODE_FENCE_PATTERN.match(line) and not any(p.match(line) for p in INSTRUCTION_ECHO_PATTERNS)
        ]
        return LEADING_LABEL_PATTERN.sub("", "\n".join(kept).strip(), count=1).strip()

    @classmethod
    def normalize(cls, raw_content: str | None, expected_count: int) -> list[str]:
        """Convert raw model output into translations.

        1. Instruction echoes are stripped.
        2. A single expected item is returned as the whole content.
        3. If the item separator is present, the content is split on it. A non-empty result is
           returned even if its length differs from expected_count.
        4. Otherwise paragraph and line splits are tried; the one whose length is closest to
           expected_count wins, paragraphs on a tie. If neither is closer than the whole content as
           one item, that single item is returned.

        Args:
            raw_content (str | None): Raw model output.
            expected_count (int): Number of texts sent.

        Returns:
            list[str]: Translations in order. Empty if the content is empty.
        """
        content: str = cls.strip_instruction_echoes(StringUtils.ensure_str(raw_content))
        if not content:
            logger.warning("Model returned no usable content")
            return []

        if expected_count == 1:
            single: str = cls._strip_edge_separators(content)
            return [single] if single else []

        if cls.ITEM_SEPARATOR in content:
            segments: list[str] = [s.strip() for s in content.split(cls.ITEM_SEPARATOR)]
            segments = [s for s in segments if s]
            if segments:
                if len(segments) != expected_count:
                    logger.debug("Separator split produced %d items, expected %d", len(segments), expected_count)
                return segments

        return cls._split_heuristically(content, expected_count)

    @classmethod
    def _strip_edge_separators(cls, content: str) -> str:
        value: str = content.strip()
        while value.startswith(cls.ITEM_SEPARATOR):
            value = value.removeprefix(cls.ITEM_SEPARATOR).strip()
        while value.endswith(cls.ITEM_SEPARATOR):
            value = value.removesuffix(cls.ITEM_SEPARATOR).strip()
        return value

    @classmethod
    def _split_heuristically(cls, content: str, expected_count: int) -> list[str]:
        content = content.replace(cls.ITEM_SEPARATOR, "").strip()
        if not content:
            return []
        paragraphs: list[str] = [p.strip() for p in PARAGRAPH_BREAK_PATTERN.split(content) if p.strip()]
        lines: list[str] = [line.strip() for line in content.split("\n") if line.strip()]

        # min() keeps the first candidate on a tie, so paragraphs win
        best: list[str] = min((paragraphs, lines), key=lambda c: abs(len(c) - expected_count))
        if len(best) <= 1 or abs(len(best) - expected_count) >= abs(1 - expected_count):
            logger.debug("No separator found, returning the whole response as one item")
            return [content]

        logger.debug("No separator found, heuristic split produced %d items (expected %d)", len(best), expected_count)
        return cls._strip_numbering(best)

    @staticmethod
    def _strip_numbering(items: list[str]) -> list[str]:
        """Remove list numbering if every item is numbered 1, 2, 3... in order."""
        if len(items) < 2:
            return items
        matches = [NUMBERED_ITEM_PATTERN.match(item) for item in items]
        for expected_number, match in enumerate(matches, start=1):
            if match is None or int(match.group("number")) != expected_number:
                return items
        return [item[match.end() :].strip() for item, match in zip(items, matches, strict=True) if match is not None]
