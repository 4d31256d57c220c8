from __future__ import annotations

import unicodedata
from typing import Final

__all__: list[str] = ["StringUtils"]

PREVIEW_LENGTH: Final[int] = 50


class StringUtils:
    """Static helpers for the text handled by the translator."""

    @staticmethod
    def ensure_str(value: str | None) -> str:
        """Ensure that the value is a string, returning an empty string if None.

        Whitespace is preserved; callers decide whether to strip.

        Args:
            value (str | None): The value to convert.

        Returns:
            str: The value as a string.
        """
        if not isinstance(value, str):
            value = str(value) if value is not None else ""
        return value

    @staticmethod
    def normalize_text(text: str) -> str:
        """Normalize text using Unicode NFC normalization.

        Args:
            text (str): Text to normalize.

        Returns:
            str: Normalized text.
        """
        return unicodedata.normalize("NFC", text)

    @staticmethod
    def preview(text: str | None, limit: int = PREVIEW_LENGTH) -> str:
        """Shorten text for log output.

        Args:
            text (str | None): Text to shorten.
            limit (int): Maximum number of characters kept.

        Returns:
            str: Single-line text, suffixed with '...' when truncated.
        """
        value: str = StringUtils.ensure_str(text).replace("\n", "\\n")
        if len(value) > limit:
            return f"{value[:limit]}..."
        return value

    @staticmethod
    def total_length(texts: list[str]) -> int:
        """Sum of the character lengths of the given texts."""
        return sum(len(text) for text in texts)
