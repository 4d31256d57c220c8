"""Regular expressions for cleaning up model responses.

Patterns for prompt fragments echoed back by the model, response preambles, paragraph breaks
and list numbering.
"""

from __future__ import annotations

import re
from re import Pattern
from typing import Final

__all__: list[str] = [
    "CODE_FENCE_PATTERN",
    "INSTRUCTION_ECHO_PATTERNS",
    "LEADING_LABEL_PATTERN",
    "NUMBERED_ITEM_PATTERN",
    "PARAGRAPH_BREAK_PATTERN",
]

# Whole lines repeating the translation prompt, in the prompt languages (English and Japanese)
# Matched against single lines of the response.
# Examples: "Translate the following texts to French:", "Only return the translated text.",
#           "Keep the [SPLIT] markers exactly as they are.", "Here are the translations:",
#           "以下のテキストを日本語に翻訳してください。", "翻訳結果："
INSTRUCTION_ECHO_PATTERNS: Final[tuple[Pattern[str], ...]] = (
    re.compile(r"^[ \t]*(?:please\s+)?(?:always\s+)?translate\s+the\s+following\s+texts?\b.*$", re.I | re.M),
    re.compile(r"^[ \t]*(?:even\s+if|never\s+keep)\s+the\s+(?:text|original)\b.*$", re.I | re.M),
    re.compile(r"^[ \t]*(?:return\s+only|only\s+return)\s+the\s+translat.*$", re.I | re.M),
    re.compile(r"^[ \t]*if\s+you\s+see\s+\"?\[SPLIT\]\"?\s+markers?\b.*$", re.I | re.M),
    re.compile(r"^[ \t]*keep\s+the\s+same\s+formatting\b.*$", re.I | re.M),
    re.compile(r"^[ \t]*maintain\s+html\s+tags\b.*$", re.I | re.M),
    re.compile(r"^[ \t]*(?:keep|preserve)\s+(?:the\s+|every\s+|all\s+)?\"?\[SPLIT\]\"?\s+markers?\b.*$", re.I | re.M),
    re.compile(r"^[ \t]*here\s+(?:is|are)\s+the\s+translations?\b[^\n]*:[ \t]*$", re.I | re.M),
    re.compile(r"^[ \t]*以下の(?:テキスト|文章|文)を.*翻訳.*$", re.M),
    re.compile(r"^[ \t]*翻訳(?:結果)?[ \t]*[:：][ \t]*$", re.M),
)

# Markdown code fence lines wrapping the whole answer
# Example: "```" or "```text"
CODE_FENCE_PATTERN: Final[Pattern[str]] = re.compile(r"^[ \t]*```[\w-]*[ \t]*$", re.M)

# Label prefixed to the very beginning of an answer
# Example: "Translation: Bonjour" or "翻訳：こんにちは"
LEADING_LABEL_PATTERN: Final[Pattern[str]] = re.compile(r"^\s*(?:translation|翻訳)\s*[:：]\s*", re.I)

# One or more blank lines between paragraphs
PARAGRAPH_BREAK_PATTERN: Final[Pattern[str]] = re.compile(r"\n[ \t]*\n")

# List numbering at the start of an item
# Example: "1. Bonjour" or "2) Au revoir"
NUMBERED_ITEM_PATTERN: Final[Pattern[str]] = re.compile(r"^\s*(?P<number>\d+)[.)]\s+")
