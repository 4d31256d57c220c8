"""Translation engine implementations.

This package contains concrete implementations of the TransInterface. Importing it registers each
engine under its distinguished name.

Modules:
- OpenRouterTranslation: Chat-completion translation through the OpenRouter API.
"""

from core.trans.engines.openrouter import OpenRouterTranslation

__all__: list[str] = ["OpenRouterTranslation"]
