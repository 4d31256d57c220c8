"""This module defines the abstract base class for translation engines and the translation error taxonomy.

An engine translates a list of texts in one remote call. It is expected, but not trusted, to return one
translation per input text.
"""

from __future__ import annotations

import os
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING, ClassVar

from utils.logger_utils import LoggerUtils

if TYPE_CHECKING:
    import logging

    from models.config_models import Config
    from models.translation_models import ConnectionTestResult

__all__: list[str] = [
    "BudgetExceededError",
    "EngineAttributes",
    "ParseCountMismatchError",
    "RemoteTimeoutError",
    "ResultIntegrityError",
    "TransInterface",
    "TranslateExceptionError",
    "TransientRemoteError",
]

logger: logging.Logger = LoggerUtils.get_logger(__name__)


@dataclass
class EngineAttributes:
    """Engine-specific capabilities.

    Attributes:
        name (str): Human readable engine name, used in log output only.
        supports_connection_test (bool): Whether the engine can check connectivity without translating.
    """

    name: str
    supports_connection_test: bool = False


class TranslateExceptionError(Exception):
    """An error occurred during the translation process."""


class TransientRemoteError(TranslateExceptionError):
    """The remote call failed in a way that may succeed when repeated.

    Covers network failures, server errors, authentication errors and rate limiting.

    Attributes:
        status_code (int | None): HTTP status code, None when no response was received.
        is_rate_limit (bool): True if the remote side rejected the call for rate limiting.
    """

    def __init__(self, message: str, status_code: int | None = None, *, is_rate_limit: bool = False) -> None:
        super().__init__(message)
        self.status_code: int | None = status_code
        self.is_rate_limit: bool = is_rate_limit


class RemoteTimeoutError(TransientRemoteError):
    """The remote call did not complete within the configured timeout."""


class ParseCountMismatchError(TranslateExceptionError):
    """The remote call returned a different number of translations than texts sent.

    Attributes:
        expected_count (int): Number of texts sent.
        actual_count (int): Number of translations received.
    """

    def __init__(self, expected_count: int, actual_count: int) -> None:
        super().__init__(f"Expected {expected_count} translations, received {actual_count}")
        self.expected_count: int = expected_count
        self.actual_count: int = actual_count


class BudgetExceededError(TranslateExceptionError):
    """The API call ceiling of the current request was reached."""


class ResultIntegrityError(TranslateExceptionError):
    """The assembled result is incomplete or mis-sized. Indicates a logic defect."""


class TransInterface(ABC):
    """Abstract base class for translation engines.

    Subclasses register themselves under their distinguished name when the class is defined, so an
    engine can be selected by the ENGINE configuration value.

    Attributes:
        registered (ClassVar[dict[str, type[TransInterface]]]): Registered engine classes keyed by
            their distinguished names.
    """

    registered: ClassVar[dict[str, type[TransInterface]]] = {}

    def __init_subclass__(cls, **kwargs) -> None:
        """Register the subclass in the registered dictionary.

        Args:
            **kwargs: Additional keyword arguments passed to parent class.
        """
        super().__init_subclass__(**kwargs)
        if not hasattr(cls, "fetch_engine_name") or not callable(cls.fetch_engine_name):
            msg = "Subclasses of TransInterface must implement the static method fetch_engine_name()."
            raise TypeError(msg)

        if not isinstance(cls.fetch_engine_name(), str) or cls.fetch_engine_name() == "":
            return  # Engines with empty names (test doubles) are not added to the registry.

        if cls.fetch_engine_name() in cls.registered:
            msg: str = f"A translation engine with the name '{cls.fetch_engine_name()}' is already registered."
            raise ValueError(msg)

        cls.registered[cls.fetch_engine_name()] = cls

    def __init__(self) -> None:
        self._engine_attributes: EngineAttributes | None = None

    @property
    def engine_attributes(self) -> EngineAttributes:
        if self._engine_attributes is None:
            msg = "Engine attributes have not been set."
            raise RuntimeError(msg)
        return self._engine_attributes

    @engine_attributes.setter
    def engine_attributes(self, attributes: EngineAttributes) -> None:
        if self._engine_attributes is not None:
            msg = "Engine attributes can only be set once during initialization."
            raise RuntimeError(msg)
        self._engine_attributes = attributes

    @property
    def engine_name(self) -> str:
        return self.engine_attributes.name

    @property
    @abstractmethod
    def is_available(self) -> bool:
        """Check if the engine is initialized and usable.

        Returns:
            bool: True if the engine can translate, False otherwise.
        """
        raise NotImplementedError

    @staticmethod
    @abstractmethod
    def fetch_engine_name() -> str:
        """Fetch the distinguished name of the translation engine.

        Called during class registration in __init_subclass__, so the implementation must be
        available at subclass definition time.

        Returns:
            str: The distinguished name of the translation engine.
        """
        raise NotImplementedError

    @abstractmethod
    def initialize(self, config: Config) -> None:
        """Initialize the translation engine with the given configuration.

        Args:
            config (Config): Configuration object containing settings for the translation engine.

        Raises:
            TranslateExceptionError: If the engine cannot be used with this configuration.
        """
        raise NotImplementedError

    @abstractmethod
    async def translate(self, texts: list[str], target_language: str) -> list[str]:
        """Translate a list of texts in a single remote call.

        Args:
            texts (list[str]): Texts to translate.
            target_language (str): Target language name or code.

        Returns:
            list[str]: Translations in input order. The count may differ from len(texts).

        Raises:
            TransientRemoteError: If the remote call fails with an error status or a network error.
            RemoteTimeoutError: If the remote call times out.
            TranslateExceptionError: If the response cannot be interpreted.
        """
        raise NotImplementedError

    async def test_connection(self) -> ConnectionTestResult:
        """Check that the engine can reach its remote service.

        Returns:
            ConnectionTestResult: Outcome of the check.

        Raises:
            NotImplementedError: If the engine does not support connection tests.
        """
        msg: str = f"{type(self).__name__} does not support connection tests"
        raise NotImplementedError(msg)

    @abstractmethod
    async def close(self) -> None:
        """Release network resources held by the engine."""
        raise NotImplementedError

    def get_authentication_key(self) -> str:
        """Retrieve the API key from environment variables.

        The variable is named after the engine's distinguished name with the suffix "_API_KEY",
        e.g. "OPENROUTER_API_KEY".

        Returns:
            str: The API key, or an empty string if the variable is not set.
        """
        return os.getenv(f"{self.fetch_engine_name().upper()}_API_KEY", "")
