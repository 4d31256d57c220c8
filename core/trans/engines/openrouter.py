"""OpenRouter chat-completion translation engine.

Sends all texts of a batch in one chat completion, separated by item markers the model is told to keep,
and splits the answer back into translations with the response normalizer.
"""

from __future__ import annotations

import json
from json import JSONDecodeError
from typing import TYPE_CHECKING, Any, ClassVar

import aiohttp

from core.trans.interface import (
    EngineAttributes,
    RemoteTimeoutError,
    TransientRemoteError,
    TransInterface,
    TranslateExceptionError,
)
from core.trans.normalizer import ResponseNormalizer
from models.translation_models import ConnectionTestResult
from utils.logger_utils import LoggerUtils
from utils.string_utils import StringUtils

if TYPE_CHECKING:
    import logging

    from models.config_models import Config

__all__: list[str] = ["OpenRouterTranslation"]

logger: logging.Logger = LoggerUtils.get_logger(__name__)

SYSTEM_PROMPT_TEMPLATE: str = (
    "Always translate the following text to {lang}, regardless of the original language.\n"
    "Even if the text is in English, translate it to {lang}. Never keep the original text as-is.\n"
    "Keep the same formatting and preserve all special characters.\n"
    "Only return the translated text without any explanations or additional text.\n"
    'If you see "{separator}" markers, keep them exactly as they are in your response.\n'
    "Maintain HTML tags if present."
)


class OpenRouterTranslation(TransInterface):
    """Translation engine backed by the OpenRouter chat completions API.

    The API key is read from the OPENROUTER_API_KEY environment variable.

    Attributes:
        CONNECTION_TEST_MAX_TOKENS (ClassVar[int]): Token limit of the connectivity check.
        BODY_PREVIEW_LIMIT (ClassVar[int]): Characters of an error body included in messages.
    """

    CONNECTION_TEST_MAX_TOKENS: ClassVar[int] = 10
    BODY_PREVIEW_LIMIT: ClassVar[int] = 300

    def __init__(self) -> None:
        super().__init__()
        self.__session: aiohttp.ClientSession | None = None
        self._api_key: str = ""
        self.endpoint: str = ""
        self.model: str = ""
        self.provider: str = ""
        self.referer: str = ""
        self.timeout: float = 30.0
        self.max_tokens: int = 4000

    @property
    def _session(self) -> aiohttp.ClientSession:
        """Return the HTTP session, creating a new one if none is open."""
        if self.__session is None or self.__session.closed:
            self.__session = aiohttp.ClientSession()
        return self.__session

    @property
    def is_available(self) -> bool:
        return bool(self._api_key)

    @staticmethod
    def fetch_engine_name() -> str:
        return "openrouter"

    def initialize(self, config: Config) -> None:
        """Load API settings and the API key.

        Args:
            config (Config): Configuration with the [API] section.

        Raises:
            TranslateExceptionError: If the API key is not configured.
        """
        api_key: str = self.get_authentication_key()
        if not api_key:
            env_name: str = f"{self.fetch_engine_name().upper()}_API_KEY"
            msg: str = f"API key not configured. Set the {env_name} environment variable."
            raise TranslateExceptionError(msg)

        self._api_key = api_key
        self.endpoint = config.API.ENDPOINT
        self.model = config.API.MODEL
        self.provider = config.API.PROVIDER
        self.referer = config.API.REFERER
        self.timeout = config.API.TIMEOUT
        self.max_tokens = config.API.MAX_TOKENS
        if self._engine_attributes is None:
            self.engine_attributes = EngineAttributes(name="OpenRouter", supports_connection_test=True)
        logger.debug("'%s': model '%s', endpoint '%s'", self.__class__.__name__, self.model, self.endpoint)

    def _build_headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self._api_key}",
            "Content-Type": "application/json",
            "HTTP-Referer": self.referer,
        }

    def _build_request(self, messages: list[dict[str, str]], max_tokens: int) -> dict[str, Any]:
        request: dict[str, Any] = {
            "model": self.model,
            "messages": messages,
            "max_tokens": max_tokens,
        }
        if self.provider:
            request["provider"] = {"order": [self.provider]}
        return request

    @staticmethod
    def _extract_error_message(body: str) -> str:
        try:
            data: Any = json.loads(body)
            return str(data["error"]["message"])
        except (JSONDecodeError, KeyError, TypeError):
            return StringUtils.preview(body, OpenRouterTranslation.BODY_PREVIEW_LIMIT)

    async def _post(self, request: dict[str, Any]) -> dict[str, Any]:
        """Post a chat completion request.

        Args:
            request (dict[str, Any]): Request body.

        Returns:
            dict[str, Any]: Decoded response body.

        Raises:
            TransientRemoteError: On HTTP error status or connection failure.
            RemoteTimeoutError: If the request exceeds the timeout.
            TranslateExceptionError: If the response body is not JSON.
        """
        try:
            _timeout = aiohttp.ClientTimeout(total=self.timeout)
            async with self._session.post(
                url=self.endpoint,
                data=json.dumps(request, ensure_ascii=False),
                headers=self._build_headers(),
                timeout=_timeout,
            ) as response:
                body: str = await response.text()
                if response.status >= 400:
                    detail: str = self._extract_error_message(body)
                    msg: str = f"API request failed: HTTP {response.status} {response.reason or ''}".rstrip()
                    msg = f"{msg}: {detail}" if detail else msg
                    if response.status == 429:
                        raise TransientRemoteError(msg, response.status, is_rate_limit=True)
                    raise TransientRemoteError(msg, response.status)
        except TimeoutError:
            msg = f"Request timed out after {self.timeout} seconds"
            raise RemoteTimeoutError(msg) from None
        except aiohttp.ClientError as err:
            msg = f"Connection to the translation API failed: {err}"
            raise TransientRemoteError(msg) from err

        try:
            data: Any = json.loads(body)
        except JSONDecodeError as err:
            msg = f"Malformed API response: {err}"
            raise TranslateExceptionError(msg) from err
        if not isinstance(data, dict):
            msg = "Malformed API response: expected a JSON object"
            raise TranslateExceptionError(msg)
        return data

    @staticmethod
    def _extract_content(data: dict[str, Any]) -> str:
        try:
            content: Any = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as err:
            msg: str = f"Malformed API response: missing message content ({err})"
            raise TranslateExceptionError(msg) from err
        return StringUtils.ensure_str(content)

    async def translate(self, texts: list[str], target_language: str) -> list[str]:
        if not texts:
            return []
        if not self.is_available:
            msg = "The OpenRouter engine is not initialised"
            raise TranslateExceptionError(msg)

        system_prompt: str = SYSTEM_PROMPT_TEMPLATE.format(
            lang=target_language, separator=ResponseNormalizer.ITEM_SEPARATOR
        )
        request: dict[str, Any] = self._build_request(
            [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": ResponseNormalizer.join_texts(texts)},
            ],
            self.max_tokens,
        )
        logger.debug("Requesting translation of %d texts to '%s'", len(texts), target_language)
        content: str = self._extract_content(await self._post(request))
        translations: list[str] = ResponseNormalizer.normalize(content, len(texts))
        if len(translations) != len(texts):
            logger.warning("Expected %d translations, got %d", len(texts), len(translations))
        return translations

    async def test_connection(self) -> ConnectionTestResult:
        """Send a minimal completion request to check the API key and model.

        Returns:
            ConnectionTestResult: Success with the model name, or the failure reason.
        """
        if not self.is_available:
            return ConnectionTestResult(success=False, error="API key not configured")

        request: dict[str, Any] = self._build_request(
            [
                {"role": "system", "content": "You are a helpful assistant."},
                {"role": "user", "content": 'Say "OK" if you can read this.'},
            ],
            self.CONNECTION_TEST_MAX_TOKENS,
        )
        try:
            await self._post(request)
        except TranslateExceptionError as err:
            logger.warning("Connection test failed: %s", err)
            return ConnectionTestResult(success=False, error=str(err))
        return ConnectionTestResult(success=True, message=f"Connection successful! Model: {self.model}")

    async def close(self) -> None:
        logger.debug("'%s': 'termination process'", self.__class__.__name__)
        if self.__session is not None and not self.__session.closed:
            await self.__session.close()
        self.__session = None
