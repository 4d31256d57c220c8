"""Retry envelope around a single remote translation call."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Final, Literal, TypeAlias

from core.trans.budget import BudgetGuard
from core.trans.interface import BudgetExceededError, ParseCountMismatchError
from utils.logger_utils import LoggerUtils

if TYPE_CHECKING:
    import logging

    from models.config_models import Config
    from models.translation_models import RequestBudget

__all__: list[str] = ["BACKOFF_STRATEGIES", "BackoffStrategy", "RetryEnvelope"]

logger: logging.Logger = LoggerUtils.get_logger(__name__)

BackoffStrategy: TypeAlias = Literal["exponential", "linear"]
TranslateOperation: TypeAlias = Callable[[], Awaitable[list[str]]]

BACKOFF_STRATEGIES: Final[tuple[str, ...]] = ("exponential", "linear")


class RetryEnvelope:
    """Runs a remote call with bounded retries and backoff.

    Each attempt consumes one call from the request budget before the operation runs.
    Count mismatches and budget exhaustion are raised immediately; every other exception is treated
    as transient and retried until max_retries is exhausted, then re-raised unchanged.

    Attributes:
        max_retries (int): Retries after the first attempt.
        initial_delay (float): Base delay in seconds.
        max_delay (float): Upper bound of a single delay in seconds. 0 disables the bound.
        backoff (BackoffStrategy): "exponential" (initial_delay * 2**attempt) or
            "linear" (initial_delay * (attempt + 1)).
    """

    def __init__(
        self,
        max_retries: int = 3,
        initial_delay: float = 1.0,
        backoff: BackoffStrategy | str = "exponential",
        max_delay: float = 10.0,
        *,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        if backoff not in BACKOFF_STRATEGIES:
            msg: str = f"Unknown backoff strategy '{backoff}'. Expected one of: {', '.join(BACKOFF_STRATEGIES)}"
            raise ValueError(msg)
        self.max_retries: int = max(0, max_retries)
        self.initial_delay: float = initial_delay
        self.max_delay: float = max_delay
        self.backoff: str = backoff
        self._sleep: Callable[[float], Awaitable[None]] = sleep

    @classmethod
    def from_config(cls, config: Config, *, sleep: Callable[[float], Awaitable[None]] = asyncio.sleep) -> RetryEnvelope:
        return cls(
            max_retries=config.RETRY.MAX_RETRIES,
            initial_delay=config.RETRY.INITIAL_DELAY,
            backoff=config.RETRY.BACKOFF,
            max_delay=config.RETRY.MAX_DELAY,
            sleep=sleep,
        )

    def compute_delay(self, attempt: int) -> float:
        """Delay before the retry following the given zero-based attempt.

        Args:
            attempt (int): Index of the attempt that just failed.

        Returns:
            float: Delay in seconds.
        """
        if self.backoff == "exponential":
            delay: float = self.initial_delay * (2**attempt)
        else:
            delay = self.initial_delay * (attempt + 1)
        if self.max_delay > 0:
            delay = min(delay, self.max_delay)
        return delay

    async def execute(
        self,
        operation: TranslateOperation,
        expected_count: int,
        budget: RequestBudget,
        context: str = "Translation",
    ) -> list[str]:
        """Run the operation until it succeeds or retries are exhausted.

        Args:
            operation (TranslateOperation): Zero-argument coroutine factory issuing one remote call.
            expected_count (int): Number of translations the call must return.
            budget (RequestBudget): Budget of the current request.
            context (str): Label used in log messages.

        Returns:
            list[str]: Exactly expected_count translations.

        Raises:
            ParseCountMismatchError: If the call returned a different number of translations.
            BudgetExceededError: If the request budget is exhausted.
            Exception: The last transient error once all retries have failed.
        """
        attempt: int = 0
        while True:
            try:
                BudgetGuard.consume(budget)
                translated: list[str] = await operation()
                if len(translated) != expected_count:
                    raise ParseCountMismatchError(expected_count, len(translated))
                return translated
            except (ParseCountMismatchError, BudgetExceededError):
                raise
            except Exception as err:  # noqa: BLE001
                if attempt >= self.max_retries:
                    logger.error("%s failed after %d attempts: %s", context, attempt + 1, err)
                    raise
                budget.retry_attempts += 1
                delay: float = self.compute_delay(attempt)
                logger.warning("%s retry attempt %d in %.2fs: %s", context, attempt + 1, delay, err)
                await self._sleep(delay)
                attempt += 1
