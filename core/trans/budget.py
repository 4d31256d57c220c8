"""API call budget guard.

Caps the number of remote calls one top-level translation request may issue, so that retries and
mismatch recovery fan-out cannot run up unbounded charges.
"""

from __future__ import annotations

import math
from typing import TYPE_CHECKING

from core.trans.interface import BudgetExceededError
from models.translation_models import RequestBudget
from utils.logger_utils import LoggerUtils

if TYPE_CHECKING:
    import logging

    from models.config_models import Config

__all__: list[str] = ["BudgetGuard"]

logger: logging.Logger = LoggerUtils.get_logger(__name__)


def _clamp(value: int, lower: int, upper: int) -> int:
    return min(upper, max(lower, value))


class BudgetGuard:
    """Computes per-request call ceilings and enforces them."""

    def __init__(self, config: Config) -> None:
        self.batch_size: int = config.BATCH.BATCH_SIZE
        self.max_retries: int = config.RETRY.MAX_RETRIES
        self.min_api_calls: int = config.BUDGET.MIN_API_CALLS
        self.max_api_calls: int = config.BUDGET.MAX_API_CALLS
        self.min_fallback_allowance: int = config.BUDGET.MIN_FALLBACK_ALLOWANCE
        self.max_fallback_allowance: int = config.BUDGET.MAX_FALLBACK_ALLOWANCE

    def compute_max_api_calls(self, total_texts: int) -> int:
        """Compute the call ceiling for a request.

        Every batch may be attempted max_retries + 1 times, plus an allowance for mismatch recovery
        that grows with the input size. The result is clamped to the configured bounds
        (60 to 500 by default).

        Args:
            total_texts (int): Number of texts in the request.

        Returns:
            int: Maximum number of remote calls.
        """
        batch_count: int = math.ceil(total_texts / max(1, self.batch_size))
        fallback_allowance: int = _clamp(total_texts, self.min_fallback_allowance, self.max_fallback_allowance)
        estimate: int = batch_count * (self.max_retries + 1) + fallback_allowance
        return _clamp(estimate, self.min_api_calls, self.max_api_calls)

    def create_context(self, total_texts: int) -> RequestBudget:
        """Create the budget for a new top-level request.

        Args:
            total_texts (int): Number of texts in the request.

        Returns:
            RequestBudget: Fresh budget with no calls consumed.
        """
        return RequestBudget(max_api_calls=self.compute_max_api_calls(total_texts))

    @staticmethod
    def consume(budget: RequestBudget) -> None:
        """Account for one remote call.

        Must be called before the call is issued.

        Args:
            budget (RequestBudget): Budget of the current request.

        Raises:
            BudgetExceededError: If the ceiling has already been reached.
        """
        if budget.api_calls >= budget.max_api_calls:
            logger.error("API call ceiling reached (%d calls)", budget.max_api_calls)
            msg: str = (
                f"Safety stop: translation aborted after {budget.api_calls} API calls to prevent excessive charges"
            )
            raise BudgetExceededError(msg)
        budget.api_calls += 1
