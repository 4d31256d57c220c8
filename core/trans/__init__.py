"""Batch translation orchestration.

This package provides the engine interface and error taxonomy, the budget guard, the retry envelope,
response normalization, mismatch recovery, batch planning and the TransManager orchestrating them.
"""

from core.trans.budget import BudgetGuard
from core.trans.interface import (
    BudgetExceededError,
    EngineAttributes,
    ParseCountMismatchError,
    RemoteTimeoutError,
    ResultIntegrityError,
    TransientRemoteError,
    TransInterface,
    TranslateExceptionError,
)
from core.trans.manager import TransManager
from core.trans.normalizer import ResponseNormalizer
from core.trans.planner import BatchPlanner
from core.trans.recovery import MismatchRecovery
from core.trans.retry import RetryEnvelope

__all__: list[str] = [
    "BatchPlanner",
    "BudgetExceededError",
    "BudgetGuard",
    "EngineAttributes",
    "MismatchRecovery",
    "ParseCountMismatchError",
    "RemoteTimeoutError",
    "ResponseNormalizer",
    "ResultIntegrityError",
    "RetryEnvelope",
    "TransInterface",
    "TransManager",
    "TransientRemoteError",
    "TranslateExceptionError",
]
