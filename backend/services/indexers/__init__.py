from .base import (
    BatchOutcome,
    OutcomeStatus,
    SubmissionStrategy,
    SubmitOutcome,
    SubmitTarget,
)
from .registry import StrategyRegistry, build_default_registry, build_session_manager

__all__ = [
    "BatchOutcome",
    "OutcomeStatus",
    "SubmissionStrategy",
    "SubmitOutcome",
    "SubmitTarget",
    "StrategyRegistry",
    "build_default_registry",
    "build_session_manager",
]
