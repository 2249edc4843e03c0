"""Rating ledger and season lifecycle domain modules."""

from domain.common import (
    OperationResult,
    RecalculationProgress,
    RecalculationResult,
    RecalculationStatus,
    RollbackEligibility,
    RollbackResult,
    SeasonTransitionResult,
)
from domain.errors import ConsistencyError, LadderError, PersistenceError, ValidationError

__all__ = [
    "ConsistencyError",
    "LadderError",
    "OperationResult",
    "PersistenceError",
    "RecalculationProgress",
    "RecalculationResult",
    "RecalculationStatus",
    "RollbackEligibility",
    "RollbackResult",
    "SeasonTransitionResult",
    "ValidationError",
]
