"""Shared result payloads for ladder operations.

Public operations never raise ladder or database errors at the caller; they
return one of these frozen result values and the caller checks ``success``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum


def utc_now() -> datetime:
    """Naive UTC timestamp matching the schema's timezone-less columns."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


@dataclass(frozen=True)
class OperationResult:
    """Outcome of an administrative operation."""

    success: bool
    error: str | None = None

    @classmethod
    def ok(cls) -> "OperationResult":
        return cls(success=True)

    @classmethod
    def failed(cls, error: str) -> "OperationResult":
        return cls(success=False, error=error)


class RecalculationStatus(str, Enum):
    """Lifecycle of one recalculation pass as seen by progress observers."""

    IDLE = "idle"
    RUNNING = "running"
    COMPLETE = "complete"
    ERROR = "error"


@dataclass(frozen=True)
class RecalculationProgress:
    """Incremental progress report for a recalculation pass."""

    total_matches: int
    processed_matches: int
    current_match_id: int | None
    status: RecalculationStatus

    @classmethod
    def idle(cls) -> "RecalculationProgress":
        return cls(total_matches=0, processed_matches=0, current_match_id=None, status=RecalculationStatus.IDLE)


@dataclass(frozen=True)
class RecalculationResult:
    """Outcome of one full recalculation pass for a season."""

    success: bool
    season_id: int
    error: str | None = None
    processed_matches: int = 0
    events_created: int = 0
    final_ratings: dict[int, float] = field(default_factory=dict)


@dataclass(frozen=True)
class RollbackEligibility:
    """Whether a completed match sits on the chronological frontier."""

    allowed: bool
    reason: str | None = None
    player1_has_later_matches: bool = False
    player2_has_later_matches: bool = False


@dataclass(frozen=True)
class RollbackResult:
    """Outcome of reverting a completed match to upcoming."""

    success: bool
    match_id: int
    error: str | None = None
    recalculation: RecalculationResult | None = None


@dataclass(frozen=True)
class SeasonTransitionResult:
    """Outcome of an archive/activate/calculate season transition."""

    success: bool
    error: str | None = None
    archived_season_id: int | None = None
    activated_season_id: int | None = None
    snapshots_written: int = 0
    players_restored: int = 0


__all__ = [
    "OperationResult",
    "RecalculationProgress",
    "RecalculationResult",
    "RecalculationStatus",
    "RollbackEligibility",
    "RollbackResult",
    "SeasonTransitionResult",
    "utc_now",
]
