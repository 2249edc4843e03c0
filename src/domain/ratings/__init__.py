"""Rating computation modules."""

from domain.ratings.common import CompletedMatch
from domain.ratings.ledger import (
    LedgerEvent,
    LedgerReplay,
    PlayerLedgerCalculator,
    PlayerLedgerState,
    replay_ledger,
)

__all__ = [
    "CompletedMatch",
    "LedgerEvent",
    "LedgerReplay",
    "PlayerLedgerCalculator",
    "PlayerLedgerState",
    "replay_ledger",
]
