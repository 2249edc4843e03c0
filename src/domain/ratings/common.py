"""Shared types for the rating ledger."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class CompletedMatch:
    """Canonical completed-match payload replayed by the ledger."""

    match_id: int
    player1_id: int
    player2_id: int
    winner_id: int
    season_id: int
    player1_score: int | None = None
    player2_score: int | None = None

    def score_for(self, player_id: int) -> float:
        """Game outcome for one participant: 1 for a win, 0 for a loss."""
        if player_id not in (self.player1_id, self.player2_id):
            raise ValueError(f"player_id={player_id} did not play match_id={self.match_id}")
        return 1.0 if self.winner_id == player_id else 0.0
