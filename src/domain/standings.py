"""Read-only leaderboards and per-player rating history."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from sqlalchemy.orm import Session

from domain.errors import persistence_errors
from models import Player
from repositories.players import fetch_players, fetch_rated_players
from repositories.rating_events import RatingHistoryEntry, fetch_peak_event, fetch_player_history
from repositories.seasons import fetch_player_snapshots, fetch_snapshots, get_season


@dataclass(frozen=True)
class LeaderboardEntry:
    rank: int
    player_id: int
    name: str
    rating: float
    rd: float
    volatility: float
    matches_played: int
    peak_rating: float | None = None


@dataclass(frozen=True)
class PeakRating:
    player_id: int
    rating: float
    achieved_at: datetime
    season_id: int
    match_id: int | None


@dataclass(frozen=True)
class SeasonComparisonEntry:
    season_id: int
    season_name: str | None
    final_rank: int
    final_rating: float
    final_rd: float
    matches_played: int
    peak_rating: float | None


def active_leaderboard(session: Session, *, limit: int | None = None) -> list[LeaderboardEntry]:
    """Rank active players by cached rating; ties go to lower RD, then name."""
    with persistence_errors("load active leaderboard"):
        players = fetch_rated_players(session)
    if limit is not None:
        players = players[:limit]
    return [
        LeaderboardEntry(
            rank=rank,
            player_id=player.id,
            name=player.name,
            rating=player.rating,
            rd=player.rd,
            volatility=player.volatility,
            matches_played=player.matches_played or 0,
            peak_rating=player.peak_rating,
        )
        for rank, player in enumerate(players, start=1)
    ]


def archived_leaderboard(session: Session, season_id: int) -> list[LeaderboardEntry]:
    """Return an archived season's frozen standings by final rank."""
    with persistence_errors(f"load leaderboard for season_id={season_id}"):
        snapshots = fetch_snapshots(session, season_id)
        names = _player_names(session, [snapshot.player_id for snapshot in snapshots])
    return [
        LeaderboardEntry(
            rank=snapshot.final_rank,
            player_id=snapshot.player_id,
            name=names.get(snapshot.player_id, ""),
            rating=snapshot.final_rating,
            rd=snapshot.final_rd,
            volatility=snapshot.final_volatility,
            matches_played=snapshot.matches_played_count,
            peak_rating=snapshot.peak_rating,
        )
        for snapshot in snapshots
    ]


def player_rating_history(
    session: Session,
    player_id: int,
    *,
    limit: int = 20,
    season_id: int | None = None,
) -> list[RatingHistoryEntry]:
    with persistence_errors(f"load rating history for player_id={player_id}"):
        return fetch_player_history(session, player_id, limit=limit, season_id=season_id)


def player_peak_rating(session: Session, player_id: int) -> PeakRating | None:
    """Highest rating the player ever held in any season's log."""
    with persistence_errors(f"load peak rating for player_id={player_id}"):
        event = fetch_peak_event(session, player_id)
    if event is None:
        return None
    return PeakRating(
        player_id=player_id,
        rating=event.rating,
        achieved_at=event.created_at,
        season_id=event.season_id,
        match_id=event.match_id,
    )


def player_season_comparison(session: Session, player_id: int) -> list[SeasonComparisonEntry]:
    with persistence_errors(f"load season comparison for player_id={player_id}"):
        snapshots = fetch_player_snapshots(session, player_id)
        entries = []
        for snapshot in snapshots:
            season = get_season(session, snapshot.season_id)
            entries.append(
                SeasonComparisonEntry(
                    season_id=snapshot.season_id,
                    season_name=None if season is None else season.name,
                    final_rank=snapshot.final_rank,
                    final_rating=snapshot.final_rating,
                    final_rd=snapshot.final_rd,
                    matches_played=snapshot.matches_played_count,
                    peak_rating=snapshot.peak_rating,
                )
            )
    return entries


def _player_names(session: Session, player_ids: list[int]) -> dict[int, str]:
    players: list[Player] = fetch_players(session, player_ids)
    return {player.id: player.name for player in players}


__all__ = [
    "LeaderboardEntry",
    "PeakRating",
    "SeasonComparisonEntry",
    "active_leaderboard",
    "archived_leaderboard",
    "player_peak_rating",
    "player_rating_history",
    "player_season_comparison",
]
