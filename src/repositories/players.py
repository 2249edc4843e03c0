"""Persistence helpers for the players table and its cached ratings."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from models import Player


@dataclass(frozen=True)
class CachedRating:
    """New cache values for one player, produced only by a ledger sync."""

    player_id: int
    rating: float | None
    rd: float | None
    volatility: float | None
    has_played_this_season: bool
    matches_played: int = 0
    peak_rating: float | None = None
    peak_rating_date: datetime | None = None


def fetch_player_ids(session: Session) -> list[int]:
    """Return every player id in ascending order."""
    return list(session.scalars(select(Player.id).order_by(Player.id)))


def fetch_players(session: Session, player_ids: Iterable[int] | None = None) -> list[Player]:
    statement = select(Player).order_by(Player.id)
    if player_ids is not None:
        statement = statement.where(Player.id.in_(list(player_ids)))
    return list(session.scalars(statement))


def fetch_rated_players(session: Session) -> list[Player]:
    """Return players with a non-null cached rating, best first.

    Ties fall back to lower RD (more certain first), then name.
    """
    statement = (
        select(Player)
        .where(Player.rating.is_not(None))
        .order_by(Player.rating.desc(), Player.rd.asc(), Player.name.asc())
    )
    return list(session.scalars(statement))


def create_player(session: Session, *, name: str) -> Player:
    player = Player(name=name)
    session.add(player)
    session.flush()
    return player


def write_cached_ratings(session: Session, ratings: Sequence[CachedRating]) -> None:
    """Bulk update cached rating columns by primary key."""
    if not ratings:
        return
    session.execute(
        update(Player),
        [
            {
                "id": cached.player_id,
                "rating": cached.rating,
                "rd": cached.rd,
                "volatility": cached.volatility,
                "has_played_this_season": cached.has_played_this_season,
                "matches_played": cached.matches_played,
                "peak_rating": cached.peak_rating,
                "peak_rating_date": cached.peak_rating_date,
            }
            for cached in ratings
        ],
    )


def clear_all_cached_ratings(session: Session) -> int:
    """Mark every player inactive for a fresh active season."""
    result = session.execute(
        update(Player).values(
            rating=None,
            rd=None,
            volatility=None,
            has_played_this_season=False,
            matches_played=0,
            peak_rating=None,
            peak_rating_date=None,
        )
    )
    return int(result.rowcount or 0)
