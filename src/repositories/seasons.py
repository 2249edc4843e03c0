"""Persistence helpers for seasons and season_player_snapshots."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import delete, func, insert, select
from sqlalchemy.orm import Session

from models import (
    ACTIVE_SEASON_ID,
    SEASON_STATUS_ACTIVE,
    SEASON_STATUS_ARCHIVED,
    Season,
    SeasonPlayerSnapshot,
)


@dataclass(frozen=True)
class SnapshotRow:
    """Final standing of one player, ranked before insertion."""

    player_id: int
    final_rating: float
    final_rd: float
    final_volatility: float
    matches_played_count: int
    final_rank: int
    peak_rating: float | None = None
    peak_rating_date: datetime | None = None


def get_season(session: Session, season_id: int) -> Season | None:
    return session.get(Season, season_id)


def count_active_seasons(session: Session) -> int:
    statement = select(func.count(Season.id)).where(Season.status == SEASON_STATUS_ACTIVE)
    return int(session.scalar(statement) or 0)


def list_seasons(session: Session, *, status: str | None = None) -> list[Season]:
    """Return seasons with the active one (id 0) first, then newest archived first."""
    statement = select(Season).order_by((Season.id == ACTIVE_SEASON_ID).desc(), Season.id.desc())
    if status is not None:
        statement = statement.where(Season.status == status)
    return list(session.scalars(statement))


def next_permanent_season_id(session: Session) -> int:
    """Allocate the next archived id: highest positive id + 1."""
    max_id = session.scalar(select(func.max(Season.id)).where(Season.id > ACTIVE_SEASON_ID))
    return int(max_id or 0) + 1


def insert_season(
    session: Session,
    *,
    season_id: int,
    name: str,
    status: str,
    start_date: datetime,
    end_date: datetime | None = None,
    description: str | None = None,
) -> Season:
    season = Season(
        id=season_id,
        name=name,
        status=status,
        start_date=start_date,
        end_date=end_date,
        description=description,
    )
    session.add(season)
    session.flush()
    return season


def insert_archived_copy(session: Session, source: Season, *, season_id: int, end_date: datetime) -> Season:
    """Insert an archived row carrying ``source``'s metadata under a permanent id."""
    return insert_season(
        session,
        season_id=season_id,
        name=source.name,
        status=SEASON_STATUS_ARCHIVED,
        start_date=source.start_date,
        end_date=end_date,
        description=source.description,
    )


def delete_season(session: Session, season: Season) -> None:
    session.delete(season)
    session.flush()


def delete_snapshots(session: Session, season_id: int) -> int:
    result = session.execute(delete(SeasonPlayerSnapshot).where(SeasonPlayerSnapshot.season_id == season_id))
    return int(result.rowcount or 0)


def insert_snapshots(session: Session, season_id: int, rows: Sequence[SnapshotRow]) -> None:
    if not rows:
        return
    session.execute(
        insert(SeasonPlayerSnapshot),
        [
            {
                "season_id": season_id,
                "player_id": row.player_id,
                "final_rating": row.final_rating,
                "final_rd": row.final_rd,
                "final_volatility": row.final_volatility,
                "matches_played_count": row.matches_played_count,
                "peak_rating": row.peak_rating,
                "peak_rating_date": row.peak_rating_date,
                "final_rank": row.final_rank,
            }
            for row in rows
        ],
    )


def fetch_snapshots(session: Session, season_id: int) -> list[SeasonPlayerSnapshot]:
    """Return one season's snapshot rows ordered by final rank."""
    statement = (
        select(SeasonPlayerSnapshot)
        .where(SeasonPlayerSnapshot.season_id == season_id)
        .order_by(SeasonPlayerSnapshot.final_rank)
    )
    return list(session.scalars(statement))


def fetch_player_snapshots(session: Session, player_id: int) -> list[SeasonPlayerSnapshot]:
    statement = (
        select(SeasonPlayerSnapshot)
        .where(SeasonPlayerSnapshot.player_id == player_id)
        .order_by(SeasonPlayerSnapshot.season_id)
    )
    return list(session.scalars(statement))


def count_snapshots(session: Session, season_id: int) -> int:
    statement = select(func.count(SeasonPlayerSnapshot.id)).where(SeasonPlayerSnapshot.season_id == season_id)
    return int(session.scalar(statement) or 0)
