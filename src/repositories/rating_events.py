"""Persistence helpers for the append-only rating_events log."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from sqlalchemy import delete, func, insert, select, update
from sqlalchemy.orm import Session, aliased

from domain.ratings.ledger import LedgerEvent
from models import EVENT_TYPE_MATCH, Player, RatingEvent

RATING_EVENTS_COPY_SQL = """
    COPY rating_events (
        player_id,
        match_id,
        event_type,
        rating,
        rd,
        volatility,
        rating_change,
        opponent_id,
        result,
        season_id,
        reason
    ) FROM STDIN
"""

_COPY_SUPPORT_CACHE_KEY = "_rating_events_supports_copy"


@dataclass(frozen=True)
class RatingHistoryEntry:
    event_id: int
    event_type: str
    rating: float
    rd: float
    volatility: float
    rating_change: float | None
    match_id: int | None
    opponent_id: int | None
    opponent_name: str | None
    result: float | None
    reason: str | None
    season_id: int
    created_at: datetime


def _event_to_row(event: LedgerEvent) -> dict[str, Any]:
    return {
        "player_id": event.player_id,
        "match_id": event.match_id,
        "event_type": event.event_type,
        "rating": event.rating,
        "rd": event.rd,
        "volatility": event.volatility,
        "rating_change": event.rating_change,
        "opponent_id": event.opponent_id,
        "result": event.result,
        "season_id": event.season_id,
        "reason": event.reason,
    }


def _event_to_copy_row(event: LedgerEvent) -> tuple[Any, ...]:
    return (
        event.player_id,
        event.match_id,
        event.event_type,
        event.rating,
        event.rd,
        event.volatility,
        event.rating_change,
        event.opponent_id,
        event.result,
        event.season_id,
        event.reason,
    )


def delete_events_for_season(session: Session, season_id: int) -> int:
    """Delete every rating event tagged with one season."""
    result = session.execute(delete(RatingEvent).where(RatingEvent.season_id == season_id))
    return int(result.rowcount or 0)


def delete_events_for_match(session: Session, match_id: int) -> int:
    """Delete the rating events produced by one match."""
    result = session.execute(delete(RatingEvent).where(RatingEvent.match_id == match_id))
    return int(result.rowcount or 0)


def insert_events(session: Session, events: Sequence[LedgerEvent]) -> None:
    """Bulk insert ledger events using COPY on supported Postgres drivers."""
    if not events:
        return

    supports_copy = session.info.get(_COPY_SUPPORT_CACHE_KEY)
    if supports_copy is None:
        supports_copy = _supports_copy_bulk_insert(session)
        session.info[_COPY_SUPPORT_CACHE_KEY] = supports_copy

    if supports_copy:
        _copy_events(session, events)
        return

    session.execute(insert(RatingEvent), [_event_to_row(event) for event in events])


def _supports_copy_bulk_insert(session: Session) -> bool:
    bind = session.get_bind()
    if bind is None or bind.dialect.name != "postgresql":
        return False

    try:
        raw_connection = session.connection().connection.driver_connection
    except Exception:
        return False

    try:
        with raw_connection.cursor() as cursor:
            return hasattr(cursor, "copy")
    except Exception:
        return False


def _copy_events(session: Session, events: Sequence[LedgerEvent]) -> None:
    raw_connection = session.connection().connection.driver_connection
    with raw_connection.cursor() as cursor:
        with cursor.copy(RATING_EVENTS_COPY_SQL) as copy:
            for event in events:
                copy.write_row(_event_to_copy_row(event))


def repoint_events_season(session: Session, *, from_season_id: int, to_season_id: int) -> int:
    """Re-tag every event of one season with another season id."""
    result = session.execute(
        update(RatingEvent)
        .where(RatingEvent.season_id == from_season_id)
        .values(season_id=to_season_id)
    )
    return int(result.rowcount or 0)


def count_events(session: Session, *, season_id: int | None = None) -> int:
    statement = select(func.count(RatingEvent.id))
    if season_id is not None:
        statement = statement.where(RatingEvent.season_id == season_id)
    return int(session.scalar(statement) or 0)


def count_tracked_players(session: Session, *, season_id: int | None = None) -> int:
    """Count players with at least one rating event."""
    statement = select(func.count(func.distinct(RatingEvent.player_id)))
    if season_id is not None:
        statement = statement.where(RatingEvent.season_id == season_id)
    return int(session.scalar(statement) or 0)


def fetch_latest_events_by_player(session: Session, season_id: int) -> dict[int, RatingEvent]:
    """Return each player's newest event for one season, keyed by player id."""
    latest_ids = (
        select(func.max(RatingEvent.id).label("event_id"))
        .where(RatingEvent.season_id == season_id)
        .group_by(RatingEvent.player_id)
        .subquery()
    )
    statement = select(RatingEvent).join(latest_ids, RatingEvent.id == latest_ids.c.event_id)
    return {event.player_id: event for event in session.scalars(statement)}


def count_match_events_by_player(session: Session, season_id: int) -> dict[int, int]:
    """Return ``player_id -> match event count`` for one season."""
    statement = (
        select(RatingEvent.player_id, func.count(RatingEvent.id))
        .where(RatingEvent.season_id == season_id, RatingEvent.event_type == EVENT_TYPE_MATCH)
        .group_by(RatingEvent.player_id)
    )
    return {int(player_id): int(count) for player_id, count in session.execute(statement)}


def fetch_peak_match_events(session: Session, season_id: int) -> dict[int, RatingEvent]:
    """Return each player's highest-rated match event for one season.

    Ties keep the earliest event, so the peak date is when the rating was first reached.
    """
    ranked = (
        select(
            RatingEvent.id.label("event_id"),
            func.row_number()
            .over(
                partition_by=RatingEvent.player_id,
                order_by=[RatingEvent.rating.desc(), RatingEvent.id.asc()],
            )
            .label("position"),
        )
        .where(RatingEvent.season_id == season_id, RatingEvent.event_type == EVENT_TYPE_MATCH)
        .subquery()
    )
    statement = (
        select(RatingEvent)
        .join(ranked, RatingEvent.id == ranked.c.event_id)
        .where(ranked.c.position == 1)
    )
    return {event.player_id: event for event in session.scalars(statement)}


def fetch_player_history(
    session: Session,
    player_id: int,
    *,
    limit: int = 20,
    season_id: int | None = None,
) -> list[RatingHistoryEntry]:
    """Return a player's events newest first, with opponent names resolved."""
    opponent = aliased(Player)
    statement = (
        select(RatingEvent, opponent.name)
        .outerjoin(opponent, opponent.id == RatingEvent.opponent_id)
        .where(RatingEvent.player_id == player_id)
        .order_by(RatingEvent.id.desc())
        .limit(limit)
    )
    if season_id is not None:
        statement = statement.where(RatingEvent.season_id == season_id)

    return [
        RatingHistoryEntry(
            event_id=event.id,
            event_type=event.event_type,
            rating=event.rating,
            rd=event.rd,
            volatility=event.volatility,
            rating_change=event.rating_change,
            match_id=event.match_id,
            opponent_id=event.opponent_id,
            opponent_name=opponent_name,
            result=event.result,
            reason=event.reason,
            season_id=event.season_id,
            created_at=event.created_at,
        )
        for event, opponent_name in session.execute(statement)
    ]


def fetch_peak_event(session: Session, player_id: int) -> RatingEvent | None:
    """Return the player's highest-rated event across all seasons."""
    statement = (
        select(RatingEvent)
        .where(RatingEvent.player_id == player_id)
        .order_by(RatingEvent.rating.desc(), RatingEvent.id.asc())
        .limit(1)
    )
    return session.scalars(statement).first()
