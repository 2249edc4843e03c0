"""Persistence helpers for the matches table (the ordered match ledger)."""

from __future__ import annotations

from collections.abc import Iterable, Mapping

from sqlalchemy import func, or_, select, update
from sqlalchemy.orm import Session

from domain.ratings.common import CompletedMatch
from domain.ratings.ledger import LedgerEvent
from models import EVENT_TYPE_MATCH, Match


def fetch_completed_matches(session: Session, season_id: int) -> list[CompletedMatch]:
    """Fetch one season's completed matches in ledger (ascending id) order."""
    statement = (
        select(
            Match.id,
            Match.player1_id,
            Match.player2_id,
            Match.winner_id,
            Match.season_id,
            Match.player1_score,
            Match.player2_score,
        )
        .where(Match.season_id == season_id, Match.winner_id.is_not(None))
        .order_by(Match.id)
    )
    return [
        CompletedMatch(
            match_id=int(row.id),
            player1_id=int(row.player1_id),
            player2_id=int(row.player2_id),
            winner_id=int(row.winner_id),
            season_id=int(row.season_id),
            player1_score=row.player1_score,
            player2_score=row.player2_score,
        )
        for row in session.execute(statement)
    ]


def get_match(session: Session, match_id: int) -> Match | None:
    return session.get(Match, match_id)


def create_match(
    session: Session,
    *,
    player1_id: int,
    player2_id: int,
    season_id: int,
    winner_id: int | None = None,
    player1_score: int | None = None,
    player2_score: int | None = None,
    event_name: str | None = None,
) -> Match:
    match = Match(
        player1_id=player1_id,
        player2_id=player2_id,
        winner_id=winner_id,
        player1_score=player1_score,
        player2_score=player2_score,
        season_id=season_id,
        event_name=event_name,
    )
    session.add(match)
    session.flush()
    return match


def has_later_completed_match(session: Session, *, match_id: int, player_id: int) -> bool:
    """Whether a completed match with a greater id involves ``player_id``."""
    statement = (
        select(Match.id)
        .where(
            Match.id > match_id,
            Match.winner_id.is_not(None),
            or_(Match.player1_id == player_id, Match.player2_id == player_id),
        )
        .limit(1)
    )
    return session.scalar(statement) is not None


def revert_to_upcoming(session: Session, match_id: int) -> None:
    """Clear result, scores and cached rating deltas for one match."""
    session.execute(
        update(Match)
        .where(Match.id == match_id)
        .values(
            winner_id=None,
            player1_score=None,
            player2_score=None,
            rating_change_p1=None,
            rating_change_p2=None,
        )
    )


def write_rating_changes(session: Session, changes: Mapping[int, tuple[float | None, float | None]]) -> None:
    """Bulk update ``match_id -> (rating_change_p1, rating_change_p2)``."""
    if not changes:
        return
    session.execute(
        update(Match),
        [
            {"id": match_id, "rating_change_p1": change_p1, "rating_change_p2": change_p2}
            for match_id, (change_p1, change_p2) in changes.items()
        ],
    )


def rating_changes_from_events(
    matches: Iterable[CompletedMatch],
    events: Iterable[LedgerEvent],
) -> dict[int, tuple[float | None, float | None]]:
    """Fold match events into per-match (player1, player2) rating deltas."""
    participants = {match.match_id: (match.player1_id, match.player2_id) for match in matches}
    changes: dict[int, tuple[float | None, float | None]] = {}
    for event in events:
        if event.event_type != EVENT_TYPE_MATCH or event.match_id is None:
            continue
        players = participants.get(event.match_id)
        if players is None:
            continue
        change_p1, change_p2 = changes.get(event.match_id, (None, None))
        if event.player_id == players[0]:
            change_p1 = event.rating_change
        elif event.player_id == players[1]:
            change_p2 = event.rating_change
        changes[event.match_id] = (change_p1, change_p2)
    return changes


def repoint_matches_season(session: Session, *, from_season_id: int, to_season_id: int) -> int:
    """Re-tag every match of one season with another season id."""
    result = session.execute(
        update(Match)
        .where(Match.season_id == from_season_id)
        .values(season_id=to_season_id)
    )
    return int(result.rowcount or 0)


def count_matches(session: Session, season_id: int, *, completed_only: bool = False) -> int:
    statement = select(func.count(Match.id)).where(Match.season_id == season_id)
    if completed_only:
        statement = statement.where(Match.winner_id.is_not(None))
    return int(session.scalar(statement) or 0)

