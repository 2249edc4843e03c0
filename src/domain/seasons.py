"""Season state machine: one active season (id 0) plus permanent archived seasons.

Every transition is an ordered migration inside one transaction. Rows that
reference a season are re-pointed before the season row they reference is
deleted, so foreign keys hold after every individual step.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass

from sqlalchemy.orm import Session, sessionmaker

from domain.common import SeasonTransitionResult, utc_now
from domain.errors import ConsistencyError, LadderError, ValidationError, persistence_errors
from domain.pipeline import recalculate_in_session
from domain.ratings.glicko2.calculator import Glicko2Parameters
from domain.ratings.glicko2.config import RecalculationSettings
from domain.ratings.ledger import LedgerReplay, PlayerLedgerState
from models import ACTIVE_SEASON_ID, SEASON_STATUS_ACTIVE, SEASON_STATUS_ARCHIVED, Season
from repositories.matches import count_matches, repoint_matches_season
from repositories.players import (
    CachedRating,
    clear_all_cached_ratings,
    fetch_players,
    fetch_rated_players,
    write_cached_ratings,
)
from repositories.rating_events import count_events, count_tracked_players, repoint_events_season
from repositories.seasons import (
    SnapshotRow,
    count_active_seasons,
    count_snapshots,
    delete_season,
    delete_snapshots,
    fetch_snapshots,
    get_season,
    insert_archived_copy,
    insert_season,
    insert_snapshots,
    list_seasons as list_season_rows,
    next_permanent_season_id,
)

logger = logging.getLogger(__name__)

DEFAULT_SEASON_NAME = "Season 1"


@dataclass(frozen=True)
class SeasonStats:
    season_id: int
    name: str
    status: str
    total_matches: int
    completed_matches: int
    rating_events: int
    players_tracked: int
    snapshots: int


def _run_transition(
    session_factory: sessionmaker[Session],
    action: str,
    transition: Callable[[Session], SeasonTransitionResult],
) -> SeasonTransitionResult:
    try:
        with session_factory() as session:
            try:
                result = transition(session)
                with persistence_errors(f"commit {action}"):
                    session.commit()
            except Exception:
                session.rollback()
                raise
    except LadderError as exc:
        logger.error("%s failed error=%s", action, exc)
        return SeasonTransitionResult(success=False, error=str(exc))
    return result


def verify_season_invariant(session: Session) -> Season:
    """Return the active season, raising ConsistencyError unless it is unique and has id 0."""
    with persistence_errors("verify season invariant"):
        active_count = count_active_seasons(session)
        active = get_season(session, ACTIVE_SEASON_ID)
    if active_count != 1:
        raise ConsistencyError(f"expected exactly one active season, found {active_count}")
    if active is None or active.status != SEASON_STATUS_ACTIVE:
        raise ConsistencyError("the active season does not carry id 0")
    return active


def ensure_active_season(
    session_factory: sessionmaker[Session],
    name: str = DEFAULT_SEASON_NAME,
) -> SeasonTransitionResult:
    """Create the id-0 active season when the store has none."""

    def transition(session: Session) -> SeasonTransitionResult:
        with persistence_errors("ensure active season"):
            if get_season(session, ACTIVE_SEASON_ID) is None:
                insert_season(
                    session,
                    season_id=ACTIVE_SEASON_ID,
                    name=name,
                    status=SEASON_STATUS_ACTIVE,
                    start_date=utc_now(),
                )
                logger.info("created active season name=%s", name)
        verify_season_invariant(session)
        return SeasonTransitionResult(success=True, activated_season_id=ACTIVE_SEASON_ID)

    return _run_transition(session_factory, "ensure active season", transition)


def _archive_active(session: Session, active: Season, *, now) -> int:
    """Move the active season's rows under a new permanent id and drop row 0."""
    archived_id = next_permanent_season_id(session)
    insert_archived_copy(session, active, season_id=archived_id, end_date=now)
    matches = repoint_matches_season(session, from_season_id=ACTIVE_SEASON_ID, to_season_id=archived_id)
    events = repoint_events_season(session, from_season_id=ACTIVE_SEASON_ID, to_season_id=archived_id)
    delete_season(session, active)
    logger.info("archived active season as season_id=%s matches=%s events=%s", archived_id, matches, events)
    return archived_id


def _rank_rated_players(session: Session) -> list[SnapshotRow]:
    return [
        SnapshotRow(
            player_id=player.id,
            final_rating=player.rating,
            final_rd=player.rd,
            final_volatility=player.volatility,
            matches_played_count=player.matches_played or 0,
            final_rank=rank,
            peak_rating=player.peak_rating,
            peak_rating_date=player.peak_rating_date,
        )
        for rank, player in enumerate(fetch_rated_players(session), start=1)
    ]


def archive(session_factory: sessionmaker[Session], new_name: str) -> SeasonTransitionResult:
    """Snapshot and archive the active season, then open a fresh one named ``new_name``."""
    if not new_name.strip():
        return SeasonTransitionResult(success=False, error="new season name must not be empty")

    def transition(session: Session) -> SeasonTransitionResult:
        active = verify_season_invariant(session)
        now = utc_now()
        with persistence_errors("archive season"):
            rows = _rank_rated_players(session)
            archived_id = _archive_active(session, active, now=now)
            insert_snapshots(session, archived_id, rows)
            cleared = clear_all_cached_ratings(session)
            insert_season(
                session,
                season_id=ACTIVE_SEASON_ID,
                name=new_name.strip(),
                status=SEASON_STATUS_ACTIVE,
                start_date=now,
            )
        verify_season_invariant(session)
        logger.info(
            "opened season name=%s archived_season_id=%s snapshots=%s cleared_players=%s",
            new_name,
            archived_id,
            len(rows),
            cleared,
        )
        return SeasonTransitionResult(
            success=True,
            archived_season_id=archived_id,
            activated_season_id=ACTIVE_SEASON_ID,
            snapshots_written=len(rows),
        )

    return _run_transition(session_factory, "archive season", transition)


def activate(session_factory: sessionmaker[Session], target_season_id: int) -> SeasonTransitionResult:
    """Make an archived season active again, restoring players from its snapshots.

    The current active season is archived under the next permanent id without
    a snapshot. Players missing from the target's snapshots become inactive.
    """
    if target_season_id <= ACTIVE_SEASON_ID:
        return SeasonTransitionResult(
            success=False,
            error=f"season_id={target_season_id} is not an archived season id",
        )

    def transition(session: Session) -> SeasonTransitionResult:
        active = verify_season_invariant(session)
        with persistence_errors(f"activate season_id={target_season_id}"):
            target = get_season(session, target_season_id)
            if target is None:
                raise ValidationError(f"season_id={target_season_id} not found")
            if target.status != SEASON_STATUS_ARCHIVED:
                raise ValidationError(f"season_id={target_season_id} is not archived")

            snapshots = fetch_snapshots(session, target_season_id)
            now = utc_now()
            archived_id = _archive_active(session, active, now=now)

            clear_all_cached_ratings(session)
            write_cached_ratings(
                session,
                [
                    CachedRating(
                        player_id=snapshot.player_id,
                        rating=snapshot.final_rating,
                        rd=snapshot.final_rd,
                        volatility=snapshot.final_volatility,
                        has_played_this_season=snapshot.matches_played_count > 0,
                        matches_played=snapshot.matches_played_count,
                        peak_rating=snapshot.peak_rating,
                        peak_rating_date=snapshot.peak_rating_date,
                    )
                    for snapshot in snapshots
                ],
            )

            insert_season(
                session,
                season_id=ACTIVE_SEASON_ID,
                name=target.name,
                status=SEASON_STATUS_ACTIVE,
                start_date=target.start_date,
                description=target.description,
            )
            repoint_matches_season(session, from_season_id=target_season_id, to_season_id=ACTIVE_SEASON_ID)
            repoint_events_season(session, from_season_id=target_season_id, to_season_id=ACTIVE_SEASON_ID)
            delete_snapshots(session, target_season_id)
            delete_season(session, target)

        verify_season_invariant(session)
        logger.info(
            "activated season_id=%s archived_season_id=%s players_restored=%s",
            target_season_id,
            archived_id,
            len(snapshots),
        )
        return SeasonTransitionResult(
            success=True,
            archived_season_id=archived_id,
            activated_season_id=ACTIVE_SEASON_ID,
            players_restored=len(snapshots),
        )

    return _run_transition(session_factory, f"activate season_id={target_season_id}", transition)


def _rank_states(session: Session, states: list[PlayerLedgerState]) -> list[SnapshotRow]:
    names = {player.id: player.name for player in fetch_players(session, [state.player_id for state in states])}
    ordered = sorted(
        states,
        key=lambda state: (-state.rating.rating, state.rating.rd, names.get(state.player_id, "")),
    )
    return [
        SnapshotRow(
            player_id=state.player_id,
            final_rating=state.rating.rating,
            final_rd=state.rating.rd,
            final_volatility=state.rating.volatility,
            matches_played_count=state.matches_played,
            final_rank=rank,
            peak_rating=state.peak_rating,
        )
        for rank, state in enumerate(ordered, start=1)
    ]


def rebuild_season_snapshots(session: Session, season_id: int, replay: LedgerReplay) -> int:
    """Replace an archived season's snapshot rows with the replay's final standings."""
    with persistence_errors(f"rebuild snapshots for season_id={season_id}"):
        rows = _rank_states(session, replay.played_states())
        delete_snapshots(session, season_id)
        insert_snapshots(session, season_id, rows)
    return len(rows)


def calculate_for_season(
    session_factory: sessionmaker[Session],
    season_id: int,
    *,
    params: Glicko2Parameters | None = None,
    settings: RecalculationSettings | None = None,
) -> SeasonTransitionResult:
    """Rebuild an archived season's event log and its snapshot rows."""
    params = params or Glicko2Parameters()
    settings = settings or RecalculationSettings()
    if season_id <= ACTIVE_SEASON_ID:
        return SeasonTransitionResult(success=False, error=f"season_id={season_id} is not an archived season id")

    def transition(session: Session) -> SeasonTransitionResult:
        verify_season_invariant(session)
        with persistence_errors(f"load season_id={season_id}"):
            season = get_season(session, season_id)
        if season is None:
            raise ValidationError(f"season_id={season_id} not found")
        if season.status != SEASON_STATUS_ARCHIVED:
            raise ValidationError(f"season_id={season_id} is not archived")

        replay = recalculate_in_session(
            session,
            season_id,
            f"Recalculation of season {season_id}",
            params=params,
            settings=settings,
        )
        written = rebuild_season_snapshots(session, season_id, replay)
        logger.info("calculated season_id=%s snapshots=%s", season_id, written)
        return SeasonTransitionResult(success=True, archived_season_id=season_id, snapshots_written=written)

    return _run_transition(session_factory, f"calculate season_id={season_id}", transition)


def get_active_season(session: Session) -> Season | None:
    with persistence_errors("load active season"):
        return get_season(session, ACTIVE_SEASON_ID)


def list_seasons(session: Session) -> list[Season]:
    """Active season first, then archived seasons newest first."""
    with persistence_errors("list seasons"):
        return list_season_rows(session)


def list_archived_seasons(session: Session) -> list[Season]:
    with persistence_errors("list archived seasons"):
        return list_season_rows(session, status=SEASON_STATUS_ARCHIVED)


def get_season_stats(session: Session, season_id: int) -> SeasonStats | None:
    with persistence_errors(f"load stats for season_id={season_id}"):
        season = get_season(session, season_id)
        if season is None:
            return None
        return SeasonStats(
            season_id=season.id,
            name=season.name,
            status=season.status,
            total_matches=count_matches(session, season_id),
            completed_matches=count_matches(session, season_id, completed_only=True),
            rating_events=count_events(session, season_id=season_id),
            players_tracked=count_tracked_players(session, season_id=season_id),
            snapshots=count_snapshots(session, season_id),
        )


__all__ = [
    "DEFAULT_SEASON_NAME",
    "SeasonStats",
    "activate",
    "archive",
    "calculate_for_season",
    "ensure_active_season",
    "get_active_season",
    "get_season_stats",
    "list_archived_seasons",
    "list_seasons",
    "rebuild_season_snapshots",
    "verify_season_invariant",
]
