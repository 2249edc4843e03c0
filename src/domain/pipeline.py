"""Full-season recalculation and incremental updates for the rating ledger."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Sequence

from sqlalchemy.orm import Session, sessionmaker

from domain.common import (
    OperationResult,
    RecalculationProgress,
    RecalculationResult,
    RecalculationStatus,
    utc_now,
)
from domain.errors import LadderError, ValidationError, persistence_errors
from domain.ratings.glicko2.calculator import Glicko2Parameters, update_rating
from domain.ratings.glicko2.config import LadderConfig, RecalculationSettings
from domain.ratings.glicko2.predictions import rating_from_cache
from domain.ratings.ledger import LedgerEvent, LedgerReplay, replay_ledger
from models import ACTIVE_SEASON_ID
from repositories.matches import (
    fetch_completed_matches,
    get_match,
    has_later_completed_match,
    rating_changes_from_events,
    write_rating_changes,
)
from repositories.players import CachedRating, fetch_player_ids, fetch_players, write_cached_ratings
from repositories.rating_events import (
    count_match_events_by_player,
    delete_events_for_season,
    fetch_latest_events_by_player,
    fetch_peak_match_events,
    insert_events,
)
from repositories.seasons import get_season

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[RecalculationProgress], None]

DEFAULT_RESET_REASON = "Full recalculation"


def recalculate(
    session_factory: sessionmaker[Session],
    season_id: int = ACTIVE_SEASON_ID,
    reason: str = DEFAULT_RESET_REASON,
    *,
    params: Glicko2Parameters | None = None,
    settings: RecalculationSettings | None = None,
    on_progress: ProgressCallback | None = None,
) -> RecalculationResult:
    """Rebuild one season's events from scratch and, for season 0, the player cache.

    Runs as a single transaction: either the whole rebuilt log is committed or
    the previous log is left untouched.
    """
    params = params or Glicko2Parameters()
    settings = settings or RecalculationSettings()

    try:
        with session_factory() as session:
            try:
                replay = recalculate_in_session(
                    session,
                    season_id,
                    reason,
                    params=params,
                    settings=settings,
                    on_progress=on_progress,
                )
                with persistence_errors("commit recalculation"):
                    session.commit()
            except Exception:
                session.rollback()
                raise
    except LadderError as exc:
        logger.error("recalculation failed season_id=%s error=%s", season_id, exc)
        _notify(
            on_progress,
            RecalculationProgress(
                total_matches=0,
                processed_matches=0,
                current_match_id=None,
                status=RecalculationStatus.ERROR,
            ),
        )
        return RecalculationResult(success=False, season_id=season_id, error=str(exc))

    processed = len(replay.match_events) // 2
    _notify(
        on_progress,
        RecalculationProgress(
            total_matches=processed,
            processed_matches=processed,
            current_match_id=None,
            status=RecalculationStatus.COMPLETE,
        ),
    )
    return RecalculationResult(
        success=True,
        season_id=season_id,
        processed_matches=processed,
        events_created=len(replay.events),
        final_ratings=replay.ratings(),
    )


def recalculate_with_config(
    session_factory: sessionmaker[Session],
    config: LadderConfig,
    season_id: int = ACTIVE_SEASON_ID,
    reason: str = DEFAULT_RESET_REASON,
    *,
    on_progress: ProgressCallback | None = None,
) -> RecalculationResult:
    return recalculate(
        session_factory,
        season_id,
        reason,
        params=config.parameters,
        settings=config.recalculation,
        on_progress=on_progress,
    )


def recalculate_in_session(
    session: Session,
    season_id: int,
    reason: str,
    *,
    params: Glicko2Parameters,
    settings: RecalculationSettings,
    on_progress: ProgressCallback | None = None,
) -> LedgerReplay:
    """Run the rebuild inside the caller's transaction without committing."""
    with persistence_errors(f"load ledger for season_id={season_id}"):
        if get_season(session, season_id) is None:
            raise ValidationError(f"season_id={season_id} not found")
        matches = fetch_completed_matches(session, season_id)
        player_ids = fetch_player_ids(session)

    total = len(matches)
    logger.info("recalculating season_id=%s players=%s matches=%s", season_id, len(player_ids), total)
    interval = settings.progress_interval

    def report(index: int, match) -> None:
        if index % interval == 0:
            _notify(
                on_progress,
                RecalculationProgress(
                    total_matches=total,
                    processed_matches=index,
                    current_match_id=match.match_id,
                    status=RecalculationStatus.RUNNING,
                ),
            )

    replay = replay_ledger(
        player_ids,
        matches,
        params,
        season_id=season_id,
        reason=reason,
        on_match=report,
    )

    with persistence_errors(f"persist ledger for season_id={season_id}"):
        deleted = delete_events_for_season(session, season_id)
        logger.debug("deleted season_id=%s events=%s", season_id, deleted)
        inserted = _insert_in_batches(session, replay.events, settings)

        if settings.denormalize_match_changes:
            write_rating_changes(session, rating_changes_from_events(matches, replay.match_events))

        if season_id == ACTIVE_SEASON_ID:
            sync_player_ratings_from_events(session, season_id)

    logger.info(
        "recalculated season_id=%s processed_matches=%s inserted_events=%s",
        season_id,
        total,
        inserted,
    )
    return replay


def _insert_in_batches(
    session: Session,
    events: Sequence[LedgerEvent],
    settings: RecalculationSettings,
) -> int:
    inserted = 0
    buffered: list[LedgerEvent] = []
    for event in events:
        buffered.append(event)
        if len(buffered) >= settings.batch_size:
            payload = buffered[:]
            buffered.clear()
            insert_events(session, payload)
            session.flush()
            inserted += len(payload)
            logger.debug("inserted batch events=%s total=%s/%s", len(payload), inserted, len(events))
            if settings.batch_delay_seconds > 0.0:
                time.sleep(settings.batch_delay_seconds)

    if buffered:
        payload = buffered[:]
        buffered.clear()
        insert_events(session, payload)
        session.flush()
        inserted += len(payload)
    return inserted


def update_for_match(
    session_factory: sessionmaker[Session],
    match_id: int,
    *,
    params: Glicko2Parameters | None = None,
) -> OperationResult:
    """Apply one newly completed match directly to the cache.

    Only valid when the match is the latest completed match for both players;
    anything else needs a full recalculation. No events are written.
    """
    params = params or Glicko2Parameters()
    try:
        with session_factory() as session:
            try:
                _update_for_match_in_session(session, match_id, params)
                with persistence_errors("commit incremental update"):
                    session.commit()
            except Exception:
                session.rollback()
                raise
    except LadderError as exc:
        logger.error("incremental update failed match_id=%s error=%s", match_id, exc)
        return OperationResult.failed(str(exc))
    return OperationResult.ok()


def _update_for_match_in_session(session: Session, match_id: int, params: Glicko2Parameters) -> None:
    with persistence_errors(f"load match_id={match_id}"):
        match = get_match(session, match_id)
        if match is None:
            raise ValidationError(f"match_id={match_id} not found")
        if match.season_id != ACTIVE_SEASON_ID:
            raise ValidationError(f"match_id={match_id} belongs to archived season_id={match.season_id}")
        if match.winner_id is None:
            raise ValidationError(f"match_id={match_id} has no result")
        if match.rating_change_p1 is not None or match.rating_change_p2 is not None:
            raise ValidationError(f"match_id={match_id} has already been applied")
        for player_id in (match.player1_id, match.player2_id):
            if has_later_completed_match(session, match_id=match_id, player_id=player_id):
                raise ValidationError(
                    f"match_id={match_id} is not the latest match for player_id={player_id}; "
                    "run a full recalculation instead"
                )
        players = {player.id: player for player in fetch_players(session, [match.player1_id, match.player2_id])}

    player1 = players[match.player1_id]
    player2 = players[match.player2_id]
    player1_pre = rating_from_cache(player1.rating, player1.rd, player1.volatility, params)
    player2_pre = rating_from_cache(player2.rating, player2.rd, player2.volatility, params)
    player1_score = 1.0 if match.winner_id == player1.id else 0.0

    player1_post = update_rating(player1_pre, player2_pre, player1_score, params)
    player2_post = update_rating(player2_pre, player1_pre, 1.0 - player1_score, params)

    now = utc_now()
    cached = []
    for player, post in ((player1, player1_post), (player2, player2_post)):
        is_peak = player.peak_rating is None or post.rating > player.peak_rating
        cached.append(
            CachedRating(
                player_id=player.id,
                rating=post.rating,
                rd=post.rd,
                volatility=post.volatility,
                has_played_this_season=True,
                matches_played=(player.matches_played or 0) + 1,
                peak_rating=post.rating if is_peak else player.peak_rating,
                peak_rating_date=now if is_peak else player.peak_rating_date,
            )
        )

    with persistence_errors(f"write incremental update for match_id={match_id}"):
        write_cached_ratings(session, cached)
        write_rating_changes(
            session,
            {match_id: (player1_post.rating - player1_pre.rating, player2_post.rating - player2_pre.rating)},
        )
    logger.info(
        "incremental update match_id=%s player1_id=%s player1_rating=%.2f player2_id=%s player2_rating=%.2f",
        match_id,
        player1.id,
        player1_post.rating,
        player2.id,
        player2_post.rating,
    )


def sync_player_ratings_from_events(session: Session, season_id: int = ACTIVE_SEASON_ID) -> int:
    """Copy each player's newest event for ``season_id`` into the cache.

    Players without events are left untouched. Returns the number of players synced.
    """
    with persistence_errors(f"sync cache from season_id={season_id}"):
        latest = fetch_latest_events_by_player(session, season_id)
        match_counts = count_match_events_by_player(session, season_id)
        peaks = fetch_peak_match_events(session, season_id)
        cached = []
        for player_id, event in latest.items():
            matches_played = match_counts.get(player_id, 0)
            peak = peaks.get(player_id)
            cached.append(
                CachedRating(
                    player_id=player_id,
                    rating=event.rating,
                    rd=event.rd,
                    volatility=event.volatility,
                    has_played_this_season=matches_played > 0,
                    matches_played=matches_played,
                    peak_rating=None if peak is None else peak.rating,
                    peak_rating_date=None if peak is None else peak.created_at,
                )
            )
        write_cached_ratings(session, cached)
    logger.info("synced cache from events season_id=%s players=%s", season_id, len(cached))
    return len(cached)


def _notify(on_progress: ProgressCallback | None, progress: RecalculationProgress) -> None:
    if on_progress is not None:
        on_progress(progress)


__all__ = [
    "DEFAULT_RESET_REASON",
    "ProgressCallback",
    "recalculate",
    "recalculate_in_session",
    "recalculate_with_config",
    "sync_player_ratings_from_events",
    "update_for_match",
]
