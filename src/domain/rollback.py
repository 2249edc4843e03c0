"""Revert a completed match to upcoming and rebuild its season."""

from __future__ import annotations

import logging

from sqlalchemy.orm import Session, sessionmaker

from domain.common import RecalculationResult, RollbackEligibility, RollbackResult
from domain.errors import LadderError, ValidationError, persistence_errors
from domain.pipeline import recalculate_in_session
from domain.ratings.glicko2.calculator import Glicko2Parameters
from domain.ratings.glicko2.config import RecalculationSettings
from domain.seasons import rebuild_season_snapshots
from models import ACTIVE_SEASON_ID
from repositories.matches import get_match, has_later_completed_match, revert_to_upcoming
from repositories.rating_events import delete_events_for_match

logger = logging.getLogger(__name__)


def can_rollback(session: Session, match_id: int) -> RollbackEligibility:
    """Check whether ``match_id`` is the latest completed match for both players."""
    with persistence_errors(f"check rollback for match_id={match_id}"):
        match = get_match(session, match_id)
        if match is None:
            return RollbackEligibility(allowed=False, reason=f"match_id={match_id} not found")
        if match.winner_id is None:
            return RollbackEligibility(allowed=False, reason=f"match_id={match_id} is not completed")
        player1_later = has_later_completed_match(session, match_id=match_id, player_id=match.player1_id)
        player2_later = has_later_completed_match(session, match_id=match_id, player_id=match.player2_id)

    if player1_later or player2_later:
        blocking = [
            str(player_id)
            for player_id, later in ((match.player1_id, player1_later), (match.player2_id, player2_later))
            if later
        ]
        return RollbackEligibility(
            allowed=False,
            reason=f"player_id={','.join(blocking)} played a later match",
            player1_has_later_matches=player1_later,
            player2_has_later_matches=player2_later,
        )
    return RollbackEligibility(allowed=True)


def rollback(
    session_factory: sessionmaker[Session],
    match_id: int,
    *,
    params: Glicko2Parameters | None = None,
    settings: RecalculationSettings | None = None,
) -> RollbackResult:
    """Delete the match's events, clear its result, then rebuild the match's season.

    For an archived season the snapshot rows are rebuilt from the new log as well.

    All steps share one transaction, so a failed rebuild leaves the match completed.
    """
    params = params or Glicko2Parameters()
    settings = settings or RecalculationSettings()

    try:
        with session_factory() as session:
            try:
                eligibility = can_rollback(session, match_id)
                if not eligibility.allowed:
                    raise ValidationError(f"cannot roll back match_id={match_id}: {eligibility.reason}")

                with persistence_errors(f"revert match_id={match_id}"):
                    season_id = get_match(session, match_id).season_id
                    deleted = delete_events_for_match(session, match_id)
                    revert_to_upcoming(session, match_id)
                logger.info("reverted match_id=%s deleted_events=%s", match_id, deleted)

                replay = recalculate_in_session(
                    session,
                    season_id,
                    f"Rollback of match {match_id}",
                    params=params,
                    settings=settings,
                )
                if season_id != ACTIVE_SEASON_ID:
                    written = rebuild_season_snapshots(session, season_id, replay)
                    logger.info("rebuilt snapshots season_id=%s snapshots=%s", season_id, written)
                with persistence_errors("commit rollback"):
                    session.commit()
            except Exception:
                session.rollback()
                raise
    except LadderError as exc:
        logger.error("rollback failed match_id=%s error=%s", match_id, exc)
        return RollbackResult(success=False, match_id=match_id, error=str(exc))

    processed = len(replay.match_events) // 2
    return RollbackResult(
        success=True,
        match_id=match_id,
        recalculation=RecalculationResult(
            success=True,
            season_id=season_id,
            processed_matches=processed,
            events_created=len(replay.events),
            final_ratings=replay.ratings(),
        ),
    )


__all__ = ["can_rollback", "rollback"]
