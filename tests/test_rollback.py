"""Integration tests for guarded match rollback."""

from __future__ import annotations

import pytest
from sqlalchemy import select

from domain.pipeline import recalculate
from domain.rollback import can_rollback, rollback
from domain.seasons import activate, archive
from models import Match, Player, RatingEvent
from repositories.rating_events import fetch_latest_events_by_player
from repositories.seasons import fetch_snapshots


def test_latest_match_can_roll_back(session_factory, seed) -> None:
    a, b, c = seed.players("a", "b", "c")
    seed.match(a, b, a)
    latest = seed.match(b, c, c)

    with session_factory() as session:
        eligibility = can_rollback(session, latest)

    assert eligibility.allowed
    assert not eligibility.player1_has_later_matches
    assert not eligibility.player2_has_later_matches


def test_match_with_later_play_is_blocked_per_player(session_factory, seed) -> None:
    a, b, c = seed.players("a", "b", "c")
    first = seed.match(a, b, a)
    seed.match(b, c, c)

    with session_factory() as session:
        eligibility = can_rollback(session, first)

    assert not eligibility.allowed
    assert not eligibility.player1_has_later_matches
    assert eligibility.player2_has_later_matches


def test_upcoming_and_missing_matches_are_not_eligible(session_factory, seed) -> None:
    a, b = seed.players("a", "b")
    upcoming = seed.match(a, b, None)

    with session_factory() as session:
        assert not can_rollback(session, upcoming).allowed
        assert not can_rollback(session, 9999).allowed


def test_rollback_reverts_match_and_rebuilds(session_factory, seed) -> None:
    a, b = seed.players("a", "b")
    seed.match(a, b, a)
    assert recalculate(session_factory).success
    with session_factory() as session:
        before = {player.id: player.rating for player in session.scalars(select(Player))}

    latest = seed.match(a, b, b)
    assert recalculate(session_factory).success

    result = rollback(session_factory, latest)

    assert result.success, result.error
    assert result.recalculation is not None
    assert result.recalculation.processed_matches == 1

    with session_factory() as session:
        match = session.get(Match, latest)
        assert match.winner_id is None
        assert match.rating_change_p1 is None
        assert session.scalars(select(RatingEvent).where(RatingEvent.match_id == latest)).first() is None
        reasons = {
            event.reason
            for event in session.scalars(select(RatingEvent).where(RatingEvent.event_type == "reset"))
        }
        assert reasons == {f"Rollback of match {latest}"}
        for player in session.scalars(select(Player)):
            assert player.rating == pytest.approx(before[player.id])


def test_blocked_rollback_changes_nothing(session_factory, seed) -> None:
    a, b = seed.players("a", "b")
    first = seed.match(a, b, a)
    seed.match(a, b, b)
    assert recalculate(session_factory).success

    result = rollback(session_factory, first)

    assert not result.success
    assert "later match" in result.error
    with session_factory() as session:
        assert session.get(Match, first).winner_id == a
        assert session.scalars(select(RatingEvent).where(RatingEvent.match_id == first)).first() is not None


def test_archived_rollback_rebuilds_snapshots(session_factory, seed) -> None:
    a, b = seed.players("a", "b")
    seed.match(a, b, a)
    latest = seed.match(a, b, a)
    assert recalculate(session_factory).success
    archived = archive(session_factory, "Season 2")
    assert archived.success, archived.error
    season_id = archived.archived_season_id

    result = rollback(session_factory, latest)

    assert result.success, result.error
    assert result.recalculation.season_id == season_id
    with session_factory() as session:
        latest_events = fetch_latest_events_by_player(session, season_id)
        snapshots = fetch_snapshots(session, season_id)
        assert {row.player_id for row in snapshots} == {a, b}
        for row in snapshots:
            assert row.matches_played_count == 1
            assert row.final_rating == pytest.approx(latest_events[row.player_id].rating)
            assert row.final_rd == pytest.approx(latest_events[row.player_id].rd)

    assert activate(session_factory, season_id).success
    with session_factory() as session:
        latest_events = fetch_latest_events_by_player(session, 0)
        for player_id in (a, b):
            player = session.get(Player, player_id)
            assert player.rating == pytest.approx(latest_events[player_id].rating)
            assert player.rd == pytest.approx(latest_events[player_id].rd)
            assert player.matches_played == 1
