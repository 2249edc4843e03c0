"""Integration tests for the season state machine."""

from __future__ import annotations

import pytest
from sqlalchemy import select

from domain.errors import ConsistencyError
from domain.pipeline import recalculate
from domain.seasons import (
    activate,
    archive,
    calculate_for_season,
    ensure_active_season,
    get_active_season,
    get_season_stats,
    list_archived_seasons,
    list_seasons,
    verify_season_invariant,
)
from models import Match, Player, RatingEvent, Season, SeasonPlayerSnapshot
from repositories.seasons import fetch_snapshots


def _assert_single_active(session_factory) -> None:
    with session_factory() as session:
        active = [season for season in session.scalars(select(Season)) if season.status == "active"]
        assert [season.id for season in active] == [0]


def _players(session_factory) -> dict[int, Player]:
    with session_factory() as session:
        return {player.id: player for player in session.scalars(select(Player))}


def test_ensure_active_season_is_idempotent(session_factory) -> None:
    assert ensure_active_season(session_factory, "ignored").success

    with session_factory() as session:
        assert get_active_season(session).name == "Season 1"
        assert len(list_seasons(session)) == 1


def test_archive_snapshots_rated_players_by_rank(session_factory, seed) -> None:
    low, top, mid = seed.players("low", "top", "mid")
    seed.cached_rating(top, 1600.0)
    seed.cached_rating(mid, 1500.0)
    seed.cached_rating(low, 1400.0)

    result = archive(session_factory, "Season 2")

    assert result.success, result.error
    assert result.archived_season_id == 1
    assert result.snapshots_written == 3
    with session_factory() as session:
        snapshots = fetch_snapshots(session, 1)
        assert [(row.player_id, row.final_rank) for row in snapshots] == [(top, 1), (mid, 2), (low, 3)]
        assert get_active_season(session).name == "Season 2"
    assert all(player.rating is None for player in _players(session_factory).values())
    assert not any(player.has_played_this_season for player in _players(session_factory).values())
    _assert_single_active(session_factory)


def test_archive_ties_rank_lower_rd_first(session_factory, seed) -> None:
    shaky, steady = seed.players("shaky", "steady")
    seed.cached_rating(shaky, 1550.0, rd=120.0)
    seed.cached_rating(steady, 1550.0, rd=60.0)

    assert archive(session_factory, "Season 2").success

    with session_factory() as session:
        assert [row.player_id for row in fetch_snapshots(session, 1)] == [steady, shaky]


def test_archive_repoints_matches_and_events(session_factory, seed) -> None:
    a, b = seed.players("a", "b")
    match_id = seed.match(a, b, a)
    assert recalculate(session_factory).success

    result = archive(session_factory, "Season 2")

    assert result.success
    with session_factory() as session:
        assert session.get(Match, match_id).season_id == result.archived_season_id
        seasons = {event.season_id for event in session.scalars(select(RatingEvent))}
        assert seasons == {result.archived_season_id}


def test_archived_ids_are_never_reused(session_factory) -> None:
    first = archive(session_factory, "Season 2")
    second = archive(session_factory, "Season 3")

    assert (first.archived_season_id, second.archived_season_id) == (1, 2)
    with session_factory() as session:
        assert [season.id for season in list_seasons(session)] == [0, 2, 1]
        assert [season.id for season in list_archived_seasons(session)] == [2, 1]


def test_activate_restores_target_season(session_factory, seed) -> None:
    a, b, c = seed.players("a", "b", "c")
    old_match = seed.match(a, b, a)
    assert recalculate(session_factory).success
    ratings_at_archive = {pid: player.rating for pid, player in _players(session_factory).items()}
    archived = archive(session_factory, "Season 2")
    assert archived.success

    new_match = seed.match(b, c, c)
    assert recalculate(session_factory).success

    result = activate(session_factory, archived.archived_season_id)

    assert result.success, result.error
    assert result.archived_season_id == 2
    assert result.players_restored == 3
    with session_factory() as session:
        assert session.get(Match, old_match).season_id == 0
        assert session.get(Match, new_match).season_id == 2
        assert session.get(Season, archived.archived_season_id) is None
        assert session.scalars(
            select(SeasonPlayerSnapshot).where(SeasonPlayerSnapshot.season_id == archived.archived_season_id)
        ).first() is None
        assert session.scalars(select(SeasonPlayerSnapshot).where(SeasonPlayerSnapshot.season_id == 2)).first() is None
        assert get_active_season(session).name == "Season 1"
    for player_id, player in _players(session_factory).items():
        assert player.rating == pytest.approx(ratings_at_archive[player_id])
    _assert_single_active(session_factory)


def test_activate_marks_players_missing_from_snapshot_inactive(session_factory, seed) -> None:
    veteran, = seed.players("veteran")
    seed.cached_rating(veteran, 1650.0)
    archived = archive(session_factory, "Season 2")
    newcomer, = seed.players("newcomer")
    seed.cached_rating(newcomer, 1520.0)

    assert activate(session_factory, archived.archived_season_id).success

    players = _players(session_factory)
    assert players[veteran].rating == pytest.approx(1650.0)
    assert players[newcomer].rating is None


@pytest.mark.parametrize("season_id", [0, -3, 42])
def test_activate_rejects_non_archived_targets(session_factory, season_id: int) -> None:
    result = activate(session_factory, season_id)

    assert not result.success
    assert result.error
    _assert_single_active(session_factory)


def test_invariant_holds_across_transition_sequences(session_factory, seed) -> None:
    a, b = seed.players("a", "b")
    seed.match(a, b, a)
    assert recalculate(session_factory).success

    assert archive(session_factory, "Season 2").success
    assert archive(session_factory, "Season 3").success
    assert activate(session_factory, 1).success
    assert archive(session_factory, "Season 5").success
    assert activate(session_factory, 3).success

    _assert_single_active(session_factory)
    with session_factory() as session:
        assert verify_season_invariant(session).id == 0
        ids = sorted(season.id for season in list_seasons(session))
        assert ids == sorted(set(ids))


def test_missing_active_season_is_a_consistency_error(session_factory) -> None:
    with session_factory() as session:
        session.delete(session.get(Season, 0))
        session.commit()

    with session_factory() as session:
        with pytest.raises(ConsistencyError):
            verify_season_invariant(session)

    result = archive(session_factory, "Season 2")
    assert not result.success
    assert "active season" in result.error


def test_calculate_for_season_snapshots_only_participants(session_factory, seed) -> None:
    a, b, idle = seed.players("a", "b", "idle")
    seed.match(a, b, b)
    seed.match(a, b, b)
    seed.cached_rating(idle, 1700.0)
    archived = archive(session_factory, "Season 2")

    result = calculate_for_season(session_factory, archived.archived_season_id)

    assert result.success, result.error
    assert result.snapshots_written == 2
    with session_factory() as session:
        snapshots = fetch_snapshots(session, archived.archived_season_id)
        assert [(row.player_id, row.final_rank) for row in snapshots] == [(b, 1), (a, 2)]
        assert all(row.matches_played_count == 2 for row in snapshots)
        stats = get_season_stats(session, archived.archived_season_id)
        assert stats.completed_matches == 2
        assert stats.rating_events == 3 + 4
        assert stats.snapshots == 2
    assert _players(session_factory)[idle].rating is None


def test_calculate_for_season_rejects_active_season(session_factory) -> None:
    result = calculate_for_season(session_factory, 0)
    assert not result.success
