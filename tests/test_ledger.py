"""Unit tests for the chronological ledger replay."""

from __future__ import annotations

import pytest

from domain.errors import ValidationError
from domain.ratings.common import CompletedMatch
from domain.ratings.glicko2.calculator import Glicko2Parameters
from domain.ratings.ledger import PlayerLedgerCalculator, replay_ledger
from models import EVENT_TYPE_MATCH, EVENT_TYPE_RESET


def _match(match_id: int, player1_id: int, player2_id: int, winner_id: int) -> CompletedMatch:
    return CompletedMatch(
        match_id=match_id,
        player1_id=player1_id,
        player2_id=player2_id,
        winner_id=winner_id,
        season_id=0,
    )


LEDGER = [
    _match(1, 1, 2, 1),
    _match(2, 2, 3, 3),
    _match(3, 1, 3, 3),
    _match(4, 2, 1, 2),
]


def test_single_match_from_fresh_players() -> None:
    replay = replay_ledger([1, 2], [_match(1, 1, 2, 1)], Glicko2Parameters(), season_id=0, reason="test")

    assert [event.event_type for event in replay.reset_events] == [EVENT_TYPE_RESET, EVENT_TYPE_RESET]
    assert all(event.reason == "test" for event in replay.reset_events)
    assert len(replay.match_events) == 2
    assert all(event.event_type == EVENT_TYPE_MATCH for event in replay.match_events)

    winner, loser = replay.match_events
    assert winner.player_id == 1 and winner.result == 1.0 and winner.opponent_id == 2
    assert loser.player_id == 2 and loser.result == 0.0 and loser.opponent_id == 1
    assert winner.rating > 1500.0 > loser.rating
    assert winner.rd < 350.0 and loser.rd < 350.0

    assert replay.final_states[1].matches_played == 1
    assert replay.final_states[1].peak_rating == pytest.approx(winner.rating)


def test_replay_is_deterministic() -> None:
    first = replay_ledger([1, 2, 3], LEDGER, Glicko2Parameters(), season_id=0)
    second = replay_ledger([1, 2, 3], LEDGER, Glicko2Parameters(), season_id=0)

    assert first.events == second.events
    assert first.ratings() == second.ratings()


def test_each_match_uses_the_previous_event_as_pre_state() -> None:
    replay = replay_ledger([1, 2, 3], LEDGER, Glicko2Parameters(), season_id=0)

    last_rating = {event.player_id: event.rating for event in replay.reset_events}
    for event in replay.match_events:
        assert event.pre_rating == pytest.approx(last_rating[event.player_id])
        assert event.rating_change == event.rating - event.pre_rating
        last_rating[event.player_id] = event.rating

    assert replay.ratings() == pytest.approx(last_rating)


def test_order_changes_the_outcome() -> None:
    forward = replay_ledger([1, 2, 3], LEDGER, Glicko2Parameters(), season_id=0)
    swapped_ids = [
        _match(1, 2, 3, 3),
        _match(2, 1, 2, 1),
        _match(3, 1, 3, 3),
        _match(4, 2, 1, 2),
    ]
    swapped = replay_ledger([1, 2, 3], swapped_ids, Glicko2Parameters(), season_id=0)

    assert forward.ratings() != pytest.approx(swapped.ratings())


def test_players_without_matches_keep_initial_values() -> None:
    replay = replay_ledger([1, 2, 9], [_match(1, 1, 2, 2)], Glicko2Parameters(), season_id=0)

    idle = replay.final_states[9]
    assert idle.matches_played == 0
    assert idle.peak_rating is None
    assert idle.rating.rating == pytest.approx(1500.0)
    assert {state.player_id for state in replay.played_states()} == {1, 2}


def test_progress_callback_receives_each_match_index() -> None:
    seen: list[tuple[int, int]] = []
    replay_ledger(
        [1, 2, 3],
        LEDGER,
        Glicko2Parameters(),
        season_id=0,
        on_match=lambda index, match: seen.append((index, match.match_id)),
    )
    assert seen == [(0, 1), (1, 2), (2, 3), (3, 4)]


def test_out_of_order_matches_raise() -> None:
    with pytest.raises(ValidationError, match="increasing id order"):
        replay_ledger([1, 2], [_match(2, 1, 2, 1), _match(1, 1, 2, 2)], Glicko2Parameters(), season_id=0)


def test_winner_outside_match_raises() -> None:
    calculator = PlayerLedgerCalculator(Glicko2Parameters(), season_id=0)
    calculator.reset_player(1, reason=None)
    calculator.reset_player(2, reason=None)

    with pytest.raises(ValidationError, match="does not belong"):
        calculator.process_match(_match(1, 1, 2, 3))


def test_identical_players_raise() -> None:
    calculator = PlayerLedgerCalculator(Glicko2Parameters(), season_id=0)
    calculator.reset_player(1, reason=None)

    with pytest.raises(ValidationError, match="identical players"):
        calculator.process_match(_match(1, 1, 1, 1))


def test_unknown_player_raises() -> None:
    with pytest.raises(ValidationError, match="unknown player_id=7"):
        replay_ledger([1], [_match(1, 1, 7, 1)], Glicko2Parameters(), season_id=0)


def test_disjoint_matches_commute() -> None:
    forward = replay_ledger(
        [1, 2, 3, 4],
        [_match(1, 1, 2, 1), _match(2, 3, 4, 4)],
        Glicko2Parameters(),
        season_id=0,
    )
    swapped = replay_ledger(
        [1, 2, 3, 4],
        [_match(1, 3, 4, 4), _match(2, 1, 2, 1)],
        Glicko2Parameters(),
        season_id=0,
    )

    assert forward.ratings() == pytest.approx(swapped.ratings())
