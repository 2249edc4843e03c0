"""Chronological Glicko-2 replay of a season's match ledger.

The replay is a single left fold over matches sorted by id. Each participant's
working state going into match N+1 is the state emitted by their event for
their previous match in the same pass; nothing is re-read from storage.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass

from domain.errors import ValidationError
from domain.ratings.common import CompletedMatch
from domain.ratings.glicko2.calculator import Glicko2Parameters, Glicko2Rating, update_rating
from models.rating_event import EVENT_TYPE_MATCH, EVENT_TYPE_RESET


@dataclass(frozen=True)
class LedgerEvent:
    """One rating event produced by a replay; rating/rd/volatility are post-event."""

    player_id: int
    event_type: str
    rating: float
    rd: float
    volatility: float
    season_id: int
    match_id: int | None = None
    pre_rating: float | None = None
    rating_change: float | None = None
    opponent_id: int | None = None
    result: float | None = None
    reason: str | None = None


@dataclass
class PlayerLedgerState:
    """Running per-player accumulator threaded through the replay."""

    player_id: int
    rating: Glicko2Rating
    matches_played: int = 0
    peak_rating: float | None = None


@dataclass(frozen=True)
class LedgerReplay:
    """Result of a replay: the emitted log plus each player's final state."""

    reset_events: tuple[LedgerEvent, ...]
    match_events: tuple[LedgerEvent, ...]
    final_states: dict[int, PlayerLedgerState]

    @property
    def events(self) -> tuple[LedgerEvent, ...]:
        return self.reset_events + self.match_events

    def ratings(self) -> dict[int, float]:
        return {player_id: state.rating.rating for player_id, state in self.final_states.items()}

    def played_states(self) -> list[PlayerLedgerState]:
        return [state for state in self.final_states.values() if state.matches_played > 0]


class PlayerLedgerCalculator:
    """Stateful head-to-head Glicko-2 calculator over a fixed player set."""

    def __init__(self, params: Glicko2Parameters, *, season_id: int) -> None:
        self.params = params
        self.season_id = season_id
        self._states: dict[int, PlayerLedgerState] = {}
        self._last_match_id: int | None = None

    def reset_player(self, player_id: int, *, reason: str | None) -> LedgerEvent:
        initial = Glicko2Rating.initial(self.params)
        self._states[player_id] = PlayerLedgerState(player_id=player_id, rating=initial)
        return LedgerEvent(
            player_id=player_id,
            event_type=EVENT_TYPE_RESET,
            rating=initial.rating,
            rd=initial.rd,
            volatility=initial.volatility,
            season_id=self.season_id,
            reason=reason,
        )

    def states(self) -> dict[int, PlayerLedgerState]:
        return dict(self._states)

    def _state_for(self, match: CompletedMatch, player_id: int) -> PlayerLedgerState:
        state = self._states.get(player_id)
        if state is None:
            raise ValidationError(
                f"match_id={match.match_id} references unknown player_id={player_id}"
            )
        return state

    def process_match(self, match: CompletedMatch) -> tuple[LedgerEvent, LedgerEvent]:
        if match.player1_id == match.player2_id:
            raise ValidationError(
                f"match_id={match.match_id} has identical players ({match.player1_id})"
            )
        if match.winner_id not in (match.player1_id, match.player2_id):
            raise ValidationError(
                f"winner_id={match.winner_id} does not belong to match players "
                f"{match.player1_id}/{match.player2_id} for match_id={match.match_id}"
            )
        if self._last_match_id is not None and match.match_id <= self._last_match_id:
            raise ValidationError(
                f"match_id={match.match_id} replayed after match_id={self._last_match_id}; "
                "matches must be applied in increasing id order"
            )

        player1_state = self._state_for(match, match.player1_id)
        player2_state = self._state_for(match, match.player2_id)
        player1_pre = player1_state.rating
        player2_pre = player2_state.rating

        player1_post = update_rating(player1_pre, player2_pre, match.score_for(match.player1_id), self.params)
        player2_post = update_rating(player2_pre, player1_pre, match.score_for(match.player2_id), self.params)

        self._apply(player1_state, player1_post)
        self._apply(player2_state, player2_post)
        self._last_match_id = match.match_id

        return (
            self._match_event(match, match.player1_id, match.player2_id, player1_pre, player1_post),
            self._match_event(match, match.player2_id, match.player1_id, player2_pre, player2_post),
        )

    @staticmethod
    def _apply(state: PlayerLedgerState, post: Glicko2Rating) -> None:
        state.rating = post
        state.matches_played += 1
        if state.peak_rating is None or post.rating > state.peak_rating:
            state.peak_rating = post.rating

    def _match_event(
        self,
        match: CompletedMatch,
        player_id: int,
        opponent_id: int,
        pre: Glicko2Rating,
        post: Glicko2Rating,
    ) -> LedgerEvent:
        return LedgerEvent(
            player_id=player_id,
            event_type=EVENT_TYPE_MATCH,
            rating=post.rating,
            rd=post.rd,
            volatility=post.volatility,
            season_id=self.season_id,
            match_id=match.match_id,
            pre_rating=pre.rating,
            rating_change=post.rating - pre.rating,
            opponent_id=opponent_id,
            result=match.score_for(player_id),
        )


def replay_ledger(
    player_ids: Iterable[int],
    matches: Sequence[CompletedMatch],
    params: Glicko2Parameters,
    *,
    season_id: int,
    reason: str | None = None,
    on_match: Callable[[int, CompletedMatch], None] | None = None,
) -> LedgerReplay:
    """Replay ``matches`` (ascending id) from initial ratings for every player.

    ``on_match`` is called with the 0-based index before each match is applied.
    """
    calculator = PlayerLedgerCalculator(params, season_id=season_id)
    reset_events = [calculator.reset_player(player_id, reason=reason) for player_id in player_ids]

    match_events: list[LedgerEvent] = []
    for index, match in enumerate(matches):
        if on_match is not None:
            on_match(index, match)
        match_events.extend(calculator.process_match(match))

    return LedgerReplay(
        reset_events=tuple(reset_events),
        match_events=tuple(match_events),
        final_states=calculator.states(),
    )
