"""Win/loss rating projections for an upcoming match."""

from __future__ import annotations

from dataclasses import dataclass

from domain.ratings.glicko2.calculator import Glicko2Parameters, Glicko2Rating, update_rating


@dataclass(frozen=True)
class RatingPrediction:
    win_rating_change: float
    lose_rating_change: float
    win_new_rating: float
    lose_new_rating: float


@dataclass(frozen=True)
class MatchPrediction:
    player1: RatingPrediction
    player2: RatingPrediction


def predict_rating_change(
    player: Glicko2Rating | None,
    opponent: Glicko2Rating | None,
    params: Glicko2Parameters | None = None,
) -> RatingPrediction:
    """Project ``player``'s rating after a win and after a loss against ``opponent``."""
    params = params or Glicko2Parameters()
    player_rating = player or Glicko2Rating.initial(params)
    opponent_rating = opponent or Glicko2Rating.initial(params)

    after_win = update_rating(player_rating, opponent_rating, 1.0, params)
    after_loss = update_rating(player_rating, opponent_rating, 0.0, params)
    return RatingPrediction(
        win_rating_change=after_win.rating - player_rating.rating,
        lose_rating_change=after_loss.rating - player_rating.rating,
        win_new_rating=after_win.rating,
        lose_new_rating=after_loss.rating,
    )


def predict_match_rating_changes(
    player1: Glicko2Rating | None,
    player2: Glicko2Rating | None,
    params: Glicko2Parameters | None = None,
) -> MatchPrediction:
    return MatchPrediction(
        player1=predict_rating_change(player1, player2, params),
        player2=predict_rating_change(player2, player1, params),
    )


def rating_from_cache(
    rating: float | None,
    rd: float | None,
    volatility: float | None,
    params: Glicko2Parameters | None = None,
) -> Glicko2Rating:
    """Build a rating from nullable cached player columns.

    Inactive players carry NULL ratings until their first match of the season.
    """
    params = params or Glicko2Parameters()
    return Glicko2Rating(
        rating=params.initial_rating if rating is None else rating,
        rd=params.initial_rd if rd is None else rd,
        volatility=params.initial_volatility if volatility is None else volatility,
    )


def format_rating_change(change: float) -> str:
    """Render a delta with an explicit sign, e.g. ``+15.2`` or ``-8.5``."""
    sign = "+" if change >= 0 else ""
    return f"{sign}{change:.1f}"
