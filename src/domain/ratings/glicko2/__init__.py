"""Glicko-2 rating modules."""

from domain.ratings.glicko2.calculator import (
    Glicko2OpponentResult,
    Glicko2Parameters,
    Glicko2Rating,
    calculate_expected_score,
    update_glicko2_player,
    update_rating,
)
from domain.ratings.glicko2.config import LadderConfig, RecalculationSettings, load_ladder_config
from domain.ratings.glicko2.predictions import (
    MatchPrediction,
    RatingPrediction,
    format_rating_change,
    predict_match_rating_changes,
    predict_rating_change,
    rating_from_cache,
)

__all__ = [
    "Glicko2OpponentResult",
    "Glicko2Parameters",
    "Glicko2Rating",
    "LadderConfig",
    "MatchPrediction",
    "RatingPrediction",
    "RecalculationSettings",
    "calculate_expected_score",
    "format_rating_change",
    "load_ladder_config",
    "predict_match_rating_changes",
    "predict_rating_change",
    "rating_from_cache",
    "update_glicko2_player",
    "update_rating",
]
