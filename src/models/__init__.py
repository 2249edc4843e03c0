"""ORM models."""

from models.base import Base
from models.match import Match
from models.player import Player
from models.rating_event import EVENT_TYPE_MATCH, EVENT_TYPE_RESET, RatingEvent
from models.season import (
    ACTIVE_SEASON_ID,
    SEASON_STATUS_ACTIVE,
    SEASON_STATUS_ARCHIVED,
    Season,
    SeasonPlayerSnapshot,
)

__all__ = [
    "ACTIVE_SEASON_ID",
    "Base",
    "EVENT_TYPE_MATCH",
    "EVENT_TYPE_RESET",
    "Match",
    "Player",
    "RatingEvent",
    "SEASON_STATUS_ACTIVE",
    "SEASON_STATUS_ARCHIVED",
    "Season",
    "SeasonPlayerSnapshot",
]
