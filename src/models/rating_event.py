"""rating_events table model."""

from __future__ import annotations

from datetime import datetime
from typing import Final

from sqlalchemy import CheckConstraint, DateTime, Enum, Float, ForeignKey, Index, String, func
from sqlalchemy.orm import Mapped, mapped_column

from models.base import Base

EVENT_TYPE_MATCH: Final[str] = "match"
EVENT_TYPE_RESET: Final[str] = "reset"


class RatingEvent(Base):
    """Append-only rating log; rating/rd/volatility hold the state after the event."""

    __tablename__ = "rating_events"
    __table_args__ = (
        CheckConstraint(
            "(event_type = 'match' AND match_id IS NOT NULL "
            "AND opponent_id IS NOT NULL AND result IS NOT NULL) "
            "OR (event_type <> 'match')",
            name="ck_rating_events_valid_match_event",
        ),
        CheckConstraint("result IS NULL OR result IN (0.0, 0.5, 1.0)", name="ck_rating_events_result"),
        CheckConstraint("rd > 0.0", name="ck_rating_events_rd"),
        CheckConstraint("volatility > 0.0", name="ck_rating_events_volatility"),
        Index("idx_rating_events_season_id", "season_id"),
        Index("idx_rating_events_season_player", "season_id", "player_id", "id"),
        Index("idx_rating_events_match_id", "match_id"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    player_id: Mapped[int] = mapped_column(ForeignKey("players.id", ondelete="CASCADE"), nullable=False)
    match_id: Mapped[int | None] = mapped_column(ForeignKey("matches.id", ondelete="SET NULL"), nullable=True)
    event_type: Mapped[str] = mapped_column(
        Enum(
            EVENT_TYPE_MATCH,
            EVENT_TYPE_RESET,
            name="rating_event_type",
            native_enum=False,
        ),
        nullable=False,
    )
    rating: Mapped[float] = mapped_column(Float, nullable=False)
    rd: Mapped[float] = mapped_column(Float, nullable=False)
    volatility: Mapped[float] = mapped_column(Float, nullable=False)
    rating_change: Mapped[float | None] = mapped_column(Float, nullable=True)
    opponent_id: Mapped[int | None] = mapped_column(ForeignKey("players.id", ondelete="SET NULL"), nullable=True)
    result: Mapped[float | None] = mapped_column(Float, nullable=True)
    season_id: Mapped[int] = mapped_column(ForeignKey("seasons.id"), nullable=False)
    reason: Mapped[str | None] = mapped_column(String(256), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=False),
        nullable=False,
        server_default=func.now(),
    )
