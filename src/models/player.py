"""players table model."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, DateTime, Float, Index, Integer, String, false, func
from sqlalchemy.orm import Mapped, mapped_column

from models.base import Base


class Player(Base):
    """Ladder participant plus the cached active-season rating.

    rating/rd/volatility are a materialized view of the newest season-0
    rating event; NULL means the player is inactive in the active season.
    """

    __tablename__ = "players"
    __table_args__ = (
        Index("idx_players_rating", "rating"),
        Index("idx_players_has_played_this_season", "has_played_this_season"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(128), nullable=False, unique=True)
    rating: Mapped[float | None] = mapped_column(Float, nullable=True)
    rd: Mapped[float | None] = mapped_column(Float, nullable=True)
    volatility: Mapped[float | None] = mapped_column(Float, nullable=True)
    has_played_this_season: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        server_default=false(),
    )
    matches_played: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    peak_rating: Mapped[float | None] = mapped_column(Float, nullable=True)
    peak_rating_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=False), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=False),
        nullable=False,
        server_default=func.now(),
    )
