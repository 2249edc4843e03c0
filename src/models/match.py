"""matches table model."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, Float, ForeignKey, Index, Integer, String, func
from sqlalchemy.orm import Mapped, mapped_column

from models.base import Base
from models.season import ACTIVE_SEASON_ID


class Match(Base):
    """One pairwise match; id order is the chronological order of the ledger."""

    __tablename__ = "matches"
    __table_args__ = (
        CheckConstraint("player1_id <> player2_id", name="ck_matches_distinct_players"),
        CheckConstraint(
            "winner_id IS NULL OR winner_id = player1_id OR winner_id = player2_id",
            name="ck_matches_winner_is_participant",
        ),
        Index("idx_matches_season_id", "season_id"),
        Index("idx_matches_player1", "player1_id", "id"),
        Index("idx_matches_player2", "player2_id", "id"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    player1_id: Mapped[int] = mapped_column(ForeignKey("players.id"), nullable=False)
    player2_id: Mapped[int] = mapped_column(ForeignKey("players.id"), nullable=False)
    winner_id: Mapped[int | None] = mapped_column(ForeignKey("players.id"), nullable=True)
    player1_score: Mapped[int | None] = mapped_column(Integer, nullable=True)
    player2_score: Mapped[int | None] = mapped_column(Integer, nullable=True)
    season_id: Mapped[int] = mapped_column(
        ForeignKey("seasons.id"),
        nullable=False,
        default=ACTIVE_SEASON_ID,
    )
    rating_change_p1: Mapped[float | None] = mapped_column(Float, nullable=True)
    rating_change_p2: Mapped[float | None] = mapped_column(Float, nullable=True)
    event_name: Mapped[str | None] = mapped_column(String(256), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=False),
        nullable=False,
        server_default=func.now(),
    )
