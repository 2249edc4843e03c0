"""seasons and season_player_snapshots table models."""

from __future__ import annotations

from datetime import datetime
from typing import Final

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column

from models.base import Base

ACTIVE_SEASON_ID: Final[int] = 0
SEASON_STATUS_ACTIVE: Final[str] = "active"
SEASON_STATUS_ARCHIVED: Final[str] = "archived"


class Season(Base):
    """One competitive epoch; id 0 is always the single active season."""

    __tablename__ = "seasons"
    __table_args__ = (
        CheckConstraint(
            "(id = 0 AND status = 'active') OR (id > 0 AND status = 'archived')",
            name="ck_seasons_identity",
        ),
        Index("idx_seasons_status", "status"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    status: Mapped[str] = mapped_column(
        Enum(
            SEASON_STATUS_ACTIVE,
            SEASON_STATUS_ARCHIVED,
            name="season_status",
            native_enum=False,
        ),
        nullable=False,
    )
    start_date: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)
    end_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=False), nullable=True)
    description: Mapped[str | None] = mapped_column(String(512), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=False),
        nullable=False,
        server_default=func.now(),
    )


class SeasonPlayerSnapshot(Base):
    """Frozen final standing of one player in one archived season."""

    __tablename__ = "season_player_snapshots"
    __table_args__ = (
        UniqueConstraint("season_id", "player_id", name="uq_season_snapshots_season_player"),
        CheckConstraint("final_rd > 0.0", name="ck_season_snapshots_final_rd"),
        CheckConstraint("final_volatility > 0.0", name="ck_season_snapshots_final_volatility"),
        Index("idx_season_snapshots_season", "season_id"),
        Index("idx_season_snapshots_player", "player_id"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    season_id: Mapped[int] = mapped_column(ForeignKey("seasons.id"), nullable=False)
    player_id: Mapped[int] = mapped_column(ForeignKey("players.id", ondelete="CASCADE"), nullable=False)
    final_rating: Mapped[float] = mapped_column(Float, nullable=False)
    final_rd: Mapped[float] = mapped_column(Float, nullable=False)
    final_volatility: Mapped[float] = mapped_column(Float, nullable=False)
    matches_played_count: Mapped[int] = mapped_column(Integer, nullable=False)
    peak_rating: Mapped[float | None] = mapped_column(Float, nullable=True)
    peak_rating_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=False), nullable=True)
    final_rank: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=False),
        nullable=False,
        server_default=func.now(),
    )
