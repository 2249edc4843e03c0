"""Shared SQLite fixtures for repository, engine and season tests."""

from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path

import pytest
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from db import create_db_engine, create_session_factory, ensure_schema
from domain.seasons import ensure_active_season
from models import ACTIVE_SEASON_ID
from repositories.matches import create_match
from repositories.players import CachedRating, create_player, write_cached_ratings


class LadderSeeder:
    """Writes fixture rows through the repositories, one committed session per call."""

    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self._session_factory = session_factory

    def players(self, *names: str) -> list[int]:
        with self._session_factory() as session:
            ids = [create_player(session, name=name).id for name in names]
            session.commit()
        return ids

    def match(
        self,
        player1_id: int,
        player2_id: int,
        winner_id: int | None,
        *,
        season_id: int = ACTIVE_SEASON_ID,
    ) -> int:
        with self._session_factory() as session:
            match = create_match(
                session,
                player1_id=player1_id,
                player2_id=player2_id,
                winner_id=winner_id,
                season_id=season_id,
            )
            session.commit()
            return match.id

    def cached_rating(self, player_id: int, rating: float, rd: float = 80.0, volatility: float = 0.06) -> None:
        with self._session_factory() as session:
            write_cached_ratings(
                session,
                [
                    CachedRating(
                        player_id=player_id,
                        rating=rating,
                        rd=rd,
                        volatility=volatility,
                        has_played_this_season=True,
                        matches_played=5,
                        peak_rating=rating,
                    )
                ],
            )
            session.commit()


@pytest.fixture()
def engine(tmp_path: Path) -> Iterator[Engine]:
    engine = create_db_engine(f"sqlite:///{tmp_path / 'ladder.db'}")
    ensure_schema(engine)
    yield engine
    engine.dispose()


@pytest.fixture()
def session_factory(engine: Engine) -> sessionmaker[Session]:
    factory = create_session_factory(engine)
    result = ensure_active_season(factory)
    assert result.success, result.error
    return factory


@pytest.fixture()
def seed(session_factory: sessionmaker[Session]) -> LadderSeeder:
    return LadderSeeder(session_factory)
