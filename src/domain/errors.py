"""Error taxonomy for ledger and season operations."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy.exc import SQLAlchemyError


class LadderError(Exception):
    """Base class for failures surfaced by ladder operations."""


class ValidationError(LadderError):
    """Input was rejected before any state changed (bad match, bad Glicko-2 input)."""


class PersistenceError(LadderError):
    """A store read or write failed part-way through an operation."""


class ConsistencyError(LadderError):
    """A season-identity invariant does not hold in the store."""


@contextmanager
def persistence_errors(action: str) -> Iterator[None]:
    """Re-raise SQLAlchemy failures inside the block as PersistenceError."""
    try:
        yield
    except SQLAlchemyError as exc:
        raise PersistenceError(f"{action} failed: {exc}") from exc


__all__ = [
    "ConsistencyError",
    "LadderError",
    "PersistenceError",
    "ValidationError",
    "persistence_errors",
]
