"""Run recalculations off the caller's thread and expose their progress."""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor

from sqlalchemy.orm import Session, sessionmaker

from domain.common import RecalculationProgress, RecalculationResult
from domain.pipeline import DEFAULT_RESET_REASON, recalculate
from domain.ratings.glicko2.calculator import Glicko2Parameters
from domain.ratings.glicko2.config import RecalculationSettings
from models import ACTIVE_SEASON_ID

logger = logging.getLogger(__name__)


class RecalculationWorker:
    """Single-threaded executor for recalculation passes.

    Passes are serialized: a second submission queues behind the first, so two
    rebuilds of the same season never interleave their delete/insert steps.
    """

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        *,
        params: Glicko2Parameters | None = None,
        settings: RecalculationSettings | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._params = params or Glicko2Parameters()
        self._settings = settings or RecalculationSettings()
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="ladder-recalc")
        self._lock = threading.Lock()
        self._progress = RecalculationProgress.idle()

    @property
    def progress(self) -> RecalculationProgress:
        with self._lock:
            return self._progress

    def _record(self, progress: RecalculationProgress) -> None:
        with self._lock:
            self._progress = progress

    def submit(
        self,
        season_id: int = ACTIVE_SEASON_ID,
        reason: str = DEFAULT_RESET_REASON,
    ) -> Future[RecalculationResult]:
        logger.info("queued recalculation season_id=%s reason=%s", season_id, reason)
        return self._executor.submit(self._run, season_id, reason)

    def _run(self, season_id: int, reason: str) -> RecalculationResult:
        return recalculate(
            self._session_factory,
            season_id,
            reason,
            params=self._params,
            settings=self._settings,
            on_progress=self._record,
        )

    def shutdown(self, *, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)

    def __enter__(self) -> "RecalculationWorker":
        return self

    def __exit__(self, *exc_info) -> None:
        self.shutdown()


__all__ = ["RecalculationWorker"]
