"""
Durable Priority Work Queue

Thin facade over db.queue_service that owns session handling, so workers
and the orchestrator never hold a session across an await.

Guarantees (from the underlying table + locking reads):
- Survives process restarts: every state lives in work_units
- Dispatch order: high (1) before normal (5) before low (10), FIFO within a class
- Each unit is claimed by at most one worker at a time
- Failed attempts back off exponentially (base * 2^attempt seconds)
- After max_attempts failures a unit moves to the dead set (status failed)
  and stays there until replay_failed()

Database connectivity failures surface as QueueUnavailableError, which the
pool treats as fatal for the run.
"""

import logging
from contextlib import contextmanager
from datetime import timedelta
from typing import Callable, Iterator, Optional

from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session, sessionmaker

from db import queue_service
from utils.errors import QueueUnavailableError
from work_queue.worker_pool import WorkerPool
from workers.types import QueueStats, WorkUnitData

logger = logging.getLogger(__name__)


class WorkQueue:
    """
    Example:
        queue = WorkQueue(session_factory, max_attempts=3)
        queue.enqueue_bulk(units, run_id=run.id)
        pool = queue.register_worker(processor, concurrency=10, rate_limit=10)
        await pool.run_until(lambda: queue.pending_count(run.id) == 0)
    """

    def __init__(
        self,
        session_factory: sessionmaker,
        max_attempts: int = 3,
        backoff_base: float = 1.0,
    ):
        self.session_factory = session_factory
        self.max_attempts = max_attempts
        self.backoff_base = backoff_base

    @contextmanager
    def _session(self) -> Iterator[Session]:
        db = self.session_factory()
        try:
            yield db
        except OperationalError as e:
            db.rollback()
            raise QueueUnavailableError(f"Queue database unavailable: {e.orig}") from e
        finally:
            db.close()

    # =========================================================================
    # Producer side
    # =========================================================================

    def enqueue(self, unit: WorkUnitData, run_id: Optional[int] = None) -> int:
        """Add one unit. Returns its id."""
        return self.enqueue_bulk([unit], run_id=run_id)[0]

    def enqueue_bulk(self, units: list[WorkUnitData], run_id: Optional[int] = None) -> list[int]:
        """Add many units in one transaction. Returns their ids in input order."""
        with self._session() as db:
            ids = queue_service.enqueue_units(db, units, run_id=run_id, max_attempts=self.max_attempts)
        logger.info(f"Enqueued {len(ids)} work units (run_id={run_id})")
        return ids

    # =========================================================================
    # Consumer side
    # =========================================================================

    def claim(self) -> Optional[WorkUnitData]:
        """Claim the next dispatchable unit, or None."""
        with self._session() as db:
            return queue_service.claim_next_unit(db)

    def complete(self, unit_id: int, result: dict) -> None:
        with self._session() as db:
            queue_service.complete_unit(db, unit_id, result)

    def fail(self, unit_id: int, error: str) -> str:
        """Record a failed attempt. Returns the new status (waiting or failed)."""
        with self._session() as db:
            return queue_service.fail_unit(db, unit_id, error, backoff_base=self.backoff_base)

    def release(self, unit_id: int) -> None:
        """Return a claimed unit without counting the attempt."""
        with self._session() as db:
            queue_service.release_unit(db, unit_id)

    # =========================================================================
    # Introspection & maintenance
    # =========================================================================

    def stats(self) -> QueueStats:
        with self._session() as db:
            return queue_service.get_queue_stats(db)

    def pending_count(self, run_id: int) -> int:
        """Units of a run not yet completed or dead."""
        with self._session() as db:
            return queue_service.count_unfinished_for_run(db, run_id)

    def run_units(self, run_id: int) -> list[dict]:
        """Final state of every unit of a run (status, result, last_error)."""
        with self._session() as db:
            return [
                {
                    "id": row.id,
                    "company_name": row.company_name,
                    "status": row.status,
                    "retry_count": row.retry_count,
                    "result": row.result,
                    "last_error": row.last_error,
                }
                for row in queue_service.get_run_units(db, run_id)
            ]

    def replay_failed(self) -> int:
        with self._session() as db:
            return queue_service.replay_failed_units(db)

    def requeue_stalled(self, visibility_timeout: int) -> int:
        with self._session() as db:
            return queue_service.requeue_stalled_units(db, visibility_timeout)

    def clean_finished(self, older_than: timedelta) -> int:
        with self._session() as db:
            return queue_service.clean_finished_units(db, older_than)

    def register_worker(
        self,
        processor: Callable,
        concurrency: int = 10,
        rate_limit: int = 10,
        period: float = 1.0,
        poll_interval: float = 0.5,
    ) -> WorkerPool:
        """
        Build a worker pool consuming this queue.

        Args:
            processor: async callable(WorkUnitData) -> result with to_dict()
            concurrency: Number of concurrent workers
            rate_limit: Max dispatches per period, shared by all workers
            period: Rate limit window in seconds
            poll_interval: Idle sleep when nothing is dispatchable

        Returns:
            WorkerPool (not yet running)
        """
        return WorkerPool(
            queue=self,
            processor=processor,
            concurrency=concurrency,
            rate_limit=rate_limit,
            period=period,
            poll_interval=poll_interval,
        )
