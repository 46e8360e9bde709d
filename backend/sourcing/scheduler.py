"""
Scrape Scheduler

Two ways a run starts:
- scheduled: run_scheduled() from the periodic loop or the scheduled Lambda.
  Each scheduled run first closes expired job rows, requeues units whose
  worker died mid-unit and deletes completed units past retention_days.
- on demand: trigger(). Refused with CooldownActiveError while the last run
  started less than cooldown_seconds ago.
"""

import asyncio
import dataclasses
import logging
from contextlib import contextmanager
from datetime import timedelta
from typing import Iterator, Optional

from sqlalchemy.orm import Session, sessionmaker

from db import jobs_service, run_service
from models.scrape_run import RunTrigger
from sourcing.orchestrator import ScrapeOrchestrator
from utils.errors import CooldownActiveError
from workers.types import RunConfig, RunSummary

logger = logging.getLogger(__name__)


class ScrapeScheduler:
    """
    Example:
        scheduler = ScrapeScheduler(session_factory, orchestrator, cooldown_seconds=3600)
        summary = await scheduler.trigger(RunConfig(max_companies=20))
    """

    def __init__(
        self,
        session_factory: sessionmaker,
        orchestrator: ScrapeOrchestrator,
        cooldown_seconds: int = 3600,
        visibility_timeout: int = 600,
        retention_days: int = 7,
    ):
        self.session_factory = session_factory
        self.orchestrator = orchestrator
        self.cooldown_seconds = cooldown_seconds
        self.visibility_timeout = visibility_timeout
        self.retention_days = retention_days

    @contextmanager
    def _session(self) -> Iterator[Session]:
        db = self.session_factory()
        try:
            yield db
        finally:
            db.close()

    def seconds_until_allowed(self) -> int:
        """0 if an on-demand run may start now."""
        with self._session() as db:
            return run_service.seconds_until_next_run(db, self.cooldown_seconds)

    async def trigger(self, config: Optional[RunConfig] = None) -> RunSummary:
        """
        On-demand run.

        Raises:
            CooldownActiveError: Last run started inside the cooldown window
        """
        config = dataclasses.replace(config or RunConfig(), trigger=RunTrigger.MANUAL)
        retry_after = self.seconds_until_allowed()
        if retry_after > 0:
            logger.info(f"Trigger refused, cooldown active for another {retry_after}s")
            raise CooldownActiveError(retry_after)
        return await self.orchestrator.run(config)

    def run_maintenance(self) -> dict:
        """Close expired job rows, requeue stalled units and drop old completed units."""
        with self._session() as db:
            expired = jobs_service.expire_stale_jobs(db)
        requeued = self.orchestrator.queue.requeue_stalled(self.visibility_timeout)
        cleaned = self.orchestrator.queue.clean_finished(timedelta(days=self.retention_days))
        return {"expired": expired, "requeued": requeued, "cleaned": cleaned}

    async def run_scheduled(self, config: Optional[RunConfig] = None) -> RunSummary:
        """Maintenance then a run. Not subject to the on-demand cooldown."""
        config = dataclasses.replace(config or RunConfig(), trigger=RunTrigger.SCHEDULED)

        try:
            maintenance = self.run_maintenance()
            logger.info(
                f"Scheduled maintenance: {maintenance['expired']} jobs expired, "
                f"{maintenance['requeued']} stalled units requeued, "
                f"{maintenance['cleaned']} completed units cleaned"
            )
        except Exception as e:
            logger.error(f"Scheduled maintenance failed: {type(e).__name__}: {e}")

        return await self.orchestrator.run(config)

    async def run_periodic(
        self,
        interval: float,
        config: Optional[RunConfig] = None,
        stop_event: Optional[asyncio.Event] = None,
        max_runs: Optional[int] = None,
    ) -> list[RunSummary]:
        """
        Run scheduled runs every interval seconds until stop_event is set
        or max_runs runs have completed.

        Returns:
            Summaries of the runs performed
        """
        stop_event = stop_event or asyncio.Event()
        summaries = []

        while not stop_event.is_set():
            summary = await self.run_scheduled(config)
            summaries.append(summary)
            logger.info(f"Periodic run {summary.run_id} ended with status {summary.status}")

            if max_runs is not None and len(summaries) >= max_runs:
                break
            try:
                await asyncio.wait_for(stop_event.wait(), timeout=interval)
            except asyncio.TimeoutError:
                pass

        return summaries
