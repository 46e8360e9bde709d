"""
Run service for scrape run bookkeeping.

Provides functions for creating runs, writing the final summary and the
cooldown lookup used by the on-demand trigger.
"""

import math
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.orm import Session

from models.scrape_run import ScrapeRun, RunStatus
from workers.types import RunSummary


def _as_utc(value: datetime) -> datetime:
    """SQLite hands back naive datetimes; everything we store is UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def get_run(db: Session, run_id: int) -> Optional[ScrapeRun]:
    """Fetch run by ID."""
    return db.query(ScrapeRun).filter(ScrapeRun.id == run_id).first()


def create_run(db: Session, trigger: str, now: Optional[datetime] = None) -> ScrapeRun:
    """Create a run in 'running' state. started_at anchors the cooldown window."""
    now = now or datetime.now(timezone.utc)
    run = ScrapeRun(
        trigger=trigger,
        status=RunStatus.RUNNING,
        created_at=now,
        started_at=now,
    )
    db.add(run)
    db.commit()
    db.refresh(run)
    return run


def save_run_summary(db: Session, run_id: int, summary: RunSummary) -> None:
    """
    Write the summary snapshot onto the run row.

    finished_at is only set once the summary status is terminal, so a run
    started with wait=False stays "running" with its queued count recorded.

    Args:
        db: Database session
        run_id: Run to update
        summary: Current summary
    """
    run = get_run(db, run_id)
    if run is None:
        return

    run.status = summary.status
    run.queued = summary.queued
    run.completed = summary.completed
    run.failed = summary.failed
    run.jobs_found = summary.jobs_found
    run.company_errors = summary.errors
    run.error_message = summary.error
    if summary.status in RunStatus.TERMINAL:
        run.finished_at = datetime.now(timezone.utc)
    db.commit()


def get_last_run(db: Session) -> Optional[ScrapeRun]:
    """Most recently started run, if any."""
    return db.query(ScrapeRun).filter(
        ScrapeRun.started_at.isnot(None)
    ).order_by(ScrapeRun.started_at.desc(), ScrapeRun.id.desc()).first()


def list_recent_runs(db: Session, limit: int = 20) -> list[ScrapeRun]:
    """Latest runs first."""
    return db.query(ScrapeRun).order_by(ScrapeRun.id.desc()).limit(limit).all()


def seconds_until_next_run(
    db: Session,
    cooldown_seconds: int,
    now: Optional[datetime] = None,
) -> int:
    """
    Remaining cooldown before another on-demand run may start.

    Returns:
        0 if a run may start now, otherwise whole seconds to wait (rounded up)
    """
    now = now or datetime.now(timezone.utc)
    last = get_last_run(db)
    if last is None:
        return 0

    elapsed = (now - _as_utc(last.started_at)).total_seconds()
    remaining = cooldown_seconds - elapsed
    if remaining <= 0:
        return 0
    return math.ceil(remaining)
