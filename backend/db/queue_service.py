"""
Database service functions for the durable priority work queue.

The work_units table is the queue. Every state transition is one short
transaction:

    enqueue        → waiting (available_at = now)
    claim          → active   (locking read, SKIP LOCKED, lowest priority number first, FIFO within)
    complete       → completed (result stored)
    fail           → waiting with available_at = now + base * 2^retry_count
                     or failed (dead set) once retry_count reaches max_attempts
    release        → waiting, attempt not counted (fatal pipeline stop)
    replay_failed  → dead set back to waiting with a fresh retry budget
    requeue_stalled→ active units whose worker vanished go back to waiting
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from sqlalchemy import and_, delete, func, select, update
from sqlalchemy.orm import Session

from models.work_unit import WorkUnit, WorkUnitStatus, Priority
from workers.types import QueueStats, WorkUnitData

logger = logging.getLogger(__name__)


def enqueue_units(
    db: Session,
    units: list[WorkUnitData],
    run_id: Optional[int] = None,
    max_attempts: int = 3,
    now: Optional[datetime] = None,
) -> list[int]:
    """
    Insert units in waiting state.

    Args:
        db: Database session
        units: Units to enqueue (priority_class high/normal/low)
        run_id: Owning run, if any
        max_attempts: Attempt ceiling before the unit moves to the dead set
        now: Clock override (for testing)

    Returns:
        IDs of the created work_units rows, in input order
    """
    if not units:
        return []

    now = now or datetime.now(timezone.utc)
    rows = [
        WorkUnit(
            run_id=run_id if run_id is not None else unit.run_id,
            company_name=unit.company_name,
            career_url=unit.career_url,
            listing_system=unit.listing_system,
            listing_system_id=unit.listing_system_id,
            priority=Priority.value_of(unit.priority_class),
            priority_class=unit.priority_class,
            status=WorkUnitStatus.WAITING,
            retry_count=0,
            max_attempts=max_attempts,
            available_at=now,
            created_at=now,
            updated_at=now,
        )
        for unit in units
    ]
    db.add_all(rows)
    db.commit()

    return [row.id for row in rows]


def claim_next_unit(db: Session, now: Optional[datetime] = None) -> Optional[WorkUnitData]:
    """
    Claim the next dispatchable unit for this worker.

    Ordering: ascending numeric priority, then insertion order.
    Rows locked by another claimer are skipped so each unit is owned by
    exactly one worker, across processes.

    Returns:
        The claimed unit (now active), or None if nothing is dispatchable
    """
    now = now or datetime.now(timezone.utc)

    stmt = (
        select(WorkUnit)
        .where(WorkUnit.status == WorkUnitStatus.WAITING, WorkUnit.available_at <= now)
        .order_by(WorkUnit.priority, WorkUnit.id)
        .limit(1)
        .with_for_update(skip_locked=True)
        .execution_options(populate_existing=True)
    )
    row = db.execute(stmt).scalar_one_or_none()
    if row is None:
        db.rollback()
        return None

    row.status = WorkUnitStatus.ACTIVE
    row.claimed_at = now
    row.updated_at = now
    db.commit()

    return WorkUnitData.from_record(row)


def complete_unit(db: Session, unit_id: int, result: dict, now: Optional[datetime] = None) -> None:
    """Mark unit completed and store its result."""
    now = now or datetime.now(timezone.utc)
    row = db.get(WorkUnit, unit_id, with_for_update=True, populate_existing=True)
    if row is None:
        return
    row.status = WorkUnitStatus.COMPLETED
    row.result = result
    row.last_error = None
    row.finished_at = now
    row.updated_at = now
    db.commit()


def fail_unit(
    db: Session,
    unit_id: int,
    error: str,
    backoff_base: float = 1.0,
    now: Optional[datetime] = None,
) -> str:
    """
    Record a failed attempt.

    Delay before the next attempt is backoff_base * 2^attempt, where attempt
    is the retry counter before this failure (1s, 2s, 4s, ... with the default
    base). Once the counter reaches max_attempts the unit moves to the dead set.

    Returns:
        New status (waiting or failed)
    """
    now = now or datetime.now(timezone.utc)
    row = db.get(WorkUnit, unit_id, with_for_update=True, populate_existing=True)
    if row is None:
        return WorkUnitStatus.FAILED

    delay = backoff_base * (2 ** row.retry_count)
    row.retry_count += 1
    row.last_error = error
    row.updated_at = now

    if row.retry_count >= row.max_attempts:
        row.status = WorkUnitStatus.FAILED
        row.finished_at = now
    else:
        row.status = WorkUnitStatus.WAITING
        row.available_at = now + timedelta(seconds=delay)

    status = row.status
    db.commit()
    return status


def release_unit(db: Session, unit_id: int, now: Optional[datetime] = None) -> None:
    """Put an active unit back without counting an attempt."""
    now = now or datetime.now(timezone.utc)
    db.execute(
        update(WorkUnit)
        .where(WorkUnit.id == unit_id, WorkUnit.status == WorkUnitStatus.ACTIVE)
        .values(status=WorkUnitStatus.WAITING, claimed_at=None, available_at=now, updated_at=now)
        .execution_options(synchronize_session=False)
    )
    db.commit()


def get_queue_stats(db: Session, now: Optional[datetime] = None) -> QueueStats:
    """
    Count units per state.

    delayed = waiting units still inside their backoff window; they are not
    counted as waiting.
    """
    now = now or datetime.now(timezone.utc)
    stats = QueueStats()

    rows = db.execute(
        select(WorkUnit.status, func.count(WorkUnit.id)).group_by(WorkUnit.status)
    ).all()
    for status, count in rows:
        if hasattr(stats, status):
            setattr(stats, status, count)

    stats.delayed = db.execute(
        select(func.count(WorkUnit.id)).where(
            WorkUnit.status == WorkUnitStatus.WAITING,
            WorkUnit.available_at > now,
        )
    ).scalar_one()
    stats.waiting -= stats.delayed

    return stats


def count_unfinished_for_run(db: Session, run_id: int) -> int:
    """Units of a run still waiting (including delayed) or active."""
    return db.execute(
        select(func.count(WorkUnit.id)).where(
            WorkUnit.run_id == run_id,
            WorkUnit.status.in_(WorkUnitStatus.UNFINISHED),
        )
    ).scalar_one()


def get_run_units(db: Session, run_id: int) -> list[WorkUnit]:
    """All units of a run, in enqueue order."""
    return db.query(WorkUnit).filter(WorkUnit.run_id == run_id).order_by(WorkUnit.id).all()


def replay_failed_units(db: Session, now: Optional[datetime] = None) -> int:
    """
    Manual replay of the dead set.

    Returns:
        Number of units moved back to waiting
    """
    now = now or datetime.now(timezone.utc)
    result = db.execute(
        update(WorkUnit)
        .where(WorkUnit.status == WorkUnitStatus.FAILED)
        .values(
            status=WorkUnitStatus.WAITING,
            retry_count=0,
            available_at=now,
            claimed_at=None,
            finished_at=None,
            updated_at=now,
        )
        .execution_options(synchronize_session=False)
    )
    db.commit()

    logger.info(f"Replayed {result.rowcount} failed work units")
    return result.rowcount


def requeue_stalled_units(
    db: Session,
    visibility_timeout: int,
    now: Optional[datetime] = None,
) -> int:
    """
    Return active units whose claim is older than visibility_timeout seconds.

    Covers workers that died mid-unit (Lambda timeout, process kill).
    The attempt is not counted.

    Returns:
        Number of units requeued
    """
    now = now or datetime.now(timezone.utc)
    cutoff = now - timedelta(seconds=visibility_timeout)
    result = db.execute(
        update(WorkUnit)
        .where(
            and_(
                WorkUnit.status == WorkUnitStatus.ACTIVE,
                WorkUnit.claimed_at < cutoff,
            )
        )
        .values(status=WorkUnitStatus.WAITING, claimed_at=None, available_at=now, updated_at=now)
        .execution_options(synchronize_session=False)
    )
    db.commit()

    if result.rowcount:
        logger.warning(f"Requeued {result.rowcount} stalled work units")
    return result.rowcount


def clean_finished_units(db: Session, older_than: timedelta, now: Optional[datetime] = None) -> int:
    """
    Delete completed units finished before now - older_than.

    Failed units are kept for manual replay.

    Returns:
        Number of rows deleted
    """
    now = now or datetime.now(timezone.utc)
    result = db.execute(
        delete(WorkUnit)
        .where(
            WorkUnit.status == WorkUnitStatus.COMPLETED,
            WorkUnit.finished_at < now - older_than,
        )
        .execution_options(synchronize_session=False)
    )
    db.commit()
    return result.rowcount
