"""
Database service functions for ingested job postings.

Provides the ingestion (dedup + persist) and expiry functions used by the
orchestrator and the scheduled worker.

Dedup contract:
- Uniqueness key is (external_id, source)
- Each job is handled in its own transaction so one bad record never
  aborts the rest of the batch
- The existing-row lookup is a locking read that skips rows locked by a
  concurrent transaction. If two workers ingest the same listing at once,
  one insert wins and the loser hits the unique constraint, rolls back
  and refreshes liveness instead. Never two inserts.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from models.job_posting import (
    JobPosting,
    JobRecordStatus,
    LivenessStatus,
    PLATFORM_SOURCE,
)
from workers.types import ExtractedJobData, IngestStats

logger = logging.getLogger(__name__)

DEFAULT_EXPIRY_DAYS = 60

# Static source reputation (0-100)
TRUST_SCORES = {
    "greenhouse": 95,
    "lever": 95,
    "ashby": 90,
    "smartrecruiters": 90,
    "workday": 90,
    "company-api": 95,
    "usajobs": 85,
    "remoteok": 75,
    "jsearch": 70,
    "themuse": 70,
    "arbeitnow": 65,
}
DEFAULT_TRUST_SCORE = 50


class IngestOutcome:
    """Per-job ingestion outcome."""
    INSERTED = "inserted"
    DUPLICATE = "duplicate"


def get_trust_score(source: str) -> int:
    """Lookup trust score for a source, defaulting to 50 for unknown sources."""
    return TRUST_SCORES.get((source or "").lower(), DEFAULT_TRUST_SCORE)


def find_existing_for_update(db: Session, job: ExtractedJobData) -> Optional[JobPosting]:
    """
    Locking read by (external_id, source).

    SKIP LOCKED: a row held by a concurrent transaction is reported as absent;
    the subsequent insert then collides on the unique constraint and is
    resolved as a duplicate.
    """
    stmt = (
        select(JobPosting)
        .where(JobPosting.external_id == job.external_id, JobPosting.source == job.source)
        .with_for_update(skip_locked=True)
    )
    return db.execute(stmt).scalar_one_or_none()


def refresh_liveness(row: JobPosting, now: datetime) -> None:
    """Duplicate sighting: only liveness fields change."""
    row.liveness_status = LivenessStatus.ACTIVE
    row.last_liveness_check = now
    row.updated_at = now


def _build_posting(job: ExtractedJobData, now: datetime, expiry_days: int) -> JobPosting:
    return JobPosting(
        external_id=job.external_id,
        source=job.source,
        title=job.title,
        company=job.company,
        location=job.location,
        remote_type=job.remote_type,
        salary_min=job.salary_min,
        salary_max=job.salary_max,
        salary_currency=job.salary_currency,
        description=job.description,
        requirements=list(job.requirements),
        skills=list(job.skills),
        benefits=list(job.benefits),
        application_url=job.application_url,
        confidence=job.confidence,
        trust_score=get_trust_score(job.source),
        liveness_status=LivenessStatus.UNKNOWN,
        expires_at=now + timedelta(days=expiry_days),
        status=JobRecordStatus.ACTIVE,
        created_at=now,
        updated_at=now,
    )


def ingest_job(
    db: Session,
    job: ExtractedJobData,
    expiry_days: int = DEFAULT_EXPIRY_DAYS,
    now: Optional[datetime] = None,
    # Dependency injection for testing
    _find_existing=find_existing_for_update,
) -> str:
    """
    Ingest a single job in its own transaction.

    Args:
        db: Database session
        job: Normalized job record
        expiry_days: Days until a new record expires
        now: Clock override (for testing)
        _find_existing: Locking read (for testing)

    Returns:
        IngestOutcome.INSERTED or IngestOutcome.DUPLICATE

    Raises:
        Exception: Any database error other than the unique-key race
    """
    now = now or datetime.now(timezone.utc)

    existing = _find_existing(db, job)
    if existing is not None:
        refresh_liveness(existing, now)
        db.commit()
        return IngestOutcome.DUPLICATE

    db.add(_build_posting(job, now, expiry_days))
    try:
        db.commit()
        return IngestOutcome.INSERTED
    except IntegrityError:
        # Lost the race on (external_id, source). Wait for the winner's lock
        # and refresh liveness on its row.
        db.rollback()
        winner = db.execute(
            select(JobPosting)
            .where(JobPosting.external_id == job.external_id, JobPosting.source == job.source)
            .with_for_update()
        ).scalar_one()
        refresh_liveness(winner, now)
        db.commit()
        return IngestOutcome.DUPLICATE


def ingest_jobs(
    db: Session,
    jobs: list[ExtractedJobData],
    expiry_days: int = DEFAULT_EXPIRY_DAYS,
    _ingest_job=ingest_job,
) -> IngestStats:
    """
    Ingest jobs one transaction at a time, counting outcomes.

    Args:
        db: Database session
        jobs: Normalized job records
        expiry_days: Days until new records expire
        _ingest_job: Per-job ingestion (for testing)

    Returns:
        IngestStats with inserted/duplicates/errors counts
    """
    stats = IngestStats()

    for job in jobs:
        try:
            outcome = _ingest_job(db, job, expiry_days=expiry_days)
        except Exception as e:
            db.rollback()
            stats.errors += 1
            logger.error(f"Failed to ingest {job.source}/{job.external_id}: {e}")
            continue

        if outcome == IngestOutcome.INSERTED:
            stats.inserted += 1
        else:
            stats.duplicates += 1

    logger.info(
        f"Ingested {len(jobs)} jobs: {stats.inserted} inserted, "
        f"{stats.duplicates} duplicates, {stats.errors} errors"
    )
    return stats


def expire_stale_jobs(db: Session, now: Optional[datetime] = None) -> int:
    """
    Close (never delete) scraped postings past their expiration.

    A row is closed if:
    - Its source is not the platform itself
    - expires_at is in the past
    - It is still active

    Args:
        db: Database session
        now: Clock override (for testing)

    Returns:
        Number of postings closed
    """
    now = now or datetime.now(timezone.utc)

    result = db.execute(
        update(JobPosting)
        .where(
            JobPosting.source != PLATFORM_SOURCE,
            JobPosting.expires_at < now,
            JobPosting.status == JobRecordStatus.ACTIVE,
        )
        .values(
            status=JobRecordStatus.CLOSED,
            liveness_status=LivenessStatus.STALE,
            updated_at=now,
        )
        .execution_options(synchronize_session=False)
    )
    db.commit()

    logger.info(f"Closed {result.rowcount} expired job postings")

    return result.rowcount


def count_active_jobs(db: Session, now: Optional[datetime] = None) -> int:
    """Rows visible to downstream matching: active and not yet expired."""
    now = now or datetime.now(timezone.utc)
    return db.query(JobPosting).filter(
        JobPosting.status == JobRecordStatus.ACTIVE,
        JobPosting.expires_at > now,
    ).count()
