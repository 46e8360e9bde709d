from datetime import datetime, timezone
from typing import List
from sqlalchemy import Float, Integer, String, Text, DateTime, UniqueConstraint, Index
from sqlalchemy.orm import Mapped, mapped_column
from models import Base, JSONVariant


class JobRecordStatus:
    """Job record status constants."""
    ACTIVE = "active"
    CLOSED = "closed"


class LivenessStatus:
    """Whether a posting still appears to be open."""
    UNKNOWN = "unknown"
    ACTIVE = "active"
    STALE = "stale"


# Jobs posted directly on the platform are never expired by the scraper
PLATFORM_SOURCE = "platform"

# Longer ids (tracking-laden apply URLs) are hashed before insert
EXTERNAL_ID_MAX_LENGTH = 512


class JobPosting(Base):
    """
    Model for ingested job postings.

    Unique constraint: (external_id, source)

    Downstream matching reads rows with status='active' and expires_at in the future.
    """
    __tablename__ = "job_postings"
    __table_args__ = (
        UniqueConstraint("external_id", "source", name="uq_job_postings_external_source"),
        Index("idx_job_postings_expiry", "status", "expires_at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    external_id: Mapped[str] = mapped_column(String(EXTERNAL_ID_MAX_LENGTH), nullable=False)
    source: Mapped[str] = mapped_column(String(50), nullable=False)

    title: Mapped[str] = mapped_column(Text, nullable=False)
    company: Mapped[str] = mapped_column(String(255), nullable=False)
    location: Mapped[str] = mapped_column(Text, nullable=True)
    remote_type: Mapped[str] = mapped_column(String(20), nullable=False, default="unknown")

    salary_min: Mapped[int] = mapped_column(Integer, nullable=True)
    salary_max: Mapped[int] = mapped_column(Integer, nullable=True)
    salary_currency: Mapped[str] = mapped_column(String(10), nullable=True)

    description: Mapped[str] = mapped_column(Text, nullable=True)
    requirements: Mapped[List[str]] = mapped_column(JSONVariant, nullable=False, default=list)
    skills: Mapped[List[str]] = mapped_column(JSONVariant, nullable=False, default=list)
    benefits: Mapped[List[str]] = mapped_column(JSONVariant, nullable=False, default=list)

    application_url: Mapped[str] = mapped_column(Text, nullable=True)
    confidence: Mapped[float] = mapped_column(Float, nullable=False, default=0.8)

    # Static source reputation (0-100), see db.jobs_service.TRUST_SCORES
    trust_score: Mapped[int] = mapped_column(Integer, nullable=False, default=50)

    liveness_status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=LivenessStatus.UNKNOWN
    )
    last_liveness_check: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=True)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=True)

    status: Mapped[str] = mapped_column(String(20), nullable=False, default=JobRecordStatus.ACTIVE)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc)
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc)
    )

    def __repr__(self) -> str:
        return f"<JobPosting(id={self.id}, source='{self.source}', external_id='{self.external_id}', status='{self.status}')>"
