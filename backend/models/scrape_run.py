from datetime import datetime, timezone
from typing import Dict, Any
from sqlalchemy import Integer, String, Text, DateTime, Index
from sqlalchemy.orm import Mapped, mapped_column
from models import Base, JSONVariant


class RunStatus:
    """Scrape run status constants."""
    PENDING = "pending"
    RUNNING = "running"
    FINISHED = "finished"
    ERROR = "error"

    # Terminal states - run is no longer active
    TERMINAL = [FINISHED, ERROR]


class RunTrigger:
    """What started a run."""
    SCHEDULED = "scheduled"
    MANUAL = "manual"


class ScrapeRun(Base):
    """
    Model for tracking orchestrated scrape runs.

    Status flow: pending → running → finished/error

    The most recent started_at drives the on-demand trigger cooldown.
    """
    __tablename__ = "scrape_runs"
    __table_args__ = (
        Index("idx_scrape_runs_started_at", "started_at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    trigger: Mapped[str] = mapped_column(String(20), nullable=False, default=RunTrigger.SCHEDULED)

    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=RunStatus.PENDING
    )

    # Snapshot fields (written on completion)
    queued: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    completed: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    failed: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    jobs_found: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc)
    )

    started_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=True
    )

    finished_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=True
    )

    error_message: Mapped[str] = mapped_column(Text, nullable=True)

    # Per-company error strings
    # Format: {"Stripe": ["GreenhouseStrategy failed: Request timed out"], ...}
    company_errors: Mapped[Dict[str, Any]] = mapped_column(JSONVariant, nullable=False, default=dict)

    def __repr__(self) -> str:
        return f"<ScrapeRun(id={self.id}, trigger='{self.trigger}', status='{self.status}')>"
