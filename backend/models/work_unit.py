from datetime import datetime, timezone
from typing import Dict, Any
from sqlalchemy import Integer, String, Text, DateTime, ForeignKey, Index
from sqlalchemy.orm import Mapped, mapped_column
from models import Base, JSONVariant


class WorkUnitStatus:
    """Work unit status constants."""
    WAITING = "waiting"
    ACTIVE = "active"
    COMPLETED = "completed"
    FAILED = "failed"  # dead set, manual replay only

    # Units that still need a worker
    UNFINISHED = [WAITING, ACTIVE]


class Priority:
    """Priority classes. Lower number is dispatched first."""
    HIGH = "high"
    NORMAL = "normal"
    LOW = "low"

    VALUES = {HIGH: 1, NORMAL: 5, LOW: 10}

    @classmethod
    def value_of(cls, priority_class: str) -> int:
        if priority_class not in cls.VALUES:
            raise ValueError(
                f"Unknown priority '{priority_class}'. "
                f"Available: {', '.join(cls.VALUES)}"
            )
        return cls.VALUES[priority_class]


class WorkUnit(Base):
    """
    Model for one scheduled scrape attempt of one company.

    Status flow: waiting → active → completed/failed
    On failure below max_attempts the unit goes back to waiting with
    available_at pushed out by the backoff delay.
    """
    __tablename__ = "work_units"
    __table_args__ = (
        Index("idx_work_units_dispatch", "status", "priority", "id"),
        Index("idx_work_units_run_status", "run_id", "status"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    run_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("scrape_runs.id", ondelete="SET NULL"),
        nullable=True
    )

    company_name: Mapped[str] = mapped_column(String(255), nullable=False)
    career_url: Mapped[str] = mapped_column(Text, nullable=False)
    listing_system: Mapped[str] = mapped_column(String(20), nullable=False, default="unknown")
    listing_system_id: Mapped[str] = mapped_column(String(255), nullable=True)

    priority: Mapped[int] = mapped_column(Integer, nullable=False, default=5)
    priority_class: Mapped[str] = mapped_column(String(10), nullable=False, default=Priority.NORMAL)

    status: Mapped[str] = mapped_column(String(20), nullable=False, default=WorkUnitStatus.WAITING)
    retry_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    max_attempts: Mapped[int] = mapped_column(Integer, nullable=False, default=3)

    available_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc)
    )
    claimed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=True)
    finished_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=True)

    last_error: Mapped[str] = mapped_column(Text, nullable=True)

    # UnitResult.to_dict() of the successful attempt
    result: Mapped[Dict[str, Any]] = mapped_column(JSONVariant, nullable=True)

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
        return (
            f"<WorkUnit(id={self.id}, company='{self.company_name}', "
            f"priority={self.priority}, status='{self.status}', retry_count={self.retry_count})>"
        )
