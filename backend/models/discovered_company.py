from datetime import datetime, timezone
from sqlalchemy import Float, Integer, String, Text, DateTime
from sqlalchemy.orm import Mapped, mapped_column
from models import Base


class Provenance:
    """How a catalog entry was found."""
    MANUAL = "manual"
    PATTERN = "pattern"
    WIKIPEDIA = "wikipedia"
    DISCOVERED = "discovered"


class CatalogCompany(Base):
    """
    Model for the company catalog.

    Unique key: name_key (lowercased, whitespace-collapsed name).
    Rows are never deleted; listing_system is re-tagged as classification improves.
    """
    __tablename__ = "discovered_companies"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    name_key: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    career_url: Mapped[str] = mapped_column(Text, nullable=False)

    listing_system: Mapped[str] = mapped_column(String(20), nullable=False, default="unknown")
    listing_system_id: Mapped[str] = mapped_column(String(255), nullable=True)

    provenance: Mapped[str] = mapped_column(String(20), nullable=False, default=Provenance.MANUAL)
    confidence: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)

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
        return f"<CatalogCompany(id={self.id}, name='{self.name}', listing_system='{self.listing_system}')>"
