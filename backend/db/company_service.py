"""
Database service functions for the company catalog.

Upserts never downgrade: an existing entry with higher confidence is kept
as-is when a lower-confidence candidate for the same company arrives.
"""

import logging
import re
from typing import Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from models.discovered_company import CatalogCompany
from workers.types import DiscoveredCompany

logger = logging.getLogger(__name__)


def normalize_company_name(name: str) -> str:
    """Catalog key: lowercase, trimmed, inner whitespace collapsed."""
    return re.sub(r"\s+", " ", name or "").strip().lower()


def get_company(db: Session, name: str) -> Optional[CatalogCompany]:
    """Fetch catalog entry by (unnormalized) name."""
    return db.query(CatalogCompany).filter(
        CatalogCompany.name_key == normalize_company_name(name)
    ).first()


def list_companies(
    db: Session,
    limit: Optional[int] = None,
    listing_systems: Optional[list[str]] = None,
) -> list[CatalogCompany]:
    """
    List catalog entries, most confident first.

    Args:
        db: Database session
        limit: Optional cap on number of entries
        listing_systems: Optional filter on listing_system tag

    Returns:
        List of CatalogCompany rows
    """
    query = db.query(CatalogCompany)
    if listing_systems:
        query = query.filter(CatalogCompany.listing_system.in_(listing_systems))
    query = query.order_by(CatalogCompany.confidence.desc(), CatalogCompany.name_key)
    if limit is not None:
        query = query.limit(limit)
    return query.all()


def upsert_company(db: Session, company: DiscoveredCompany) -> bool:
    """
    Insert or update a catalog entry by normalized name.

    Returns:
        True if the row was inserted or updated, False if an existing
        higher-confidence entry was kept.
    """
    name_key = normalize_company_name(company.name)
    if not name_key:
        raise ValueError("Company name must not be empty")

    existing = db.query(CatalogCompany).filter(
        CatalogCompany.name_key == name_key
    ).with_for_update().first()

    if existing is None:
        db.add(CatalogCompany(
            name_key=name_key,
            name=company.name.strip(),
            career_url=company.career_url,
            listing_system=company.listing_system,
            listing_system_id=company.listing_system_id,
            provenance=company.provenance,
            confidence=company.confidence,
        ))
        try:
            db.commit()
        except IntegrityError:
            # Concurrent insert of the same name won; compare against that row instead
            db.rollback()
            return upsert_company(db, company)
        return True

    if existing.confidence > company.confidence:
        db.rollback()  # release row lock
        return False

    existing.career_url = company.career_url
    existing.listing_system = company.listing_system
    existing.listing_system_id = company.listing_system_id
    existing.provenance = company.provenance
    existing.confidence = company.confidence
    db.commit()
    return True


def update_classification(
    db: Session,
    name: str,
    listing_system: str,
    listing_system_id: Optional[str],
    confidence: float,
) -> bool:
    """
    Re-tag an existing entry after classification.

    Only applied when the new confidence is higher than the stored one, so a
    weak HTML guess never replaces a curated tag.

    Returns:
        True if the entry was re-tagged
    """
    existing = db.query(CatalogCompany).filter(
        CatalogCompany.name_key == normalize_company_name(name)
    ).with_for_update().first()

    if existing is None or confidence <= existing.confidence:
        db.rollback()
        return False

    existing.listing_system = listing_system
    if listing_system_id:
        existing.listing_system_id = listing_system_id
    existing.confidence = confidence
    db.commit()

    logger.info(f"Re-tagged {existing.name} as {listing_system} (confidence={confidence:.2f})")
    return True


def count_by_provenance(db: Session) -> dict[str, int]:
    """Catalog size per provenance tag."""
    rows = db.query(
        CatalogCompany.provenance, func.count(CatalogCompany.id)
    ).group_by(CatalogCompany.provenance).all()
    return {provenance: count for provenance, count in rows}
