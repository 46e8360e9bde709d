"""
Company Catalog

The set of employers the scraper knows about, persisted in
discovered_companies and shared by every worker process.

Sources:
- seed(): curated known companies (manual, 1.0) and board-token patterns (0.7)
- discover(source_url): heuristic name extraction from a listing page
  (e.g. a Wikipedia "List of ..." article), confidence 0.5, tag unknown
- add_company(): anything else (admin, tests)

No-downgrade rule: an entry with higher confidence is never overwritten by a
lower-confidence candidate for the same normalized name.
"""

import html as html_lib
import logging
import re
from contextlib import contextmanager
from typing import Iterator, Optional
from urllib.parse import urlparse

import httpx
from sqlalchemy.orm import Session, sessionmaker

from ats.enums import ListingSystem
from ats.signatures import board_url
from db import company_service
from models.discovered_company import Provenance
from sourcing.known_companies import seed_companies
from strategies.base_strategy import DEFAULT_HEADERS
from utils.fetch_errors import describe_fetch_error
from workers.types import ClassificationResult, DiscoveredCompany

logger = logging.getLogger(__name__)

DISCOVERED_CONFIDENCE = 0.5
DEFAULT_DISCOVER_LIMIT = 50

# <a ... title="Acme Corp" ...>Acme Corp</a> where the link text looks like a proper name
_ANCHOR_TITLE = re.compile(
    r'<a\b[^>]*\btitle="([^"]+)"[^>]*>\s*([A-Z][\w&.\'-]*(?:\s+[A-Z0-9][\w&.\'-]*)*)\s*</a>'
)
_SLUG_STRIP = re.compile(r"[^a-z0-9]")


def company_slug(name: str) -> str:
    """'Acme Corp.' -> 'acmecorp'"""
    return _SLUG_STRIP.sub("", name.lower())


def extract_company_names(html: str, limit: int = DEFAULT_DISCOVER_LIMIT) -> list[str]:
    """
    Candidate employer names from anchor titles.

    Skips list pages ("List of ...") and namespaced links ("Category:...",
    "Wikipedia:..."). Order of first appearance, de-duplicated.
    """
    names: list[str] = []
    seen = set()
    for match in _ANCHOR_TITLE.finditer(html or ""):
        name = html_lib.unescape(match.group(1)).strip()
        if len(name) <= 2 or "List of" in name or ":" in name:
            continue
        key = company_service.normalize_company_name(name)
        if key in seen:
            continue
        seen.add(key)
        names.append(name)
        if len(names) >= limit:
            break
    return names


def provenance_for_source(source_url: str) -> str:
    host = (urlparse(source_url).hostname or "").lower()
    if host == "wikipedia.org" or host.endswith(".wikipedia.org"):
        return Provenance.WIKIPEDIA
    return Provenance.DISCOVERED


class CompanyCatalog:
    """
    Example:
        catalog = CompanyCatalog(session_factory, client=http_client)
        catalog.seed()
        companies = catalog.list_companies(limit=100)
    """

    def __init__(
        self,
        session_factory: sessionmaker,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 15.0,
    ):
        self.session_factory = session_factory
        self.client = client
        self.timeout = timeout

    @contextmanager
    def _session(self) -> Iterator[Session]:
        db = self.session_factory()
        try:
            yield db
        finally:
            db.close()

    def list_companies(
        self,
        limit: Optional[int] = None,
        listing_systems: Optional[list[str]] = None,
    ) -> list[DiscoveredCompany]:
        """Catalog entries, most confident first."""
        with self._session() as db:
            rows = company_service.list_companies(db, limit=limit, listing_systems=listing_systems)
            return [DiscoveredCompany.from_record(row) for row in rows]

    def get_company(self, name: str) -> Optional[DiscoveredCompany]:
        with self._session() as db:
            row = company_service.get_company(db, name)
            return DiscoveredCompany.from_record(row) if row else None

    def add_company(self, company: DiscoveredCompany) -> bool:
        """
        Upsert by normalized name.

        Returns:
            False if an existing higher-confidence entry was kept
        """
        with self._session() as db:
            return company_service.upsert_company(db, company)

    def retag(self, name: str, classification: ClassificationResult) -> bool:
        """Apply a classification to an existing entry if it is more confident."""
        if classification.listing_system == ListingSystem.UNKNOWN:
            return False
        with self._session() as db:
            return company_service.update_classification(
                db,
                name,
                classification.listing_system.value,
                classification.listing_system_id,
                classification.confidence,
            )

    def seed(self) -> int:
        """
        Load the curated known/pattern lists.

        Returns:
            Number of entries inserted or updated
        """
        changed = 0
        with self._session() as db:
            for company in seed_companies():
                if company_service.upsert_company(db, company):
                    changed += 1
        logger.info(f"Seeded company catalog: {changed} entries inserted or updated")
        return changed

    def stats(self) -> dict[str, int]:
        """Entry counts per provenance."""
        with self._session() as db:
            return company_service.count_by_provenance(db)

    async def fetch_source(self, source_url: str) -> str:
        if self.client is not None:
            response = await self.client.get(source_url, headers=DEFAULT_HEADERS, timeout=self.timeout)
        else:
            async with httpx.AsyncClient(follow_redirects=True) as client:
                response = await client.get(source_url, headers=DEFAULT_HEADERS, timeout=self.timeout)
        response.raise_for_status()
        return response.text

    async def discover(self, source_url: str, limit: int = DEFAULT_DISCOVER_LIMIT) -> list[DiscoveredCompany]:
        """
        Discover candidate employers from an external listing page.

        Candidates are added to the catalog (without downgrading existing
        entries) and returned.

        Returns:
            Candidates found on the page, or [] if the page could not be fetched
        """
        try:
            page = await self.fetch_source(source_url)
        except httpx.HTTPError as e:
            logger.warning(f"Failed to fetch discovery source {source_url}: {describe_fetch_error(e)}")
            return []

        provenance = provenance_for_source(source_url)
        candidates = []
        for name in extract_company_names(page, limit=limit):
            slug = company_slug(name)
            if not slug:
                continue
            candidates.append(DiscoveredCompany(
                name=name,
                career_url=board_url(ListingSystem.UNKNOWN, slug),
                listing_system=ListingSystem.UNKNOWN.value,
                provenance=provenance,
                confidence=DISCOVERED_CONFIDENCE,
            ))

        with self._session() as db:
            for company in candidates:
                company_service.upsert_company(db, company)

        logger.info(f"Discovered {len(candidates)} companies from {source_url}")
        return candidates
