"""
Tests for the company catalog and its seed lists.

Run: python3 -m pytest sourcing/__tests__/test_catalog.py -v
"""

import asyncio

import httpx

from ats.enums import ListingSystem
from sourcing.catalog import (
    CompanyCatalog,
    DISCOVERED_CONFIDENCE,
    company_slug,
    extract_company_names,
    provenance_for_source,
)
from sourcing.known_companies import KNOWN_COMPANIES, PATTERN_COMPANIES, seed_companies
from workers.types import ClassificationResult, DiscoveredCompany

LISTING_PAGE = """
<ul>
  <li><a href="/wiki/Acme_Corporation" title="Acme Corporation">Acme Corporation</a></li>
  <li><a href="/wiki/Globex" title="Globex">Globex</a></li>
  <li><a href="/wiki/List_of_companies" title="List of companies">List Of Companies</a></li>
  <li><a href="/wiki/Category:Tech" title="Category:Tech">Category</a></li>
  <li><a href="/wiki/Globex" title="Globex">Globex</a></li>
  <li><a href="/wiki/IO" title="IO">IO</a></li>
  <li><a href="/wiki/lowercase" title="lowercase">lowercase link</a></li>
  <li><a href="/wiki/Stripe" title="Stripe">Stripe</a></li>
</ul>
"""


def run_discover(catalog_factory, handler, url="https://en.wikipedia.org/wiki/List_of_companies"):
    async def run():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            return await catalog_factory(client).discover(url)
    return asyncio.run(run())


class TestExtractCompanyNames:

    def test_filters_and_dedups(self):
        assert extract_company_names(LISTING_PAGE) == ["Acme Corporation", "Globex", "Stripe"]

    def test_limit(self):
        assert extract_company_names(LISTING_PAGE, limit=1) == ["Acme Corporation"]

    def test_empty(self):
        assert extract_company_names("") == []


def test_company_slug():
    assert company_slug("Acme Corp.") == "acmecorp"
    assert company_slug("AT&T") == "att"


def test_provenance_for_source():
    assert provenance_for_source("https://en.wikipedia.org/wiki/List") == "wikipedia"
    assert provenance_for_source("https://example.com/companies") == "discovered"


class TestSeedLists:

    def test_known_companies_are_manual(self):
        assert all(c.provenance == "manual" and c.confidence == 1.0 for c in KNOWN_COMPANIES)
        assert all(c.listing_system_id for c in KNOWN_COMPANIES)

    def test_pattern_companies(self):
        assert all(c.provenance == "pattern" and c.confidence == 0.7 for c in PATTERN_COMPANIES)

    def test_seed_companies_unique_by_name(self):
        names = [c.name.lower() for c in seed_companies()]
        assert len(names) == len(set(names))


class TestCompanyCatalog:

    def test_seed_is_idempotent(self, session_factory):
        catalog = CompanyCatalog(session_factory)

        catalog.seed()
        catalog.seed()

        assert len(catalog.list_companies()) == len(seed_companies())

    def test_add_never_downgrades(self, session_factory):
        catalog = CompanyCatalog(session_factory)
        catalog.add_company(DiscoveredCompany(
            name="Acme", career_url="https://jobs.lever.co/acme", listing_system="lever",
            listing_system_id="acme", provenance="manual", confidence=1.0,
        ))

        kept = catalog.add_company(DiscoveredCompany(name="acme", career_url="https://acme.com/careers"))

        assert kept is False
        assert catalog.get_company("ACME").listing_system == "lever"

    def test_retag_ignores_unknown(self, session_factory):
        catalog = CompanyCatalog(session_factory)
        catalog.add_company(DiscoveredCompany(name="Acme", career_url="https://acme.com/careers"))

        assert catalog.retag("Acme", ClassificationResult(ListingSystem.UNKNOWN, 0.0)) is False
        assert catalog.retag("Acme", ClassificationResult(ListingSystem.CUSTOM, 0.3)) is True
        assert catalog.get_company("Acme").listing_system == "custom"

    def test_discover_adds_candidates(self, session_factory):
        catalog_holder = {}

        def factory(client):
            catalog_holder["catalog"] = CompanyCatalog(session_factory, client=client)
            catalog_holder["catalog"].add_company(DiscoveredCompany(
                name="Stripe", career_url="https://stripe.com/jobs", listing_system="greenhouse",
                listing_system_id="stripe", provenance="manual", confidence=1.0,
            ))
            return catalog_holder["catalog"]

        found = run_discover(factory, lambda request: httpx.Response(200, text=LISTING_PAGE))

        assert [c.name for c in found] == ["Acme Corporation", "Globex", "Stripe"]
        acme = found[0]
        assert acme.career_url == "https://acmecorporation.com/careers"
        assert acme.provenance == "wikipedia"
        assert acme.confidence == DISCOVERED_CONFIDENCE
        assert acme.listing_system == "unknown"

        catalog = catalog_holder["catalog"]
        assert catalog.stats() == {"manual": 1, "wikipedia": 2}
        assert catalog.get_company("Stripe").listing_system == "greenhouse"

    def test_discover_fetch_failure_returns_empty(self, session_factory):
        found = run_discover(
            lambda client: CompanyCatalog(session_factory, client=client),
            lambda request: httpx.Response(503),
        )

        assert found == []
        assert CompanyCatalog(session_factory).list_companies() == []
