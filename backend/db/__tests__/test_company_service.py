"""
Tests for the company catalog service.

Run: python3 -m pytest db/__tests__/test_company_service.py -v
"""

import pytest

from db.company_service import (
    count_by_provenance,
    get_company,
    list_companies,
    normalize_company_name,
    update_classification,
    upsert_company,
)
from models.discovered_company import CatalogCompany
from workers.types import DiscoveredCompany


def make_company(name="Acme", confidence=0.5, provenance="discovered", listing_system="unknown", **kwargs):
    return DiscoveredCompany(
        name=name,
        career_url=kwargs.get("career_url", "https://acme.com/careers"),
        listing_system=listing_system,
        listing_system_id=kwargs.get("listing_system_id"),
        provenance=provenance,
        confidence=confidence,
    )


def test_normalize_company_name():
    assert normalize_company_name("  Acme   Corp ") == "acme corp"


class TestUpsertCompany:

    def test_insert(self, db):
        assert upsert_company(db, make_company()) is True
        row = get_company(db, "ACME")
        assert row.name == "Acme"
        assert row.provenance == "discovered"

    def test_higher_confidence_replaces(self, db):
        upsert_company(db, make_company(confidence=0.5))
        changed = upsert_company(db, make_company(
            name="acme", confidence=1.0, provenance="manual",
            listing_system="greenhouse", listing_system_id="acme",
            career_url="https://boards.greenhouse.io/acme",
        ))

        assert changed is True
        assert db.query(CatalogCompany).count() == 1
        row = get_company(db, "Acme")
        assert row.listing_system == "greenhouse"
        assert row.confidence == 1.0

    def test_lower_confidence_never_downgrades(self, db):
        upsert_company(db, make_company(confidence=1.0, provenance="manual", listing_system="lever"))
        changed = upsert_company(db, make_company(confidence=0.5, provenance="discovered"))

        assert changed is False
        row = get_company(db, "Acme")
        assert row.provenance == "manual"
        assert row.listing_system == "lever"

    def test_empty_name_rejected(self, db):
        with pytest.raises(ValueError):
            upsert_company(db, make_company(name="   "))


class TestUpdateClassification:

    def test_retag_when_more_confident(self, db):
        upsert_company(db, make_company(confidence=0.5))

        assert update_classification(db, "Acme", "ashby", "acme", 0.95) is True
        row = get_company(db, "Acme")
        assert (row.listing_system, row.listing_system_id, row.confidence) == ("ashby", "acme", 0.95)

    def test_weaker_guess_ignored(self, db):
        upsert_company(db, make_company(confidence=1.0, listing_system="greenhouse"))

        assert update_classification(db, "Acme", "custom", None, 0.3) is False
        assert get_company(db, "Acme").listing_system == "greenhouse"

    def test_missing_company(self, db):
        assert update_classification(db, "Nobody", "lever", "x", 0.9) is False


class TestListCompanies:

    def test_order_filter_limit(self, db):
        upsert_company(db, make_company(name="Low", confidence=0.5))
        upsert_company(db, make_company(name="High", confidence=1.0, listing_system="lever"))
        upsert_company(db, make_company(name="Mid", confidence=0.7, listing_system="greenhouse"))

        assert [c.name for c in list_companies(db)] == ["High", "Mid", "Low"]
        assert [c.name for c in list_companies(db, limit=1)] == ["High"]
        assert [c.name for c in list_companies(db, listing_systems=["greenhouse"])] == ["Mid"]

    def test_count_by_provenance(self, db):
        upsert_company(db, make_company(name="A", provenance="manual", confidence=1.0))
        upsert_company(db, make_company(name="B", provenance="manual", confidence=1.0))
        upsert_company(db, make_company(name="C", provenance="pattern", confidence=0.7))

        assert count_by_provenance(db) == {"manual": 2, "pattern": 1}
