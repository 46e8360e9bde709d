"""
Unit tests for listing-system strategies.

HTTP is served by httpx.MockTransport; no network access.

Run: python3 -m pytest strategies/__tests__/test_strategies.py -v
"""

import asyncio

import httpx
import pytest

from ats.enums import ListingSystem
from strategies.ashby import AshbyStrategy
from strategies.greenhouse import GreenhouseStrategy
from strategies.html_capture import HtmlCaptureStrategy, MAX_HTML_CHARS, clean_page_text
from strategies.json_ld import JsonLdStrategy, extract_job_postings
from strategies.lever import LeverStrategy
from strategies.smartrecruiters import SmartRecruitersStrategy
from strategies.registry import (
    STRATEGY_REGISTRY,
    get_fallback_strategy,
    get_strategy,
    list_listing_systems,
)
from workers.types import WorkUnitData


def make_unit(
    listing_system: str = "greenhouse",
    listing_system_id: str | None = "acme",
    career_url: str = "https://acme.com/careers",
) -> WorkUnitData:
    """Create a test WorkUnitData."""
    return WorkUnitData(
        company_name="Acme",
        career_url=career_url,
        listing_system=listing_system,
        listing_system_id=listing_system_id,
    )


def run_fetch(strategy_cls, unit, handler):
    """Run strategy.fetch(unit) against a MockTransport handler."""
    async def run():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            return await strategy_cls(client=client, timeout=5.0).fetch(unit)
    return asyncio.run(run())


class TestGreenhouseStrategy:

    def test_maps_postings(self):
        seen = []

        def handler(request):
            seen.append(str(request.url))
            return httpx.Response(200, json={
                "jobs": [
                    {
                        "id": 4001218008,
                        "title": "Software Engineer",
                        "location": {"name": "San Francisco, CA"},
                        "content": "&lt;p&gt;Build things&lt;/p&gt;",
                        "absolute_url": "https://boards.greenhouse.io/acme/jobs/4001218008",
                    },
                ],
            })

        jobs = run_fetch(GreenhouseStrategy, make_unit(), handler)

        assert seen == ["https://boards-api.greenhouse.io/v1/boards/acme/jobs?content=true"]
        assert len(jobs) == 1
        job = jobs[0]
        assert job.title == "Software Engineer"
        assert job.company == "Acme"
        assert job.location == "San Francisco, CA"
        assert job.external_id == "4001218008"
        assert job.source_url == "https://boards.greenhouse.io/acme/jobs/4001218008"

    def test_404_returns_empty(self):
        """Non-2xx is logged and yields no jobs rather than raising."""
        jobs = run_fetch(GreenhouseStrategy, make_unit(), lambda request: httpx.Response(404))
        assert jobs == []

    def test_missing_token_makes_no_request(self):
        def handler(request):
            raise AssertionError("should not request")

        jobs = run_fetch(GreenhouseStrategy, make_unit(listing_system_id=None), handler)
        assert jobs == []

    def test_connect_error_propagates(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(httpx.ConnectError):
            run_fetch(GreenhouseStrategy, make_unit(), handler)


class TestLeverStrategy:

    def test_maps_postings_with_lists(self):
        def handler(request):
            assert request.url.path == "/v0/postings/acme"
            return httpx.Response(200, json=[
                {
                    "id": "5ac21346",
                    "text": "Backend Engineer",
                    "categories": {"location": "Remote - US"},
                    "descriptionPlain": "We are looking for a backend engineer.",
                    "lists": [{"text": "Requirements", "content": "<li>5+ years Python</li>"}],
                    "hostedUrl": "https://jobs.lever.co/acme/5ac21346",
                    "workplaceType": "remote",
                },
            ])

        jobs = run_fetch(LeverStrategy, make_unit(listing_system="lever"), handler)

        assert len(jobs) == 1
        assert jobs[0].title == "Backend Engineer"
        assert jobs[0].external_id == "5ac21346"
        assert "Requirements: <li>5+ years Python</li>" in jobs[0].description
        assert "Workplace: remote" in jobs[0].description

    def test_non_list_body_raises(self):
        """An unexpected shape is an error for the orchestrator to record."""
        def handler(request):
            return httpx.Response(200, json={"ok": False})

        with pytest.raises(ValueError):
            run_fetch(LeverStrategy, make_unit(listing_system="lever"), handler)


class TestAshbyStrategy:

    def test_skips_unlisted_and_appends_compensation(self):
        def handler(request):
            return httpx.Response(200, json={
                "jobs": [
                    {
                        "id": "f1b9",
                        "title": "Product Engineer",
                        "location": "New York",
                        "descriptionPlain": "Ship product.",
                        "jobUrl": "https://jobs.ashbyhq.com/acme/f1b9",
                        "isRemote": True,
                        "compensation": {"compensationTierSummary": "$150K - $180K"},
                    },
                    {"id": "hidden", "title": "Secret", "isListed": False},
                ],
            })

        jobs = run_fetch(AshbyStrategy, make_unit(listing_system="ashby"), handler)

        assert [j.external_id for j in jobs] == ["f1b9"]
        assert "Compensation: $150K - $180K" in jobs[0].description
        assert "Workplace: Remote" in jobs[0].description


class TestHtmlCaptureStrategy:

    def test_truncates_markup(self):
        body = "<html>" + "x" * (MAX_HTML_CHARS * 2) + "</html>"

        def handler(request):
            return httpx.Response(200, text=body)

        jobs = run_fetch(HtmlCaptureStrategy, make_unit(listing_system="custom"), handler)

        assert len(jobs) == 1
        assert len(jobs[0].raw_html) == MAX_HTML_CHARS
        assert jobs[0].company == "Acme"
        assert jobs[0].source_url == "https://acme.com/careers"

    def test_blank_page_returns_empty(self):
        jobs = run_fetch(
            HtmlCaptureStrategy,
            make_unit(listing_system="custom"),
            lambda request: httpx.Response(200, text="   "),
        )
        assert jobs == []

    def test_server_error_returns_empty(self):
        jobs = run_fetch(
            HtmlCaptureStrategy,
            make_unit(listing_system="custom"),
            lambda request: httpx.Response(503),
        )
        assert jobs == []


class TestSmartRecruitersStrategy:

    def test_maps_postings(self):
        seen = []

        def handler(request):
            seen.append(str(request.url))
            return httpx.Response(200, json={
                "offset": 0,
                "limit": 100,
                "totalFound": 2,
                "content": [
                    {
                        "id": "744000012345678",
                        "name": "Data Engineer",
                        "location": {"city": "Austin", "region": "TX", "country": "us", "remote": False},
                        "applyUrl": "https://jobs.smartrecruiters.com/Acme/744000012345678-data-engineer",
                    },
                    {
                        "id": "744000087654321",
                        "name": "Support Specialist",
                        "location": {"remote": True},
                        "jobDescription": "Help customers.",
                    },
                ],
            })

        jobs = run_fetch(SmartRecruitersStrategy, make_unit(listing_system="smartrecruiters", listing_system_id="Acme"), handler)

        assert seen == ["https://api.smartrecruiters.com/v1/companies/Acme/postings?limit=100&offset=0"]
        assert [j.external_id for j in jobs] == ["744000012345678", "744000087654321"]
        assert jobs[0].title == "Data Engineer"
        assert jobs[0].location == "Austin, TX, us"
        assert jobs[0].source_url == "https://jobs.smartrecruiters.com/Acme/744000012345678-data-engineer"
        assert jobs[1].location == "Remote"
        assert jobs[1].description == "Help customers."
        assert jobs[1].source_url == "https://jobs.smartrecruiters.com/Acme/744000087654321"

    def test_follows_offset_pages(self):
        offsets = []

        def handler(request):
            offset = int(request.url.params["offset"])
            offsets.append(offset)
            count = 100 if offset == 0 else 5
            return httpx.Response(200, json={
                "totalFound": 105,
                "content": [{"id": f"{offset + i}", "name": "Engineer"} for i in range(count)],
            })

        jobs = run_fetch(SmartRecruitersStrategy, make_unit(listing_system="smartrecruiters"), handler)

        assert offsets == [0, 100]
        assert len(jobs) == 105

    def test_missing_company_id_makes_no_request(self):
        def handler(request):
            raise AssertionError("should not request")

        jobs = run_fetch(
            SmartRecruitersStrategy,
            make_unit(listing_system="smartrecruiters", listing_system_id=None),
            handler,
        )
        assert jobs == []


JOB_POSTING_PAGE = """
<html><head>
<script type="application/ld+json">
{"@context": "https://schema.org", "@graph": [
  {"@type": "Organization", "name": "Acme"},
  {"@type": "JobPosting", "title": "Backend Engineer", "description": "<p>Build APIs</p>",
   "identifier": {"@type": "PropertyValue", "value": "BE-12"},
   "hiringOrganization": {"@type": "Organization", "name": "Acme"},
   "jobLocation": {"@type": "Place", "address": {"addressLocality": "Berlin", "addressCountry": "DE"}},
   "jobLocationType": "TELECOMMUTE",
   "baseSalary": {"currency": "EUR", "value": {"minValue": 70000, "maxValue": 90000}}}
]}
</script>
<script type="application/ld+json">{not json</script>
</head><body><h1>Careers</h1></body></html>
"""


class TestJsonLdStrategy:

    def test_reads_job_postings_from_graph(self):
        postings = extract_job_postings(JOB_POSTING_PAGE)
        assert [p["title"] for p in postings] == ["Backend Engineer"]

    def test_maps_structured_record(self):
        jobs = run_fetch(
            JsonLdStrategy,
            make_unit(listing_system="custom"),
            lambda request: httpx.Response(200, text=JOB_POSTING_PAGE),
        )

        assert len(jobs) == 1
        job = jobs[0]
        assert job.raw_html is None
        assert job.external_id == "acme:BE-12"
        assert job.location == "Berlin, DE; Remote"
        assert job.structured["salaryMin"] == 70000
        assert job.structured["salaryCurrency"] == "EUR"

    def test_page_without_postings_returns_empty(self):
        jobs = run_fetch(
            JsonLdStrategy,
            make_unit(listing_system="custom"),
            lambda request: httpx.Response(200, text="<html><body>No jobs</body></html>"),
        )
        assert jobs == []


class TestCapturePageCleaning:

    def test_json_ld_postings_preferred_over_page_text(self):
        jobs = run_fetch(
            HtmlCaptureStrategy,
            make_unit(listing_system="custom"),
            lambda request: httpx.Response(200, text=JOB_POSTING_PAGE),
        )

        assert len(jobs) == 1
        assert jobs[0].structured is not None
        assert jobs[0].raw_html is None

    def test_listing_past_heavy_head_survives(self):
        page = (
            "<html><head><style>" + "x" * 4000 + "</style>"
            "<script>var tracking = '" + "y" * 4000 + "';</script></head>"
            "<body><nav>Home | About</nav><ul><li>Staff Engineer</li></ul></body></html>"
        )

        jobs = run_fetch(
            HtmlCaptureStrategy,
            make_unit(listing_system="custom"),
            lambda request: httpx.Response(200, text=page),
        )

        assert len(jobs) == 1
        assert "Staff Engineer" in jobs[0].raw_html
        assert "xxxx" not in jobs[0].raw_html
        assert "tracking" not in jobs[0].raw_html
        assert "Home | About" not in jobs[0].raw_html

    def test_links_become_absolute_urls(self):
        text = clean_page_text(
            '<p><a href="/jobs/42">Platform Engineer</a> &amp; more</p>',
            base_url="https://acme.com/careers",
        )
        assert text == "(https://acme.com/jobs/42) Platform Engineer & more"


class TestRegistry:

    def test_every_listing_system_has_a_strategy(self):
        assert set(STRATEGY_REGISTRY) == set(ListingSystem)

    def test_get_strategy_by_tag(self):
        assert isinstance(get_strategy("greenhouse"), GreenhouseStrategy)
        assert isinstance(get_strategy("LEVER"), LeverStrategy)
        assert isinstance(get_strategy(ListingSystem.WORKDAY), HtmlCaptureStrategy)

    def test_get_strategy_unknown_tag_raises(self):
        with pytest.raises(ValueError, match="not found in registry"):
            get_strategy("taleo")

    def test_fallback_is_html_capture(self):
        assert isinstance(get_fallback_strategy(), HtmlCaptureStrategy)

    def test_dedicated_strategies(self):
        assert sorted(list_listing_systems()) == ["ashby", "greenhouse", "lever", "smartrecruiters"]
