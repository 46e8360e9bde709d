"""
Unit tests for the listing-system classifier.

URL matching and HTML scoring are pure; classify() is exercised with an
injected fetch or an httpx.MockTransport (no network).

Run: python3 -m pytest ats/__tests__/test_classifier.py -v
"""

import asyncio

import httpx
import pytest

from ats.classifier import (
    ListingSystemClassifier,
    classify_url,
    extract_listing_system_id,
    score_html,
)
from ats.enums import ListingSystem, is_api_available
from ats.signatures import api_endpoint, board_url
from workers.types import ClassificationResult


class TestClassifyUrl:
    """Step 1: domain signature match."""

    def test_greenhouse_board_url(self):
        """Board host → greenhouse, token from first path segment, high confidence."""
        result = classify_url("https://boards.greenhouse.io/acme")

        assert result.listing_system == ListingSystem.GREENHOUSE
        assert result.listing_system_id == "acme"
        assert result.confidence >= 0.9
        assert result.api_available is True
        assert result.evidence == ["Domain matches greenhouse: greenhouse.io"]

    def test_greenhouse_embed_url(self):
        result = classify_url("https://boards.greenhouse.io/embed/job_board?for=acme")
        assert result.listing_system_id == "acme"

    def test_lever_url(self):
        result = classify_url("https://jobs.lever.co/acme/")
        assert result.listing_system == ListingSystem.LEVER
        assert result.listing_system_id == "acme"

    def test_ashby_url(self):
        result = classify_url("jobs.ashbyhq.com/acme")
        assert result.listing_system == ListingSystem.ASHBY
        assert result.listing_system_id == "acme"

    def test_smartrecruiters_url(self):
        result = classify_url("https://jobs.smartrecruiters.com/Acme/744000012345678-data-engineer")
        assert result.listing_system == ListingSystem.SMARTRECRUITERS
        assert result.listing_system_id == "Acme"
        assert result.api_available is True

    def test_workday_subdomain(self):
        """Workday token is the subdomain; no public API."""
        result = classify_url("https://acme.wd5.myworkdayjobs.com/External")

        assert result.listing_system == ListingSystem.WORKDAY
        assert result.listing_system_id == "acme"
        assert result.api_available is False

    def test_lookalike_host_not_matched(self):
        """notgreenhouse.io is not a subdomain of greenhouse.io."""
        assert classify_url("https://notgreenhouse.io/acme") is None

    def test_unknown_host(self):
        assert classify_url("https://acme.com/careers") is None


class TestExtractListingSystemId:

    def test_greenhouse_api_url(self):
        url = "https://boards-api.greenhouse.io/v1/boards/acme/jobs"
        assert extract_listing_system_id(ListingSystem.GREENHOUSE, url) == "acme"

    def test_lever_api_url(self):
        url = "https://api.lever.co/v0/postings/acme?mode=json"
        assert extract_listing_system_id(ListingSystem.LEVER, url) == "acme"

    def test_smartrecruiters_api_url(self):
        url = "https://api.smartrecruiters.com/v1/companies/Acme/postings"
        assert extract_listing_system_id(ListingSystem.SMARTRECRUITERS, url) == "Acme"

    def test_no_token(self):
        assert extract_listing_system_id(ListingSystem.GREENHOUSE, "https://boards.greenhouse.io/") is None


class TestScoreHtml:
    """Step 2/3: HTML signature scoring."""

    def test_greenhouse_embed_page(self):
        html = """
        <html><body>
          <div id="grnhse_app"></div>
          <script src="https://boards.greenhouse.io/embed/job_board/js?for=acme"></script>
        </body></html>
        """
        result = score_html(html)

        assert result.listing_system == ListingSystem.GREENHOUSE
        assert result.listing_system_id == "acme"
        assert 0.0 < result.confidence <= 1.0
        assert len(result.evidence) <= 5

    def test_lever_page_scores_lever(self):
        html = '<a class="lever-apply" href="https://jobs.lever.co/acme/123">Apply</a>'
        result = score_html(html)

        assert result.listing_system == ListingSystem.LEVER
        assert result.listing_system_id == "acme"

    def test_confidence_capped_at_one(self):
        """Score above 5 still yields confidence 1.0."""
        html = (
            'greenhouse id="board" data-board boards.greenhouse.io api.greenhouse.io '
            '/v1/boards/acme gh_jid gh-api'
        )
        result = score_html(html)

        assert result.listing_system == ListingSystem.GREENHOUSE
        assert result.confidence == 1.0

    def test_nothing_matches_is_custom(self):
        result = score_html("<html><body><h1>Careers at Acme</h1></body></html>")

        assert result.listing_system == ListingSystem.CUSTOM
        assert result.confidence == 0.3
        assert result.listing_system_id is None
        assert "custom" in result.evidence[0]

    def test_case_insensitive(self):
        result = score_html("Powered by ASHBY")
        assert result.listing_system == ListingSystem.ASHBY


class TestClassify:
    """classify() with fetch."""

    def test_url_match_skips_fetch(self):
        async def fail_fetch(url):
            raise AssertionError("should not fetch")

        classifier = ListingSystemClassifier(_fetch=fail_fetch)
        result = asyncio.run(classifier.classify("https://boards.greenhouse.io/acme"))

        assert result.listing_system == ListingSystem.GREENHOUSE

    def test_html_given_skips_fetch(self):
        async def fail_fetch(url):
            raise AssertionError("should not fetch")

        classifier = ListingSystemClassifier(_fetch=fail_fetch)
        result = asyncio.run(classifier.classify("https://acme.com/careers", html="<p>jobs</p>"))

        assert result.listing_system == ListingSystem.CUSTOM

    def test_fetch_failure_is_unknown_with_zero_confidence(self):
        async def broken_fetch(url):
            raise httpx.ConnectError("connection refused")

        classifier = ListingSystemClassifier(_fetch=broken_fetch)
        result = asyncio.run(classifier.classify("https://acme.com/careers"))

        assert result.listing_system == ListingSystem.UNKNOWN
        assert result.confidence == 0.0
        assert result.evidence[0].startswith("Could not fetch page content")

    def test_invalid_url_is_unknown(self):
        async def bad_url_fetch(url):
            raise httpx.InvalidURL("Invalid non-printable ASCII character in URL")

        classifier = ListingSystemClassifier(_fetch=bad_url_fetch)
        result = asyncio.run(classifier.classify("https://acme.com/car\teers"))

        assert result.listing_system == ListingSystem.UNKNOWN
        assert result.confidence == 0.0
        assert result.evidence == ["Could not fetch page content: Invalid career page URL"]

    def test_fetch_timeout_is_unknown(self):
        async def slow_fetch(url):
            await asyncio.sleep(1)
            return "<html></html>"

        classifier = ListingSystemClassifier(timeout=0.01, _fetch=slow_fetch)
        result = asyncio.run(classifier.classify("https://acme.com/careers"))

        assert result.listing_system == ListingSystem.UNKNOWN
        assert "timed out" in result.evidence[0]

    def test_non_2xx_counts_as_fetch_failure(self):
        """404 from the career page → unknown, 0."""
        def handler(request):
            return httpx.Response(404, text="not found")

        async def run():
            async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
                classifier = ListingSystemClassifier(client=client)
                return await classifier.classify("https://acme.com/careers")

        result = asyncio.run(run())

        assert result.listing_system == ListingSystem.UNKNOWN
        assert result.confidence == 0.0
        assert "not found" in result.evidence[0]

    def test_fetched_page_is_scored(self):
        def handler(request):
            assert "Mozilla" in request.headers["user-agent"]
            return httpx.Response(200, text='<iframe src="https://jobs.ashbyhq.com/acme/embed"></iframe>')

        async def run():
            async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
                classifier = ListingSystemClassifier(client=client)
                return await classifier.classify("https://acme.com/careers")

        result = asyncio.run(run())

        assert result.listing_system == ListingSystem.ASHBY
        assert result.listing_system_id == "acme"


class TestClassificationResult:

    @pytest.mark.parametrize("raw,expected", [(-0.5, 0.0), (0.42, 0.42), (7, 1.0)])
    def test_confidence_clamped(self, raw, expected):
        result = ClassificationResult(listing_system="lever", confidence=raw)
        assert result.confidence == expected

    def test_unrecognised_tag_is_unknown(self):
        result = ClassificationResult(listing_system="taleo", confidence=0.5)
        assert result.listing_system == ListingSystem.UNKNOWN


class TestTemplates:

    def test_api_available_set(self):
        assert {s for s in ListingSystem if is_api_available(s)} == {
            ListingSystem.GREENHOUSE, ListingSystem.LEVER, ListingSystem.ASHBY, ListingSystem.SMARTRECRUITERS,
        }

    def test_api_endpoint(self):
        assert api_endpoint("greenhouse", "acme") == (
            "https://boards-api.greenhouse.io/v1/boards/acme/jobs?content=true"
        )
        assert api_endpoint(ListingSystem.WORKDAY, "acme") is None
        assert api_endpoint(ListingSystem.LEVER, "") is None

    def test_board_url_custom_fallback(self):
        assert board_url(ListingSystem.UNKNOWN, "acme") == "https://acme.com/careers"
        assert board_url(ListingSystem.LEVER, "acme") == "https://jobs.lever.co/acme"

    def test_smartrecruiters_templates(self):
        assert api_endpoint("smartrecruiters", "Acme") == (
            "https://api.smartrecruiters.com/v1/companies/Acme/postings"
        )
        assert board_url(ListingSystem.SMARTRECRUITERS, "Acme") == "https://jobs.smartrecruiters.com/Acme"
