"""
Listing-System Classifier

Determines which listing system (ATS) serves a career page and whether a
structured read API is available.

Algorithm:
1. URL match: host is (a subdomain of) a known listing-system domain.
   Confidence 0.95; the board token is extracted where the URL encodes it,
   e.g. https://boards.greenhouse.io/acme → ("greenhouse", "acme").
2. HTML scoring: count signature hits per system in the page body
   (+1 selector, +2 API endpoint, +1 keyword). Highest score above zero
   wins with confidence min(score / 5, 1).
3. Nothing scores → "custom" with confidence 0.3.

A page that cannot be fetched yields ("unknown", 0) with the fetch error as
evidence. The orchestrator treats that as "fall back to the HTML/AI path".

Steps 1 and 2 are pure functions; only classify() touches the network.
"""

import asyncio
import logging
from typing import Callable, Awaitable, Optional
from urllib.parse import urlparse, parse_qs

import httpx

from ats.enums import ListingSystem
from ats.signatures import (
    SIGNATURES,
    EMBEDDED_ID_PATTERNS,
    DOMAIN_MATCH_CONFIDENCE,
    CUSTOM_CONFIDENCE,
    SCORE_FOR_FULL_CONFIDENCE,
    MAX_EVIDENCE,
)
from strategies.base_strategy import DEFAULT_HEADERS
from utils.fetch_errors import describe_fetch_error
from workers.types import ClassificationResult

logger = logging.getLogger(__name__)


def _parse_url(url: str):
    if "://" not in url:
        url = f"https://{url}"
    return urlparse(url)


def _host_matches(host: str, domain: str) -> bool:
    return host == domain or host.endswith(f".{domain}")


def extract_listing_system_id(listing_system: ListingSystem, url: str) -> Optional[str]:
    """
    Board token encoded in a listing-system URL, if any.

    Shapes:
    - greenhouse: boards.greenhouse.io/{token}, job-boards.greenhouse.io/{token},
      boards.greenhouse.io/embed/job_board?for={token},
      boards-api.greenhouse.io/v1/boards/{token}
    - lever: jobs.lever.co/{token}, api.lever.co/v0/postings/{token}
    - ashby: jobs.ashbyhq.com/{token}
    - smartrecruiters: jobs.smartrecruiters.com/{token}, careers.smartrecruiters.com/{token},
      api.smartrecruiters.com/v1/companies/{token}
    - workday: {token}.wd{N}.myworkdayjobs.com
    """
    parsed = _parse_url(url)
    host = (parsed.hostname or "").lower()
    segments = [s for s in parsed.path.split("/") if s]

    if listing_system == ListingSystem.GREENHOUSE:
        if host in ("boards.greenhouse.io", "job-boards.greenhouse.io"):
            if segments and segments[0] == "embed":
                return parse_qs(parsed.query).get("for", [None])[0]
            return segments[0] if segments else None
        if host == "boards-api.greenhouse.io" and len(segments) >= 3 and segments[1] == "boards":
            return segments[2]
        return None

    if listing_system == ListingSystem.LEVER:
        if host == "jobs.lever.co":
            return segments[0] if segments else None
        if host == "api.lever.co" and len(segments) >= 3 and segments[1] == "postings":
            return segments[2]
        return None

    if listing_system == ListingSystem.ASHBY:
        if host == "jobs.ashbyhq.com":
            return segments[0] if segments else None
        return None

    if listing_system == ListingSystem.SMARTRECRUITERS:
        if host in ("jobs.smartrecruiters.com", "careers.smartrecruiters.com"):
            return segments[0] if segments else None
        if host == "api.smartrecruiters.com" and len(segments) >= 3 and segments[1] == "companies":
            return segments[2]
        return None

    if listing_system == ListingSystem.WORKDAY:
        match = EMBEDDED_ID_PATTERNS[ListingSystem.WORKDAY][0].match(host)
        return match.group(1) if match else None

    return None


def classify_url(career_url: str) -> Optional[ClassificationResult]:
    """Step 1: domain signature match. None if the host is not a known listing system."""
    host = (_parse_url(career_url).hostname or "").lower()
    if not host:
        return None

    for listing_system, signature in SIGNATURES.items():
        for domain in signature.domains:
            if _host_matches(host, domain):
                return ClassificationResult(
                    listing_system=listing_system,
                    confidence=DOMAIN_MATCH_CONFIDENCE,
                    listing_system_id=extract_listing_system_id(listing_system, career_url),
                    evidence=[f"Domain matches {listing_system.value}: {domain}"],
                )
    return None


def find_embedded_id(listing_system: ListingSystem, html: str) -> Optional[str]:
    """Board token referenced from page source (embed scripts, apply links)."""
    for pattern in EMBEDDED_ID_PATTERNS.get(listing_system, []):
        match = pattern.search(html)
        if match:
            return match.group(1)
    return None


def score_html(html: str) -> ClassificationResult:
    """
    Step 2/3: score every listing system against the page body.

    Ties keep the first system in SIGNATURES order.
    """
    html_lower = html.lower()
    evidence: list[str] = []
    best_system: Optional[ListingSystem] = None
    best_score = 0

    for listing_system, signature in SIGNATURES.items():
        score = 0

        for selector in signature.selectors:
            if selector.lower() in html_lower:
                score += 1
                evidence.append(f"Found selector: {selector}")

        for pattern in signature.api_patterns:
            if pattern.lower() in html_lower:
                score += 2
                evidence.append(f"Found API pattern: {pattern}")

        for keyword in signature.keywords:
            if keyword.lower() in html_lower:
                score += 1
                evidence.append(f"Found keyword: {keyword}")

        if score > best_score:
            best_score = score
            best_system = listing_system

    if best_system is None:
        return ClassificationResult(
            listing_system=ListingSystem.CUSTOM,
            confidence=CUSTOM_CONFIDENCE,
            evidence=["No known listing system detected - likely custom career page"],
        )

    return ClassificationResult(
        listing_system=best_system,
        confidence=min(best_score / SCORE_FOR_FULL_CONFIDENCE, 1.0),
        listing_system_id=find_embedded_id(best_system, html),
        evidence=evidence[:MAX_EVIDENCE],
    )


class ListingSystemClassifier:
    """
    Classify career pages.

    Example:
        classifier = ListingSystemClassifier(client=http_client)
        result = await classifier.classify("https://boards.greenhouse.io/acme")
        # result.listing_system == ListingSystem.GREENHOUSE, result.listing_system_id == "acme"
    """

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 15.0,
        _fetch: Optional[Callable[[str], Awaitable[str]]] = None,
    ):
        """
        Args:
            client: Shared async HTTP client (optional)
            timeout: Hard timeout for the page fetch, in seconds
            _fetch: Page fetch override (for testing)
        """
        self.client = client
        self.timeout = timeout
        self._fetch = _fetch or self.fetch_page

    async def fetch_page(self, url: str) -> str:
        """GET the page with a browser user agent. Raises on non-2xx."""
        if self.client is not None:
            response = await self.client.get(url, headers=DEFAULT_HEADERS, timeout=self.timeout)
        else:
            async with httpx.AsyncClient(follow_redirects=True) as client:
                response = await client.get(url, headers=DEFAULT_HEADERS, timeout=self.timeout)
        response.raise_for_status()
        return response.text

    async def classify(self, career_url: str, html: Optional[str] = None) -> ClassificationResult:
        """
        Classify a career page.

        Args:
            career_url: Career page URL
            html: Page body if the caller already has it (skips the fetch)

        Returns:
            ClassificationResult (never raises on fetch failure)
        """
        by_url = classify_url(career_url)
        if by_url is not None:
            return by_url

        if html is None:
            try:
                html = await asyncio.wait_for(self._fetch(career_url), timeout=self.timeout)
            except (httpx.HTTPError, httpx.InvalidURL, asyncio.TimeoutError) as e:
                logger.warning(f"Could not fetch {career_url} for classification: {e!r}")
                return ClassificationResult(
                    listing_system=ListingSystem.UNKNOWN,
                    confidence=0.0,
                    evidence=[f"Could not fetch page content: {describe_fetch_error(e)}"],
                )

        return score_html(html)
