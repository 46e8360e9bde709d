"""
Listing-system signatures.

Each listing system is recognised by:
- domains: hosts that serve the board (exact host or subdomain match)
- selectors: characteristic markup fragments found in embedding pages (+1 each)
- api_patterns: API endpoint substrings found in page source (+2 each)
- keywords: brand keywords, case-insensitive (+1 each)

Board/API URL templates live here too so the catalog, the classifier and the
strategies agree on one shape per system.
"""

import re
from dataclasses import dataclass
from typing import Optional

from ats.enums import ListingSystem


@dataclass(frozen=True)
class Signature:
    domains: tuple[str, ...]
    selectors: tuple[str, ...]
    api_patterns: tuple[str, ...]
    keywords: tuple[str, ...]


SIGNATURES: dict[ListingSystem, Signature] = {
    ListingSystem.GREENHOUSE: Signature(
        domains=("greenhouse.io",),
        selectors=('id="board"', 'class="board"', "data-board", "greenhouse"),
        api_patterns=("/v1/boards/", "boards.greenhouse.io", "api.greenhouse.io", "greenhouse.io/embed"),
        keywords=("greenhouse", "gh-api", "gh_jid"),
    ),
    ListingSystem.LEVER: Signature(
        domains=("lever.co",),
        selectors=('class="lever', "data-portal-id", "posting-apply-button"),
        api_patterns=("api.lever.co", "/v0/postings/", "lever.co/embed"),
        keywords=("lever.co", "lever-jobs"),
    ),
    ListingSystem.ASHBY: Signature(
        domains=("ashbyhq.com",),
        selectors=('class="ashby', 'id="ashby_embed"'),
        api_patterns=("api.ashbyhq.com", "jobs.ashbyhq.com", "posting-api/job-board"),
        keywords=("ashby", "ashbyhq"),
    ),
    ListingSystem.SMARTRECRUITERS: Signature(
        domains=("smartrecruiters.com",),
        selectors=('class="smartrecruiters', "data-sr-company", "smartrecruiters-widget"),
        api_patterns=("api.smartrecruiters.com", "jobs.smartrecruiters.com", "careers.smartrecruiters.com"),
        keywords=("smartrecruiters",),
    ),
    ListingSystem.WORKDAY: Signature(
        domains=("myworkdayjobs.com", "workday.com"),
        selectors=("data-automation-id", 'class="workday'),
        api_patterns=("myworkdayjobs.com", "/wday/cxs/", "workday/msp"),
        keywords=("workday", "myworkday"),
    ),
    ListingSystem.BAMBOOHR: Signature(
        domains=("bamboohr.com", "bamboohr.co.uk"),
        selectors=('class="bamboohr', 'id="BambooHR"'),
        api_patterns=("bamboohr.com/jobs", "api.bamboohr.com", "/careers/list"),
        keywords=("bamboohr", "bamboo hr"),
    ),
}

DOMAIN_MATCH_CONFIDENCE = 0.95
CUSTOM_CONFIDENCE = 0.3
SCORE_FOR_FULL_CONFIDENCE = 5
MAX_EVIDENCE = 5

# Public board URLs, keyed by listing system, from a board token
BOARD_URL_TEMPLATES = {
    ListingSystem.GREENHOUSE: "https://boards.greenhouse.io/{token}",
    ListingSystem.LEVER: "https://jobs.lever.co/{token}",
    ListingSystem.ASHBY: "https://jobs.ashbyhq.com/{token}",
    ListingSystem.SMARTRECRUITERS: "https://jobs.smartrecruiters.com/{token}",
    ListingSystem.WORKDAY: "https://{token}.wd5.myworkdayjobs.com/{token}",
}
CUSTOM_CAREER_URL_TEMPLATE = "https://{token}.com/careers"

# Public read APIs (no auth)
API_ENDPOINT_TEMPLATES = {
    ListingSystem.GREENHOUSE: "https://boards-api.greenhouse.io/v1/boards/{token}/jobs?content=true",
    ListingSystem.LEVER: "https://api.lever.co/v0/postings/{token}?mode=json",
    ListingSystem.ASHBY: "https://api.ashbyhq.com/posting-api/job-board/{token}?includeCompensation=true",
    ListingSystem.SMARTRECRUITERS: "https://api.smartrecruiters.com/v1/companies/{token}/postings",
}

# Board tokens embedded in page source (iframes, embed scripts, apply links)
EMBEDDED_ID_PATTERNS = {
    ListingSystem.GREENHOUSE: [
        re.compile(r"greenhouse\.io/embed/job_board(?:/js)?\?for=([A-Za-z0-9_-]+)"),
        re.compile(r"boards-api\.greenhouse\.io/v1/boards/([A-Za-z0-9_-]+)"),
        re.compile(r"(?:job-)?boards\.greenhouse\.io/(?!embed\b)([A-Za-z0-9_-]+)"),
    ],
    ListingSystem.LEVER: [
        re.compile(r"api\.lever\.co/v0/postings/([A-Za-z0-9_-]+)"),
        re.compile(r"jobs\.lever\.co/([A-Za-z0-9_-]+)"),
    ],
    ListingSystem.ASHBY: [
        re.compile(r"posting-api/job-board/([A-Za-z0-9_.-]+)"),
        re.compile(r"jobs\.ashbyhq\.com/([A-Za-z0-9_.-]+)"),
    ],
    ListingSystem.SMARTRECRUITERS: [
        re.compile(r"api\.smartrecruiters\.com/v1/companies/([A-Za-z0-9_-]+)"),
        re.compile(r"(?:jobs|careers)\.smartrecruiters\.com/([A-Za-z0-9_-]+)"),
    ],
    ListingSystem.WORKDAY: [
        re.compile(r"([A-Za-z0-9-]+)\.wd\d+\.myworkdayjobs\.com"),
    ],
}


def board_url(listing_system: ListingSystem, token: str) -> str:
    """Career URL for a board token; unknown systems get the generic /careers guess."""
    template = BOARD_URL_TEMPLATES.get(listing_system, CUSTOM_CAREER_URL_TEMPLATE)
    return template.format(token=token)


def api_endpoint(listing_system: ListingSystem | str, token: str) -> Optional[str]:
    """Read-API URL for systems that expose one, else None."""
    template = API_ENDPOINT_TEMPLATES.get(ListingSystem.parse(listing_system))
    if template is None or not token:
        return None
    return template.format(token=token)
