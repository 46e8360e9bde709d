"""
JSON-LD JobPosting strategy

Many career pages (and most job-board CMSs) embed schema.org JobPosting
objects for search engines:

<script type="application/ld+json">
{
  "@context": "https://schema.org",
  "@type": "JobPosting",
  "title": "Backend Engineer",
  "description": "<p>Build APIs</p>",
  "identifier": {"@type": "PropertyValue", "value": "BE-12"},
  "hiringOrganization": {"@type": "Organization", "name": "Acme"},
  "jobLocation": {"@type": "Place", "address": {"addressLocality": "Berlin", "addressCountry": "DE"}},
  "jobLocationType": "TELECOMMUTE",
  "baseSalary": {"currency": "EUR", "value": {"minValue": 70000, "maxValue": 90000, "unitText": "YEAR"}},
  "url": "https://acme.com/jobs/be-12"
}
</script>

Blocks may hold a single object, a list, or an @graph. Each JobPosting
becomes one RawJobData with a ready-made record in `structured`, which the
extraction pipeline normalizes without a model call.
"""

import json
import logging
import re
from typing import Any, List, Optional

from ats.enums import ListingSystem
from strategies.base_strategy import BaseStrategy
from workers.types import RawJobData, WorkUnitData

logger = logging.getLogger(__name__)

JSON_LD_PATTERN = re.compile(
    r'<script[^>]*type=["\']application/ld\+json["\'][^>]*>(.*?)</script>',
    re.DOTALL | re.IGNORECASE,
)


def _iter_nodes(data: Any):
    if isinstance(data, list):
        for item in data:
            yield from _iter_nodes(item)
    elif isinstance(data, dict):
        yield data
        if "@graph" in data:
            yield from _iter_nodes(data["@graph"])


def _is_job_posting(node: dict) -> bool:
    node_type = node.get("@type")
    if isinstance(node_type, list):
        return "JobPosting" in node_type
    return node_type == "JobPosting"


def extract_job_postings(page: str) -> List[dict]:
    """All JobPosting objects in the page's JSON-LD blocks. Unparseable blocks are skipped."""
    postings = []
    for match in JSON_LD_PATTERN.finditer(page or ""):
        try:
            data = json.loads(match.group(1).strip())
        except json.JSONDecodeError as e:
            logger.warning(f"Skipping unparseable JSON-LD block: {e.msg}")
            continue
        postings.extend(node for node in _iter_nodes(data) if _is_job_posting(node))
    return postings


def _text(value: Any) -> str:
    """Plain string from a schema.org value that may be a nested Thing."""
    if isinstance(value, dict):
        return str(value.get("name") or value.get("value") or "")
    if value is None:
        return ""
    return str(value)


def _location(posting: dict) -> str:
    places = posting.get("jobLocation")
    if isinstance(places, dict):
        places = [places]

    parts = []
    for place in places or []:
        if not isinstance(place, dict):
            continue
        address = place.get("address")
        if isinstance(address, dict):
            fields = (address.get(key) for key in ("addressLocality", "addressRegion", "addressCountry"))
            text = ", ".join(_text(v) for v in fields if _text(v))
        else:
            text = _text(address) or _text(place.get("name"))
        if text:
            parts.append(text)

    if posting.get("jobLocationType") == "TELECOMMUTE":
        parts.append("Remote")
    return "; ".join(parts)


def _salary(posting: dict) -> dict:
    base = posting.get("baseSalary")
    if not isinstance(base, dict):
        return {}
    value = base.get("value")
    if isinstance(value, dict):
        low = value.get("minValue", value.get("value"))
        high = value.get("maxValue", value.get("value"))
    else:
        low = high = value
    if low is None and high is None:
        return {}
    return {"salaryMin": low, "salaryMax": high, "salaryCurrency": base.get("currency") or "USD"}


def _posting_id(posting: dict, company: str) -> Optional[str]:
    """
    Listing URL when present (globally unique). A bare identifier is only
    unique per employer, so it is scoped by company name.
    """
    if posting.get("url"):
        return str(posting["url"])
    identifier = _text(posting.get("identifier"))
    if identifier:
        return f"{company.strip().lower()}:{identifier}"
    return None


def to_raw_job(posting: dict, company_name: str) -> RawJobData:
    """Map one JobPosting to RawJobData with its structured record."""
    company = _text(posting.get("hiringOrganization")) or company_name
    title = _text(posting.get("title"))
    location = _location(posting)
    url = str(posting.get("url") or "")

    record = {
        "title": title,
        "company": company,
        "location": location,
        "description": _text(posting.get("description")),
        "applicationUrl": url,
        **_salary(posting),
    }
    return RawJobData(
        title=title,
        company=company,
        location=location,
        description=record["description"],
        source_url=url,
        external_id=_posting_id(posting, company),
        structured=record,
    )


class JsonLdStrategy(BaseStrategy):
    """Read schema.org JobPosting data embedded in the career page"""

    LISTING_SYSTEM = ListingSystem.CUSTOM

    async def _fetch_jobs(self, unit: WorkUnitData) -> List[RawJobData]:
        response = await self.make_request(unit.career_url)
        page_url = str(response.url) if response.url else unit.career_url
        return self.from_page(response.text, unit, page_url)

    def from_page(self, page: str, unit: WorkUnitData, page_url: str) -> List[RawJobData]:
        postings = extract_job_postings(page)
        if postings:
            logger.info(f"{self.name} found {len(postings)} JSON-LD postings for {unit.company_name}")
        return [to_raw_job(posting, unit.company_name) for posting in postings]
