"""
SmartRecruiters Posting API strategy

Endpoint: https://api.smartrecruiters.com/v1/companies/{token}/postings
Data format: JSON page object; postings under `content`, paged by
limit/offset with `totalFound` as the overall count.

Sample response:
{
  "offset": 0,
  "limit": 100,
  "totalFound": 1,
  "content": [
    {
      "id": "744000012345678",
      "name": "Data Engineer",
      "location": {"city": "Austin", "region": "TX", "country": "us", "remote": false},
      "ref": "https://api.smartrecruiters.com/v1/companies/Acme/postings/744000012345678",
      "applyUrl": "https://jobs.smartrecruiters.com/Acme/744000012345678-data-engineer"
    }
  ]
}

The list endpoint carries no description; jobDescription is read when the
payload includes it and otherwise left to the detail page URL.
"""

from typing import List

from ats.enums import ListingSystem
from ats.signatures import api_endpoint
from strategies.base_strategy import BaseStrategy
from workers.types import RawJobData, WorkUnitData

PAGE_SIZE = 100
MAX_PAGES = 10


def _location(location: dict) -> str:
    parts = [location.get(key) for key in ('city', 'region', 'country')]
    text = ', '.join(str(p) for p in parts if p)
    if location.get('remote'):
        text = f"{text} (Remote)" if text else "Remote"
    return text


class SmartRecruitersStrategy(BaseStrategy):
    """Fetch postings from a SmartRecruiters company via the public Posting API"""

    LISTING_SYSTEM = ListingSystem.SMARTRECRUITERS

    async def _fetch_jobs(self, unit: WorkUnitData) -> List[RawJobData]:
        url = api_endpoint(self.LISTING_SYSTEM, unit.listing_system_id)
        if url is None:
            return []

        postings = []
        for page in range(MAX_PAGES):
            response = await self.make_request(
                url,
                params={'limit': PAGE_SIZE, 'offset': page * PAGE_SIZE},
                headers={'Accept': 'application/json'},
            )
            data = response.json()
            content = data.get('content', [])
            postings.extend(content)
            if len(content) < PAGE_SIZE or len(postings) >= data.get('totalFound', 0):
                break

        jobs = []
        for posting in postings:
            job_ad = posting.get('jobAd') or {}
            sections = job_ad.get('sections') or {}
            description = (
                posting.get('jobDescription')
                or (sections.get('jobDescription') or {}).get('text', '')
            )
            source_url = posting.get('applyUrl') or (
                f"https://jobs.smartrecruiters.com/{unit.listing_system_id}/{posting['id']}"
            )

            jobs.append(RawJobData(
                title=posting.get('name', ''),
                company=unit.company_name,
                location=_location(posting.get('location') or {}),
                description=description,
                source_url=source_url,
                external_id=posting.get('id'),
            ))
        return jobs
