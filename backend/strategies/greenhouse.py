"""
Greenhouse Job Board API strategy

Endpoint: https://boards-api.greenhouse.io/v1/boards/{token}/jobs?content=true
Data format: JSON, one object per posting. `content` is entity-encoded HTML.

Sample response:
{
  "jobs": [
    {
      "id": 4001218008,
      "title": "Software Engineer",
      "location": {"name": "San Francisco, CA"},
      "content": "&lt;p&gt;We are looking for...&lt;/p&gt;",
      "absolute_url": "https://boards.greenhouse.io/acme/jobs/4001218008",
      "company_name": "Acme"
    }
  ],
  "meta": {"total": 1}
}
"""

from typing import List

from ats.enums import ListingSystem
from ats.signatures import api_endpoint
from strategies.base_strategy import BaseStrategy
from workers.types import RawJobData, WorkUnitData


class GreenhouseStrategy(BaseStrategy):
    """Fetch postings from a Greenhouse board via the public Job Board API"""

    LISTING_SYSTEM = ListingSystem.GREENHOUSE

    async def _fetch_jobs(self, unit: WorkUnitData) -> List[RawJobData]:
        url = api_endpoint(self.LISTING_SYSTEM, unit.listing_system_id)
        if url is None:
            return []

        response = await self.make_request(url, headers={'Accept': 'application/json'})
        data = response.json()

        jobs = []
        for job in data.get('jobs', []):
            location = job.get('location') or {}
            jobs.append(RawJobData(
                title=job.get('title', ''),
                company=unit.company_name,
                location=location.get('name', '') if isinstance(location, dict) else str(location),
                description=job.get('content', ''),
                source_url=job.get('absolute_url', ''),
                external_id=str(job['id']) if job.get('id') is not None else None,
            ))
        return jobs
