"""
Ashby Posting API strategy

Endpoint: https://api.ashbyhq.com/posting-api/job-board/{token}?includeCompensation=true
Data format: JSON object with a `jobs` array.

Sample response:
{
  "jobs": [
    {
      "id": "f1b9...",
      "title": "Product Engineer",
      "location": "New York",
      "isRemote": false,
      "workplaceType": "Hybrid",
      "descriptionPlain": "...",
      "jobUrl": "https://jobs.ashbyhq.com/acme/f1b9...",
      "applyUrl": "https://jobs.ashbyhq.com/acme/f1b9.../application",
      "compensation": {"compensationTierSummary": "$150K – $180K"}
    }
  ]
}
"""

from typing import List

from ats.enums import ListingSystem
from ats.signatures import api_endpoint
from strategies.base_strategy import BaseStrategy
from workers.types import RawJobData, WorkUnitData


class AshbyStrategy(BaseStrategy):
    """Fetch postings from an Ashby board via the public Posting API"""

    LISTING_SYSTEM = ListingSystem.ASHBY

    async def _fetch_jobs(self, unit: WorkUnitData) -> List[RawJobData]:
        url = api_endpoint(self.LISTING_SYSTEM, unit.listing_system_id)
        if url is None:
            return []

        response = await self.make_request(url, headers={'Accept': 'application/json'})
        data = response.json()

        jobs = []
        for job in data.get('jobs', []):
            if job.get('isListed') is False:
                continue

            description = job.get('descriptionPlain') or job.get('descriptionHtml', '')
            compensation = (job.get('compensation') or {}).get('compensationTierSummary')
            if compensation:
                description = f"{description}\nCompensation: {compensation}"
            if job.get('workplaceType'):
                description = f"{description}\nWorkplace: {job['workplaceType']}"
            elif job.get('isRemote'):
                description = f"{description}\nWorkplace: Remote"

            jobs.append(RawJobData(
                title=job.get('title', ''),
                company=unit.company_name,
                location=job.get('location', ''),
                description=description,
                source_url=job.get('jobUrl') or job.get('applyUrl', ''),
                external_id=job.get('id'),
            ))
        return jobs
