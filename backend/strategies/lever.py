"""
Lever Postings API strategy

Endpoint: https://api.lever.co/v0/postings/{token}?mode=json
Data format: JSON array, one object per posting.

Sample response:
[
  {
    "id": "5ac21346-8e0c-4494-8e7a-3eb92ff77902",
    "text": "Backend Engineer",
    "categories": {"location": "Remote - US", "team": "Engineering", "commitment": "Full-time"},
    "descriptionPlain": "We are looking for...",
    "lists": [{"text": "Requirements", "content": "<li>5+ years</li>"}],
    "hostedUrl": "https://jobs.lever.co/acme/5ac21346-...",
    "applyUrl": "https://jobs.lever.co/acme/5ac21346-.../apply",
    "workplaceType": "remote"
  }
]
"""

from typing import List

from ats.enums import ListingSystem
from ats.signatures import api_endpoint
from strategies.base_strategy import BaseStrategy
from workers.types import RawJobData, WorkUnitData


class LeverStrategy(BaseStrategy):
    """Fetch postings from a Lever board via the public Postings API"""

    LISTING_SYSTEM = ListingSystem.LEVER

    async def _fetch_jobs(self, unit: WorkUnitData) -> List[RawJobData]:
        url = api_endpoint(self.LISTING_SYSTEM, unit.listing_system_id)
        if url is None:
            return []

        response = await self.make_request(url, headers={'Accept': 'application/json'})
        postings = response.json()
        if not isinstance(postings, list):
            raise ValueError(f"Expected a list of postings, got {type(postings).__name__}")

        jobs = []
        for posting in postings:
            categories = posting.get('categories') or {}
            jobs.append(RawJobData(
                title=posting.get('text', ''),
                company=unit.company_name,
                location=categories.get('location', ''),
                description=self._build_description(posting),
                source_url=posting.get('hostedUrl') or posting.get('applyUrl', ''),
                external_id=posting.get('id'),
            ))
        return jobs

    def _build_description(self, posting: dict) -> str:
        """
        Plain description plus the structured lists (requirements, benefits),
        and the workplace type so remote detection sees it.
        """
        parts = [posting.get('descriptionPlain') or posting.get('description', '')]
        for section in posting.get('lists') or []:
            parts.append(f"{section.get('text', '')}: {section.get('content', '')}")
        if posting.get('workplaceType'):
            parts.append(f"Workplace: {posting['workplaceType']}")
        return "\n".join(p for p in parts if p)
