"""
Base extraction strategy

This module provides the abstract base class that all listing-system
strategies implement. A strategy turns one work unit into raw postings:

1. API strategies call the listing system's public read API and map its
   native JSON into RawJobData (one per posting)
2. The HTML capture strategy fetches the career page itself and hands the
   page, preferring its embedded JSON-LD postings and otherwise handing the
   page reduced to text to AI extraction

Contract: fetch(unit) never raises on a non-2xx response; it returns an
empty list and lets the orchestrator log and move on. Timeouts and
connection failures do propagate so the orchestrator can decide to retry.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Dict, List, Optional

import httpx

from ats.enums import ListingSystem
from workers.types import RawJobData, WorkUnitData

logger = logging.getLogger(__name__)

DEFAULT_HEADERS = {
    'User-Agent': 'Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) '
                  'AppleWebKit/537.36 (KHTML, like Gecko) '
                  'Chrome/141.0.0.0 Safari/537.36',
    'Accept': 'text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8',
    'Accept-Language': 'en-US,en;q=0.9',
}


class BaseStrategy(ABC):
    """
    Abstract base class for extraction strategies

    Each strategy must define:
    1. LISTING_SYSTEM: ListingSystem this strategy serves (HTML capture serves many)
    2. _fetch_jobs(): fetch and map postings for one unit

    The HTTP client is injected (shared by the ScraperContext). Without one,
    a client is created per request.
    """

    LISTING_SYSTEM: ListingSystem

    def __init__(self, client: Optional[httpx.AsyncClient] = None, timeout: float = 15.0):
        """
        Initialize strategy

        Args:
            client: Shared async HTTP client (optional)
            timeout: Hard per-request timeout in seconds
        """
        if not hasattr(self.__class__, 'LISTING_SYSTEM'):
            raise NotImplementedError(
                f"{self.__class__.__name__} must define LISTING_SYSTEM class variable"
            )

        self.client = client
        self.timeout = timeout

    @property
    def name(self) -> str:
        return self.__class__.__name__

    async def fetch(self, unit: WorkUnitData) -> List[RawJobData]:
        """
        Fetch raw postings for a unit.

        Returns:
            List of RawJobData (empty on non-2xx responses)

        Raises:
            httpx.TimeoutException, httpx.NetworkError, asyncio.TimeoutError:
                transport failures, left to the caller
        """
        try:
            return await self._fetch_jobs(unit)
        except httpx.HTTPStatusError as e:
            logger.warning(
                f"{self.name} got HTTP {e.response.status_code} for {unit.company_name} "
                f"({e.request.url}) - returning no jobs"
            )
            return []

    @abstractmethod
    async def _fetch_jobs(self, unit: WorkUnitData) -> List[RawJobData]:
        """
        Fetch all postings for the unit and map them to RawJobData

        Implementation notes:
        - Use make_request() so non-2xx responses raise HTTPStatusError
        - Prefer the listing system's native id as RawJobData.external_id
        - Company name comes from the unit, not the API
        """
        pass

    def get_headers(self) -> Dict[str, str]:
        """
        Get default HTTP headers for requests

        Override this method if a listing system needs specific headers.
        """
        return dict(DEFAULT_HEADERS)

    async def make_request(
        self,
        url: str,
        method: str = 'GET',
        params: Optional[Dict] = None,
        headers: Optional[Dict] = None,
    ) -> httpx.Response:
        """
        Helper method to make HTTP requests with consistent error handling

        The whole request (connect + read) is bounded by self.timeout.

        Raises:
            httpx.HTTPStatusError: On HTTP error responses
            httpx.TimeoutException / asyncio.TimeoutError: On request timeout
            httpx.ConnectError: On connection failure
        """
        request_headers = self.get_headers()
        if headers:
            request_headers.update(headers)

        if self.client is not None:
            response = await asyncio.wait_for(
                self.client.request(method, url, params=params, headers=request_headers, timeout=self.timeout),
                timeout=self.timeout,
            )
        else:
            async with httpx.AsyncClient(follow_redirects=True) as client:
                response = await asyncio.wait_for(
                    client.request(method, url, params=params, headers=request_headers, timeout=self.timeout),
                    timeout=self.timeout,
                )

        response.raise_for_status()
        return response
