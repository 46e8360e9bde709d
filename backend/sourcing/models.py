"""
Pydantic models for the scraper API
"""

from pydantic import BaseModel, Field, field_validator
from typing import Dict, List, Literal, Optional

from ats.enums import ListingSystem


def _validate_listing_systems(value: Optional[List[str]]) -> Optional[List[str]]:
    if value is None:
        return None
    available = [s.value for s in ListingSystem]
    normalized = []
    for tag in value:
        tag = tag.lower()
        if tag not in available:
            raise ValueError(f"Listing system '{tag}' not found. Available: {', '.join(available)}")
        normalized.append(tag)
    return normalized


class TriggerRequest(BaseModel):
    """Request model for an on-demand run"""

    max_companies: Optional[int] = Field(
        default=None,
        ge=1,
        description="Cap on companies enqueued (default: MAX_COMPANIES setting)",
    )
    priority: Literal["high", "normal", "low"] = Field(
        default="high",
        description="Priority class for this run's work units",
    )
    listing_systems: Optional[List[str]] = Field(
        default=None,
        description="Only companies tagged with these listing systems",
    )
    wait: bool = Field(
        default=True,
        description="If false, enqueue and return without draining the queue",
    )

    @field_validator("listing_systems")
    @classmethod
    def validate_listing_systems(cls, v: Optional[List[str]]) -> Optional[List[str]]:
        return _validate_listing_systems(v)


class RunSummaryResponse(BaseModel):
    """Summary of one orchestrated run"""

    run_id: Optional[int] = Field(description="scrape_runs row ID")
    status: str = Field(description="pending | running | finished | error")
    queued: int = Field(description="Work units enqueued")
    completed: int = Field(description="Units completed")
    failed: int = Field(description="Units moved to the dead set")
    jobs_found: int = Field(description="Jobs extracted across completed units")
    errors: Dict[str, List[str]] = Field(description="Error strings per company")
    error: Optional[str] = Field(default=None, description="Top-level cause when status is error")


class QueueStatsResponse(BaseModel):
    """Work queue counts"""

    waiting: int
    active: int
    completed: int
    failed: int
    delayed: int = Field(description="Waiting units still inside their backoff window")


class StatsResponse(BaseModel):
    """Scraper statistics"""

    queue: QueueStatsResponse
    catalog: Dict[str, int] = Field(description="Catalog entries per provenance")
    active_jobs: int = Field(description="Active, non-expired job postings")
    cooldown_remaining: int = Field(description="Seconds until an on-demand run is allowed")


class CompanyResponse(BaseModel):
    """A company catalog entry"""

    name: str
    career_url: str
    listing_system: str
    listing_system_id: Optional[str] = None
    provenance: str
    confidence: float

    model_config = {"from_attributes": True}


class DiscoverRequest(BaseModel):
    """Request model for catalog discovery"""

    source_url: str = Field(description="Listing page to extract employer names from")
    limit: int = Field(default=50, ge=1, le=500, description="Max candidates to extract")


class CountResponse(BaseModel):
    """Number of rows affected by a maintenance operation"""

    count: int
