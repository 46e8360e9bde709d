"""
API routes for the scraper.

Endpoints:
- POST /api/scraper/trigger               Start an on-demand run (429 during cooldown)
- GET  /api/scraper/stats                 Queue, catalog and job counts
- POST /api/scraper/dead-letter/replay    Move dead-set units back to waiting
- GET  /api/scraper/companies             List the company catalog
- POST /api/scraper/companies/seed        Load the curated company lists
- POST /api/scraper/companies/discover    Discover companies from a listing page
- POST /api/scraper/expire                Close expired job postings

Interactive API docs:
- Swagger UI: http://localhost:8000/docs
- ReDoc: http://localhost:8000/redoc

Running locally:
    cd backend
    uvicorn main:app --reload
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy.orm import Session

from db import company_service, jobs_service
from db.session import get_db
from sourcing.context import ScraperContext
from sourcing.models import (
    CompanyResponse,
    CountResponse,
    DiscoverRequest,
    RunSummaryResponse,
    StatsResponse,
    TriggerRequest,
)
from utils.errors import CooldownActiveError

logger = logging.getLogger(__name__)

router = APIRouter()


def get_context(request: Request) -> ScraperContext:
    """The ScraperContext owned by the app (see main.create_app)."""
    return request.app.state.context


# =============================================================================
# Runs
# =============================================================================

@router.post("/trigger", response_model=RunSummaryResponse)
async def trigger_run(
    body: Optional[TriggerRequest] = None,
    context: ScraperContext = Depends(get_context),
):
    """
    Start an on-demand run.

    Refused with 429 (and a Retry-After header) while the previous run
    started less than TRIGGER_COOLDOWN_SECONDS ago.

    Returns:
        RunSummary (status finished/error, or running when wait=false)
    """
    body = body or TriggerRequest()
    config = context.run_config(body.model_dump(exclude_none=True))

    try:
        summary = await context.scheduler.trigger(config)
    except CooldownActiveError as e:
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail=str(e),
            headers={"Retry-After": str(e.retry_after)},
        )

    return RunSummaryResponse(**summary.to_dict())


@router.get("/stats", response_model=StatsResponse)
async def get_stats(context: ScraperContext = Depends(get_context)):
    """Queue counts, catalog counts per provenance, active jobs, cooldown."""
    stats = context.orchestrator.stats()
    return StatsResponse(
        queue=stats["queue"],
        catalog=stats["catalog"],
        active_jobs=stats["active_jobs"],
        cooldown_remaining=context.scheduler.seconds_until_allowed(),
    )


@router.post("/dead-letter/replay", response_model=CountResponse)
async def replay_dead_letter(context: ScraperContext = Depends(get_context)):
    """Replay every unit in the dead set with a fresh retry budget."""
    return CountResponse(count=context.queue.replay_failed())


@router.post("/expire", response_model=CountResponse)
async def expire_jobs(db: Session = Depends(get_db)):
    """Close every non-platform posting past its expiry."""
    return CountResponse(count=jobs_service.expire_stale_jobs(db))


# =============================================================================
# Company Catalog
# =============================================================================

@router.get("/companies", response_model=list[CompanyResponse])
async def list_catalog_companies(
    limit: int = Query(default=100, ge=1, le=1000),
    listing_system: Optional[str] = Query(default=None),
    db: Session = Depends(get_db),
):
    """List catalog entries, most confident first."""
    listing_systems = [listing_system.lower()] if listing_system else None
    return company_service.list_companies(db, limit=limit, listing_systems=listing_systems)


@router.post("/companies/seed", response_model=CountResponse)
async def seed_catalog(context: ScraperContext = Depends(get_context)):
    """Load the curated known-company and pattern lists."""
    return CountResponse(count=context.catalog.seed())


@router.post("/companies/discover", response_model=list[CompanyResponse])
async def discover_companies(
    body: DiscoverRequest,
    context: ScraperContext = Depends(get_context),
):
    """Extract candidate employers from a listing page and add them to the catalog."""
    companies = await context.catalog.discover(body.source_url, limit=body.limit)
    return [CompanyResponse(**company.to_dict()) for company in companies]
