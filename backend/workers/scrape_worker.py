"""
Scrape Worker Lambda Handler

Invoked on a schedule (EventBridge cron). One invocation = one scheduled run.

Event format (all optional):
{
    "max_companies": 100,
    "priority": "normal",             // high | normal | low
    "listing_systems": ["greenhouse"],// restrict to these tags
    "wait": true,                     // false: enqueue only, other workers drain
    "seed": false                     // load the curated catalog before running
}

Outside Lambda the same run repeats every SCHEDULE_INTERVAL_SECONDS:

    cd backend
    python3 -m workers.scrape_worker --seed
    python3 -m workers.scrape_worker --once --max-companies 20

Workflow:
1. Build a ScraperContext from Settings (env / .env.local)
2. Optionally seed the catalog
3. Close expired jobs, requeue stalled units, run the orchestrator
4. Return the RunSummary as a dict

Log Format:
Run-level logs use [Orchestrator:run_id=X], unit-level [ScrapeWorker:run_id=X:company=Y].
"""

import argparse
import asyncio
import logging
from typing import Optional

from config.settings import Settings
from models.scrape_run import RunStatus
from sourcing.context import ScraperContext

logger = logging.getLogger()
logger.setLevel(logging.INFO)


async def run_scheduled_scrape(event: dict, context: Optional[ScraperContext] = None) -> dict:
    """
    Run one scheduled scrape.

    Args:
        event: Lambda event (see module docstring)
        context: Pre-built context (for testing); built from Settings otherwise

    Returns:
        RunSummary as dict
    """
    owns_context = context is None
    context = context or ScraperContext(Settings())
    context.init()

    try:
        if event.get("seed"):
            context.catalog.seed()
        summary = await context.scheduler.run_scheduled(context.run_config(event))
        return summary.to_dict()
    finally:
        if owns_context:
            await context.shutdown()


def handler(event: dict, context) -> dict:
    """
    Lambda handler for the scheduled scrape.

    Args:
        event: Run options (see module docstring)
        context: Lambda context (unused)

    Returns:
        RunSummary dict; {"status": "error", "error": ...} if the context could not be built
    """
    logger.info(f"Scheduled scrape starting: {event}")

    try:
        return asyncio.run(run_scheduled_scrape(event or {}))
    except Exception as e:
        logger.exception(f"Scheduled scrape failed: {e}")
        return {"run_id": None, "status": RunStatus.ERROR, "error": str(e)}


async def run_periodic_scrape(
    event: dict,
    context: Optional[ScraperContext] = None,
    stop_event: Optional[asyncio.Event] = None,
    max_runs: Optional[int] = None,
) -> list[dict]:
    """
    Scheduled runs every SCHEDULE_INTERVAL_SECONDS until stop_event is set
    or max_runs runs have completed.

    Returns:
        RunSummary dicts, one per run
    """
    owns_context = context is None
    context = context or ScraperContext(Settings())
    context.init()

    try:
        if event.get("seed"):
            context.catalog.seed()
        interval = context.settings.SCHEDULE_INTERVAL_SECONDS
        logger.info(f"Periodic scrape every {interval}s")
        summaries = await context.scheduler.run_periodic(
            interval,
            context.run_config(event),
            stop_event=stop_event,
            max_runs=max_runs,
        )
        return [summary.to_dict() for summary in summaries]
    finally:
        if owns_context:
            await context.shutdown()


def main(argv: Optional[list[str]] = None) -> None:
    parser = argparse.ArgumentParser(
        description="Run the scheduled scrape in-process",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument('--once', action='store_true', help='Run one scheduled scrape and exit')
    parser.add_argument('--seed', action='store_true', help='Load the curated catalog first')
    parser.add_argument('-n', '--max-companies', type=int, help='Companies per run')
    parser.add_argument('--listing-system', action='append', dest='listing_systems',
                        help='Restrict to this listing system (repeatable)')
    args = parser.parse_args(argv)

    event = {"seed": args.seed}
    if args.max_companies is not None:
        event["max_companies"] = args.max_companies
    if args.listing_systems:
        event["listing_systems"] = args.listing_systems

    logging.basicConfig(level=logging.INFO)
    if args.once:
        print(asyncio.run(run_scheduled_scrape(event)))
    else:
        asyncio.run(run_periodic_scrape(event))


if __name__ == '__main__':
    main()
