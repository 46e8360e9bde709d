"""
Scrape Orchestrator

Drives one end-to-end run over the company catalog:

1. Create a scrape_runs row (status running; started_at anchors the cooldown)
2. One WorkUnit per catalog company (capped by max_companies), enqueued in bulk
3. Run a worker pool on the queue until every unit of this run is
   completed or dead (skipped when wait=False)
4. Aggregate unit results into a RunSummary and store it on the run row

Per-unit processing (process_unit):
- classify the career page when the tag is unknown; re-tag the catalog
  if the classification is more confident than the stored entry
- strategy chain: the listing system's API strategy when it has one and
  the board token is known, then the generic HTML capture exactly once
  if nothing came back
- AI extraction on the raw postings, source = listing system tag
- ingestion with dedup

Failure semantics:
- a strategy exception is recorded in the unit's errors; the chain moves on
- if every strategy failed with a transient network error and nothing was
  captured, the unit raises TransientScrapeError so the queue retries it
- zero postings is a success with jobs_found = 0
- FatalPipelineError stops the pool; the run ends with status error
- run() never raises

Log Format:
[Orchestrator:run_id=X] for run-level events,
[ScrapeWorker:run_id=X:company=Y] for unit-level events.
"""

import dataclasses
import logging
from contextlib import contextmanager
from typing import Iterator, Optional

import httpx
from sqlalchemy.orm import Session, sessionmaker

from ats.classifier import ListingSystemClassifier
from ats.enums import ListingSystem, is_api_available
from db import jobs_service, run_service
from extraction.pipeline import AIExtractionPipeline
from models.scrape_run import RunStatus
from models.work_unit import WorkUnitStatus
from sourcing.catalog import CompanyCatalog
from strategies.base_strategy import BaseStrategy
from strategies.registry import get_fallback_strategy, get_strategy
from utils.errors import FatalPipelineError, TransientScrapeError
from utils.fetch_errors import describe_fetch_error, is_transient
from utils.worker_logging import OrchestratorLogContext, ScrapeLogContext
from work_queue.priority_queue import WorkQueue
from workers.types import RawJobData, RunConfig, RunSummary, UnitResult, WorkUnitData

logger = logging.getLogger(__name__)


class ScrapeOrchestrator:
    """
    Example:
        orchestrator = ScrapeOrchestrator(session_factory, catalog, classifier, pipeline, queue)
        summary = await orchestrator.run(RunConfig(max_companies=50, trigger="manual"))
    """

    def __init__(
        self,
        session_factory: sessionmaker,
        catalog: CompanyCatalog,
        classifier: ListingSystemClassifier,
        pipeline: AIExtractionPipeline,
        queue: WorkQueue,
        client: Optional[httpx.AsyncClient] = None,
        fetch_timeout: float = 15.0,
        concurrency: int = 10,
        rate_limit: int = 10,
        rate_period: float = 1.0,
        poll_interval: float = 0.5,
        expiry_days: int = jobs_service.DEFAULT_EXPIRY_DAYS,
        # Dependency injection for testing
        _strategy_factory=get_strategy,
        _fallback_factory=get_fallback_strategy,
    ):
        self.session_factory = session_factory
        self.catalog = catalog
        self.classifier = classifier
        self.pipeline = pipeline
        self.queue = queue
        self.client = client
        self.fetch_timeout = fetch_timeout
        self.concurrency = concurrency
        self.rate_limit = rate_limit
        self.rate_period = rate_period
        self.poll_interval = poll_interval
        self.expiry_days = expiry_days
        self._strategy_factory = _strategy_factory
        self._fallback_factory = _fallback_factory

    @contextmanager
    def _session(self) -> Iterator[Session]:
        db = self.session_factory()
        try:
            yield db
        finally:
            db.close()

    # =========================================================================
    # Run
    # =========================================================================

    async def run(self, config: RunConfig) -> RunSummary:
        """
        Execute one run.

        Returns:
            RunSummary. Failures are reported in status/error, never raised.
        """
        summary = RunSummary(status=RunStatus.PENDING)

        try:
            with self._session() as db:
                run = run_service.create_run(db, config.trigger)
        except Exception as e:
            logger.error(f"[Orchestrator] Could not create run: {e}")
            summary.status = RunStatus.ERROR
            summary.error = f"Could not create run: {type(e).__name__}: {e}"
            return summary

        summary.run_id = run.id
        summary.status = RunStatus.RUNNING
        log = OrchestratorLogContext(run.id)

        try:
            await self._execute(config, summary, log)
        except FatalPipelineError as e:
            log.log_error(f"Run stopped by fatal error: {e}")
            summary.status = RunStatus.ERROR
            summary.error = f"{type(e).__name__}: {e}"
            self._collect_safely(summary, log)
        except Exception as e:
            log.log_error(f"Run failed: {type(e).__name__}: {e}")
            summary.status = RunStatus.ERROR
            summary.error = f"{type(e).__name__}: {e}"

        try:
            with self._session() as db:
                run_service.save_run_summary(db, run.id, summary)
        except Exception as e:
            log.log_error(f"Could not save run summary: {e}")

        log.log_info(
            f"Run {summary.status}: {summary.queued} queued, {summary.completed} completed, "
            f"{summary.failed} failed, {summary.jobs_found} jobs"
        )
        return summary

    async def _execute(self, config: RunConfig, summary: RunSummary, log: OrchestratorLogContext) -> None:
        companies = self.catalog.list_companies(
            limit=config.max_companies,
            listing_systems=config.listing_systems,
        )
        units = [WorkUnitData.from_company(company, config.priority) for company in companies]
        self.queue.enqueue_bulk(units, run_id=summary.run_id)
        summary.queued = len(units)
        log.log_info(f"Enqueued {len(units)} units (priority={config.priority})")

        if not config.wait:
            return

        if units:
            pool = self.queue.register_worker(
                self.process_unit,
                concurrency=self.concurrency,
                rate_limit=self.rate_limit,
                period=self.rate_period,
                poll_interval=self.poll_interval,
            )
            run_id = summary.run_id
            await pool.run_until(lambda: self.queue.pending_count(run_id) == 0)

        self._collect(summary)
        summary.status = RunStatus.FINISHED

    def _collect(self, summary: RunSummary) -> None:
        """Fold the final state of this run's units into the summary."""
        summary.completed = 0
        summary.failed = 0
        summary.jobs_found = 0
        summary.errors = {}

        for unit in self.queue.run_units(summary.run_id):
            company = unit["company_name"]
            if unit["status"] == WorkUnitStatus.COMPLETED:
                summary.completed += 1
                if unit["result"]:
                    result = UnitResult.from_dict(unit["result"])
                    summary.jobs_found += result.jobs_found
                    if result.errors:
                        summary.errors.setdefault(company, []).extend(result.errors)
            elif unit["status"] == WorkUnitStatus.FAILED:
                summary.failed += 1
                summary.errors.setdefault(company, []).append(unit["last_error"] or "Unknown error")

    def _collect_safely(self, summary: RunSummary, log: OrchestratorLogContext) -> None:
        try:
            self._collect(summary)
        except FatalPipelineError as e:
            log.log_warning(f"Could not collect partial results: {e}")

    # =========================================================================
    # Unit processing
    # =========================================================================

    async def process_unit(self, unit: WorkUnitData) -> UnitResult:
        """
        Classify → fetch → extract → ingest for one company.

        Raises:
            TransientScrapeError: Every fetch failed with a retryable network error
            FatalPipelineError: Configuration/connectivity failure (stops the run)
        """
        log = ScrapeLogContext(unit.run_id, unit.company_name)
        listing_system = ListingSystem.parse(unit.listing_system)
        listing_system_id = unit.listing_system_id

        if listing_system == ListingSystem.UNKNOWN:
            classification = await self.classifier.classify(unit.career_url)
            log.log_info(
                f"Classified as {classification.listing_system.value} "
                f"(confidence={classification.confidence:.2f})"
            )
            if classification.listing_system != ListingSystem.UNKNOWN:
                listing_system = classification.listing_system
                listing_system_id = classification.listing_system_id or listing_system_id
                self.catalog.retag(unit.company_name, classification)

        unit = dataclasses.replace(
            unit,
            listing_system=listing_system.value,
            listing_system_id=listing_system_id,
        )
        result = UnitResult(company=unit.company_name, listing_system=listing_system.value)

        raw_jobs, all_transient = await self._fetch_raw(unit, listing_system, result, log)
        if not raw_jobs:
            if all_transient:
                raise TransientScrapeError("; ".join(result.errors))
            log.log_info("No postings found")
            return result

        result.raw_count = len(raw_jobs)
        extraction = await self.pipeline.extract(raw_jobs, source=listing_system.value)
        result.errors.extend(extraction.errors)
        result.jobs_found = len(extraction.jobs)

        if extraction.jobs:
            with self._session() as db:
                stats = jobs_service.ingest_jobs(db, extraction.jobs, expiry_days=self.expiry_days)
            result.inserted = stats.inserted
            result.duplicates = stats.duplicates
            result.ingest_errors = stats.errors

        log.log_info(
            f"{result.raw_count} raw → {result.jobs_found} extracted → "
            f"{result.inserted} new, {result.duplicates} duplicates"
        )
        return result

    def _strategy_chain(self, unit: WorkUnitData, listing_system: ListingSystem) -> list[BaseStrategy]:
        chain = []
        if is_api_available(listing_system) and unit.listing_system_id:
            chain.append(self._strategy_factory(listing_system, client=self.client, timeout=self.fetch_timeout))
        chain.append(self._fallback_factory(client=self.client, timeout=self.fetch_timeout))
        return chain

    async def _fetch_raw(
        self,
        unit: WorkUnitData,
        listing_system: ListingSystem,
        result: UnitResult,
        log: ScrapeLogContext,
    ) -> tuple[list[RawJobData], bool]:
        """
        Run the strategy chain until one returns postings.

        Returns:
            (raw postings, True if every strategy raised a transient error)
        """
        chain = self._strategy_chain(unit, listing_system)
        transient_failures = 0

        for strategy in chain:
            try:
                raw_jobs = await strategy.fetch(unit)
            except FatalPipelineError:
                raise
            except Exception as e:
                message = f"{strategy.name}: {describe_fetch_error(e)}"
                result.errors.append(message)
                log.log_warning(f"{message} ({type(e).__name__})")
                if is_transient(e):
                    transient_failures += 1
                continue

            if raw_jobs:
                log.log_info(f"{strategy.name} returned {len(raw_jobs)} postings")
                return raw_jobs, False
            log.log_info(f"{strategy.name} returned 0 postings")

        return [], transient_failures == len(chain)

    def stats(self) -> dict:
        """Queue counts, catalog counts per provenance, active job rows."""
        with self._session() as db:
            active_jobs = jobs_service.count_active_jobs(db)
        return {
            "queue": self.queue.stats().to_dict(),
            "catalog": self.catalog.stats(),
            "active_jobs": active_jobs,
        }
