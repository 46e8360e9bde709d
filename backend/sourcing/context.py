"""
ScraperContext

Explicit wiring for every pipeline component, built from Settings.
No module-level singletons: the API app, the scheduled Lambda and tests each
own a context and its init()/shutdown() lifecycle.

    context = ScraperContext(Settings())
    context.init()
    try:
        summary = await context.scheduler.run_scheduled(RunConfig())
    finally:
        await context.shutdown()

Tests pass their own engine/session_factory/model_client/http_client; only
what is missing gets built.
"""

import logging
from contextlib import contextmanager
from typing import Iterator, Optional

import httpx
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from ats.classifier import ListingSystemClassifier
from config.settings import Settings
from db.session import create_db_engine, create_session_factory
from extraction.model_client import ModelClient, OpenAIModelClient
from extraction.pipeline import AIExtractionPipeline
from sourcing.catalog import CompanyCatalog
from sourcing.orchestrator import ScrapeOrchestrator
from sourcing.scheduler import ScrapeScheduler
from work_queue.priority_queue import WorkQueue
from workers.types import RunConfig

logger = logging.getLogger(__name__)


class ScraperContext:
    """Holds the engine, HTTP client, model client and every component."""

    def __init__(
        self,
        settings: Settings,
        model_client: Optional[ModelClient] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        engine: Optional[Engine] = None,
        session_factory: Optional[sessionmaker] = None,
    ):
        self.settings = settings
        self.model_client = model_client
        self.http_client = http_client
        self.engine = engine
        self.session_factory = session_factory

        self._owns_http_client = http_client is None
        self._owns_engine = engine is None and session_factory is None
        self._initialized = False

        self.catalog: Optional[CompanyCatalog] = None
        self.classifier: Optional[ListingSystemClassifier] = None
        self.pipeline: Optional[AIExtractionPipeline] = None
        self.queue: Optional[WorkQueue] = None
        self.orchestrator: Optional[ScrapeOrchestrator] = None
        self.scheduler: Optional[ScrapeScheduler] = None

    def init(self) -> "ScraperContext":
        """Build missing resources and wire components. Idempotent."""
        if self._initialized:
            return self

        s = self.settings

        if self.session_factory is None:
            if self.engine is None:
                self.engine = create_db_engine(s.DATABASE_URL)
            self.session_factory = create_session_factory(self.engine)

        if self.http_client is None:
            self.http_client = httpx.AsyncClient(follow_redirects=True, timeout=s.FETCH_TIMEOUT)

        if self.model_client is None:
            self.model_client = OpenAIModelClient(
                api_key=s.OPENAI_API_KEY,
                model=s.AI_MODEL,
                base_url=s.OPENAI_BASE_URL or None,
            )

        self.catalog = CompanyCatalog(self.session_factory, client=self.http_client, timeout=s.FETCH_TIMEOUT)
        self.classifier = ListingSystemClassifier(client=self.http_client, timeout=s.FETCH_TIMEOUT)
        self.pipeline = AIExtractionPipeline(
            self.model_client,
            model=s.AI_MODEL,
            batch_size=s.AI_BATCH_SIZE,
            max_tokens=s.AI_MAX_TOKENS,
        )
        self.queue = WorkQueue(
            self.session_factory,
            max_attempts=s.QUEUE_MAX_ATTEMPTS,
            backoff_base=s.QUEUE_BACKOFF_BASE,
        )
        self.orchestrator = ScrapeOrchestrator(
            self.session_factory,
            self.catalog,
            self.classifier,
            self.pipeline,
            self.queue,
            client=self.http_client,
            fetch_timeout=s.FETCH_TIMEOUT,
            concurrency=s.QUEUE_CONCURRENCY,
            rate_limit=s.QUEUE_RATE_LIMIT,
            rate_period=s.QUEUE_RATE_PERIOD,
            poll_interval=s.QUEUE_POLL_INTERVAL,
            expiry_days=s.JOB_EXPIRY_DAYS,
        )
        self.scheduler = ScrapeScheduler(
            self.session_factory,
            self.orchestrator,
            cooldown_seconds=s.TRIGGER_COOLDOWN_SECONDS,
            visibility_timeout=s.QUEUE_VISIBILITY_TIMEOUT,
            retention_days=s.QUEUE_RETENTION_DAYS,
        )

        self._initialized = True
        logger.info(
            f"Scraper context ready (model={s.AI_MODEL}, concurrency={s.QUEUE_CONCURRENCY}, "
            f"rate_limit={s.QUEUE_RATE_LIMIT}/{s.QUEUE_RATE_PERIOD}s)"
        )
        return self

    def run_config(self, data: Optional[dict] = None) -> RunConfig:
        """RunConfig from a request/event payload, defaulting max_companies from settings."""
        return RunConfig.from_dict(data or {}, default_max_companies=self.settings.MAX_COMPANIES)

    @contextmanager
    def session(self) -> Iterator[Session]:
        if self.session_factory is None:
            raise RuntimeError("ScraperContext.init() has not been called")
        db = self.session_factory()
        try:
            yield db
        finally:
            db.close()

    async def shutdown(self) -> None:
        """Release what this context created."""
        if isinstance(self.model_client, OpenAIModelClient):
            await self.model_client.close()
        if self._owns_http_client and self.http_client is not None:
            await self.http_client.aclose()
            self.http_client = None
        if self._owns_engine and self.engine is not None:
            self.engine.dispose()
            self.engine = None
            self.session_factory = None
        self._initialized = False
        logger.info("Scraper context shut down")
