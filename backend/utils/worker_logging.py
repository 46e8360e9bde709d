"""
Prefixed log lines for the scrape pipeline.

A run touches many companies at once through a pool of queue workers, so
plain log lines interleave. Every component logs through a small context
object that stamps each line with who is speaking and for which run:

    [Orchestrator:run_id=7] Enqueued 40 units
    [ScrapeWorker:run_id=7:company=Stripe] greenhouse returned 87 postings
    [QueueWorker:worker=2] Unit 118 failed, retry in 60s

Add a context by subclassing WorkerLoggerMixin with a `worker_type` and a
`_log_context()` that renders the identifying fields.
"""

import logging
from enum import Enum
from typing import Optional, Protocol

logger = logging.getLogger()
logger.setLevel(logging.INFO)


class WorkerType(Enum):
    """Component name shown first in the prefix."""
    ORCHESTRATOR = "Orchestrator"
    SCRAPE = "ScrapeWorker"
    QUEUE = "QueueWorker"


class WorkerLoggerProtocol(Protocol):
    """Attributes WorkerLoggerMixin reads from the class it is mixed into."""
    worker_type: WorkerType

    def _log_context(self) -> str:
        ...


class WorkerLoggerMixin:
    """log_info/log_warning/log_error writing `[worker_type:context] message`."""

    def _log_prefix(self: WorkerLoggerProtocol) -> str:
        return f"[{self.worker_type.value}:{self._log_context()}]"

    def log_info(self: WorkerLoggerProtocol, message: str) -> None:
        logger.info(f"{self._log_prefix()} {message}")

    def log_warning(self: WorkerLoggerProtocol, message: str) -> None:
        logger.warning(f"{self._log_prefix()} {message}")

    def log_error(self: WorkerLoggerProtocol, message: str) -> None:
        logger.error(f"{self._log_prefix()} {message}")


class OrchestratorLogContext(WorkerLoggerMixin):
    """One orchestrated run: [Orchestrator:run_id=X]"""
    worker_type = WorkerType.ORCHESTRATOR

    def __init__(self, run_id: Optional[int]):
        self.run_id = run_id

    def _log_context(self) -> str:
        return f"run_id={self.run_id}"


class ScrapeLogContext(WorkerLoggerMixin):
    """One company within a run: [ScrapeWorker:run_id=X:company=Name]"""
    worker_type = WorkerType.SCRAPE

    def __init__(self, run_id: Optional[int], company: str):
        self.run_id = run_id
        self.company = company

    def _log_context(self) -> str:
        return f"run_id={self.run_id}:company={self.company}"


class QueueLogContext(WorkerLoggerMixin):
    """One queue worker coroutine: [QueueWorker:worker=N]"""
    worker_type = WorkerType.QUEUE

    def __init__(self, worker_id: int):
        self.worker_id = worker_id

    def _log_context(self) -> str:
        return f"worker={self.worker_id}"
