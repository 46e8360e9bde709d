"""
Tests for worker logging contexts.

Run: python3 -m pytest utils/__tests__/test_worker_logging.py -v
"""

import logging

from utils.worker_logging import (
    OrchestratorLogContext,
    QueueLogContext,
    ScrapeLogContext,
    WorkerType,
)


class TestLogPrefixes:

    def test_orchestrator(self):
        assert OrchestratorLogContext(12)._log_prefix() == "[Orchestrator:run_id=12]"

    def test_scrape(self):
        ctx = ScrapeLogContext(12, "Stripe")
        assert ctx._log_prefix() == "[ScrapeWorker:run_id=12:company=Stripe]"

    def test_queue(self):
        assert QueueLogContext(3)._log_prefix() == "[QueueWorker:worker=3]"

    def test_worker_types(self):
        assert {t.value for t in WorkerType} == {"Orchestrator", "ScrapeWorker", "QueueWorker"}


def test_levels(caplog):
    caplog.set_level(logging.INFO)
    ctx = ScrapeLogContext(7, "Acme")

    ctx.log_info("fetching")
    ctx.log_warning("slow")
    ctx.log_error("failed")

    records = [(r.levelno, r.getMessage()) for r in caplog.records]
    assert records == [
        (logging.INFO, "[ScrapeWorker:run_id=7:company=Acme] fetching"),
        (logging.WARNING, "[ScrapeWorker:run_id=7:company=Acme] slow"),
        (logging.ERROR, "[ScrapeWorker:run_id=7:company=Acme] failed"),
    ]
