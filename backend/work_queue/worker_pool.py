"""
Worker Pool

N concurrent consumers of a WorkQueue, sharing one dispatch rate limit.

Per worker loop:
1. Take a token from the shared bucket (bounds dispatches per period)
2. Claim the next unit; if none is dispatchable, sleep poll_interval
3. Run the processor
   - returns    → complete(unit, result.to_dict())
   - raises     → fail(unit, error) (retry with backoff, or dead set)
   - raises FatalPipelineError → release(unit), stop every worker

The pool stops when should_stop() returns True or a fatal error occurs.
A fatal error is re-raised from run_until() once all workers have exited.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional

from utils.errors import FatalPipelineError
from utils.worker_logging import QueueLogContext
from work_queue.rate_limiter import AsyncTokenBucket
from workers.types import WorkUnitData

logger = logging.getLogger(__name__)


def describe_unit_error(e: Exception) -> str:
    message = str(e)
    return f"{type(e).__name__}: {message}" if message else type(e).__name__


class WorkerPool:
    """Created via WorkQueue.register_worker()."""

    def __init__(
        self,
        queue,
        processor: Callable[[WorkUnitData], Awaitable],
        concurrency: int = 10,
        rate_limit: int = 10,
        period: float = 1.0,
        poll_interval: float = 0.5,
    ):
        if concurrency < 1:
            raise ValueError("concurrency must be at least 1")
        self.queue = queue
        self.processor = processor
        self.concurrency = concurrency
        self.poll_interval = poll_interval
        self.limiter = AsyncTokenBucket(rate_limit, period)

        self.processed = 0
        self.failed = 0
        self.fatal_error: Optional[FatalPipelineError] = None
        self._stop = asyncio.Event()

    def stop(self) -> None:
        self._stop.set()

    def _halt(self, error: FatalPipelineError) -> None:
        if self.fatal_error is None:
            self.fatal_error = error
        self._stop.set()

    async def run_until(self, should_stop: Callable[[], bool]) -> None:
        """
        Run workers until should_stop() is true.

        should_stop is polled every poll_interval by a monitor task, not by
        each worker.

        Raises:
            FatalPipelineError: Stopped because of a fatal error
        """
        self._stop.clear()
        workers = [asyncio.create_task(self._worker(i)) for i in range(self.concurrency)]
        monitor = asyncio.create_task(self._monitor(should_stop))

        await asyncio.gather(*workers)
        monitor.cancel()
        try:
            await monitor
        except asyncio.CancelledError:
            pass

        logger.info(f"Worker pool stopped: {self.processed} completed, {self.failed} failed attempts")
        if self.fatal_error is not None:
            raise self.fatal_error

    async def _monitor(self, should_stop: Callable[[], bool]) -> None:
        while not self._stop.is_set():
            try:
                if should_stop():
                    self._stop.set()
                    return
            except FatalPipelineError as e:
                self._halt(e)
                return
            await asyncio.sleep(self.poll_interval)

    async def _worker(self, worker_id: int) -> None:
        log = QueueLogContext(worker_id)

        while not self._stop.is_set():
            await self.limiter.acquire()
            if self._stop.is_set():
                break

            try:
                unit = self.queue.claim()
            except FatalPipelineError as e:
                log.log_error(f"Claim failed: {e}")
                self._halt(e)
                break

            if unit is None:
                await asyncio.sleep(self.poll_interval)
                continue

            await self._process(log, unit)

    async def _process(self, log: QueueLogContext, unit: WorkUnitData) -> None:
        try:
            result = await self.processor(unit)
        except FatalPipelineError as e:
            log.log_error(f"Fatal error on {unit.company_name}, stopping pool: {e}")
            try:
                self.queue.release(unit.id)
            except FatalPipelineError as release_error:
                log.log_warning(f"Could not release unit {unit.id}, left for requeue_stalled: {release_error}")
            self._halt(e)
            return
        except Exception as e:
            error = describe_unit_error(e)
            try:
                status = self.queue.fail(unit.id, error)
            except FatalPipelineError as fatal:
                self._halt(fatal)
                return
            self.failed += 1
            log.log_warning(
                f"{unit.company_name} attempt {unit.retry_count + 1}/{unit.max_attempts} failed "
                f"({error}) -> {status}"
            )
            return

        try:
            self.queue.complete(unit.id, result.to_dict() if hasattr(result, "to_dict") else result)
        except FatalPipelineError as e:
            self._halt(e)
            return
        self.processed += 1
        log.log_info(f"Completed {unit.company_name}")
