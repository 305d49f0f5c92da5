"""
Worker Pool Module

Each worker owns its HTTP client (and, for technology detection, its
browser handle) for its whole lifetime and drains the job queue until it
is closed. Failures are contained per candidate: nothing a single host
does can stop a worker.
"""

import asyncio
import logging
import re
from typing import Callable, List, Optional

import httpx

from ..config import ProbeConfig
from ..exceptions import BrowserStartupError, ProbeError, TechDetectionError
from ..utils.metrics import ScanMetrics
from .analyzer import ContentAnalyzer
from .emitter import Emitter
from .http_probe import HttpProbe
from .job_queue import JobQueue
from .resolver import Resolver
from .schemas import Job
from .wappalyzer_wrapper import BrowserHandle

logger = logging.getLogger(__name__)

BrowserFactory = Callable[[], BrowserHandle]


class Worker:
    """One consumer of the job queue."""

    def __init__(
        self,
        worker_id: int,
        queue: JobQueue,
        prober: HttpProbe,
        resolver: Resolver,
        analyzer: ContentAnalyzer,
        emitter: Emitter,
        metrics: ScanMetrics,
        browser: Optional[BrowserHandle] = None
    ):
        self.worker_id = worker_id
        self.queue = queue
        self.prober = prober
        self.resolver = resolver
        self.analyzer = analyzer
        self.emitter = emitter
        self.metrics = metrics
        self.browser = browser
        self.jobs_processed = 0

    async def run(self) -> None:
        """Process jobs until the queue is closed and drained."""
        try:
            while True:
                job = await self.queue.recv()
                if job is None:
                    break
                try:
                    await self.process(job)
                except Exception as e:
                    logger.error(f"Worker {self.worker_id} failed on {job.host!r}: {e}", exc_info=True)
                self.jobs_processed += 1
        finally:
            self.queue.unsubscribe()
            await self.prober.aclose()
            if self.browser is not None:
                self.browser.close()
            logger.debug(f"Worker {self.worker_id} stopped after {self.jobs_processed} jobs")

    async def process(self, job: Job) -> int:
        """
        Resolve and probe every candidate of a job, one after another.

        Returns:
            Number of lines emitted for the job
        """
        candidates = await self.resolver.resolve(job.host, job.ports)
        self.metrics.increment("candidates", len(candidates))

        emitted = 0
        for candidate in candidates:
            if await self.process_candidate(job, candidate):
                emitted += 1
        return emitted

    async def process_candidate(self, job: Job, candidate: str) -> bool:
        """Probe, analyze and emit one candidate. True if a line was written."""
        try:
            outcome = await self.prober.probe(candidate, job.path)
        except ProbeError as e:
            self.metrics.increment("requests_failed")
            logger.debug(f"Request failed: {e}")
            return False

        if outcome is None:
            self.metrics.increment("path_rejected")
            return False

        try:
            result = await self.analyzer.analyze(outcome, job, self.browser)
        except re.error as e:
            self.metrics.increment("filtered")
            logger.debug(f"Invalid pattern while analyzing {outcome.url}: {e}")
            return False
        except TechDetectionError as e:
            self.metrics.increment("tech_failed")
            logger.debug(f"Technology detection failed for {outcome.url}: {e}")
            return False

        if result is None:
            self.metrics.increment("filtered")
            return False

        self.emitter.emit(result, job)
        self.metrics.increment("matches")
        return True


class WorkerPool:
    """
    Fixed-size pool of workers sharing one job queue.

    Worker slots whose browser cannot be allocated are skipped; the pool
    runs with whatever workers did start.
    """

    def __init__(
        self,
        config: ProbeConfig,
        queue: JobQueue,
        resolver: Resolver,
        analyzer: ContentAnalyzer,
        emitter: Emitter,
        metrics: ScanMetrics,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        browser_factory: Optional[BrowserFactory] = None
    ):
        self.config = config
        self.queue = queue
        self.resolver = resolver
        self.analyzer = analyzer
        self.emitter = emitter
        self.metrics = metrics
        self.transport = transport
        self.browser_factory = browser_factory or BrowserHandle.allocate
        self.workers: List[Worker] = []
        self._tasks: List[asyncio.Task] = []

    def _allocate_browser(self) -> Optional[BrowserHandle]:
        if not self.config.tech_detect:
            return None
        return self.browser_factory()

    def start(self) -> int:
        """
        Create and schedule the workers.

        Every started worker is subscribed to the queue before this returns,
        so the producer can begin sending right away.

        Returns:
            Number of workers started
        """
        for worker_id in range(self.config.concurrency):
            try:
                browser = self._allocate_browser()
            except BrowserStartupError as e:
                self.metrics.workers_failed += 1
                logger.error(f"Worker {worker_id} not started: {e}")
                continue

            worker = Worker(
                worker_id=worker_id,
                queue=self.queue,
                prober=HttpProbe(
                    timeout=self.config.timeout,
                    follow_redirects=self.config.follow_redirects,
                    transport=self.transport
                ),
                resolver=self.resolver,
                analyzer=self.analyzer,
                emitter=self.emitter,
                metrics=self.metrics,
                browser=browser,
            )
            self.queue.subscribe()
            self.workers.append(worker)
            self._tasks.append(asyncio.create_task(worker.run(), name=f"hrekt-worker-{worker_id}"))

        self.metrics.workers_started = len(self.workers)
        if not self.workers:
            logger.error("No workers could be started")
        else:
            logger.info(f"Started {len(self.workers)}/{self.config.concurrency} workers")
        return len(self.workers)

    async def join(self) -> None:
        """Wait for every worker to finish."""
        if self._tasks:
            await asyncio.gather(*self._tasks)
