"""
Dispatcher

Composition root of the probing pipeline:
1. Read host lines from the input stream
2. Build one Job per line from the configuration snapshot
3. Admit it through the rate limiter and hand it to the job queue
4. Supervise the worker pool until the queue is drained
"""

import asyncio
import logging
import re
import sys
from concurrent.futures import ThreadPoolExecutor
from typing import AsyncIterator, Optional, TextIO

import httpx

from ..config import ProbeConfig
from ..exceptions import QueueSendError
from ..utils.metrics import ScanMetrics
from ..utils.rate_limiter import TokenBucketRateLimiter, limiter_for_rate
from .analyzer import ContentAnalyzer, Fingerprinter
from .emitter import Emitter
from .job_queue import JobQueue
from .resolver import Resolver
from .schemas import Job
from .wappalyzer_wrapper import WappalyzerWrapper
from .worker import BrowserFactory, WorkerPool

logger = logging.getLogger(__name__)


class Dispatcher:
    """
    Feeds jobs to the worker pool at a bounded rate.

    The run is over when the feed has finished and every worker has
    drained the queue; failed candidates never affect the outcome.
    """

    def __init__(
        self,
        config: ProbeConfig,
        input_stream: Optional[TextIO] = None,
        emitter: Optional[Emitter] = None,
        resolver: Optional[Resolver] = None,
        fingerprinter: Optional[Fingerprinter] = None,
        limiter: Optional[TokenBucketRateLimiter] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        browser_factory: Optional[BrowserFactory] = None
    ):
        """
        Initialize dispatcher.

        Args:
            config: Run configuration
            input_stream: Host lines (defaults to stdin)
            emitter: Output writer (defaults to stdout)
            resolver: Candidate resolver (defaults to DNS)
            fingerprinter: Technology detector (defaults to Wappalyzer CLI)
            limiter: Admission limiter (defaults to ``config.rate``)
            transport: Optional httpx transport shared by the workers' clients
            browser_factory: Allocates one browser handle per worker
        """
        self.config = config
        self.input_stream = input_stream if input_stream is not None else sys.stdin
        self.emitter = emitter or Emitter(color=config.color)
        self.resolver = resolver or Resolver(
            timeout=config.timeout,
            nameservers=config.resolvers,
            threads=config.concurrency,
        )
        self.limiter = limiter or limiter_for_rate(config.rate)
        self.metrics = ScanMetrics()

        if fingerprinter is None and config.tech_detect:
            fingerprinter = WappalyzerWrapper(timeout=max(30, config.timeout))
        self.analyzer = ContentAnalyzer(fingerprinter)

        self.queue: Optional[JobQueue] = None
        self.transport = transport
        self.browser_factory = browser_factory

    def _check_patterns(self) -> None:
        """Warn up front about caller patterns that will drop every candidate"""
        for name, pattern in (("body regex", self.config.body_regex),
                              ("header regex", self.config.header_regex)):
            if not pattern:
                continue
            try:
                re.compile(pattern)
            except re.error as e:
                logger.warning(f"{name} {pattern!r} does not compile ({e}); no candidate will match")

    def _readline(self) -> str:
        """Next input line; bytes that are not valid UTF-8 are replaced"""
        buffer = getattr(self.input_stream, "buffer", None)
        if buffer is None:
            return self.input_stream.readline()
        return buffer.readline().decode("utf-8", errors="replace")

    async def _read_lines(self) -> AsyncIterator[str]:
        """Yield input lines without their line terminator, blank ones included"""
        loop = asyncio.get_running_loop()
        while True:
            line = await loop.run_in_executor(None, self._readline)
            if not line:
                break
            yield line.rstrip("\r\n")

    async def feed(self) -> None:
        """Producer task: one rate-limited job per input line."""
        try:
            async for host in self._read_lines():
                job = Job.from_config(host, self.config)
                await self.limiter.admit()
                try:
                    await self.queue.send(job)
                except QueueSendError as e:
                    self.metrics.increment("send_errors")
                    logger.error(str(e))
                    continue
                self.metrics.increment("jobs")
        finally:
            await self.queue.close()

    async def run(self) -> ScanMetrics:
        """
        Execute the whole run.

        Returns:
            ScanMetrics with the run counters
        """
        loop = asyncio.get_running_loop()
        executor = ThreadPoolExecutor(max_workers=self.config.workers, thread_name_prefix="hrekt")
        loop.set_default_executor(executor)

        self._check_patterns()
        self.metrics.start()

        self.queue = JobQueue(maxsize=self.config.concurrency)
        pool = WorkerPool(
            config=self.config,
            queue=self.queue,
            resolver=self.resolver,
            analyzer=self.analyzer,
            emitter=self.emitter,
            metrics=self.metrics,
            transport=self.transport,
            browser_factory=self.browser_factory,
        )
        pool.start()

        try:
            await asyncio.gather(self.feed(), pool.join())
        finally:
            self.resolver.close()

        self.metrics.stop()
        logger.info(
            f"Probe completed: {self.metrics.summary()}",
            extra={"scan_metrics": self.metrics.to_dict()}
        )
        return self.metrics


def run_scan(config: ProbeConfig, input_stream: Optional[TextIO] = None) -> ScanMetrics:
    """Run a complete scan on a fresh event loop."""
    return asyncio.run(Dispatcher(config, input_stream=input_stream).run())
