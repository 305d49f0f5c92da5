"""
Job Queue Module

Single-producer, multi-consumer channel carrying jobs from the dispatcher
to the worker pool. Every job is delivered to exactly one worker; closing
the queue lets each worker drain what is left and then stop.
"""

import asyncio
import logging
from typing import Optional

from ..exceptions import QueueSendError
from .schemas import Job

logger = logging.getLogger(__name__)

_CLOSED = object()


class JobQueue:
    """
    Competing-consumers queue built on ``asyncio.Queue``.

    Consumers register with :meth:`subscribe` before the producer starts
    and call :meth:`unsubscribe` when they stop. Sending to a closed queue,
    or to one with no consumers left, raises ``QueueSendError``.
    """

    def __init__(self, maxsize: int = 0):
        """
        Args:
            maxsize: Maximum buffered jobs (0 means unbounded)
        """
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=maxsize)
        self._closed = False
        self._consumers = 0

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def consumers(self) -> int:
        return self._consumers

    def subscribe(self) -> None:
        self._consumers += 1

    def unsubscribe(self) -> None:
        self._consumers = max(0, self._consumers - 1)

    async def send(self, job: Job) -> None:
        """
        Enqueue a job, waiting for room when the queue is bounded.

        Raises:
            QueueSendError: if the queue is closed or nobody is consuming
        """
        if self._closed:
            raise QueueSendError(f"queue closed, dropping job for {job.host!r}")
        if self._consumers == 0:
            raise QueueSendError(f"no workers available, dropping job for {job.host!r}")
        await self._queue.put(job)

    async def recv(self) -> Optional[Job]:
        """
        Take the next job.

        Returns:
            The next job, or None once the queue is closed and drained
        """
        item = await self._queue.get()
        if item is _CLOSED:
            # leave the marker in place for the other consumers
            self._queue.put_nowait(_CLOSED)
            return None
        return item

    async def close(self) -> None:
        """Stop accepting jobs; consumers exit after draining the backlog"""
        if self._closed:
            return
        self._closed = True
        await self._queue.put(_CLOSED)
        logger.debug("Job queue closed")
