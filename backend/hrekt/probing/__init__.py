"""
HTTP Probing Module

This module provides the concurrent probing pipeline:
- Candidate resolution (port/scheme expansion over DNS)
- HTTP probing with per-worker httpx clients
- Content analysis (title, body/header regex, metadata)
- Technology fingerprinting (Wappalyzer)
- Result classification and output
"""

from .analyzer import ContentAnalyzer
from .dispatcher import Dispatcher, run_scan
from .emitter import Emitter
from .http_probe import HttpProbe
from .job_queue import JobQueue
from .resolver import Resolver
from .wappalyzer_wrapper import BrowserHandle, WappalyzerWrapper
from .worker import Worker, WorkerPool
from .schemas import (
    Job,
    MatchResult,
    ProbeOutcome,
    StatusClass
)

__all__ = [
    'ContentAnalyzer',
    'Dispatcher',
    'run_scan',
    'Emitter',
    'HttpProbe',
    'JobQueue',
    'Resolver',
    'BrowserHandle',
    'WappalyzerWrapper',
    'Worker',
    'WorkerPool',
    'Job',
    'MatchResult',
    'ProbeOutcome',
    'StatusClass',
]
