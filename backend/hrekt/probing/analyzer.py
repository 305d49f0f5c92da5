"""
Content Analyzer Module

Inspects a captured response: page title, body and header regex filters,
content metadata and (optionally) technology fingerprinting.
"""

import re
from typing import Iterable, List, Optional, Protocol
import logging

from .schemas import Job, MatchResult, ProbeOutcome
from .wappalyzer_wrapper import BrowserHandle

logger = logging.getLogger(__name__)

TITLE_RE = re.compile(r"<title>(.*)</title>")


class Fingerprinter(Protocol):
    """Technology detection collaborator"""

    async def scan(self, url: str, browser: Optional[BrowserHandle]) -> List[str]:
        ...


def extract_title(body: str) -> Optional[str]:
    """First ``<title>`` capture in the body, None when absent or empty"""
    match = TITLE_RE.search(body)
    if match and match.group(1):
        return match.group(1)
    return None


def _match_text(match: re.Match) -> str:
    # first capture group when the pattern has one, else the whole match
    if match.re.groups:
        return match.group(1) or ""
    return match.group(0)


def match_body(pattern: str, body: str) -> Optional[str]:
    """
    Apply the body regex.

    Returns:
        The reported match string, or None when the body does not match

    Raises:
        re.error: if the pattern does not compile
    """
    match = re.search(pattern, body)
    if match is None:
        return None
    return _match_text(match)


def match_headers(pattern: str, header_lines: Iterable[str]) -> Optional[str]:
    """
    Apply the header regex to ``name:value`` lines.

    Any single matching line qualifies the response; the scan stops at the
    first one.

    Returns:
        Matched text of the first matching line, or None if no line matches

    Raises:
        re.error: if the pattern does not compile
    """
    compiled = re.compile(pattern)
    for line in header_lines:
        match = compiled.search(line)
        if match:
            return _match_text(match)
    return None


class ContentAnalyzer:
    """
    Turns a ProbeOutcome into a MatchResult, or filters it out.

    Regex gates are applied before technology detection so that the
    browser is only driven for candidates that will be reported.
    """

    def __init__(self, fingerprinter: Optional[Fingerprinter] = None):
        """
        Initialize analyzer.

        Args:
            fingerprinter: Collaborator used when a job asks for tech detection
        """
        self.fingerprinter = fingerprinter

    async def analyze(
        self,
        outcome: ProbeOutcome,
        job: Job,
        browser: Optional[BrowserHandle] = None
    ) -> Optional[MatchResult]:
        """
        Analyze one response against a job.

        Returns:
            MatchResult, or None when a regex gate filtered the candidate

        Raises:
            re.error: if a caller supplied pattern does not compile
            TechDetectionError: if technology detection failed
        """
        header_match = None
        if job.header_regex:
            header_match = match_headers(job.header_regex, outcome.header_lines())
            if header_match is None:
                logger.debug(f"{outcome.url}: no header matched {job.header_regex!r}")
                return None

        body_match = None
        if job.body_regex:
            body_match = match_body(job.body_regex, outcome.body)
            if body_match is None:
                logger.debug(f"{outcome.url}: body did not match {job.body_regex!r}")
                return None

        technologies: List[str] = []
        if job.tech_detect and self.fingerprinter is not None:
            technologies = await self.fingerprinter.scan(outcome.url, browser)

        return MatchResult(
            url=outcome.url,
            status_code=outcome.status_code,
            title=extract_title(outcome.body) if job.title else None,
            body_match=body_match,
            header_match=header_match,
            technologies=technologies,
            content_type=outcome.header("content-type") or None,
            content_length=outcome.content_length,
            server=outcome.header("server") or None,
        )
