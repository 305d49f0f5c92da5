"""
HTTP Probe Module

Core HTTP probing functionality using an httpx async client.
Handles HTTP/HTTPS requests, optional path gating, and response capture.
"""

import asyncio
from typing import List, Optional, Tuple
import logging

import httpx

from ..config import MAX_REDIRECTS, USER_AGENT
from ..exceptions import ProbeError
from .schemas import ProbeOutcome

logger = logging.getLogger(__name__)

# Path probe answers that mean "nothing here"
REJECTED_PATH_STATUSES = frozenset((400, 404))


def build_client(
    timeout: float,
    follow_redirects: bool,
    transport: Optional[httpx.AsyncBaseTransport] = None
) -> httpx.AsyncClient:
    """
    Build the HTTP client owned by one worker.

    Certificates and hostnames are never validated; redirects are either
    disabled or limited to ``MAX_REDIRECTS`` hops.
    """
    return httpx.AsyncClient(
        headers={"User-Agent": USER_AGENT},
        follow_redirects=follow_redirects,
        max_redirects=MAX_REDIRECTS,
        timeout=httpx.Timeout(timeout),
        verify=False,
        transport=transport,
    )


def _decode_headers(raw: List[Tuple[bytes, bytes]]) -> List[Tuple[str, str]]:
    """Header pairs as received; values that are not valid UTF-8 become empty"""
    headers = []
    for key, value in raw:
        try:
            decoded = value.decode("utf-8")
        except UnicodeDecodeError:
            decoded = ""
        headers.append((key.decode("latin-1"), decoded))
    return headers


class HttpProbe:
    """
    HTTP prober bound to a single worker.

    The underlying client is created once and reused for every job the
    worker processes. It is never shared with another worker.
    """

    def __init__(
        self,
        timeout: float = 3,
        follow_redirects: bool = False,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        """
        Initialize HTTP probe.

        Args:
            timeout: Request timeout in seconds
            follow_redirects: Whether to follow HTTP redirects
            transport: Optional httpx transport (used to mock the network)
        """
        self.timeout = timeout
        self.follow_redirects = follow_redirects
        self.client = build_client(timeout, follow_redirects, transport)

    async def fetch(self, url: str) -> ProbeOutcome:
        """
        GET a URL and capture the full response.

        Raises:
            ProbeError: if the request cannot be built or executed
        """
        try:
            # httpx limits each phase separately; this bounds the whole request
            response = await asyncio.wait_for(self.client.get(url), timeout=self.timeout)
        except asyncio.TimeoutError as e:
            raise ProbeError(url, f"timed out after {self.timeout}s") from e
        except httpx.InvalidURL as e:
            raise ProbeError(url, f"invalid url: {e}") from e
        except httpx.HTTPError as e:
            raise ProbeError(url, f"{type(e).__name__}: {e}") from e

        length = response.headers.get("content-length")
        return ProbeOutcome(
            url=url,
            final_url=str(response.url),
            status_code=response.status_code,
            headers=_decode_headers(response.headers.raw),
            body=response.text,
            content_length=int(length) if length and length.isdigit() else None,
        )

    async def probe(self, candidate: str, path: Optional[str] = None) -> Optional[ProbeOutcome]:
        """
        Probe one candidate URL.

        With a path, ``candidate + path`` is requested first and the
        candidate is abandoned when it answers 404 or 400. The same
        response is then used for analysis.

        Args:
            candidate: ``scheme://host:port`` URL
            path: Optional path appended verbatim to the candidate

        Returns:
            ProbeOutcome, or None when the path probe rejected the candidate

        Raises:
            ProbeError: if the request failed
        """
        if not path:
            return await self.fetch(candidate)

        outcome = await self.fetch(f"{candidate}{path}")
        if outcome.status_code in REJECTED_PATH_STATUSES:
            logger.debug(f"Path {path} rejected on {candidate} ({outcome.status_code})")
            return None
        return outcome

    async def aclose(self) -> None:
        await self.client.aclose()

    async def __aenter__(self) -> "HttpProbe":
        return self

    async def __aexit__(self, *args) -> None:
        await self.aclose()
