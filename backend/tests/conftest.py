"""
Test configuration and fixtures for the probing pipeline tests.

The network is never touched: DNS goes through a fake lookup coroutine and
HTTP through ``httpx.MockTransport``.
"""

import io
from typing import Callable, Dict, Iterable, List, Optional

import dns.resolver
import httpx
import pytest

from hrekt.config import ProbeConfig
from hrekt.probing.emitter import Emitter
from hrekt.probing.resolver import Resolver


def url_key(url: httpx.URL) -> str:
    """``scheme://host:port/path`` with the default port spelled out."""
    port = url.port or (443 if url.scheme == "https" else 80)
    return f"{url.scheme}://{url.host}:{port}{url.path}"


def make_transport(routes: Dict[str, Callable[[httpx.Request], httpx.Response]],
                   seen: Optional[List[str]] = None) -> httpx.MockTransport:
    """
    Build a mock transport from ``url_key -> handler`` routes.

    Unknown URLs fail with a connection error, like an unreachable host.
    """
    def handler(request: httpx.Request) -> httpx.Response:
        key = url_key(request.url)
        if seen is not None:
            seen.append(key)
        if key not in routes:
            raise httpx.ConnectError(f"connection refused: {key}", request=request)
        return routes[key](request)

    return httpx.MockTransport(handler)


def respond(status: int = 200, body: str = "", headers: Iterable = ()) -> Callable:
    """Route handler returning a fixed response."""
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status, headers=list(headers), text=body)
    return handler


def make_lookup(table: Dict[str, List[str]], calls: Optional[List[str]] = None):
    """
    Fake DNS lookup keyed by ``host:port`` (or bare host).

    Missing entries raise NXDOMAIN.
    """
    async def lookup(host: str, port: str) -> List[str]:
        if calls is not None:
            calls.append(f"{host}:{port}")
        for key in (f"{host}:{port}", host):
            if key in table:
                return table[key]
        raise dns.resolver.NXDOMAIN()
    return lookup


@pytest.fixture
def sample_domain():
    """Sample domain for testing."""
    return "example.com"


@pytest.fixture
def sample_html() -> str:
    return "<html><title>Example</title></html>"


@pytest.fixture
def output() -> io.StringIO:
    return io.StringIO()


@pytest.fixture
def emitter(output) -> Emitter:
    """Plain-text emitter writing into an in-memory buffer."""
    return Emitter(stream=output, color=False)


@pytest.fixture
def https_only_resolver(sample_domain) -> Resolver:
    """Resolver that only finds the HTTPS candidate for the sample domain."""
    return Resolver(lookup=make_lookup({
        f"{sample_domain}:443": ["93.184.216.34"],
        f"{sample_domain}:80": [],
    }))


@pytest.fixture
def base_config() -> ProbeConfig:
    return ProbeConfig(rate=1000, concurrency=2, timeout=3)
