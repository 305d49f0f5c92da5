"""
Tests for the HTTP prober.
"""

import asyncio

import httpx
import pytest

from hrekt.config import MAX_REDIRECTS, USER_AGENT
from hrekt.exceptions import ProbeError
from hrekt.probing.http_probe import HttpProbe, build_client
from conftest import make_transport, respond

CANDIDATE = "https://example.com:443"


class TestBuildClient:
    """Tests for the per-worker client configuration"""

    def test_redirects_disabled_by_default(self):
        client = build_client(timeout=3, follow_redirects=False)

        assert client.follow_redirects is False
        assert client.headers["User-Agent"] == USER_AGENT
        assert client.timeout.read == 3

    def test_redirects_limited(self):
        client = build_client(timeout=3, follow_redirects=True)

        assert client.follow_redirects is True
        assert client.max_redirects == MAX_REDIRECTS


class TestHttpProbe:
    """Tests for HttpProbe class"""

    def test_initialization(self):
        probe = HttpProbe(timeout=15, follow_redirects=True)

        assert probe.timeout == 15
        assert probe.follow_redirects == True

    @pytest.mark.asyncio
    async def test_fetch_captures_response(self, sample_html):
        transport = make_transport({
            "https://example.com:443/": respond(
                200, sample_html, [("Server", "nginx"), ("X-Powered-By", "PHP/7.4")]
            ),
        })

        async with HttpProbe(transport=transport) as probe:
            outcome = await probe.fetch(CANDIDATE)

        assert outcome.url == CANDIDATE
        assert outcome.status_code == 200
        assert outcome.body == sample_html
        assert outcome.content_length == len(sample_html)
        assert outcome.header("server") == "nginx"
        # names keep the case they were sent with, in received order
        assert outcome.headers[:2] == [("Server", "nginx"), ("X-Powered-By", "PHP/7.4")]
        assert "X-Powered-By:PHP/7.4" in outcome.header_lines()

    @pytest.mark.asyncio
    async def test_connection_error_raises_probe_error(self):
        async with HttpProbe(transport=make_transport({})) as probe:
            with pytest.raises(ProbeError):
                await probe.fetch(CANDIDATE)

    @pytest.mark.asyncio
    async def test_timeout_raises_probe_error(self):
        def slow(request):
            raise httpx.ReadTimeout("timed out", request=request)

        transport = make_transport({"https://example.com:443/": slow})
        async with HttpProbe(transport=transport) as probe:
            with pytest.raises(ProbeError) as exc_info:
                await probe.fetch(CANDIDATE)

        assert "ReadTimeout" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_slow_body_hits_request_deadline(self):
        """Bytes trickling in faster than the read timeout still end at the deadline"""
        async def drip():
            for _ in range(50):
                yield b"x"
                await asyncio.sleep(0.05)

        async def handler(request):
            return httpx.Response(200, content=drip())

        loop = asyncio.get_running_loop()
        started = loop.time()
        async with HttpProbe(timeout=0.5, transport=httpx.MockTransport(handler)) as probe:
            with pytest.raises(ProbeError) as exc_info:
                await probe.fetch(CANDIDATE)

        assert loop.time() - started < 2
        assert "timed out" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_malformed_url_raises_probe_error(self):
        """A path without a leading slash corrupts the port"""
        async with HttpProbe(transport=make_transport({})) as probe:
            with pytest.raises(ProbeError):
                await probe.probe(CANDIDATE, "admin")

    @pytest.mark.asyncio
    async def test_probe_without_path_targets_candidate(self):
        seen = []
        transport = make_transport({"https://example.com:443/": respond(200, "ok")}, seen)

        async with HttpProbe(transport=transport) as probe:
            outcome = await probe.probe(CANDIDATE)

        assert outcome.status_code == 200
        assert seen == ["https://example.com:443/"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", [404, 400])
    async def test_rejected_path_abandons_candidate(self, status):
        transport = make_transport({
            "https://example.com:443/admin": respond(status, "nope"),
            "https://example.com:443/": respond(200, "root"),
        })

        async with HttpProbe(transport=transport) as probe:
            assert await probe.probe(CANDIDATE, "/admin") is None

    @pytest.mark.asyncio
    async def test_accepted_path_is_fetched_once(self):
        seen = []
        transport = make_transport({
            "https://example.com:443/admin": respond(403, "forbidden"),
        }, seen)

        async with HttpProbe(transport=transport) as probe:
            outcome = await probe.probe(CANDIDATE, "/admin")

        assert outcome.url == "https://example.com:443/admin"
        assert outcome.status_code == 403
        assert seen == ["https://example.com:443/admin"]

    @pytest.mark.asyncio
    async def test_redirect_not_followed_by_default(self):
        transport = make_transport({
            "http://example.com:80/": respond(301, "", [("Location", "https://example.com/")]),
        })

        async with HttpProbe(transport=transport) as probe:
            outcome = await probe.fetch("http://example.com:80")

        assert outcome.status_code == 301

    @pytest.mark.asyncio
    async def test_redirect_followed_when_enabled(self):
        transport = make_transport({
            "http://example.com:80/": respond(301, "", [("Location", "https://example.com/home")]),
            "https://example.com:443/home": respond(200, "home"),
        })

        async with HttpProbe(follow_redirects=True, transport=transport) as probe:
            outcome = await probe.fetch("http://example.com:80")

        assert outcome.status_code == 200
        assert outcome.url == "http://example.com:80"
        assert outcome.final_url == "https://example.com/home"

    @pytest.mark.asyncio
    async def test_redirect_loop_raises_probe_error(self):
        transport = make_transport({
            "http://example.com:80/": respond(302, "", [("Location", "http://example.com/")]),
        })

        async with HttpProbe(follow_redirects=True, transport=transport) as probe:
            with pytest.raises(ProbeError):
                await probe.fetch("http://example.com:80")
