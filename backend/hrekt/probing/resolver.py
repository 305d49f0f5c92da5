"""
Candidate Resolution Module

Expands a host and its port list into the ``scheme://host:port`` candidates
worth probing. A candidate is only produced when the host resolves to at
least one IPv4 address.

Names go through the system resolver (hosts file, NSS, then DNS) unless
explicit nameservers are configured, in which case A records are queried
directly with dnspython.
"""

import asyncio
import ipaddress
import logging
import socket
from concurrent.futures import ThreadPoolExecutor
from typing import Awaitable, Callable, List, Optional, Tuple

import dns.asyncresolver
import dns.exception
import dns.resolver

logger = logging.getLogger(__name__)

HTTP = "http://"
HTTPS = "https://"

DEFAULT_LOOKUP_THREADS = 16

LookupFn = Callable[[str, str], Awaitable[List[str]]]


def schemes_for_port(port: str) -> List[str]:
    """
    Schemes to attempt for one port token.

    Tokens are compared literally: ``"80"`` is plain HTTP, ``"443"`` is
    HTTPS, anything else is tried as HTTPS first and then HTTP.
    """
    if port == "80":
        return [HTTP]
    if port == "443":
        return [HTTPS]
    return [HTTPS, HTTP]


def has_ipv4(addresses: List[str]) -> bool:
    """True if any of *addresses* is an IPv4 address"""
    for address in addresses:
        try:
            if isinstance(ipaddress.ip_address(address), ipaddress.IPv4Address):
                return True
        except ValueError:
            continue
    return False


class Resolver:
    """Turns one job's host and ports into probe candidates."""

    def __init__(
        self,
        timeout: float = 3.0,
        lookup: Optional[LookupFn] = None,
        nameservers: Optional[List[str]] = None,
        threads: int = DEFAULT_LOOKUP_THREADS
    ):
        """
        Initialize resolver.

        Args:
            timeout: Lookup deadline in seconds
            lookup: Optional replacement for the lookup coroutine
            nameservers: DNS servers to query instead of the system resolver
            threads: Size of the thread pool running system lookups
        """
        self.timeout = timeout
        self._lookup = lookup
        self._dns: Optional[dns.asyncresolver.Resolver] = None
        self.nameservers = nameservers
        self.threads = threads
        self._executor: Optional[ThreadPoolExecutor] = None

    def _get_dns(self) -> dns.asyncresolver.Resolver:
        if self._dns is None:
            resolver = dns.asyncresolver.Resolver(configure=False)
            resolver.lifetime = self.timeout
            resolver.nameservers = self.nameservers
            self._dns = resolver
        return self._dns

    def _get_executor(self) -> ThreadPoolExecutor:
        # getaddrinfo blocks, and the loop's default pool is kept for stdin
        if self._executor is None:
            self._executor = ThreadPoolExecutor(max_workers=self.threads, thread_name_prefix="hrekt-dns")
        return self._executor

    async def _system_lookup(self, host: str, port: str) -> List[str]:
        loop = asyncio.get_running_loop()
        infos = await asyncio.wait_for(
            loop.run_in_executor(
                self._get_executor(),
                socket.getaddrinfo, host, port, socket.AF_INET, socket.SOCK_STREAM
            ),
            timeout=self.timeout
        )
        return [info[4][0] for info in infos]

    async def _dns_lookup(self, host: str) -> List[str]:
        answers = await self._get_dns().resolve(host, "A")
        return [str(rdata) for rdata in answers]

    async def lookup(self, host: str, port: str) -> List[str]:
        """
        Look up the addresses for ``host:port``.

        IP literals resolve to themselves. Raises on lookup failure.
        """
        if self._lookup is not None:
            return await self._lookup(host, port)

        if not host:
            raise ValueError("empty host")

        try:
            ipaddress.ip_address(host)
            return [host]
        except ValueError:
            pass

        if self.nameservers:
            return await self._dns_lookup(host)
        return await self._system_lookup(host, port)

    def close(self) -> None:
        """Release the lookup threads; a later lookup starts a fresh pool"""
        if self._executor is not None:
            self._executor.shutdown(wait=False)
            self._executor = None

    async def _attempt(self, host: str, scheme: str, port: str) -> Optional[str]:
        """Resolve one (scheme, host, port) attempt into a candidate URL."""
        try:
            addresses = await self.lookup(host, port)
        except dns.resolver.NXDOMAIN:
            logger.debug(f"Domain {host} does not exist (NXDOMAIN)")
            return None
        except dns.resolver.NoAnswer:
            logger.debug(f"No A records for {host}")
            return None
        except (dns.exception.Timeout, asyncio.TimeoutError):
            logger.debug(f"Lookup timeout resolving {host}")
            return None
        except (dns.exception.DNSException, ValueError, UnicodeError, OSError) as e:
            logger.debug(f"Error resolving {host}:{port}: {e}")
            return None

        if not has_ipv4(addresses):
            logger.debug(f"No IPv4 address for {host}:{port}")
            return None

        return f"{scheme}{host}:{port}"

    def plan(self, ports: str) -> List[Tuple[str, str]]:
        """(scheme, port) attempts for a comma separated port list, in order"""
        attempts = []
        for port in ports.split(","):
            for scheme in schemes_for_port(port):
                attempts.append((scheme, port))
        return attempts

    async def resolve(self, host: str, ports: str) -> List[str]:
        """
        Resolve every candidate for *host* before any of them is probed.

        Args:
            host: Bare host name (no scheme)
            ports: Comma separated port list, tokens are not trimmed

        Returns:
            Candidate URLs in port order
        """
        attempts = self.plan(ports)
        results = await asyncio.gather(
            *(self._attempt(host, scheme, port) for scheme, port in attempts)
        )
        candidates = [candidate for candidate in results if candidate]
        logger.debug(f"Resolved {len(candidates)}/{len(attempts)} candidates for {host!r}")
        return candidates
