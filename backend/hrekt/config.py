"""
Probe Configuration

Immutable run configuration consumed by the probing core. Built once at
startup (normally by the CLI) and shared read-only with the dispatcher,
every job and every worker.
"""

import logging
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

logger = logging.getLogger(__name__)

DEFAULT_RATE = 1000
DEFAULT_CONCURRENCY = 100
DEFAULT_TIMEOUT = 3
DEFAULT_WORKERS = 1
DEFAULT_PORTS = "80,443"

USER_AGENT = "Mozilla/5.0 (Macintosh; Intel Mac OS X 10.15; rv:95.0) Gecko/20100101 Firefox/95.0"
MAX_REDIRECTS = 10


def _positive_int_or_default(name: str, value: Any, default: int) -> int:
    """Parse *value* as a positive integer, falling back to *default*."""
    if value is None or isinstance(value, bool):
        parsed = None
    else:
        try:
            parsed = int(str(value).strip())
        except ValueError:
            parsed = None

    if parsed is None or parsed <= 0:
        logger.warning(f"could not parse {name} ({value!r}), using default of {default}")
        return default
    return parsed


class ProbeConfig(BaseModel):
    """Run-wide probe settings"""
    model_config = ConfigDict(frozen=True)

    rate: int = Field(default=DEFAULT_RATE, description="Jobs admitted per second")
    concurrency: int = Field(default=DEFAULT_CONCURRENCY, description="Number of worker tasks")
    timeout: int = Field(default=DEFAULT_TIMEOUT, description="Per-request timeout in seconds")
    workers: int = Field(default=DEFAULT_WORKERS, description="Threads in the blocking-call pool")
    ports: str = Field(default=DEFAULT_PORTS, description="Comma separated ports to probe")
    path: Optional[str] = Field(default=None, description="Path to probe on every candidate")
    body_regex: Optional[str] = Field(default=None, description="Pattern the body must match")
    header_regex: Optional[str] = Field(default=None, description="Pattern a header line must match")
    resolvers: Optional[List[str]] = Field(default=None, description="DNS servers used instead of the system resolver")

    title: bool = False
    tech_detect: bool = False
    status_code: bool = False
    content_length: bool = False
    content_type: bool = False
    server: bool = False

    follow_redirects: bool = False
    silent: bool = False
    color: bool = True

    @field_validator('rate', mode='before')
    @classmethod
    def validate_rate(cls, v):
        return _positive_int_or_default('rate', v, DEFAULT_RATE)

    @field_validator('concurrency', mode='before')
    @classmethod
    def validate_concurrency(cls, v):
        return _positive_int_or_default('concurrency', v, DEFAULT_CONCURRENCY)

    @field_validator('timeout', mode='before')
    @classmethod
    def validate_timeout(cls, v):
        return _positive_int_or_default('timeout', v, DEFAULT_TIMEOUT)

    @field_validator('workers', mode='before')
    @classmethod
    def validate_workers(cls, v):
        return _positive_int_or_default('workers', v, DEFAULT_WORKERS)

    @field_validator('ports', mode='before')
    @classmethod
    def validate_ports(cls, v):
        if v is None:
            return DEFAULT_PORTS
        return str(v)

    @field_validator('path', 'body_regex', 'header_regex', mode='before')
    @classmethod
    def empty_as_none(cls, v):
        # the CLI layer passes "" for unset patterns
        if v is None or v == "":
            return None
        return v

    @field_validator('resolvers', mode='before')
    @classmethod
    def split_resolvers(cls, v):
        if v is None:
            return None
        if isinstance(v, str):
            v = v.split(",")
        servers = [server.strip() for server in v if server.strip()]
        return servers or None
