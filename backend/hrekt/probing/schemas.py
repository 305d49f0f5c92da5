"""
HTTP Probing Schemas

Pydantic models for the data flowing through the probing pipeline:
jobs handed to workers, raw probe outcomes and printable match results.
"""

from typing import List, Optional, Tuple
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from ..config import ProbeConfig


class StatusClass(str, Enum):
    """HTTP status code classes used for output styling"""
    INFORMATIONAL = "1xx"
    SUCCESS = "2xx"
    REDIRECTION = "3xx"
    CLIENT_ERROR = "4xx"
    SERVER_ERROR = "5xx"

    @classmethod
    def from_status(cls, status_code: int) -> Optional["StatusClass"]:
        """Bucket a status code into its class, None outside [100, 600)"""
        if 100 <= status_code < 200:
            return cls.INFORMATIONAL
        if 200 <= status_code < 300:
            return cls.SUCCESS
        if 300 <= status_code < 400:
            return cls.REDIRECTION
        if 400 <= status_code < 500:
            return cls.CLIENT_ERROR
        if 500 <= status_code < 600:
            return cls.SERVER_ERROR
        return None


class Job(BaseModel):
    """One host to probe, with a snapshot of the per-job settings"""
    model_config = ConfigDict(frozen=True)

    host: str
    ports: str = "80,443"
    path: Optional[str] = None
    body_regex: Optional[str] = None
    header_regex: Optional[str] = None

    title: bool = False
    tech_detect: bool = False
    status_code: bool = False
    content_length: bool = False
    content_type: bool = False
    server: bool = False

    @classmethod
    def from_config(cls, host: str, config: ProbeConfig) -> "Job":
        return cls(
            host=host,
            ports=config.ports,
            path=config.path,
            body_regex=config.body_regex,
            header_regex=config.header_regex,
            title=config.title,
            tech_detect=config.tech_detect,
            status_code=config.status_code,
            content_length=config.content_length,
            content_type=config.content_type,
            server=config.server,
        )


class ProbeOutcome(BaseModel):
    """Response captured for a single candidate URL"""
    url: str
    final_url: Optional[str] = None
    status_code: int
    headers: List[Tuple[str, str]] = Field(default_factory=list)
    body: str = ""
    content_length: Optional[int] = None

    def header(self, name: str) -> Optional[str]:
        """First value of header *name* (case-insensitive)"""
        wanted = name.lower()
        for key, value in self.headers:
            if key.lower() == wanted:
                return value
        return None

    def header_lines(self) -> List[str]:
        """Headers rendered as ``name:value`` lines, in received order"""
        return [f"{key}:{value}" for key, value in self.headers]


class MatchResult(BaseModel):
    """Printable result for one surviving candidate"""
    url: str
    status_code: int
    title: Optional[str] = None
    body_match: Optional[str] = None
    header_match: Optional[str] = None
    technologies: List[str] = Field(default_factory=list)
    content_type: Optional[str] = None
    content_length: Optional[int] = None
    server: Optional[str] = None

    @property
    def status_class(self) -> Optional[StatusClass]:
        return StatusClass.from_status(self.status_code)
