"""
Result Emitter Module

Formats MatchResults as single output lines. Status codes are bucketed
into their class and each class gets its own color.
"""

import sys
from typing import Dict, List, Optional, TextIO

from colorama import Fore, Style

from .schemas import Job, MatchResult, StatusClass

STATUS_STYLES: Dict[StatusClass, str] = {
    StatusClass.INFORMATIONAL: Fore.BLUE,
    StatusClass.SUCCESS: Fore.GREEN,
    StatusClass.REDIRECTION: Fore.YELLOW,
    StatusClass.CLIENT_ERROR: Fore.MAGENTA,
    StatusClass.SERVER_ERROR: Fore.RED,
}


class Emitter:
    """
    Writes one line per surviving candidate.

    Field order is fixed: URL, title, status, technologies, content-type,
    content-length, server, then the body and header regex captures. A
    field is only present when the job asked for it.
    """

    def __init__(self, stream: Optional[TextIO] = None, color: bool = True):
        self.stream = stream if stream is not None else sys.stdout
        self.color = color
        self.lines_written = 0

    def _paint(self, text: str, style: str) -> str:
        if not self.color or not style:
            return text
        return f"{style}{text}{Style.RESET_ALL}"

    def _field(self, value: object, style: str = "") -> str:
        return self._paint(f"[{'' if value is None else value}]", style)

    def format(self, result: MatchResult, job: Job) -> str:
        """Render a result as an output line (without newline)"""
        fields: List[str] = [self._paint(result.url, Style.BRIGHT)]

        if job.title:
            fields.append(self._field(result.title))
        if job.status_code:
            status_class = result.status_class
            style = STATUS_STYLES.get(status_class, "") if status_class else ""
            fields.append(self._field(result.status_code, style))
        if job.tech_detect:
            fields.append(self._field(",".join(result.technologies), Fore.CYAN))
        if job.content_type:
            fields.append(self._field(result.content_type))
        if job.content_length:
            fields.append(self._field(result.content_length))
        if job.server:
            fields.append(self._field(result.server))
        if job.body_regex:
            fields.append(self._field(result.body_match))
        if job.header_regex:
            fields.append(self._field(result.header_match))

        return " ".join(fields)

    def emit(self, result: MatchResult, job: Job) -> str:
        """Write one result line and flush"""
        line = self.format(result, job)
        self.stream.write(line + "\n")
        self.stream.flush()
        self.lines_written += 1
        return line
