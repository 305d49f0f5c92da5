"""
Wappalyzer Wrapper Module

Integrates the Wappalyzer CLI for browser-driven technology detection.
Each worker owns one ``BrowserHandle`` (a reserved debugging port and a
private profile directory) that is passed to every scan it runs.
"""

import asyncio
import json
import os
import shutil
import socket
import tempfile
from typing import Dict, List, Optional
import logging

from ..exceptions import BrowserStartupError, TechDetectionError

logger = logging.getLogger(__name__)


def random_free_tcp_port() -> int:
    """Ask the OS for a free local TCP port"""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


class BrowserHandle:
    """
    Browser resources reserved for one worker.

    Holds the remote-debugging port and the profile directory handed to
    the headless Chromium that Wappalyzer drives.
    """

    def __init__(self, port: int, data_dir: str):
        self.port = port
        self.data_dir = data_dir

    @classmethod
    def allocate(cls) -> "BrowserHandle":
        """
        Reserve a free port and a profile directory.

        Raises:
            BrowserStartupError: if no port or directory could be reserved
        """
        try:
            port = random_free_tcp_port()
            data_dir = tempfile.mkdtemp(prefix="hrekt-chromium-")
        except OSError as e:
            raise BrowserStartupError(f"could not reserve browser resources: {e}") from e
        return cls(port, data_dir)

    @property
    def env(self) -> Dict[str, str]:
        """Environment variables understood by the Wappalyzer CLI"""
        return {
            "CHROMIUM_ARGS": f"--headless --no-sandbox --remote-debugging-port={self.port}",
            "CHROMIUM_DATA_DIR": self.data_dir,
        }

    def close(self) -> None:
        shutil.rmtree(self.data_dir, ignore_errors=True)


class WappalyzerWrapper:
    """
    Wrapper for Wappalyzer CLI tool.

    Wappalyzer detects:
    - CMS (WordPress, Drupal, Joomla, etc.)
    - Frameworks (React, Vue, Angular, Django, Laravel, etc.)
    - JavaScript libraries (jQuery, Lodash, etc.)
    - Analytics, advertising networks, payment processors
    - And 6,000+ more technologies
    """

    def __init__(self, timeout: int = 30, binary: str = "wappalyzer"):
        """
        Initialize Wappalyzer wrapper.

        Args:
            timeout: Maximum time a single scan may take
            binary: Name or path of the Wappalyzer executable
        """
        self.timeout = timeout
        self.binary = binary

    @property
    def available(self) -> bool:
        """Check if Wappalyzer is installed"""
        return shutil.which(self.binary) is not None

    async def scan(self, url: str, browser: BrowserHandle) -> List[str]:
        """
        Detect technologies for a URL.

        Args:
            url: Fully resolved target URL
            browser: The calling worker's browser handle

        Returns:
            Technology names in the order reported

        Raises:
            TechDetectionError: on any failure of the CLI
        """
        output = await self._run_wappalyzer(url, browser)
        return self._parse_wappalyzer_output(output)

    async def _run_wappalyzer(self, url: str, browser: BrowserHandle) -> str:
        """Run Wappalyzer CLI and return its stdout"""
        env = dict(os.environ)
        env.update(browser.env)

        try:
            process = await asyncio.create_subprocess_exec(
                self.binary,
                url,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                env=env
            )
        except OSError as e:
            raise TechDetectionError(f"could not start {self.binary}: {e}") from e

        try:
            stdout, stderr = await asyncio.wait_for(
                process.communicate(),
                timeout=self.timeout
            )
        except asyncio.TimeoutError:
            process.kill()
            await process.wait()
            raise TechDetectionError(f"Wappalyzer timeout for {url}")

        if process.returncode != 0:
            raise TechDetectionError(
                f"Wappalyzer error for {url}: {stderr.decode(errors='replace').strip()}"
            )

        return stdout.decode(errors="replace")

    def _parse_wappalyzer_output(self, output: str) -> List[str]:
        """
        Parse Wappalyzer JSON output.

        Accepts both the flat layout (``{"technologies": [...]}``) and the
        per-URL layout (``{"urls": {"<url>": {"technologies": [...]}}}``).
        """
        try:
            data = json.loads(output)
        except json.JSONDecodeError as e:
            raise TechDetectionError(f"Failed to parse Wappalyzer JSON: {e}") from e

        if not isinstance(data, dict):
            raise TechDetectionError("Unexpected Wappalyzer output")

        entries: List[dict] = []
        if isinstance(data.get("technologies"), list):
            entries.extend(data["technologies"])
        else:
            for url_data in (data.get("urls") or {}).values():
                if isinstance(url_data, dict):
                    entries.extend(url_data.get("technologies", []))

        names: List[str] = []
        for tech in entries:
            name: Optional[str] = tech.get("name") if isinstance(tech, dict) else None
            if name and name not in names:
                names.append(name)
        return names
