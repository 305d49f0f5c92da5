"""
hrekt CLI

Command-line interface for the HTTP prober. Hosts are read from stdin, one
per line; matches are written to stdout, diagnostics to stderr.
"""

import argparse
import logging
import sys
from typing import List, Optional

import colorama
from colorama import Fore, Style

from . import __version__
from .config import ProbeConfig
from .probing.dispatcher import run_scan
from .utils.metrics import JSONFormatter

logger = logging.getLogger(__name__)

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

BANNER = r"""
  __  __     ______     ______     __  __     ______
 /\ \_\ \   /\  == \   /\  ___\   /\ \/ /    /\__  _\
 \ \  __ \  \ \  __<   \ \  __\   \ \  _"-.  \/_/\ \/
  \ \_\ \_\  \ \_\ \_\  \ \_____\  \ \_\ \_\    \ \_\
   \/_/\/_/   \/_/ /_/   \/_____/   \/_/\/_/     \/_/

                    v{version}
"""

WARNINGS = (
    "Use with caution. You are responsible for your actions",
    "Developers assume no liability and are not responsible for any misuse or damage.",
    "By using hrekt, you also agree to the terms of the APIs used.",
)


def parse_args(argv: Optional[List[str]] = None):
    """Parse command line arguments"""
    parser = argparse.ArgumentParser(
        prog='hrekt',
        description='really fast http prober',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        add_help=False,
        epilog="""
Examples:
  # Probe the default ports and show titles
  cat hosts.txt | hrekt --title

  # Probe extra ports, show status codes and technologies
  cat hosts.txt | hrekt -p 80,443,8080,8443 -s --tech-detect

  # Only report hosts exposing /admin whose body mentions "login"
  cat hosts.txt | hrekt -x /admin -b 'login'
        """
    )

    parser.add_argument('--help', action='help', help='show this help message and exit')
    parser.add_argument('--version', action='version', version=f'%(prog)s {__version__}')

    # numeric options stay strings here; ProbeConfig applies the defaults
    parser.add_argument('-r', '--rate', default='1000',
                        help='Maximum in-flight requests per second (default: 1000)')
    parser.add_argument('-c', '--concurrency', default='100',
                        help='The amount of concurrent requests (default: 100)')
    parser.add_argument('-t', '--timeout', default='3',
                        help='Request timeout in seconds (default: 3)')
    parser.add_argument('-w', '--workers', default='1',
                        help='The amount of worker threads (default: 1)')
    parser.add_argument('-p', '--ports', default='80,443',
                        help='The ports to probe (default: 80,443)')
    parser.add_argument('-x', '--path', default='',
                        help='Probe the specified path')
    parser.add_argument('-b', '--body-regex', default='',
                        help='Regex to match a specific pattern in the response body')
    parser.add_argument('-h', '--header-regex', default='',
                        help='Regex to match a specific pattern in the headers')
    parser.add_argument('--resolvers', default=None,
                        help='Comma separated DNS servers to query instead of the system resolver')

    parser.add_argument('-i', '--title', action='store_true', help='Display the page titles')
    parser.add_argument('-d', '--tech-detect', action='store_true', help='Display the technology used')
    parser.add_argument('-s', '--status-code', action='store_true', help='Display the status code')
    parser.add_argument('--content-length', action='store_true', help='Display the content length')
    parser.add_argument('--content-type', action='store_true', help='Display the content type')
    parser.add_argument('--server', action='store_true', help='Display the server header')
    parser.add_argument('-l', '--follow-redirects', action='store_true', help='Follow HTTP redirects')

    parser.add_argument('-q', '--silent', action='store_true', help='Suppress the banner')
    parser.add_argument('--no-color', action='store_true', help='Disable colored output')
    parser.add_argument('-v', '--verbose', action='store_true', help='Verbose output')
    parser.add_argument('--json-logs', action='store_true', help='Emit diagnostics as JSON lines')

    return parser.parse_args(argv)


def configure_logging(verbose: bool = False, json_logs: bool = False) -> None:
    """Send diagnostics to stderr in the plain or JSON format"""
    level = logging.DEBUG if verbose else logging.INFO
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(JSONFormatter() if json_logs else logging.Formatter(LOG_FORMAT))
    logging.basicConfig(level=level, handlers=[handler], force=True)
    # keep per-request chatter out of the way unless asked for
    if not verbose:
        logging.getLogger("httpx").setLevel(logging.WARNING)


def print_banner(color: bool = True) -> None:
    """Print the ascii banner and disclaimers to stderr"""
    def paint(text: str, style: str) -> str:
        return f"{style}{text}{Style.RESET_ALL}" if color else text

    print(paint(BANNER.format(version=__version__), Style.BRIGHT + Fore.CYAN), file=sys.stderr)
    tag = f"[{paint('WRN', Style.BRIGHT + Fore.YELLOW)}]"
    for line in WARNINGS:
        print(f"{tag} {paint(line, Style.BRIGHT)}", file=sys.stderr)
    print(file=sys.stderr)


def build_config(args) -> ProbeConfig:
    """Assemble the run configuration from parsed arguments"""
    return ProbeConfig(
        rate=args.rate,
        concurrency=args.concurrency,
        timeout=args.timeout,
        workers=args.workers,
        ports=args.ports,
        path=args.path,
        body_regex=args.body_regex,
        header_regex=args.header_regex,
        resolvers=args.resolvers,
        title=args.title,
        tech_detect=args.tech_detect,
        status_code=args.status_code,
        content_length=args.content_length,
        content_type=args.content_type,
        server=args.server,
        follow_redirects=args.follow_redirects,
        silent=args.silent,
        color=not args.no_color and sys.stdout.isatty(),
    )


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point"""
    args = parse_args(argv)
    configure_logging(args.verbose, args.json_logs)
    colorama.just_fix_windows_console()

    config = build_config(args)
    if not config.silent:
        print_banner(color=not args.no_color and sys.stderr.isatty())

    run_scan(config)
    return 0


def run() -> None:
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        sys.exit(130)


if __name__ == '__main__':
    run()
