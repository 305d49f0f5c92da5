"""
Tests for the command-line interface.
"""

import json
import logging
from unittest.mock import patch

import pytest

from hrekt import __version__
from hrekt.cli import build_config, configure_logging, main, parse_args, print_banner


class TestParseArgs:
    """Tests for argument parsing"""

    def test_defaults(self):
        config = build_config(parse_args([]))

        assert config.rate == 1000
        assert config.concurrency == 100
        assert config.timeout == 3
        assert config.workers == 1
        assert config.ports == "80,443"
        assert config.path is None
        assert config.follow_redirects is False

    def test_short_h_is_header_regex(self):
        args = parse_args(["-h", "PHP"])
        assert args.header_regex == "PHP"

    def test_flags(self):
        args = parse_args([
            "-p", "8080,8443", "-x", "/admin", "-b", "login", "-i", "-d", "-s",
            "--content-length", "--content-type", "--server", "-l", "-q",
        ])
        config = build_config(args)

        assert config.ports == "8080,8443"
        assert config.path == "/admin"
        assert config.body_regex == "login"
        assert config.title and config.tech_detect and config.status_code
        assert config.content_length and config.content_type and config.server
        assert config.follow_redirects
        assert config.silent

    def test_resolvers(self):
        config = build_config(parse_args(["--resolvers", "9.9.9.9, 1.1.1.1"]))
        assert config.resolvers == ["9.9.9.9", "1.1.1.1"]

        assert build_config(parse_args([])).resolvers is None

    def test_bad_numbers_fall_back(self):
        config = build_config(parse_args(["-r", "fast", "-c", "0", "-t", "x", "-w", "-1"]))

        assert config.rate == 1000
        assert config.concurrency == 100
        assert config.timeout == 3
        assert config.workers == 1

    def test_no_color(self):
        config = build_config(parse_args(["--no-color"]))
        assert config.color is False

    def test_version(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            parse_args(["--version"])

        assert exc_info.value.code == 0
        assert __version__ in capsys.readouterr().out


def test_print_banner_goes_to_stderr(capsys):
    print_banner(color=False)

    captured = capsys.readouterr()
    assert captured.out == ""
    assert f"v{__version__}" in captured.err
    assert "[WRN] Use with caution. You are responsible for your actions" in captured.err


def test_configure_logging_levels():
    configure_logging(verbose=True)
    assert logging.getLogger().level == logging.DEBUG

    configure_logging()
    assert logging.getLogger().level == logging.INFO
    assert logging.getLogger("httpx").level == logging.WARNING


def test_silent_only_hides_banner(capsys):
    with patch("hrekt.cli.run_scan"):
        main(["-q"])

    assert logging.getLogger().level == logging.INFO
    assert "[WRN]" not in capsys.readouterr().err


def test_json_logs(capsys):
    configure_logging(json_logs=True)
    logging.getLogger("hrekt.test").warning("queue closed")

    line = capsys.readouterr().err.strip().splitlines()[-1]
    record = json.loads(line)
    assert record["message"] == "queue closed"
    assert record["level"] == "WARNING"

    configure_logging()


def test_main_runs_scan(capsys):
    with patch("hrekt.cli.run_scan") as run_scan:
        assert main(["-q", "-i", "-p", "443"]) == 0

    config = run_scan.call_args.args[0]
    assert config.title is True
    assert config.ports == "443"
    assert capsys.readouterr().err == ""


def test_main_prints_banner_unless_silent(capsys):
    with patch("hrekt.cli.run_scan"):
        main([])

    assert "[WRN]" in capsys.readouterr().err
