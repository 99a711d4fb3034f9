"""Argument parser for the ktr CLI."""

from __future__ import annotations

import argparse

from ktr import __version__


def _positive_int(value: str) -> int:
    try:
        n = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid int value: {value!r}") from None
    if n <= 0:
        raise argparse.ArgumentTypeError(f"must be positive: {n}")
    return n


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ktr",
        description="Run kernel test binaries with timeouts and dmesg regression checks",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__} (kernel-test-runner)",
    )
    parser.add_argument("--json", action="store_true", help="Also print the run report as JSON")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging to stderr")
    parser.add_argument(
        "--config",
        default=None,
        help="Config file (default: $KTR_CONFIG or <test-dir>/config.local)",
    )
    parser.add_argument(
        "--test-dir",
        default=".",
        help="Directory containing the test binaries (default: current directory)",
    )
    parser.add_argument(
        "--log-dir",
        default=".",
        help="Directory for .log/.failed/.dmesg artifacts (default: current directory)",
    )
    parser.add_argument(
        "--timeout",
        type=_positive_int,
        default=None,
        help="Seconds per test before SIGINT, and again before SIGKILL (overrides TIMEOUT)",
    )
    parser.add_argument(
        "--no-dmesg",
        action="store_true",
        help="Skip kernel log markers and regression scanning",
    )
    parser.add_argument("tests", nargs="+", metavar="TEST", help="Test binaries to run")
    return parser
