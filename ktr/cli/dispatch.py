"""Command dispatch for the ktr CLI."""

from __future__ import annotations

import logging
import os
import sys
from dataclasses import asdict
from typing import Optional

from ktr.cli.helpers import _print
from ktr.cli.parser import _build_parser
from ktr.config import ConfigError, HarnessConfig, load_config, resolve_config_path
from ktr.dmesg_check import DmesgChecker, kmsg_available
from ktr.implementations import PsutilProcessTable, RealClock, RealKmsg
from ktr.runner.classifier import OutcomeClassifier
from ktr.runner.driver import RunDriver
from ktr.runner.executor import RunExecutor

logger = logging.getLogger(__name__)


def build_driver(config: HarnessConfig, *, test_dir: str, log_dir: str,
                 dmesg_enabled: bool) -> RunDriver:
    """Wire the real kernel log, process table and clock into a RunDriver."""
    clock = RealClock()
    dmesg = DmesgChecker(RealKmsg(config.dmesg_filter), log_dir=log_dir, enabled=dmesg_enabled)
    executor = RunExecutor(config, dmesg, test_dir=test_dir, log_dir=log_dir)
    classifier = OutcomeClassifier(PsutilProcessTable(), clock)
    return RunDriver(config, executor, dmesg, classifier, clock)


def main(argv: Optional[list[str]] = None) -> int:
    """Entry point for the ``ktr`` CLI.

    Args:
        argv: Argument list to parse.  Defaults to ``sys.argv[1:]``.

    Returns:
        0 if every run passed or was skipped, 1 if any failed or the
        config is invalid.
    """
    if argv is None:
        argv = sys.argv[1:]

    parser = _build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(name)s %(levelname)s: %(message)s",
        stream=sys.stderr,
    )

    # Late import so tests can monkeypatch ktr.cli.build_driver
    import ktr.cli as cli

    config_path = resolve_config_path(args.config, args.test_dir)
    try:
        config = load_config(config_path, timeout=args.timeout)
    except ConfigError as exc:
        _print(str(exc), json_mode=False)
        return 1

    os.makedirs(args.log_dir, exist_ok=True)
    dmesg_enabled = not args.no_dmesg and kmsg_available()
    if not dmesg_enabled and not args.no_dmesg:
        logger.warning("not running as root, kernel log regressions will not be detected")

    driver = cli.build_driver(
        config, test_dir=args.test_dir, log_dir=args.log_dir, dmesg_enabled=dmesg_enabled,
    )
    code = driver.run_all(args.tests)
    if args.json:
        _print(asdict(driver.report), json_mode=True)
    return code
