"""Run executor — launches one test binary under a deadline."""

from __future__ import annotations

import logging
import os
import time
from typing import Optional

from ktr.config import HarnessConfig
from ktr.dmesg_check import DmesgChecker
from ktr.process_utils import run_with_deadline
from ktr.runner.models import ExecResult, RunSpec

logger = logging.getLogger(__name__)

LOG_SUFFIX = ".log"
STATUS_NOT_APPLICABLE = 255


def build_argv(spec: RunSpec, test_dir: str = ".") -> list[str]:
    """Command line for *spec*: the binary, plus the device if any."""
    if os.sep in spec.test:
        binary = spec.test
    else:
        binary = os.path.join(test_dir, spec.test)
    argv = [binary]
    if spec.device:
        argv.append(spec.device)
    return argv


class RunExecutor:
    """Executes runs one at a time.

    Parameters
    ----------
    config:
        Harness config; ``timeout`` and ``test_exclude`` are read per run.
    dmesg:
        Writes the kernel log marker before each launch.
    test_dir:
        Directory test identifiers are resolved against.
    log_dir:
        Where ``<run_key>.log`` is written.
    """

    def __init__(
        self,
        config: HarnessConfig,
        dmesg: DmesgChecker,
        test_dir: str = ".",
        log_dir: str = ".",
    ) -> None:
        self.config = config
        self.dmesg = dmesg
        self.test_dir = test_dir
        self.log_dir = log_dir

    def log_path(self, key: str) -> str:
        return os.path.join(self.log_dir, key + LOG_SUFFIX)

    def execute(self, spec: RunSpec, key: str, timeout: Optional[int] = None) -> ExecResult:
        """Run *spec* to completion and return its exit status.

        Excluded tests are not launched and get no marker.  Otherwise the
        ``.log`` file always exists afterwards, possibly empty.
        """
        log_path = self.log_path(key)
        if self.config.is_excluded(spec.test):
            logger.debug("%s excluded by config", spec.test_string)
            return ExecResult(status=STATUS_NOT_APPLICABLE, log_path=log_path, excluded=True)

        timeout = timeout if timeout is not None else self.config.timeout
        marker = self.dmesg.write_marker(spec.marker)
        argv = build_argv(spec, self.test_dir)
        logger.debug("launching %s (timeout %ss)", argv, timeout)

        t0 = time.monotonic()
        with open(log_path, "wb") as log:
            status, interrupted, killed = run_with_deadline(argv, timeout=timeout, output=log)
        ms = int((time.monotonic() - t0) * 1000)

        return ExecResult(
            status=status, log_path=log_path, marker=marker,
            timed_out=interrupted, killed=killed, duration_ms=ms,
        )
