"""Kernel log correlation and regression scanning.

Each run writes a marker line into the kernel log before the test starts.
After the test process has exited, everything from the last occurrence of
that marker onwards is attributed to the run, saved to ``<run_key>.dmesg``
and scanned for regression signatures.  Runs execute one at a time, so the
slice after the marker belongs to exactly one run.
"""

from __future__ import annotations

import logging
import os
import subprocess
from typing import Optional

from ktr.interfaces import KmsgInterface
from ktr.pattern_matcher import SignatureMatcher
from ktr.runner.models import DmesgResult

logger = logging.getLogger(__name__)

DMESG_SUFFIX = ".dmesg"


def kmsg_available() -> bool:
    """Reading and writing the kernel log needs root."""
    return os.geteuid() == 0


def extract_since_marker(text: str, marker: str) -> Optional[str]:
    """Return the text from the last line containing *marker* to the end.

    The last occurrence wins so a marker repeated by an earlier run (same
    test run twice) or left over from a previous invocation is skipped.
    Returns ``None`` when the marker is not in *text*.
    """
    if not marker:
        return None
    lines = text.splitlines(keepends=True)
    for idx in range(len(lines) - 1, -1, -1):
        if marker in lines[idx]:
            return "".join(lines[idx:])
    return None


class DmesgChecker:
    """Writes run markers and scans the kernel log slice of each run.

    With ``enabled=False`` (no root, or ``--no-dmesg``) every check is clean.
    """

    def __init__(
        self,
        kmsg: KmsgInterface,
        log_dir: str = ".",
        enabled: bool = True,
        matcher: Optional[SignatureMatcher] = None,
    ):
        self._kmsg = kmsg
        self._log_dir = log_dir
        self.enabled = enabled
        self._matcher = matcher or SignatureMatcher()

    def capture_path(self, run_key: str) -> str:
        return os.path.join(self._log_dir, run_key + DMESG_SUFFIX)

    def write_marker(self, marker: str) -> Optional[str]:
        """Write *marker* to the kernel log.

        Returns the marker to check against afterwards, or ``None`` if no
        marker is in place (checking disabled, or the write failed).
        """
        if not self.enabled:
            return None
        try:
            self._kmsg.write(marker)
        except OSError as exc:
            logger.warning("could not write kmsg marker %r: %s", marker, exc)
            return None
        return marker

    def check(self, marker: Optional[str], run_key: str) -> DmesgResult:
        """Extract the kernel log since *marker* and scan it."""
        if not self.enabled or not marker:
            return DmesgResult()

        try:
            text = self._kmsg.read()
        except (OSError, subprocess.SubprocessError) as exc:
            logger.warning("could not read kernel log for %s: %s", run_key, exc)
            return DmesgResult()

        path = self.capture_path(run_key)
        captured = extract_since_marker(text, marker)
        if captured is None:
            logger.warning("marker %r not found in kernel log (rotated?)", marker)
            captured = ""

        with open(path, "w", encoding="utf-8") as f:
            f.write(captured)

        found = self._matcher.scan(captured)
        if not found:
            os.remove(path)
            return DmesgResult()

        logger.info("%s: kernel log matched %s", run_key, ", ".join(found))
        return DmesgResult(regression=True, capture_path=path, signatures=found)
