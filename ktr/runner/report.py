"""Result aggregation — console lines, artifact renames, final summary."""

from __future__ import annotations

import logging
import os
import sys
from typing import Optional, TextIO

from ktr.interfaces import ClockInterface
from ktr.runner.classifier import OutcomeClassifier
from ktr.runner.models import (
    Classification, DmesgResult, ExecResult, Outcome, RunReport, RunResult, RunSpec,
)

logger = logging.getLogger(__name__)

FINAL_SETTLE_S = 1.0

# outcome -> (console label, artifact suffix, log message template)
_OUTCOME_FORMAT = {
    Outcome.PASS: ("OK", None, None),
    Outcome.SKIP: ("SKIP", ".skipped", "Test {} skipped"),
    Outcome.TIMEOUT: ("TIMEOUT", ".timeout", "Test {} timed out (may not be a failure)"),
    Outcome.FAIL: ("FAIL", ".failed", "Test {} failed"),
}

ARTIFACT_SUFFIXES = (".log", ".timeout", ".failed", ".skipped", ".dmesg")


def purge_artifacts(log_dir: str) -> int:
    """Remove artifacts left by a previous invocation.  Returns the count."""
    removed = 0
    try:
        names = os.listdir(log_dir)
    except FileNotFoundError:
        return 0
    for name in names:
        if not name.endswith(ARTIFACT_SUFFIXES):
            continue
        path = os.path.join(log_dir, name)
        if os.path.isfile(path):
            os.remove(path)
            removed += 1
    if removed:
        logger.debug("purged %d old artifacts from %s", removed, log_dir)
    return removed


def _file_size(path: str) -> int:
    try:
        return os.path.getsize(path)
    except OSError:
        return 0


def _indent_log(path: str) -> str:
    """Log text with each non-empty line indented by four spaces."""
    with open(path, "r", encoding="utf-8", errors="replace") as f:
        text = f.read()
    return "".join(
        ("    " + line) if line.strip("\n") else line
        for line in text.splitlines(keepends=True)
    )


class ResultAggregator:
    """Records run outcomes into a RunReport and manages their artifacts."""

    def __init__(self, report: RunReport, out: Optional[TextIO] = None) -> None:
        self.report = report
        self._out = out

    def _print(self, text: str = "", end: str = "\n") -> None:
        print(text, end=end, file=self._out or sys.stdout, flush=True)

    def record(
        self,
        spec: RunSpec,
        key: str,
        classification: Classification,
        execution: ExecResult,
        dmesg: Optional[DmesgResult] = None,
    ) -> RunResult:
        """Apply one run's outcome: print it, annotate and rename its log."""
        outcome = classification.outcome
        msg = f"({classification.message})" if classification.message else ""
        label, suffix, log_template = _OUTCOME_FORMAT[outcome]
        test_string = spec.test_string
        log_path = execution.log_path
        artifact: Optional[str] = log_path

        self._print(f"\t{label} {msg}".rstrip())

        if outcome is Outcome.PASS:
            self.report.passed += 1
            if classification.maybe_failed:
                self.report.add_maybe_failed(test_string)
        else:
            if outcome is Outcome.SKIP:
                self.report.skipped.append(test_string)
            elif outcome is Outcome.TIMEOUT:
                self.report.timed_out += 1
            else:
                self.report.failed.append(test_string)
                self.report.exit_code = 1

            if _file_size(log_path) > 0:
                self._print(_indent_log(log_path), end="")

            with open(log_path, "a", encoding="utf-8") as f:
                f.write(f"{log_template.format(test_string)} {msg}".rstrip() + "\n")

            base, _ = os.path.splitext(log_path)
            artifact = base + suffix
            os.replace(log_path, artifact)

        # Only leave behind a log with something in it
        if artifact == log_path and _file_size(log_path) == 0:
            if os.path.exists(log_path):
                os.remove(log_path)
            artifact = None

        result = RunResult(
            test_string=test_string,
            run_key=key,
            outcome=outcome,
            message=classification.message,
            status=None if execution.excluded else execution.status,
            duration_ms=execution.duration_ms,
            artifact=artifact,
            dmesg_capture=dmesg.capture_path if dmesg and dmesg.regression else None,
        )
        self.report.results.append(result)
        return result

    def finish(self, classifier: OutcomeClassifier, clock: ClockInterface,
               settle_s: float = FINAL_SETTLE_S) -> int:
        """Print the trailing summary and return the process exit code."""
        report = self.report
        if report.skipped:
            self._print("Tests skipped: " + " ".join(f"<{t}>" for t in report.skipped))

        if report.exit_code != 0:
            self._print("Tests failed: " + " ".join(f"<{t}>" for t in report.failed))
            return report.exit_code

        if report.maybe_failed:
            # A worker seen right after a run may still have been exiting
            clock.sleep(settle_s)
            if classifier.worker_present():
                self._print("Tests _maybe_ failed: " + " ".join(report.maybe_failed))
            else:
                report.maybe_failed.clear()
        self._print("All tests passed")
        return 0
