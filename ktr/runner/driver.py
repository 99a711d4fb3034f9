"""Run driver — iterate tests × devices, one run at a time."""

from __future__ import annotations

import logging
import sys
import time
from typing import Iterator, Optional, Sequence, TextIO

from ktr.config import HarnessConfig
from ktr.dmesg_check import DmesgChecker
from ktr.interfaces import ClockInterface
from ktr.runner.classifier import OutcomeClassifier
from ktr.runner.executor import RunExecutor
from ktr.runner.models import (
    Classification, Outcome, RunKeyAllocator, RunReport, RunResult, RunSpec,
)
from ktr.runner.report import ResultAggregator, purge_artifacts

logger = logging.getLogger(__name__)


def expand_runs(tests: Sequence[str], devices: Sequence[str]) -> Iterator[RunSpec]:
    """Each test once without a device, then once per configured device."""
    for test in tests:
        yield RunSpec(test)
        for dev in devices:
            yield RunSpec(test, dev)


class RunDriver:
    """Drives a full invocation: purge, run every combination, summarize."""

    def __init__(
        self,
        config: HarnessConfig,
        executor: RunExecutor,
        dmesg: DmesgChecker,
        classifier: OutcomeClassifier,
        clock: ClockInterface,
        out: Optional[TextIO] = None,
    ) -> None:
        self.config = config
        self.executor = executor
        self.dmesg = dmesg
        self.classifier = classifier
        self.clock = clock
        self._out = out
        self.report = RunReport()
        self.aggregator = ResultAggregator(self.report, out=out)
        self._keys = RunKeyAllocator()

    def run_one(self, spec: RunSpec) -> RunResult:
        width = self.config.testname_width
        print(f"{spec.test_string:<{width}}", end="", file=self._out or sys.stdout, flush=True)

        key = self._keys.allocate(spec.test, spec.device)
        execution = self.executor.execute(spec, key)
        if execution.excluded:
            classification = Classification(Outcome.SKIP, "by user")
            return self.aggregator.record(spec, key, classification, execution)

        dmesg = self.dmesg.check(execution.marker, key)
        classification = self.classifier.classify(execution.status, dmesg, spec.device)
        logger.debug("%s: status %d -> %s", spec.test_string, execution.status,
                     classification.outcome.value)
        return self.aggregator.record(spec, key, classification, execution, dmesg)

    def run_all(self, tests: Sequence[str]) -> int:
        """Run every requested test and return the process exit code."""
        t0 = time.monotonic()
        purge_artifacts(self.executor.log_dir)
        for spec in expand_runs(tests, self.config.test_files):
            self.run_one(spec)
        code = self.aggregator.finish(self.classifier, self.clock)
        self.report.duration_ms = int((time.monotonic() - t0) * 1000)
        return code
