"""Outcome classification for a finished run."""

from __future__ import annotations

from typing import Optional

from ktr.interfaces import ClockInterface, ProcessTableInterface
from ktr.process_utils import STATUS_KILLED, STATUS_TIMEOUT
from ktr.runner.models import Classification, DmesgResult, Outcome

STATUS_PASS = 0
STATUS_SKIP = 255

# io_uring's async worker manager; one still around after a device test
# suggests the test leaked a ring.
RESIDUE_WORKER = "io_wq_manager"
RESIDUE_SETTLE_S = 0.1


def classify_status(status: int, dmesg: DmesgResult) -> Classification:
    """Map exit status plus dmesg scan to an outcome.

    Order matters: timeouts and hard failures first, then a dmesg
    regression (which overrides exit 0 and 255), then skip, then pass.
    """
    if status == STATUS_TIMEOUT:
        return Classification(Outcome.TIMEOUT)
    if status == STATUS_KILLED:
        return Classification(Outcome.FAIL, "process killed")
    if status not in (STATUS_PASS, STATUS_SKIP):
        return Classification(Outcome.FAIL, f"status = {status}")
    if dmesg.regression:
        return Classification(Outcome.FAIL, "dmesg check")
    if status == STATUS_SKIP:
        return Classification(Outcome.SKIP)
    return Classification(Outcome.PASS)


class OutcomeClassifier:
    """classify_status() plus the leftover-worker check for device runs."""

    def __init__(self, processes: ProcessTableInterface, clock: ClockInterface,
                 worker: str = RESIDUE_WORKER, settle_s: float = RESIDUE_SETTLE_S):
        self._processes = processes
        self._clock = clock
        self.worker = worker
        self.settle_s = settle_s

    def worker_present(self) -> bool:
        return self._processes.find(self.worker)

    def classify(self, status: int, dmesg: DmesgResult,
                 device: Optional[str] = None) -> Classification:
        result = classify_status(status, dmesg)
        if result.outcome is Outcome.PASS and device:
            self._clock.sleep(self.settle_s)
            result.maybe_failed = self.worker_present()
        return result
