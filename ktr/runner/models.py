"""Data models for the test runner."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class Outcome(str, Enum):
    """Classified result of one run."""
    PASS = "pass"
    FAIL = "fail"
    SKIP = "skip"
    TIMEOUT = "timeout"


def run_key(test: str, device: Optional[str] = None) -> str:
    """Derive the artifact base name for a (test, device) pair.

    ``foo`` + ``/dev/sdb`` -> ``foo_dev_sdb``.  Any ``/``, ``_/`` or ``/_``
    collapses to a single ``_``.  Leading ``./`` and ``/`` are dropped from
    the test so ``bin/foo`` and ``/opt/t/foo`` stay plain file names.
    """
    while test.startswith("./"):
        test = test[2:]
    test = test.lstrip("/") or "test"
    raw = f"{test}_{device}" if device else test
    out = []
    i = 0
    while i < len(raw):
        pair = raw[i:i + 2]
        if pair in ("_/", "/_"):
            out.append("_")
            i += 2
        elif raw[i] == "/":
            out.append("_")
            i += 1
        else:
            out.append(raw[i])
            i += 1
    return "".join(out)


class RunKeyAllocator:
    """Hands out run keys that are unique within one invocation."""

    def __init__(self) -> None:
        self._used: set[str] = set()

    def allocate(self, test: str, device: Optional[str] = None) -> str:
        base = run_key(test, device)
        key = base
        n = 2
        while key in self._used:
            key = f"{base}-{n}"
            n += 1
        self._used.add(key)
        return key


@dataclass(frozen=True)
class RunSpec:
    """One unit of work: a test identifier and an optional target device."""
    test: str
    device: Optional[str] = None

    @property
    def test_string(self) -> str:
        if self.device:
            return f"{self.test} {self.device}"
        return self.test

    @property
    def marker(self) -> str:
        return f"Running test {self.test_string}"


@dataclass
class ExecResult:
    """What the executor observed about one run."""
    status: int
    log_path: str
    marker: Optional[str] = None
    excluded: bool = False
    timed_out: bool = False
    killed: bool = False
    duration_ms: int = 0


@dataclass
class DmesgResult:
    """Result of scanning the kernel log slice of one run."""
    regression: bool = False
    capture_path: Optional[str] = None
    signatures: list[str] = field(default_factory=list)


@dataclass
class Classification:
    """Outcome plus the message shown next to it."""
    outcome: Outcome
    message: Optional[str] = None
    maybe_failed: bool = False


@dataclass
class RunResult:
    """Final record of one run."""
    test_string: str
    run_key: str
    outcome: Outcome
    message: Optional[str] = None
    status: Optional[int] = None
    duration_ms: int = 0
    artifact: Optional[str] = None
    dmesg_capture: Optional[str] = None


@dataclass
class RunReport:
    """Aggregate state for a whole invocation."""
    passed: int = 0
    timed_out: int = 0
    skipped: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)
    maybe_failed: list[str] = field(default_factory=list)
    results: list[RunResult] = field(default_factory=list)
    exit_code: int = 0
    duration_ms: int = 0

    def add_maybe_failed(self, test_string: str) -> None:
        if test_string not in self.maybe_failed:
            self.maybe_failed.append(test_string)
