"""Shared pytest fixtures for ktr tests."""

from __future__ import annotations

import io
import stat
from dataclasses import dataclass
from typing import Optional

import pytest

from ktr.config import HarnessConfig
from ktr.dmesg_check import DmesgChecker
from ktr.mocks import MockClock, MockKmsg, MockProcessTable
from ktr.runner.classifier import OutcomeClassifier
from ktr.runner.driver import RunDriver
from ktr.runner.executor import RunExecutor


@dataclass
class Harness:
    driver: RunDriver
    kmsg: MockKmsg
    processes: MockProcessTable
    clock: MockClock
    out: io.StringIO


@pytest.fixture
def bin_dir(tmp_path):
    d = tmp_path / "bin"
    d.mkdir()
    return d


@pytest.fixture
def make_test(bin_dir):
    """Write an executable /bin/sh test program into bin_dir."""

    def _make(name: str, body: str) -> str:
        path = bin_dir / name
        path.write_text("#!/bin/sh\n" + body + "\n")
        path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        return str(path)

    return _make


@pytest.fixture
def log_dir(tmp_path):
    d = tmp_path / "logs"
    d.mkdir()
    return str(d)


@pytest.fixture
def harness(bin_dir, log_dir):
    """Factory for a RunDriver wired to in-memory kmsg, process table and clock."""

    def _build(config: Optional[HarnessConfig] = None, *,
               kmsg: Optional[MockKmsg] = None,
               processes: Optional[MockProcessTable] = None,
               dmesg_enabled: bool = True) -> Harness:
        config = config or HarnessConfig(timeout=5)
        kmsg = kmsg if kmsg is not None else MockKmsg()
        processes = processes if processes is not None else MockProcessTable()
        clock = MockClock()
        dmesg = DmesgChecker(kmsg, log_dir=log_dir, enabled=dmesg_enabled)
        executor = RunExecutor(config, dmesg, test_dir=str(bin_dir), log_dir=log_dir)
        classifier = OutcomeClassifier(processes, clock)
        out = io.StringIO()
        driver = RunDriver(config, executor, dmesg, classifier, clock, out=out)
        return Harness(driver=driver, kmsg=kmsg, processes=processes, clock=clock, out=out)

    return _build
