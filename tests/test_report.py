"""Tests for ktr.runner.report: artifact lifecycle and summary."""

from __future__ import annotations

import io
import os

from ktr.mocks import MockClock, MockProcessTable
from ktr.runner.classifier import OutcomeClassifier
from ktr.runner.models import (
    Classification, DmesgResult, ExecResult, Outcome, RunReport, RunSpec,
)
from ktr.runner.report import ResultAggregator, purge_artifacts


def _log(log_dir, key, content=""):
    path = os.path.join(log_dir, key + ".log")
    with open(path, "w") as f:
        f.write(content)
    return ExecResult(status=0, log_path=path)


def _aggregator():
    out = io.StringIO()
    return ResultAggregator(RunReport(), out=out), out


class TestRecord:
    def test_pass_empty_log_removed(self, log_dir):
        agg, out = _aggregator()
        result = agg.record(RunSpec("foo"), "foo", Classification(Outcome.PASS), _log(log_dir, "foo"))
        assert os.listdir(log_dir) == []
        assert result.artifact is None
        assert out.getvalue() == "\tOK\n"
        assert agg.report.passed == 1

    def test_pass_with_output_kept(self, log_dir):
        agg, _ = _aggregator()
        result = agg.record(RunSpec("foo"), "foo", Classification(Outcome.PASS),
                            _log(log_dir, "foo", "some output\n"))
        assert os.listdir(log_dir) == ["foo.log"]
        assert result.artifact.endswith("foo.log")

    def test_fail_renamed_and_annotated(self, log_dir):
        agg, out = _aggregator()
        result = agg.record(RunSpec("foo"), "foo", Classification(Outcome.FAIL, "status = 3"),
                            _log(log_dir, "foo", "line one\n\nline two\n"))
        assert os.listdir(log_dir) == ["foo.failed"]
        content = open(os.path.join(log_dir, "foo.failed")).read()
        assert content.endswith("Test foo failed (status = 3)\n")
        assert out.getvalue() == "\tFAIL (status = 3)\n    line one\n\n    line two\n"
        assert agg.report.failed == ["foo"]
        assert agg.report.exit_code == 1
        assert result.artifact.endswith("foo.failed")

    def test_fail_empty_log_gets_message(self, log_dir):
        agg, _ = _aggregator()
        agg.record(RunSpec("foo"), "foo", Classification(Outcome.FAIL, "process killed"),
                   _log(log_dir, "foo"))
        content = open(os.path.join(log_dir, "foo.failed")).read()
        assert content == "Test foo failed (process killed)\n"

    def test_timeout(self, log_dir):
        agg, _ = _aggregator()
        agg.record(RunSpec("bar"), "bar", Classification(Outcome.TIMEOUT), _log(log_dir, "bar"))
        assert os.listdir(log_dir) == ["bar.timeout"]
        content = open(os.path.join(log_dir, "bar.timeout")).read()
        assert content == "Test bar timed out (may not be a failure)\n"
        assert agg.report.exit_code == 0
        assert agg.report.timed_out == 1

    def test_skip(self, log_dir):
        agg, _ = _aggregator()
        spec = RunSpec("t", "/dev/sdb")
        agg.record(spec, "t_dev_sdb", Classification(Outcome.SKIP), _log(log_dir, "t_dev_sdb"))
        assert os.listdir(log_dir) == ["t_dev_sdb.skipped"]
        assert agg.report.skipped == ["t /dev/sdb"]

    def test_excluded_without_log(self, log_dir):
        agg, _ = _aggregator()
        execution = ExecResult(status=255, log_path=os.path.join(log_dir, "qux.log"), excluded=True)
        result = agg.record(RunSpec("qux"), "qux", Classification(Outcome.SKIP, "by user"), execution)
        content = open(os.path.join(log_dir, "qux.skipped")).read()
        assert content == "Test qux skipped (by user)\n"
        assert result.status is None

    def test_dmesg_capture_recorded(self, log_dir):
        agg, _ = _aggregator()
        dmesg = DmesgResult(regression=True, capture_path="baz.dmesg", signatures=["BUG:"])
        result = agg.record(RunSpec("baz"), "baz", Classification(Outcome.FAIL, "dmesg check"),
                            _log(log_dir, "baz"), dmesg)
        assert result.dmesg_capture == "baz.dmesg"

    def test_maybe_failed_only_noted(self, log_dir):
        agg, _ = _aggregator()
        agg.record(RunSpec("t", "/dev/sdb"), "t_dev_sdb",
                   Classification(Outcome.PASS, maybe_failed=True), _log(log_dir, "t_dev_sdb"))
        assert agg.report.maybe_failed == ["t /dev/sdb"]
        assert agg.report.exit_code == 0


class TestFinish:
    def _classifier(self, names):
        return OutcomeClassifier(MockProcessTable(names), MockClock())

    def test_all_passed(self):
        agg, out = _aggregator()
        assert agg.finish(self._classifier([]), MockClock()) == 0
        assert out.getvalue() == "All tests passed\n"

    def test_failed(self):
        agg, out = _aggregator()
        agg.report.failed = ["a", "b /dev/x"]
        agg.report.exit_code = 1
        assert agg.finish(self._classifier([]), MockClock()) == 1
        assert out.getvalue() == "Tests failed: <a> <b /dev/x>\n"

    def test_skipped_listed(self):
        agg, out = _aggregator()
        agg.report.skipped = ["a"]
        assert agg.finish(self._classifier([]), MockClock()) == 0
        assert out.getvalue() == "Tests skipped: <a>\nAll tests passed\n"

    def test_maybe_failed_reported_when_worker_persists(self):
        agg, out = _aggregator()
        agg.report.maybe_failed = ["t /dev/sdb"]
        clock = MockClock()
        assert agg.finish(self._classifier(["io_wq_manager"]), clock) == 0
        assert clock.sleeps == [1.0]
        assert out.getvalue() == "Tests _maybe_ failed: t /dev/sdb\nAll tests passed\n"

    def test_maybe_failed_suppressed_when_worker_gone(self):
        agg, out = _aggregator()
        agg.report.maybe_failed = ["t /dev/sdb"]
        assert agg.finish(self._classifier([]), MockClock()) == 0
        assert out.getvalue() == "All tests passed\n"
        assert agg.report.maybe_failed == []

    def test_maybe_failed_not_printed_on_failure(self):
        agg, out = _aggregator()
        agg.report.maybe_failed = ["t /dev/sdb"]
        agg.report.failed = ["u"]
        agg.report.exit_code = 1
        agg.finish(self._classifier(["io_wq_manager"]), MockClock())
        assert "_maybe_" not in out.getvalue()


class TestPurge:
    def test_removes_only_artifacts(self, log_dir):
        for name in ["a.log", "b.failed", "c.timeout", "d.skipped", "e.dmesg", "keep.txt", "config.local"]:
            open(os.path.join(log_dir, name), "w").close()
        assert purge_artifacts(log_dir) == 5
        assert sorted(os.listdir(log_dir)) == ["config.local", "keep.txt"]

    def test_missing_dir(self, tmp_path):
        assert purge_artifacts(str(tmp_path / "nope")) == 0
