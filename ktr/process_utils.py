"""Process-management utilities for the test runner.

Launching a test binary under a two-stage deadline and translating Popen
return codes to shell exit statuses.  Each test runs in its own session so
the deadline signals, and the final cleanup, reach every process it forked.
"""

from __future__ import annotations

import logging
import os
import signal
import subprocess
import threading
from typing import IO, Optional, Sequence

logger = logging.getLogger(__name__)

# Shell conventions, same as coreutils timeout(1)
STATUS_TIMEOUT = 124
STATUS_KILLED = 128 + signal.SIGKILL
STATUS_NOT_EXECUTABLE = 126
STATUS_NOT_FOUND = 127


def popen_is_alive(proc: subprocess.Popen) -> bool:
    """Check if a :class:`subprocess.Popen` process is still running."""
    return proc.poll() is None


def shell_status(returncode: int) -> int:
    """Map a Popen return code to a shell exit status (``-9`` -> ``137``)."""
    if returncode < 0:
        return 128 + (-returncode)
    return returncode


class TwoStageDeadline:
    """Timer-driven cancellation for one child process.

    The child leads its own process group.  At ``soft`` seconds the group
    gets ``SIGINT``.  If the child is still running ``hard`` seconds after
    that, the group gets ``SIGKILL``.  ``cancel()`` disarms both stages once
    the child exits on its own.  The timer thread is the only place that
    signals a running child.
    """

    def __init__(self, proc: subprocess.Popen, soft: float, hard: Optional[float] = None):
        self._proc = proc
        self._soft = soft
        self._hard = soft if hard is None else hard
        self._lock = threading.Lock()
        self._cancelled = False
        self._timer: Optional[threading.Timer] = None
        self.interrupted = False
        self.killed = False

    def start(self) -> None:
        self._arm(self._soft, self._interrupt)

    def cancel(self) -> None:
        with self._lock:
            self._cancelled = True
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None

    def _arm(self, delay: float, fn) -> None:
        with self._lock:
            if self._cancelled:
                return
            self._timer = threading.Timer(delay, fn)
            self._timer.daemon = True
            self._timer.start()

    def _send(self, sig: int) -> bool:
        with self._lock:
            if self._cancelled or not popen_is_alive(self._proc):
                return False
            try:
                os.killpg(self._proc.pid, sig)
            except ProcessLookupError:
                return False
            return True

    def _interrupt(self) -> None:
        if self._send(signal.SIGINT):
            self.interrupted = True
            logger.debug("pid %d: deadline %.1fs hit, sent SIGINT", self._proc.pid, self._soft)
            self._arm(self._hard, self._kill)

    def _kill(self) -> None:
        if self._send(signal.SIGKILL):
            self.killed = True
            logger.debug("pid %d: still alive after grace, sent SIGKILL", self._proc.pid)


def reap_group(pgid: int) -> bool:
    """SIGKILL whatever is left in process group *pgid*.

    Helpers a test forked into the background must not outlive its run.
    Returns True if anything was still there.
    """
    try:
        os.killpg(pgid, signal.SIGKILL)
    except ProcessLookupError:
        return False
    except PermissionError:
        logger.warning("cannot signal process group %d", pgid)
        return False
    logger.debug("killed leftover processes in group %d", pgid)
    return True


def run_with_deadline(
    argv: Sequence[str],
    *,
    timeout: float,
    output: IO,
    cwd: Optional[str] = None,
) -> tuple[int, bool, bool]:
    """Run *argv* with stdout and stderr sent to *output* (a binary file).

    Returns ``(status, interrupted, killed)``.  ``status`` is 124 when the
    deadline interrupt ended the process, 137 when it had to be killed, the
    shell-convention exit status otherwise.  Launch failures come back as
    126/127 with the error written to *output*.
    """
    try:
        proc = subprocess.Popen(
            list(argv), stdout=output, stderr=subprocess.STDOUT,
            stdin=subprocess.DEVNULL, cwd=cwd, start_new_session=True,
        )
    except PermissionError as exc:
        output.write(f"{argv[0]}: {exc}\n".encode())
        return STATUS_NOT_EXECUTABLE, False, False
    except OSError as exc:
        output.write(f"{argv[0]}: {exc}\n".encode())
        return STATUS_NOT_FOUND, False, False

    deadline = TwoStageDeadline(proc, timeout)
    deadline.start()
    try:
        returncode = proc.wait()
    except BaseException:
        deadline.cancel()
        reap_group(proc.pid)
        proc.wait()
        raise
    deadline.cancel()
    reap_group(proc.pid)

    status = shell_status(returncode)
    if deadline.killed or status == STATUS_KILLED:
        return STATUS_KILLED, deadline.interrupted, True
    if deadline.interrupted:
        return STATUS_TIMEOUT, True, False
    return status, False, False
