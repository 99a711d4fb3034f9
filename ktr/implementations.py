"""
Real implementations of interfaces for production use.

These classes wrap actual system resources (kernel log, process table,
clock) and implement the abstract interfaces.
"""

from typing import Optional
import subprocess
import time

import psutil

from .interfaces import KmsgInterface, ProcessTableInterface, ClockInterface


KMSG_PATH = "/dev/kmsg"


class RealKmsg(KmsgInterface):
    """
    Kernel log backed by /dev/kmsg and the ``dmesg`` tool.

    ``dmesg_filter`` is an optional shell command the raw ``dmesg`` output is
    piped through before it is returned (e.g. ``"grep -v audit"``).
    """

    def __init__(self, dmesg_filter: Optional[str] = None, kmsg_path: str = KMSG_PATH):
        self._filter = dmesg_filter
        self._kmsg_path = kmsg_path

    def write(self, text: str) -> None:
        # One write() is one record for /dev/kmsg
        with open(self._kmsg_path, "w") as f:
            f.write(text + "\n")

    def read(self) -> str:
        result = subprocess.run(
            ["dmesg"], capture_output=True, text=True, errors="replace", check=True,
        )
        output = result.stdout
        if self._filter:
            filtered = subprocess.run(
                ["bash", "-c", self._filter],
                input=output, capture_output=True, text=True, errors="replace",
            )
            output = filtered.stdout
        return output


class PsutilProcessTable(ProcessTableInterface):
    """
    Process lookup using psutil.

    Only kernel threads are considered: they are the processes with an
    empty cmdline.  A userspace process that merely mentions the name,
    such as ``grep io_wq_manager``, never matches.
    """

    def find(self, name: str) -> bool:
        for proc in psutil.process_iter(["name", "cmdline"]):
            info = proc.info
            if info.get("cmdline"):
                continue
            if name in (info.get("name") or ""):
                return True
        return False


class RealClock(ClockInterface):
    """
    Real clock implementation.
    """

    def monotonic(self) -> float:
        return time.monotonic()

    def sleep(self, seconds: float) -> None:
        time.sleep(seconds)
