"""
Mock implementations for testing.

These classes implement the abstract interfaces with in-memory behavior
suitable for unit testing without root or a live kernel log.
"""

from typing import List, Optional

from .interfaces import KmsgInterface, ProcessTableInterface, ClockInterface


class MockKmsg(KmsgInterface):
    """
    In-memory kernel log.

    Marker writes land in the same buffer that read() returns, so tests can
    inject kernel messages before or after a marker with inject_line().
    """

    def __init__(self, lines: Optional[List[str]] = None):
        self._lines: List[str] = list(lines or [])
        self._written: List[str] = []
        self._fail_on_write = False
        self._fail_on_read = False
        self._after_write: List[str] = []

    def write(self, text: str) -> None:
        if self._fail_on_write:
            raise PermissionError("kmsg write denied")
        self._written.append(text)
        self._lines.append(text)
        # Simulates the kernel logging while the test runs
        self._lines.extend(self._after_write)
        self._after_write = []

    def read(self) -> str:
        if self._fail_on_read:
            raise OSError("dmesg failed")
        return "".join(line + "\n" for line in self._lines)

    # Test helper methods

    def inject_line(self, line: str) -> None:
        """Append a kernel message to the log."""
        self._lines.append(line)

    def inject_after_next_write(self, line: str) -> None:
        """Queue a kernel message that appears right after the next marker."""
        self._after_write.append(line)

    def get_written(self) -> List[str]:
        """Get all markers written via write()."""
        return self._written.copy()

    def set_fail_on_write(self, fail: bool) -> None:
        self._fail_on_write = fail

    def set_fail_on_read(self, fail: bool) -> None:
        self._fail_on_read = fail


class MockProcessTable(ProcessTableInterface):
    """
    Process table with a fixed list of process names.
    """

    def __init__(self, names: Optional[List[str]] = None):
        self._names: List[str] = list(names or [])
        self.lookups: List[str] = []

    def find(self, name: str) -> bool:
        self.lookups.append(name)
        return any(name in n for n in self._names)

    def set_names(self, names: List[str]) -> None:
        self._names = list(names)


class MockClock(ClockInterface):
    """
    Mock clock for deterministic testing.

    sleep() advances the clock instantly instead of blocking.
    """

    def __init__(self, start: float = 1000.0):
        self._time = start
        self.sleeps: List[float] = []

    def monotonic(self) -> float:
        return self._time

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self._time += seconds

    def advance(self, seconds: float) -> None:
        """Advance clock by specified seconds."""
        self._time += seconds
