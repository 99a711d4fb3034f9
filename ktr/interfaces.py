"""
Interfaces for the kernel test runner

Abstract base classes for the host resources the runner touches: the kernel
log, the process table and the clock. Unit tests swap in the in-memory
versions from ``ktr.mocks``.
"""

from abc import ABC, abstractmethod


class KmsgInterface(ABC):
    """
    Abstract interface for the live kernel diagnostic stream.

    Implementations:
    - RealKmsg: /dev/kmsg for writes, ``dmesg`` for reads
    - MockKmsg: In-memory ring for testing
    """

    @abstractmethod
    def write(self, text: str) -> None:
        """Append a line to the kernel log."""
        pass

    @abstractmethod
    def read(self) -> str:
        """Return the whole current kernel log as text."""
        pass


class ProcessTableInterface(ABC):
    """
    Abstract interface for looking up running processes.

    Implementations:
    - PsutilProcessTable: psutil.process_iter()
    - MockProcessTable: Fixed list of names for testing
    """

    @abstractmethod
    def find(self, name: str) -> bool:
        """Return True if any running process name contains *name*."""
        pass


class ClockInterface(ABC):
    """
    Abstract interface for time operations.

    Enables deterministic testing of settle delays.
    """

    @abstractmethod
    def monotonic(self) -> float:
        """Get a monotonic timestamp in seconds."""
        pass

    @abstractmethod
    def sleep(self, seconds: float) -> None:
        """Sleep for specified duration."""
        pass
