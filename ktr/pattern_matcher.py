"""
Signature matcher for kernel log captures.

Detects known kernel regression signatures (splats, lockdep reports,
faults) in text captured from the kernel log.
"""

from typing import List, Optional, Tuple


# Ordered. Any hit means the kernel misbehaved during the run.
DMESG_SIGNATURES: Tuple[str, ...] = (
    "kernel BUG at",
    "WARNING:",
    "BUG:",
    "Oops:",
    "possible recursive locking detected",
    "Internal error",
    "INFO: suspicious RCU usage",
    "INFO: possible circular locking dependency detected",
    "general protection fault:",
    "blktests failure",
)


class SignatureMatcher:
    """
    Matches literal signatures against captured kernel log text.

    Features:
    - Case-sensitive substring matching (kernel messages are fixed strings)
    - Matches reported in signature order
    """

    def __init__(self, signatures: Optional[Tuple[str, ...]] = None):
        self.signatures: List[str] = []
        for sig in (DMESG_SIGNATURES if signatures is None else signatures):
            if not sig:
                raise ValueError("signature must be a non-empty string")
            if sig not in self.signatures:
                self.signatures.append(sig)

    def scan(self, text: str) -> List[str]:
        """
        Check text against all signatures.

        Returns the signatures found, in signature order.
        """
        return [sig for sig in self.signatures if sig in text]
