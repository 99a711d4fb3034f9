"""
ktr: command-line front end for the kernel test runner.

Usage:
    ktr [--config FILE] [--test-dir DIR] [--log-dir DIR] [--timeout N]
        [--no-dmesg] [--json] [-v] TEST [TEST ...]

Runs each TEST (and each TEST against every configured device), prints one
result line per run and a summary, and exits non-zero if any run failed.

Entry points:
- ktr: console script (installed via pip)
- python -m ktr
- Can also be called programmatically via main(argv)
"""

from __future__ import annotations

from ktr.cli.dispatch import build_driver, main

__all__ = ["build_driver", "main"]
