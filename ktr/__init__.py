"""
Kernel Test Runner

Runs kernel-facing functional test binaries one at a time under a deadline,
checks the kernel log for regressions each run caused, and keeps one log
artifact per run.
"""

__version__ = "1.0.0"
