"""Test-run orchestration: execute, classify, aggregate."""
