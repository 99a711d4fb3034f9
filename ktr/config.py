"""Harness configuration loaded from ``config.local``.

The file is a YAML mapping with upper-case keys::

    TEST_FILES: /dev/nvme0n1 /dev/sdb      # or a YAML list
    TEST_EXCLUDE: [poll-mshot, sq-full]
    TIMEOUT: 60
    DMESG_FILTER: "grep -v audit"
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import Any, Optional

import yaml

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "config.local"
CONFIG_ENV = "KTR_CONFIG"
DEFAULT_TIMEOUT = 60
TESTNAME_WIDTH = 40

_KNOWN_KEYS = {"TEST_FILES", "TEST_EXCLUDE", "TIMEOUT", "DMESG_FILTER"}


class ConfigError(ValueError):
    """Raised when config.local is malformed or names a missing device."""


@dataclass
class HarnessConfig:
    """Settings shared by every run of one invocation."""
    test_files: list[str] = field(default_factory=list)
    test_exclude: set[str] = field(default_factory=set)
    timeout: int = DEFAULT_TIMEOUT
    dmesg_filter: Optional[str] = None
    testname_width: int = TESTNAME_WIDTH

    def is_excluded(self, test: str) -> bool:
        return test in self.test_exclude


def _as_words(value: Any, key: str) -> list[str]:
    """Accept a whitespace-separated string or a list of strings."""
    if value is None:
        return []
    if isinstance(value, str):
        return value.split()
    if isinstance(value, (list, tuple)):
        words = []
        for item in value:
            if not isinstance(item, (str, int)):
                raise ConfigError(f"{key}: unexpected entry {item!r}")
            words.extend(str(item).split())
        return words
    raise ConfigError(f"{key} must be a string or a list, got {type(value).__name__}")


def _as_timeout(value: Any) -> int:
    if isinstance(value, bool):
        raise ConfigError(f"TIMEOUT must be an integer, got {value!r}")
    try:
        timeout = int(value)
    except (TypeError, ValueError):
        raise ConfigError(f"TIMEOUT must be an integer, got {value!r}") from None
    if timeout <= 0:
        raise ConfigError(f"TIMEOUT must be positive, got {timeout}")
    return timeout


def parse_config(data: Any) -> HarnessConfig:
    """Build a HarnessConfig from an already-loaded YAML document."""
    if data is None:
        return HarnessConfig()
    if not isinstance(data, dict):
        raise ConfigError("Invalid config (expected mapping)")

    for key in data:
        if key not in _KNOWN_KEYS:
            logger.debug("ignoring unknown config key %r", key)

    cfg = HarnessConfig(
        test_files=_as_words(data.get("TEST_FILES"), "TEST_FILES"),
        test_exclude=set(_as_words(data.get("TEST_EXCLUDE"), "TEST_EXCLUDE")),
    )
    if data.get("TIMEOUT") is not None:
        cfg.timeout = _as_timeout(data["TIMEOUT"])
    dmesg_filter = data.get("DMESG_FILTER")
    if dmesg_filter is not None:
        if not isinstance(dmesg_filter, str):
            raise ConfigError("DMESG_FILTER must be a shell command string")
        cfg.dmesg_filter = dmesg_filter.strip() or None
    return cfg


def validate_devices(cfg: HarnessConfig) -> None:
    """Every configured test file must exist before anything runs."""
    for dev in cfg.test_files:
        if not os.path.exists(dev):
            raise ConfigError(f"Test file {dev} not valid")


def resolve_config_path(override: Optional[str], test_dir: str) -> Optional[str]:
    """Pick the config file.

    Priority:
    1. Explicit --config
    2. $KTR_CONFIG
    3. <test_dir>/config.local if it exists
    """
    if override:
        return override
    env = os.environ.get(CONFIG_ENV)
    if env:
        return env
    candidate = os.path.join(test_dir, CONFIG_FILENAME)
    if os.path.isfile(candidate):
        return candidate
    return None


def load_config(path: Optional[str], *, timeout: Optional[int] = None) -> HarnessConfig:
    """Load and validate the config at *path* (defaults when ``None``).

    *timeout* overrides the file's TIMEOUT.
    """
    if path is None:
        cfg = HarnessConfig()
    else:
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except OSError as exc:
            raise ConfigError(f"cannot read {path}: {exc}") from exc
        except yaml.YAMLError as exc:
            raise ConfigError(f"invalid YAML in {path}: {exc}") from exc
        cfg = parse_config(data)
        logger.debug("loaded config from %s: %s", path, cfg)

    if timeout is not None:
        cfg.timeout = _as_timeout(timeout)
    validate_devices(cfg)
    return cfg
