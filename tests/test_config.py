"""Tests for ktr.config: config.local loading and validation."""

from __future__ import annotations

import pytest
import yaml

from ktr.config import (
    CONFIG_ENV, ConfigError, HarnessConfig, load_config, parse_config, resolve_config_path,
)


def _write(path, data):
    path.write_text(yaml.dump(data) if not isinstance(data, str) else data)
    return str(path)


class TestParseConfig:
    def test_defaults(self):
        cfg = parse_config(None)
        assert cfg == HarnessConfig()
        assert cfg.timeout == 60
        assert cfg.testname_width == 40

    def test_whitespace_strings(self):
        cfg = parse_config({"TEST_FILES": "/dev/a  /dev/b", "TEST_EXCLUDE": "x y"})
        assert cfg.test_files == ["/dev/a", "/dev/b"]
        assert cfg.test_exclude == {"x", "y"}

    def test_lists(self):
        cfg = parse_config({"TEST_FILES": ["/dev/a"], "TEST_EXCLUDE": ["x", "y z"]})
        assert cfg.test_files == ["/dev/a"]
        assert cfg.test_exclude == {"x", "y", "z"}

    def test_timeout(self):
        assert parse_config({"TIMEOUT": 30}).timeout == 30
        assert parse_config({"TIMEOUT": "45"}).timeout == 45

    @pytest.mark.parametrize("bad", [0, -1, "soon", True])
    def test_bad_timeout(self, bad):
        with pytest.raises(ConfigError, match="TIMEOUT"):
            parse_config({"TIMEOUT": bad})

    def test_dmesg_filter(self):
        assert parse_config({"DMESG_FILTER": "grep -v audit"}).dmesg_filter == "grep -v audit"
        assert parse_config({"DMESG_FILTER": "  "}).dmesg_filter is None

    def test_not_a_mapping(self):
        with pytest.raises(ConfigError, match="expected mapping"):
            parse_config(["TIMEOUT", 3])

    def test_unknown_keys_ignored(self):
        assert parse_config({"FOO": 1}).timeout == 60

    def test_bad_list_entry(self):
        with pytest.raises(ConfigError, match="TEST_FILES"):
            parse_config({"TEST_FILES": [{"a": 1}]})

    def test_exclude_is_exact_match(self):
        cfg = parse_config({"TEST_EXCLUDE": "poll"})
        assert cfg.is_excluded("poll") is True
        assert cfg.is_excluded("poll-mshot") is False


class TestLoadConfig:
    def test_no_file(self):
        assert load_config(None) == HarnessConfig()

    def test_cli_timeout_overrides(self, tmp_path):
        path = _write(tmp_path / "config.local", {"TIMEOUT": 10})
        assert load_config(path, timeout=3).timeout == 3

    def test_existing_devices_ok(self, tmp_path):
        dev = tmp_path / "disk.img"
        dev.write_bytes(b"\0" * 16)
        path = _write(tmp_path / "config.local", {"TEST_FILES": str(dev)})
        assert load_config(path).test_files == [str(dev)]

    def test_missing_device(self, tmp_path):
        path = _write(tmp_path / "config.local", {"TEST_FILES": "/dev/does-not-exist-ktr"})
        with pytest.raises(ConfigError, match="Test file /dev/does-not-exist-ktr not valid"):
            load_config(path)

    def test_invalid_yaml(self, tmp_path):
        path = _write(tmp_path / "config.local", "TIMEOUT: [unclosed\n")
        with pytest.raises(ConfigError, match="invalid YAML"):
            load_config(path)

    def test_unreadable(self, tmp_path):
        with pytest.raises(ConfigError, match="cannot read"):
            load_config(str(tmp_path / "missing"))


class TestResolveConfigPath:
    def test_explicit_wins(self, tmp_path, monkeypatch):
        monkeypatch.setenv(CONFIG_ENV, "/env/config")
        assert resolve_config_path("/x/config", str(tmp_path)) == "/x/config"

    def test_env(self, tmp_path, monkeypatch):
        monkeypatch.setenv(CONFIG_ENV, "/env/config")
        assert resolve_config_path(None, str(tmp_path)) == "/env/config"

    def test_test_dir_file(self, tmp_path, monkeypatch):
        monkeypatch.delenv(CONFIG_ENV, raising=False)
        (tmp_path / "config.local").write_text("TIMEOUT: 5\n")
        assert resolve_config_path(None, str(tmp_path)) == str(tmp_path / "config.local")

    def test_none(self, tmp_path, monkeypatch):
        monkeypatch.delenv(CONFIG_ENV, raising=False)
        assert resolve_config_path(None, str(tmp_path)) is None
