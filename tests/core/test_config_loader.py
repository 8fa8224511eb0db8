"""Tests for TOML config discovery and loading."""

from __future__ import annotations

from pathlib import Path

import pytest

from docharness.core.config import WorkdirPolicy, find_config_file, load_settings, read_config_file
from docharness.core.errors import ConfigError


# ── Helpers ──────────────────────────────────────────────────────────────


def _write(path: Path, text: str) -> Path:
    path.write_text(text, encoding="utf-8")
    return path


class TestFindConfigFile:
    def test_finds_dedicated_file(self, tmp_path):
        config = _write(tmp_path / "docharness.toml", "")
        assert find_config_file(tmp_path) == config

    def test_hidden_file(self, tmp_path):
        config = _write(tmp_path / ".docharness.toml", "")
        assert find_config_file(tmp_path) == config

    def test_none_when_absent(self, tmp_path):
        assert find_config_file(tmp_path) is None


class TestReadConfigFile:
    def test_harness_table(self, tmp_path):
        config = _write(
            tmp_path / "docharness.toml",
            '[harness]\ntimeout_seconds = 12\nworkdir_policy = "per-document"\n',
        )
        assert read_config_file(config) == {"timeout_seconds": 12, "workdir_policy": "per-document"}

    def test_toolchains_merge_over_defaults(self, tmp_path):
        config = _write(
            tmp_path / "docharness.toml",
            '[toolchains.ruby]\ncommand = ["ruby", "-W0", "{file}"]\nsuffix = ".rb"\n',
        )
        toolchains = read_config_file(config)["toolchains"]
        assert toolchains["ruby"].command == ("ruby", "-W0", "{file}")
        assert "python" in toolchains

    def test_pyproject_tool_table(self, tmp_path):
        config = _write(
            tmp_path / "pyproject.toml",
            '[project]\nname = "guides"\n\n[tool.docharness.harness]\nparallel = 2\n',
        )
        assert read_config_file(config) == {"parallel": 2}

    def test_unknown_key(self, tmp_path):
        config = _write(tmp_path / "docharness.toml", "[harness]\ntimeout = 3\n")
        with pytest.raises(ConfigError, match="unknown keys"):
            read_config_file(config)

    def test_invalid_toml(self, tmp_path):
        config = _write(tmp_path / "docharness.toml", "[harness\n")
        with pytest.raises(ConfigError, match="invalid TOML"):
            read_config_file(config)

    def test_invalid_toolchain(self, tmp_path):
        config = _write(tmp_path / "docharness.toml", "[toolchains.ruby]\ncommand = []\n")
        with pytest.raises(ConfigError, match="invalid toolchain 'ruby'"):
            read_config_file(config)

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigError, match="not found"):
            read_config_file(tmp_path / "nope.toml")


class TestLoadSettings:
    def test_cli_overrides_beat_file(self, tmp_path):
        config = _write(tmp_path / "docharness.toml", "[harness]\ntimeout_seconds = 12\nparallel = 2\n")
        settings = load_settings(config, timeout_seconds=3, parallel=None)
        assert settings.timeout_seconds == 3
        assert settings.parallel == 2

    def test_file_values(self, tmp_path):
        config = _write(tmp_path / "docharness.toml", '[harness]\nworkdir_policy = "per-document"\n')
        assert load_settings(config).workdir_policy is WorkdirPolicy.PER_DOCUMENT

    def test_invalid_value_is_config_error(self, tmp_path):
        config = _write(tmp_path / "docharness.toml", "[harness]\nparallel = 0\n")
        with pytest.raises(ConfigError, match="invalid configuration"):
            load_settings(config)
