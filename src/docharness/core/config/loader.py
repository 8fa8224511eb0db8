"""
TOML configuration file loading.

A config file either is a dedicated ``docharness.toml``::

    [harness]
    timeout_seconds = 10
    parallel = 2
    ordered = true
    workdir_policy = "per-document"
    independent_languages = ["shell"]

    [toolchains.ruby]
    command = ["ruby", "-W0", "{file}"]
    suffix = ".rb"

or a ``pyproject.toml`` carrying the same tables under
``[tool.docharness]`` / ``[tool.docharness.toolchains.<lang>]``.
"""

from __future__ import annotations

import tomllib
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from docharness.core.config.settings import HarnessSettings, ToolchainConfig, default_toolchains
from docharness.core.errors import ConfigError

DEFAULT_CONFIG_NAMES = ("docharness.toml", ".docharness.toml")


def find_config_file(directory: Path) -> Path | None:
    """Return the first default config file found in ``directory``."""
    for name in DEFAULT_CONFIG_NAMES:
        candidate = directory / name
        if candidate.is_file():
            return candidate
    return None


def read_config_file(path: Path) -> dict[str, Any]:
    """Parse a config file into keyword arguments for :class:`HarnessSettings`."""
    try:
        data = tomllib.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError as exc:
        raise ConfigError(f"config file not found: {path}", cause=exc) from exc
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(f"invalid TOML in {path}: {exc}", cause=exc) from exc

    if "tool" in data:
        data = data["tool"].get("docharness", {})

    values = dict(data.get("harness", {}))
    unknown = sorted(set(values) - set(HarnessSettings.model_fields) - {"toolchains"})
    if unknown:
        raise ConfigError(f"unknown keys in {path}: {', '.join(unknown)}").with_context(document=str(path))

    toolchain_tables = {**values.pop("toolchains", {}), **data.get("toolchains", {})}
    if toolchain_tables:
        toolchains = default_toolchains()
        for language, table in toolchain_tables.items():
            try:
                toolchains[language.lower()] = ToolchainConfig(**table)
            except (TypeError, ValidationError) as exc:
                raise ConfigError(f"invalid toolchain '{language}' in {path}", cause=exc) from exc
        values["toolchains"] = toolchains

    return values


def load_settings(config_file: Path | None = None, **overrides: Any) -> HarnessSettings:
    """Build the settings for one invocation.

    Args:
        config_file: Optional TOML file (dedicated file or pyproject.toml)
        **overrides: Highest-precedence values, typically CLI flags.
            ``None`` means "not given".
    """
    values: dict[str, Any] = read_config_file(config_file) if config_file else {}
    values.update({key: value for key, value in overrides.items() if value is not None})
    try:
        return HarnessSettings(**values)
    except ValidationError as exc:
        raise ConfigError(f"invalid configuration: {exc}", cause=exc) from exc
