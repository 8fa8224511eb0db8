"""Harness configuration: validated settings and TOML config files.

Quick start::

    from docharness.core.config import load_settings

    settings = load_settings(timeout_seconds=5, parallel=2)
    settings = settings.with_overrides(ordered=False)   # new object

Architecture::

    settings.py   HarnessSettings (pydantic-settings, frozen) + ToolchainConfig
    loader.py     docharness.toml / [tool.docharness] parsing + load_settings()
"""

from .loader import find_config_file, load_settings, read_config_file
from .settings import (
    HarnessSettings,
    ToolchainConfig,
    WorkdirPolicy,
    default_toolchains,
)

__all__ = [
    "HarnessSettings",
    "ToolchainConfig",
    "WorkdirPolicy",
    "default_toolchains",
    "find_config_file",
    "load_settings",
    "read_config_file",
]
