"""
Shared pytest fixtures for doc-harness tests.

This module provides:
- A ``write_guide`` factory that writes Markdown guides into ``tmp_path``
- Settings wired to the running interpreter as the python toolchain
- Guide text helpers live in ``tests._support.guides``
"""

import sys
from pathlib import Path
from typing import Callable

import pytest

# Ensure docharness package is importable
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from docharness.core.config import HarnessSettings, ToolchainConfig, load_settings


@pytest.fixture
def guides(tmp_path: Path) -> Path:
    root = tmp_path / "guides"
    root.mkdir()
    return root


@pytest.fixture
def write_guide(guides: Path) -> Callable[[str, str], Path]:
    """Write ``text`` to ``guides/<name>`` and return the path."""

    def _write(name: str, text: str) -> Path:
        path = guides / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")
        return path

    return _write


@pytest.fixture
def scratch(tmp_path: Path) -> Path:
    path = tmp_path / "scratch"
    path.mkdir()
    return path


@pytest.fixture
def settings(scratch: Path) -> HarnessSettings:
    """Settings whose python toolchain is the interpreter running the tests."""
    return load_settings(
        timeout_seconds=10,
        parallel=2,
        kill_grace_seconds=0.5,
        scratch_dir=scratch,
        toolchains={"python": ToolchainConfig(command=(sys.executable, "{file}"), suffix=".py")},
    )
