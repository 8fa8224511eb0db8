"""
Validated, immutable settings for one harness invocation.

Manifesto:
    The harness never reads ambient configuration from module globals.
    Each invocation builds exactly one :class:`HarnessSettings` object and
    passes it down explicitly. Settings are frozen; a changed value is a
    new object produced by :meth:`HarnessSettings.with_overrides`.

Resolution order (lowest to highest precedence):

    defaults  <  DOCHARNESS_* environment  <  TOML config file  <  CLI flags

Tags:
    docharness, configuration, settings, pydantic, validation

Doc-Types:
    api-reference
"""

from __future__ import annotations

import sys
from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

FILE_PLACEHOLDER = "{file}"


class WorkdirPolicy(str, Enum):
    """Where a runnable block executes.

    ``isolated`` gives every block a fresh scoped directory.
    ``per-document`` gives all blocks of one document a single scoped
    directory, so later blocks observe files written by earlier ones.
    """

    ISOLATED = "isolated"
    PER_DOCUMENT = "per-document"


class ToolchainConfig(BaseModel):
    """How to run a snippet of one canonical language.

    ``command`` is an argv template; every ``{file}`` token is replaced by
    the path of the written snippet. Without a placeholder the path is
    appended as the last argument.
    """

    model_config = ConfigDict(frozen=True)

    command: tuple[str, ...]
    suffix: str = ""
    env: dict[str, str] = Field(default_factory=dict)

    @field_validator("command")
    @classmethod
    def _command_not_empty(cls, value: tuple[str, ...]) -> tuple[str, ...]:
        if not value or not value[0]:
            raise ValueError("toolchain command must name an executable")
        return value

    @property
    def executable(self) -> str:
        return self.command[0]

    def argv(self, snippet: Path) -> list[str]:
        """Render the argv for a snippet file."""
        if not any(FILE_PLACEHOLDER in part for part in self.command):
            return [*self.command, str(snippet)]
        return [part.replace(FILE_PLACEHOLDER, str(snippet)) for part in self.command]


def default_toolchains() -> dict[str, ToolchainConfig]:
    """Toolchains for the languages the guides are written in."""
    return {
        "python": ToolchainConfig(command=(sys.executable or "python3", FILE_PLACEHOLDER), suffix=".py"),
        "ruby": ToolchainConfig(command=("ruby", FILE_PLACEHOLDER), suffix=".rb"),
        "elixir": ToolchainConfig(command=("elixir", FILE_PLACEHOLDER), suffix=".exs"),
        "shell": ToolchainConfig(command=("bash", FILE_PLACEHOLDER), suffix=".sh"),
    }


class HarnessSettings(BaseSettings):
    """Harness configuration.

    All fields can be set via ``DOCHARNESS_*`` environment variables (e.g.
    ``DOCHARNESS_TIMEOUT_SECONDS=5``), a TOML file, or CLI flags.
    """

    model_config = SettingsConfigDict(
        env_prefix="DOCHARNESS_",
        extra="ignore",
        frozen=True,
        env_nested_delimiter="__",
    )

    # ── Execution ────────────────────────────────────────────────
    timeout_seconds: float = Field(default=30.0, gt=0, description="Per-block execution deadline")
    parallel: int = Field(default=4, ge=1, description="Worker pool size (documents in flight)")
    kill_grace_seconds: float = Field(default=2.0, ge=0, description="SIGTERM -> SIGKILL grace period")
    max_output_chars: int = Field(default=20_000, ge=0, description="Captured stdout/stderr cap per stream")
    scratch_dir: Path | None = Field(default=None, description="Parent of scoped workdirs (system temp if unset)")

    # ── Ordering ─────────────────────────────────────────────────
    ordered: bool = Field(default=True, description="Run a document's blocks sequentially in ordinal order")
    workdir_policy: WorkdirPolicy = Field(default=WorkdirPolicy.ISOLATED)
    independent_languages: frozenset[str] = Field(default_factory=frozenset)

    # ── Selection ────────────────────────────────────────────────
    languages: frozenset[str] | None = Field(default=None, description="Only run these canonical languages")
    patterns: tuple[str, ...] = Field(default=("*.md", "*.markdown"))

    # ── Toolchains ───────────────────────────────────────────────
    toolchains: dict[str, ToolchainConfig] = Field(default_factory=default_toolchains)

    # ── Logging ──────────────────────────────────────────────────
    log_level: str = Field(default="WARNING")
    log_format: str = Field(default="auto")

    @field_validator("languages", "independent_languages", mode="before")
    @classmethod
    def _normalize_languages(cls, value: Any) -> Any:
        if value is None:
            return value
        if isinstance(value, str):
            value = [part for part in value.split(",") if part.strip()]
        return frozenset(str(part).strip().lower() for part in value)

    @field_validator("log_level")
    @classmethod
    def _valid_level(cls, value: str) -> str:
        upper = value.upper()
        if upper not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"unknown log level: {value}")
        return upper

    @field_validator("log_format")
    @classmethod
    def _valid_format(cls, value: str) -> str:
        lower = value.lower()
        if lower not in {"auto", "json", "console"}:
            raise ValueError(f"log_format must be auto, json or console, got {value!r}")
        return lower

    # ── Derived ──────────────────────────────────────────────────

    @property
    def json_logs(self) -> bool | None:
        return {"auto": None, "json": True, "console": False}[self.log_format]

    def toolchain_for(self, language: str) -> ToolchainConfig | None:
        return self.toolchains.get(language)

    def wants_language(self, language: str) -> bool:
        return self.languages is None or language in self.languages

    def with_overrides(self, **overrides: Any) -> HarnessSettings:
        """Return a rebuilt, re-validated copy with ``overrides`` applied.

        ``None`` values are ignored so CLI options that were not passed
        leave the current value in place.
        """
        updates = {key: value for key, value in overrides.items() if value is not None}
        if not updates:
            return self
        data = self.model_dump()
        data.update(updates)
        return type(self)(**data)
