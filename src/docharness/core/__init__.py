"""Cross-cutting primitives: errors, structured logging, configuration."""

from .errors import (
    ClassificationAmbiguous,
    ConfigError,
    DuplicateResult,
    ErrorCategory,
    ErrorContext,
    ExecutionTimeout,
    HarnessError,
    IncompleteReport,
    MalformedDocument,
    ToolchainMissing,
)
from .logging import configure_logging, get_logger

__all__ = [
    "ClassificationAmbiguous",
    "ConfigError",
    "DuplicateResult",
    "ErrorCategory",
    "ErrorContext",
    "ExecutionTimeout",
    "HarnessError",
    "IncompleteReport",
    "MalformedDocument",
    "ToolchainMissing",
    "configure_logging",
    "get_logger",
]
