"""
Structured error types for the documentation harness.

Every failure the harness can report carries a category, structured
context (document, section, ordinal, language) and an optional chained
cause, so the same object can be logged, rendered in the console report
and serialised into the JSON report.

Manifesto:
    - **Typed hierarchy:** one subclass per failure domain, never bare Exception
    - **Isolation policy lives in the caller:** errors describe, dispatch decides
    - **Rich context:** errors know which document and block they belong to
    - **Error chaining:** the underlying exception is preserved as ``cause``

Architecture:
    ::

        ┌─────────────────────────────────────────────────────────────┐
        │                       HarnessError                           │
        │            (category, context, cause, to_dict)               │
        ├─────────────────────────────────────────────────────────────┤
        │                                                              │
        │  MalformedDocument      ClassificationAmbiguous              │
        │  (PARSE, per-document)  (CLASSIFICATION, warning only)       │
        │                                                              │
        │  ExecutionTimeout       ToolchainMissing                     │
        │  (EXECUTION, per-block) (TOOLCHAIN, per-language)            │
        │                                                              │
        │  ConfigError            IncompleteReport                     │
        │  (CONFIG, usage)        (INTERNAL, aborts the run)           │
        │                              │                               │
        │                         DuplicateResult                      │
        └─────────────────────────────────────────────────────────────┘

Propagation policy:
    - Per-document and per-block failures are isolated and recorded.
    - ``ToolchainMissing`` is reported once per language; other languages
      continue.
    - ``IncompleteReport`` is a defect and aborts the run.

Examples:
    >>> err = MalformedDocument("unterminated fence", line=12)
    >>> err.with_context(document="guides/require.md")
    MalformedDocument('unterminated fence', category=PARSE)
    >>> err.to_dict()["context"]
    {'document': 'guides/require.md', 'line': 12}

Tags:
    error-handling, exception-hierarchy, error-context, docharness

Doc-Types:
    - API Reference
    - Error Handling Guide
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """Failure domains used for routing, rendering and exit codes."""

    PARSE = "PARSE"
    CLASSIFICATION = "CLASSIFICATION"
    EXECUTION = "EXECUTION"
    TOOLCHAIN = "TOOLCHAIN"
    CONFIG = "CONFIG"
    INTERNAL = "INTERNAL"
    UNKNOWN = "UNKNOWN"


@dataclass
class ErrorContext:
    """Structured metadata attached to a :class:`HarnessError`.

    Only fields that are set end up in :meth:`to_dict`, which keeps log
    lines and JSON reports free of ``null`` noise.

    Attributes:
        document: Path of the guide document being processed
        section: Title of the enclosing heading
        ordinal: Position of the block within the document
        line: 1-based line number the error points at
        language: Canonical toolchain language
        metadata: Additional key-value pairs
    """

    document: str | None = None
    section: str | None = None
    ordinal: int | None = None
    line: int | None = None
    language: str | None = None

    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        result = {}
        for key in ["document", "section", "ordinal", "line", "language"]:
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        if self.metadata:
            result.update(self.metadata)
        return result


class HarnessError(Exception):
    """
    Base exception for all harness errors.

    Subclasses set ``default_category``; callers can override it, attach a
    context and chain a cause.

    Examples:
        >>> error = HarnessError("Something went wrong")
        >>> error.category
        <ErrorCategory.INTERNAL: 'INTERNAL'>

        >>> try:
        ...     raise OSError("disk full")
        ... except OSError as e:
        ...     error = HarnessError("could not write snippet", cause=e)
        >>> error.cause
        OSError('disk full')
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        context: ErrorContext | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.context = context or ErrorContext()
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> HarnessError:
        """
        Add context to this error (fluent API).

        Usage:
            raise ToolchainMissing("ruby not found").with_context(
                language="ruby",
                document="guides/gems.md",
            )
        """
        for key, value in kwargs.items():
            if hasattr(self.context, key) and key != "metadata":
                setattr(self.context, key, value)
            else:
                self.context.metadata[key] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        result: dict[str, Any] = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
        }
        context_dict = self.context.to_dict()
        if context_dict:
            result["context"] = context_dict
        if self.cause is not None:
            result["cause"] = str(self.cause)
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


# =============================================================================
# EXTRACTION / CLASSIFICATION
# =============================================================================


class MalformedDocument(HarnessError):
    """A guide document could not be split into blocks.

    Raised for an unterminated fence. Fatal for that document's
    extraction only; the remaining documents are still processed.
    """

    default_category = ErrorCategory.PARSE

    def __init__(self, message: str, *, line: int | None = None, document: str | None = None, **kwargs: Any):
        super().__init__(message, **kwargs)
        self.line = line
        if line is not None:
            self.context.line = line
        if document is not None:
            self.context.document = document


class ClassificationAmbiguous(HarnessError):
    """Runnability heuristics disagreed about a block.

    Never escapes the classifier: the block is downgraded to a fragment
    and the harness logs a warning.
    """

    default_category = ErrorCategory.CLASSIFICATION


# =============================================================================
# EXECUTION
# =============================================================================


class ExecutionTimeout(HarnessError):
    """A snippet exceeded its execution deadline and was terminated."""

    default_category = ErrorCategory.EXECUTION

    def __init__(self, message: str, *, timeout: float, elapsed: float | None = None, **kwargs: Any):
        super().__init__(message, **kwargs)
        self.timeout = timeout
        self.elapsed = elapsed


class ToolchainMissing(HarnessError):
    """The configured runner for a language is not installed.

    Fatal for every block of that language; reported once per run.
    """

    default_category = ErrorCategory.TOOLCHAIN

    def __init__(self, message: str, *, language: str, executable: str | None = None, **kwargs: Any):
        super().__init__(message, **kwargs)
        self.language = language
        self.executable = executable
        self.context.language = language
        if executable is not None:
            self.context.metadata["executable"] = executable


class ConfigError(HarnessError):
    """Invalid configuration file or option values."""

    default_category = ErrorCategory.CONFIG


# =============================================================================
# INTERNAL INVARIANTS
# =============================================================================


class IncompleteReport(HarnessError):
    """An extracted block never received a terminal status.

    This is an internal invariant violation. It is surfaced loudly and
    aborts the run.
    """

    default_category = ErrorCategory.INTERNAL

    def __init__(self, message: str, *, missing: list[tuple[str, int]] | None = None, **kwargs: Any):
        super().__init__(message, **kwargs)
        self.missing = list(missing or [])
        if self.missing:
            self.context.metadata["missing"] = [f"{doc}#{ordinal}" for doc, ordinal in self.missing]


class DuplicateResult(IncompleteReport):
    """A block received a second terminal status."""


# =============================================================================
# HELPERS
# =============================================================================


def categorize_error(error: Exception) -> ErrorCategory:
    """Best-effort category for any exception, harness or not."""
    if isinstance(error, HarnessError):
        return error.category
    if isinstance(error, TimeoutError):
        return ErrorCategory.EXECUTION
    if isinstance(error, (FileNotFoundError, PermissionError)):
        return ErrorCategory.TOOLCHAIN
    if isinstance(error, (ValueError, TypeError)):
        return ErrorCategory.CONFIG
    return ErrorCategory.UNKNOWN


__all__ = [
    "ErrorCategory",
    "ErrorContext",
    "HarnessError",
    "MalformedDocument",
    "ClassificationAmbiguous",
    "ExecutionTimeout",
    "ToolchainMissing",
    "ConfigError",
    "IncompleteReport",
    "DuplicateResult",
    "categorize_error",
]
