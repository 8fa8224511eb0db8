"""Harness domain models.

Defines the records that flow through the pipeline:

- Document / Section / Block: produced by the fence extractor
- ClassifiedBlock: a Block plus its runnability verdict
- RunResult: the terminal outcome recorded for every block

All records are frozen. Nothing downstream mutates what upstream
produced; a different value is a new record (``dataclasses.replace``).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any


class Classification(str, Enum):
    """Runnability verdict for a block."""

    RUNNABLE = "runnable"
    FRAGMENT = "fragment"
    TRANSCRIPT = "transcript"
    PROSE_ILLUSTRATION = "prose-illustration"


class BlockStatus(str, Enum):
    """Terminal status of a block in the report.

    ``passed`` / ``failed`` describe a snippet that ran to completion;
    ``errored`` means the harness could not obtain a verdict (timeout,
    missing toolchain, abort); ``skipped`` means nothing was executed.
    """

    PASSED = "passed"
    FAILED = "failed"
    ERRORED = "errored"
    SKIPPED = "skipped"

    @property
    def is_problem(self) -> bool:
        return self in (BlockStatus.FAILED, BlockStatus.ERRORED)


class Reason(str, Enum):
    """Why a block ended up with its status."""

    NOT_RUNNABLE = "not-runnable"
    LANGUAGE_FILTERED = "language-filtered"
    EXIT_CODE = "exit-code"
    UNEXPECTED_SUCCESS = "unexpected-success"
    TIMEOUT = "timeout"
    TOOLCHAIN_MISSING = "toolchain-missing"
    SPAWN_ERROR = "spawn-error"
    ABORTED = "aborted"


BlockKey = tuple[str, int]


@dataclass(frozen=True)
class Section:
    """A heading in a guide document."""

    level: int
    title: str
    line: int


@dataclass(frozen=True)
class Block:
    """One fenced region of a document.

    Attributes:
        document: Path of the document the block was extracted from
        ordinal: 0-based position among the document's blocks
        language: Language tag from the info string ("" when absent)
        text: Raw text between the fences, without the fence lines
        section: Title of the nearest preceding heading, if any
        start_line: 1-based line of the opening fence
        end_line: 1-based line of the closing fence
        info: The raw info string after the opening fence
        flags: Bare info-string tokens after the tag (``skip``, ``independent``)
        attrs: ``key=value`` info-string tokens, as sorted pairs
    """

    document: Path
    ordinal: int
    language: str
    text: str
    section: str | None
    start_line: int
    end_line: int
    info: str = ""
    flags: frozenset[str] = field(default_factory=frozenset)
    attrs: tuple[tuple[str, str], ...] = ()

    @property
    def key(self) -> BlockKey:
        return (str(self.document), self.ordinal)

    def has_flag(self, name: str) -> bool:
        return name in self.flags

    def attr(self, name: str, default: str | None = None) -> str | None:
        for key, value in self.attrs:
            if key == name:
                return value
        return default

    @property
    def timeout_override(self) -> float | None:
        raw = self.attr("timeout")
        if raw is None:
            return None
        try:
            value = float(raw)
        except ValueError:
            return None
        return value if value > 0 else None


@dataclass(frozen=True)
class Document:
    """A guide document with its headings and blocks in source order."""

    path: Path
    sections: tuple[Section, ...] = ()
    blocks: tuple[Block, ...] = ()


@dataclass(frozen=True)
class ClassifiedBlock:
    """A Block plus the classifier's verdict.

    ``language`` is the canonical toolchain language for runnable blocks
    (``python``, ``ruby``, ``elixir``, ``shell``) and ``None`` otherwise.
    """

    block: Block
    classification: Classification
    language: str | None = None
    reason: str = ""
    ambiguous: bool = False

    @property
    def is_runnable(self) -> bool:
        return self.classification is Classification.RUNNABLE

    @property
    def key(self) -> BlockKey:
        return self.block.key

    @property
    def independent(self) -> bool:
        return self.block.has_flag("independent")


@dataclass(frozen=True)
class RunResult:
    """Terminal outcome of one block."""

    item: ClassifiedBlock
    status: BlockStatus
    reason: Reason | None = None
    stdout: str = ""
    stderr: str = ""
    exit_code: int | None = None
    elapsed: float = 0.0

    @classmethod
    def skipped(cls, item: ClassifiedBlock, reason: Reason = Reason.NOT_RUNNABLE) -> RunResult:
        return cls(item=item, status=BlockStatus.SKIPPED, reason=reason)

    @classmethod
    def errored(cls, item: ClassifiedBlock, reason: Reason, message: str = "", elapsed: float = 0.0) -> RunResult:
        return cls(item=item, status=BlockStatus.ERRORED, reason=reason, stderr=message, elapsed=elapsed)

    @property
    def key(self) -> BlockKey:
        return self.item.key

    @property
    def block(self) -> Block:
        return self.item.block

    def to_dict(self) -> dict[str, Any]:
        block = self.item.block
        return {
            "document": str(block.document),
            "ordinal": block.ordinal,
            "section": block.section,
            "start_line": block.start_line,
            "language": block.language,
            "classification": self.item.classification.value,
            "runner": self.item.language,
            "status": self.status.value,
            "reason": self.reason.value if self.reason else None,
            "exit_code": self.exit_code,
            "elapsed_seconds": round(self.elapsed, 4),
            "stdout": self.stdout,
            "stderr": self.stderr,
        }
