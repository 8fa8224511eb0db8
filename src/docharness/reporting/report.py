"""Final report records and their machine-readable form."""

from __future__ import annotations

import json
from collections import Counter
from collections.abc import Iterator
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from docharness.core.errors import HarnessError, ToolchainMissing
from docharness.models import BlockStatus, RunResult

REPORT_SCHEMA_VERSION = 1


@dataclass(frozen=True)
class DocumentReport:
    """All results for one document, in ordinal order.

    ``error`` is set when the document could not be extracted; such a
    document has no results.
    """

    path: str
    results: tuple[RunResult, ...] = ()
    error: HarnessError | None = field(default=None, compare=False)

    def counts(self) -> dict[str, int]:
        counter = Counter(result.status.value for result in self.results)
        return {status.value: counter.get(status.value, 0) for status in BlockStatus}

    def to_dict(self) -> dict[str, Any]:
        return {
            "path": self.path,
            "counts": self.counts(),
            "error": self.error.to_dict() if self.error else None,
            "blocks": [result.to_dict() for result in self.results],
        }


@dataclass(frozen=True)
class Report:
    """Aggregate outcome of one harness invocation."""

    documents: tuple[DocumentReport, ...] = ()
    missing_toolchains: tuple[ToolchainMissing, ...] = field(default=(), compare=False)
    interrupted: bool = False

    def results(self) -> Iterator[RunResult]:
        for document in self.documents:
            yield from document.results

    def summary(self) -> dict[str, int]:
        """Counts per status plus document totals."""
        counter = Counter(result.status.value for result in self.results())
        summary = {status.value: counter.get(status.value, 0) for status in BlockStatus}
        summary["blocks"] = sum(counter.values())
        summary["documents"] = len(self.documents)
        summary["malformed_documents"] = sum(1 for document in self.documents if document.error)
        return summary

    def failures(self) -> list[RunResult]:
        """Failed and errored blocks in report order."""
        return [result for result in self.results() if result.status.is_problem]

    def malformed(self) -> list[DocumentReport]:
        return [document for document in self.documents if document.error is not None]

    @property
    def ok(self) -> bool:
        return not (self.failures() or self.malformed() or self.missing_toolchains or self.interrupted)

    def to_dict(self) -> dict[str, Any]:
        return {
            "schema_version": REPORT_SCHEMA_VERSION,
            "ok": self.ok,
            "interrupted": self.interrupted,
            "summary": self.summary(),
            "missing_toolchains": [error.to_dict() for error in self.missing_toolchains],
            "documents": [document.to_dict() for document in self.documents],
        }

    def write_json(self, path: Path) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(self.to_dict(), indent=2, sort_keys=False) + "\n", encoding="utf-8")
        return path
