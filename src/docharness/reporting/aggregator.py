"""Report Aggregator — the one shared mutable structure of a run.

Manifesto:
    Workers finish in any order; the report must not care. The aggregator
    accepts results from any thread (every write is serialised through a
    lock), remembers which blocks were extracted, and at ``finalize()``
    rebuilds a deterministic report: documents in discovery order,
    blocks in ordinal order.

Invariant:
    Every extracted block appears in the final report exactly once. A
    missing terminal status raises :class:`IncompleteReport`; a second
    status for the same block raises :class:`DuplicateResult`. Both are
    defects, never user errors.

Architecture:
    ::

        main thread                worker threads
        ───────────                ──────────────
        expect(doc, items)
        record_document_error()
        record(skipped) ─┐         record(result) ─┐
                         ▼                         ▼
                    ┌────────────── Lock ──────────────┐
                    │ _expected  {doc: [keys]}         │
                    │ _results   {key: RunResult}      │
                    └──────────────────────────────────┘
                                   │
                              finalize() → Report

Tags:
    docharness, reporting, aggregation, thread-safety, invariants

Doc-Types:
    api-reference
"""

from __future__ import annotations

import threading
from collections.abc import Sequence

from docharness.core.errors import DuplicateResult, HarnessError, IncompleteReport, ToolchainMissing
from docharness.models import BlockKey, ClassifiedBlock, RunResult
from docharness.reporting.report import DocumentReport, Report


class ReportAggregator:
    """Thread-safe accumulator of :class:`RunResult` keyed by (document, ordinal)."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._order: list[str] = []
        self._expected: dict[str, list[BlockKey]] = {}
        self._results: dict[BlockKey, RunResult] = {}
        self._document_errors: dict[str, HarnessError] = {}
        self._missing_toolchains: dict[str, ToolchainMissing] = {}

    # ── Registration (main thread, discovery order) ───────────────

    def expect(self, document: str, items: Sequence[ClassifiedBlock]) -> None:
        """Register every block extracted from ``document``."""
        with self._lock:
            self._add_document(document)
            self._expected[document] = [item.key for item in items]

    def record_document_error(self, document: str, error: HarnessError) -> None:
        """Note a document whose extraction failed; it contributes no blocks."""
        with self._lock:
            self._add_document(document)
            self._expected[document] = []
            self._document_errors[document] = error

    def record_missing_toolchain(self, error: ToolchainMissing) -> bool:
        """Store a missing toolchain once per language. Returns True the first time."""
        with self._lock:
            if error.language in self._missing_toolchains:
                return False
            self._missing_toolchains[error.language] = error
            return True

    def _add_document(self, document: str) -> None:
        if document not in self._expected:
            self._order.append(document)

    # ── Results (any thread) ──────────────────────────────────────

    def record(self, result: RunResult) -> None:
        with self._lock:
            if result.key not in self._expected.get(result.key[0], ()):
                raise IncompleteReport(
                    f"block {result.key[0]}#{result.key[1]} was never extracted",
                    missing=[result.key],
                )
            if result.key in self._results:
                raise DuplicateResult(
                    f"block {result.key[0]}#{result.key[1]} already has status "
                    f"'{self._results[result.key].status.value}'",
                    missing=[result.key],
                )
            self._results[result.key] = result

    def has(self, key: BlockKey) -> bool:
        with self._lock:
            return key in self._results

    def pending(self) -> list[BlockKey]:
        """Expected blocks that have no terminal status yet."""
        with self._lock:
            return [
                key
                for document in self._order
                for key in self._expected[document]
                if key not in self._results
            ]

    # ── Finalisation ──────────────────────────────────────────────

    def finalize(self, *, interrupted: bool = False) -> Report:
        """Build the deterministic report or raise :class:`IncompleteReport`."""
        missing = self.pending()
        if missing:
            raise IncompleteReport(
                f"{len(missing)} extracted block(s) never received a terminal status",
                missing=missing,
            )

        with self._lock:
            documents = tuple(
                DocumentReport(
                    path=document,
                    results=tuple(
                        sorted(
                            (self._results[key] for key in self._expected[document]),
                            key=lambda result: result.key[1],
                        )
                    ),
                    error=self._document_errors.get(document),
                )
                for document in self._order
            )
            missing_toolchains = tuple(
                self._missing_toolchains[language] for language in sorted(self._missing_toolchains)
            )
        return Report(documents=documents, missing_toolchains=missing_toolchains, interrupted=interrupted)
