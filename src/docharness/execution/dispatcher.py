"""Runner Dispatch — schedule runnable blocks over a fixed worker pool.

Manifesto:
    Documents are independent; blocks inside a document usually are not.
    A guide that writes a file in one block and reads it in the next must
    run in source order, and the harness cannot infer that from text. So
    ordering is explicit configuration: by default a document's runnable
    blocks execute sequentially in ordinal order, and only blocks flagged
    ``independent`` (or written in an ``independent_languages`` language)
    are released to run concurrently.

ARCHITECTURE
────────────
::

    Dispatcher.dispatch(units)                    main thread
      ├── non-runnable          → record(skipped, not-runnable)
      ├── language filtered     → record(skipped, language-filtered)
      ├── toolchain missing     → report once, record(errored, toolchain-missing)
      └── per document plan     → ThreadPoolExecutor(max_workers=parallel)
                                      │
            ┌─────────────────────────┴──────────────────────┐
            ▼                                                ▼
      document worker (A)                          document worker (B)
        [shared scoped dir if per-document]           ...
        block 0 → block 1 → block 2   (ordinal order)
        independent blocks → block pool (isolated dirs)

    at most `parallel` snippets run at once across both pools

    KeyboardInterrupt / abort()
      ├── ProcessRegistry.abort()   kill every live subprocess group
      ├── pool.shutdown(cancel_futures=True)
      └── unstarted blocks          → record(skipped, aborted)

Related modules:
    runner.py      — one block → one RunResult
    processes.py   — live subprocess registry and kill escalation
    workdir.py     — scoped temporary directories

Tags:
    docharness, execution, dispatch, thread-pool, ordering, cancellation

Doc-Types:
    api-reference
"""

from __future__ import annotations

import threading
from collections.abc import Sequence
from concurrent.futures import FIRST_EXCEPTION, Future, ThreadPoolExecutor, wait
from contextlib import ExitStack
from dataclasses import dataclass
from pathlib import Path

from docharness.core.config.settings import HarnessSettings, WorkdirPolicy
from docharness.core.errors import HarnessError, IncompleteReport, ToolchainMissing, categorize_error
from docharness.core.logging import LogContext, get_logger
from docharness.execution.processes import ProcessRegistry
from docharness.execution.runner import SnippetRunner
from docharness.execution.workdir import scoped_workdir
from docharness.models import ClassifiedBlock, Reason, RunResult
from docharness.reporting.aggregator import ReportAggregator

logger = get_logger(__name__)


@dataclass(frozen=True)
class DocumentPlan:
    """Runnable blocks of one document, split by ordering constraint."""

    document: str
    sequential: tuple[ClassifiedBlock, ...]
    independent: tuple[ClassifiedBlock, ...]

    @property
    def items(self) -> tuple[ClassifiedBlock, ...]:
        return self.sequential + self.independent


class Dispatcher:
    """Runs classified blocks and records every outcome in the aggregator.

    Example:
        >>> aggregator = ReportAggregator()
        >>> dispatcher = Dispatcher(settings, aggregator)
        >>> dispatcher.dispatch([("guides/a.md", classified_blocks)])
        >>> report = aggregator.finalize(interrupted=dispatcher.interrupted)
    """

    def __init__(
        self,
        settings: HarnessSettings,
        aggregator: ReportAggregator,
        runner: SnippetRunner | None = None,
    ):
        self.settings = settings
        self.aggregator = aggregator
        self.processes = runner.processes if runner else ProcessRegistry(settings.kill_grace_seconds)
        self.runner = runner or SnippetRunner(settings, self.processes)
        self.interrupted = False
        # one slot per running snippet, shared by both pools
        self._slots = threading.BoundedSemaphore(settings.parallel)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def dispatch(self, units: Sequence[tuple[str, Sequence[ClassifiedBlock]]]) -> None:
        """Run every runnable block of ``units`` and record all results.

        ``units`` are ``(document, classified_blocks)`` pairs that were
        already registered with the aggregator.
        """
        unavailable = self._check_toolchains(units)
        plans: list[DocumentPlan] = []

        for document, items in units:
            sequential: list[ClassifiedBlock] = []
            independent: list[ClassifiedBlock] = []
            for item in items:
                if not item.is_runnable:
                    self.aggregator.record(RunResult.skipped(item, Reason.NOT_RUNNABLE))
                elif not self.settings.wants_language(item.language or ""):
                    self.aggregator.record(RunResult.skipped(item, Reason.LANGUAGE_FILTERED))
                elif item.language in unavailable:
                    error = unavailable[item.language]
                    self.aggregator.record(RunResult.errored(item, Reason.TOOLCHAIN_MISSING, error.message))
                elif self._is_independent(item):
                    independent.append(item)
                else:
                    sequential.append(item)
            if sequential or independent:
                plans.append(DocumentPlan(document, tuple(sequential), tuple(independent)))

        if not plans:
            return

        logger.info(
            "dispatch_started",
            documents=len(plans),
            blocks=sum(len(plan.items) for plan in plans),
            parallel=self.settings.parallel,
        )
        self._run_plans(plans)

    def abort(self) -> None:
        """Kill in-flight subprocesses and stop scheduling new blocks."""
        self.interrupted = True
        self.processes.abort()

    # ------------------------------------------------------------------
    # Scheduling
    # ------------------------------------------------------------------

    def _run_plans(self, plans: list[DocumentPlan]) -> None:
        document_pool = ThreadPoolExecutor(
            max_workers=self.settings.parallel, thread_name_prefix="docharness-doc"
        )
        block_pool = ThreadPoolExecutor(
            max_workers=self.settings.parallel, thread_name_prefix="docharness-block"
        )
        futures: list[Future] = []
        try:
            for plan in plans:
                futures.append(document_pool.submit(self._run_sequential, plan))
                for item in plan.independent:
                    futures.append(block_pool.submit(self._run_one, item, None))
            self._await(futures)
        except KeyboardInterrupt:
            logger.warning("dispatch_interrupted")
            self.abort()
        finally:
            document_pool.shutdown(wait=True, cancel_futures=self.interrupted)
            block_pool.shutdown(wait=True, cancel_futures=self.interrupted)

        if self.interrupted:
            self._fill_aborted(plans)

    @staticmethod
    def _await(futures: list[Future]) -> None:
        done, _ = wait(futures, return_when=FIRST_EXCEPTION)
        for future in done:
            if not future.cancelled() and future.exception() is not None:
                raise future.exception()
        wait(futures)
        for future in futures:
            if not future.cancelled():
                future.result()

    def _run_sequential(self, plan: DocumentPlan) -> None:
        """Document worker: run ``plan.sequential`` in ordinal order."""
        with ExitStack() as stack:
            shared: Path | None = None
            if self.settings.workdir_policy is WorkdirPolicy.PER_DOCUMENT and plan.sequential:
                shared = stack.enter_context(
                    scoped_workdir(prefix="docharness-doc-", root=self.settings.scratch_dir)
                )
            for item in plan.sequential:
                if self.processes.aborted:
                    break
                self._run_one(item, shared)

    def _run_one(self, item: ClassifiedBlock, workdir: Path | None) -> None:
        """Run one block and record exactly one result for it."""
        block = item.block
        with LogContext(document=str(block.document), ordinal=block.ordinal, language=item.language):
            if self.processes.aborted:
                self.aggregator.record(RunResult.skipped(item, Reason.ABORTED))
                return
            try:
                with self._slots:
                    result = self.runner.run(item, workdir)
            except ToolchainMissing as exc:
                if self.aggregator.record_missing_toolchain(exc):
                    logger.error("toolchain_missing", **exc.to_dict())
                result = RunResult.errored(item, Reason.TOOLCHAIN_MISSING, exc.message)
            except IncompleteReport:
                raise
            except (HarnessError, OSError) as exc:
                category = categorize_error(exc)
                logger.error("block_errored", category=category.value, error=str(exc))
                result = RunResult.errored(item, Reason.SPAWN_ERROR, f"{category.value}: {exc}")
            if result.status.is_problem:
                logger.info("block_finished", status=result.status.value, reason=result.reason and result.reason.value)
            else:
                logger.debug("block_finished", status=result.status.value)
            self.aggregator.record(result)

    def _fill_aborted(self, plans: list[DocumentPlan]) -> None:
        for plan in plans:
            for item in plan.items:
                if not self.aggregator.has(item.key):
                    self.aggregator.record(RunResult.skipped(item, Reason.ABORTED))

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _is_independent(self, item: ClassifiedBlock) -> bool:
        if not self.settings.ordered:
            return True
        return item.independent or (item.language or "") in self.settings.independent_languages

    def _check_toolchains(
        self, units: Sequence[tuple[str, Sequence[ClassifiedBlock]]]
    ) -> dict[str, ToolchainMissing]:
        """Resolve each needed toolchain once; report every missing one once."""
        languages = sorted({
            item.language
            for _, items in units
            for item in items
            if item.is_runnable and item.language and self.settings.wants_language(item.language)
        })
        unavailable: dict[str, ToolchainMissing] = {}
        for language in languages:
            try:
                self.runner.resolve_toolchain(language)
            except ToolchainMissing as exc:
                unavailable[language] = exc
                if self.aggregator.record_missing_toolchain(exc):
                    logger.error("toolchain_missing", **exc.to_dict())
        return unavailable
