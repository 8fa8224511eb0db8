"""Harness — the pipeline for one invocation.

    discover → extract → classify → dispatch → aggregate

A :class:`Harness` is built per invocation from explicit settings and
owns nothing global. ``run()`` returns a finished :class:`Report`;
``inspect()`` stops after classification so guides can be checked
without executing anything.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from docharness.classification import LanguageRegistry, classify
from docharness.core.config.settings import HarnessSettings
from docharness.core.errors import MalformedDocument
from docharness.core.logging import get_logger
from docharness.execution import Dispatcher
from docharness.extraction import discover_documents, parse_document
from docharness.models import ClassifiedBlock, Document
from docharness.reporting import Report, ReportAggregator

logger = get_logger(__name__)


@dataclass(frozen=True)
class Inspection:
    """Extraction and classification outcome for one document."""

    path: Path
    document: Document | None = None
    items: tuple[ClassifiedBlock, ...] = ()
    error: MalformedDocument | None = field(default=None, compare=False)


class Harness:
    """Documentation example harness.

    Example:
        >>> settings = load_settings(timeout_seconds=5)
        >>> report = Harness(settings).run(Path("guides"))
        >>> report.summary()["passed"]
        12
    """

    def __init__(self, settings: HarnessSettings, registry: LanguageRegistry | None = None):
        self.settings = settings
        self.registry = registry or LanguageRegistry()
        self._dispatcher: Dispatcher | None = None

    def inspect(self, root: Path) -> list[Inspection]:
        """Extract and classify every guide under ``root``; never executes."""
        inspections: list[Inspection] = []
        for path in discover_documents(root, self.settings.patterns):
            try:
                document = parse_document(path)
            except MalformedDocument as exc:
                logger.error("document_malformed", **exc.to_dict())
                inspections.append(Inspection(path=path, error=exc))
                continue
            items = tuple(classify(block, self.registry) for block in document.blocks)
            for item in items:
                if item.ambiguous:
                    logger.warning(
                        "classification_ambiguous",
                        document=str(path),
                        ordinal=item.block.ordinal,
                        line=item.block.start_line,
                        reason=item.reason,
                    )
            inspections.append(Inspection(path=path, document=document, items=items))
        logger.info("documents_extracted", documents=len(inspections))
        return inspections

    def run(self, root: Path) -> Report:
        """Run every runnable block under ``root`` and return the report."""
        aggregator = ReportAggregator()
        units: list[tuple[str, tuple[ClassifiedBlock, ...]]] = []

        for inspection in self.inspect(root):
            document = str(inspection.path)
            if inspection.error is not None:
                aggregator.record_document_error(document, inspection.error)
                continue
            aggregator.expect(document, inspection.items)
            units.append((document, inspection.items))

        self._dispatcher = Dispatcher(self.settings, aggregator)
        self._dispatcher.dispatch(units)
        report = aggregator.finalize(interrupted=self._dispatcher.interrupted)
        logger.info("run_finished", **report.summary())
        return report

    def abort(self) -> None:
        """Abort the dispatch in progress, if any."""
        if self._dispatcher is not None:
            self._dispatcher.abort()
