"""
CLI: ``doc-harness run`` — execute the runnable examples of a guide tree.
"""

from __future__ import annotations

from pathlib import Path

import typer

from docharness.classification import LanguageRegistry
from docharness.cli.utils import (
    EXIT_INTERNAL,
    EXIT_INTERRUPTED,
    EXIT_USAGE,
    canonical_languages,
    console,
    exit_code_for,
    fail,
)
from docharness.core.config import WorkdirPolicy, find_config_file, load_settings
from docharness.core.errors import ConfigError, IncompleteReport
from docharness.core.logging import configure_logging, get_logger
from docharness.harness import Harness
from docharness.reporting.render import render_report

logger = get_logger(__name__)


def run(
    directory: Path = typer.Argument(..., exists=True, readable=True, help="Guide directory (or a single guide file)"),
    language: list[str] | None = typer.Option(
        None, "--language", "-l", help="Only run blocks of this language; repeatable"
    ),
    timeout: float | None = typer.Option(None, "--timeout", "-t", min=0.001, help="Per-block timeout in seconds"),
    parallel: int | None = typer.Option(None, "--parallel", "-p", min=1, help="Documents processed concurrently"),
    ordered: bool | None = typer.Option(
        None, "--ordered/--unordered", help="Run a document's blocks in ordinal order"
    ),
    workdir_policy: WorkdirPolicy | None = typer.Option(
        None, "--workdir-policy", help="isolated: fresh dir per block; per-document: shared per document"
    ),
    json_out: Path | None = typer.Option(None, "--json-out", help="Also write a JSON report here"),
    config: Path | None = typer.Option(
        None, "--config", "-c", exists=True, dir_okay=False, help="TOML config file"
    ),
    log_level: str | None = typer.Option(None, "--log-level", help="DEBUG, INFO, WARNING, ERROR"),
) -> None:
    """Extract, classify and run the fenced examples under DIRECTORY.

    Exits 0 when every runnable block passed or was skipped, 1 when any
    block failed or errored (or a guide is malformed, or a toolchain is
    missing), 2 on usage errors, 3 on internal errors.

    Example::

        doc-harness run guides/ --language ruby --timeout 10 --parallel 4
        doc-harness run guides/ --workdir-policy per-document --json-out report.json
    """
    registry = LanguageRegistry()
    languages = canonical_languages(language, registry)

    if config is None and directory.is_dir():
        config = find_config_file(directory)

    try:
        settings = load_settings(
            config,
            timeout_seconds=timeout,
            parallel=parallel,
            ordered=ordered,
            workdir_policy=workdir_policy,
            languages=languages,
            log_level=log_level,
        )
    except ConfigError as exc:
        raise fail(exc.message, EXIT_USAGE)

    configure_logging(level=settings.log_level, json_format=settings.json_logs)
    harness = Harness(settings, registry)

    try:
        report = harness.run(directory)
    except ConfigError as exc:
        raise fail(exc.message, EXIT_USAGE)
    except IncompleteReport as exc:
        logger.critical("report_incomplete", **exc.to_dict())
        raise fail(f"internal error: {exc.message}", EXIT_INTERNAL)
    except KeyboardInterrupt:
        harness.abort()
        raise fail("interrupted", EXIT_INTERRUPTED)

    render_report(report, console)
    if json_out is not None:
        report.write_json(json_out)
        console.print(f"[dim]JSON report written to {json_out}[/dim]")

    raise typer.Exit(code=exit_code_for(report))
