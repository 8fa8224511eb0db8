"""
CLI: ``doc-harness list`` — show extracted blocks without running them.
"""

from __future__ import annotations

import json
from pathlib import Path

import typer

from docharness.cli.utils import EXIT_FAILED, EXIT_OK, EXIT_USAGE, console, fail
from docharness.core.config import find_config_file, load_settings
from docharness.core.errors import ConfigError
from docharness.core.logging import configure_logging
from docharness.harness import Harness
from docharness.reporting.render import render_inspections


def list_blocks(
    directory: Path = typer.Argument(..., exists=True, readable=True, help="Guide directory (or a single guide file)"),
    json_out: bool = typer.Option(False, "--json", help="Print JSON instead of a table"),
    config: Path | None = typer.Option(None, "--config", "-c", exists=True, dir_okay=False),
) -> None:
    """List every fenced block with its classification.

    Exits 1 if any guide is malformed.
    """
    if config is None and directory.is_dir():
        config = find_config_file(directory)
    try:
        settings = load_settings(config)
        configure_logging(level=settings.log_level, json_format=settings.json_logs)
        inspections = Harness(settings).inspect(directory)
    except ConfigError as exc:
        raise fail(exc.message, EXIT_USAGE)

    if json_out:
        payload = []
        for inspection in inspections:
            payload.append({
                "document": str(inspection.path),
                "error": inspection.error.to_dict() if inspection.error else None,
                "blocks": [
                    {
                        "ordinal": item.block.ordinal,
                        "start_line": item.block.start_line,
                        "language": item.block.language,
                        "section": item.block.section,
                        "classification": item.classification.value,
                        "runner": item.language,
                        "ambiguous": item.ambiguous,
                        "reason": item.reason,
                    }
                    for item in inspection.items
                ],
            })
        typer.echo(json.dumps(payload, indent=2))
    else:
        render_inspections(inspections, console)

    malformed = any(inspection.error is not None for inspection in inspections)
    raise typer.Exit(code=EXIT_FAILED if malformed else EXIT_OK)
