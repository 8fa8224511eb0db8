"""
CLI utility helpers — consoles, exit codes and option normalisation.
"""

from __future__ import annotations

from collections.abc import Iterable

import typer
from rich.console import Console
from rich.markup import escape

from docharness.classification import LanguageRegistry
from docharness.reporting import Report

console = Console()
err_console = Console(stderr=True)

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_USAGE = 2
EXIT_INTERNAL = 3
EXIT_INTERRUPTED = 130


def exit_code_for(report: Report) -> int:
    """0 when every runnable block passed or was skipped."""
    if report.interrupted:
        return EXIT_INTERRUPTED
    return EXIT_OK if report.ok else EXIT_FAILED


def canonical_languages(tags: Iterable[str] | None, registry: LanguageRegistry) -> frozenset[str] | None:
    """Map ``--language`` tags (``rb``, ``py``...) to canonical names.

    Unknown tags are a usage error.
    """
    if not tags:
        return None
    names: set[str] = set()
    for tag in tags:
        for part in tag.split(","):
            if not part.strip():
                continue
            spec = registry.resolve(part.strip())
            if spec is None:
                known = ", ".join(registry.names())
                raise fail(f"unknown language '{part.strip()}' (known: {known})", EXIT_USAGE)
            names.add(spec.name)
    return frozenset(names)


def fail(message: str, code: int) -> typer.Exit:
    err_console.print(f"[bold red]Error[/bold red]: {escape(message)}")
    return typer.Exit(code=code)
