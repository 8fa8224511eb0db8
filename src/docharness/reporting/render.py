"""
Console rendering for reports and inspections (rich).
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from docharness.models import BlockStatus, RunResult
from docharness.reporting.report import Report

if TYPE_CHECKING:
    from docharness.harness import Inspection

STATUS_STYLES = {
    BlockStatus.PASSED: "green",
    BlockStatus.FAILED: "bold red",
    BlockStatus.ERRORED: "red",
    BlockStatus.SKIPPED: "dim",
}

_OUTPUT_TAIL_LINES = 20


def _tail(text: str, lines: int = _OUTPUT_TAIL_LINES) -> str:
    parts = text.rstrip().splitlines()
    if len(parts) <= lines:
        return "\n".join(parts)
    return "\n".join([f"... ({len(parts) - lines} more lines)", *parts[-lines:]])


def render_report(report: Report, console: Console) -> None:
    """Per-document table, itemised failures, then the totals line."""
    table = Table(title="Documentation examples", show_lines=False, pad_edge=False)
    table.add_column("document", overflow="fold")
    for status in BlockStatus:
        table.add_column(status.value, justify="right", style=STATUS_STYLES[status])
    table.add_column("note", overflow="fold")

    for document in report.documents:
        counts = document.counts()
        note = f"[red]{escape(document.error.message)}[/red]" if document.error else ""
        table.add_row(escape(document.path), *(str(counts[status.value]) for status in BlockStatus), note)
    console.print(table)

    for error in report.missing_toolchains:
        console.print(f"[bold red]Toolchain missing[/bold red] ({error.language}): {error.message}")

    for result in report.failures():
        render_failure(result, console)

    summary = report.summary()
    parts = [
        f"[{STATUS_STYLES[status]}]{summary[status.value]} {status.value}[/{STATUS_STYLES[status]}]"
        for status in BlockStatus
    ]
    verdict = "[bold green]OK[/bold green]" if report.ok else "[bold red]FAILED[/bold red]"
    if report.interrupted:
        verdict = "[bold yellow]INTERRUPTED[/bold yellow]"
    console.print(f"\n{verdict}  {summary['blocks']} blocks in {summary['documents']} documents: " + ", ".join(parts))


def render_failure(result: RunResult, console: Console) -> None:
    block = result.block
    reason = result.reason.value if result.reason else result.status.value
    title = f"{block.document}:{block.start_line}  [{result.status.value}: {reason}]"
    body = [
        f"[bold]section:[/bold] {escape(block.section or '(before first heading)')}",
        f"[bold]block:[/bold] #{block.ordinal} ({block.language}), exit code {result.exit_code}",
    ]
    if result.stdout.strip():
        body.append("[bold]stdout:[/bold]\n" + escape(_tail(result.stdout)))
    if result.stderr.strip():
        body.append("[bold]stderr:[/bold]\n" + escape(_tail(result.stderr)))
    console.print(Panel("\n".join(body), title=escape(title), border_style=STATUS_STYLES[result.status]))


def render_inspections(inspections: Sequence[Inspection], console: Console) -> None:
    """Table of extracted blocks and their classification."""
    table = Table(title="Extracted blocks", show_lines=False, pad_edge=False)
    for column in ("document", "#", "line", "tag", "section", "classification", "reason"):
        table.add_column(column, overflow="fold")
    for inspection in inspections:
        if inspection.error is not None:
            table.add_row(
                escape(str(inspection.path)),
                "-",
                str(inspection.error.line or "-"),
                "",
                "",
                "[red]malformed[/red]",
                escape(inspection.error.message),
            )
            continue
        for item in inspection.items:
            block = item.block
            style = "yellow" if item.ambiguous else ("green" if item.is_runnable else "dim")
            table.add_row(
                escape(str(inspection.path)),
                str(block.ordinal),
                str(block.start_line),
                block.language or "-",
                escape(block.section or ""),
                f"[{style}]{item.classification.value}[/{style}]",
                escape(item.reason),
            )
    console.print(table)
