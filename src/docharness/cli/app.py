"""
Root Typer application for the doc-harness CLI.
"""

from __future__ import annotations

import typer
from typer import Typer

from docharness.cli.inspect import list_blocks
from docharness.cli.run import run

app = Typer(
    name="doc-harness",
    help="doc-harness — extract, classify and run the code examples in guide documents.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


# ── Version callback ─────────────────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        from importlib.metadata import PackageNotFoundError
        from importlib.metadata import version as pkg_version

        try:
            v = pkg_version("doc-harness")
        except PackageNotFoundError:
            from docharness import __version__ as v
        typer.echo(f"doc-harness {v}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool | None = typer.Option(
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """doc-harness CLI — keep documentation examples honest."""


# ── Commands ─────────────────────────────────────────────────────────────

app.command("run")(run)
app.command("list")(list_blocks)
