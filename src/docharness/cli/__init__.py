"""
CLI layer for doc-harness.

Provides a Typer application whose commands delegate to
:class:`docharness.harness.Harness`. This package handles only terminal
transport: argument parsing, coloured output, and exit codes.

Entry point::

    doc-harness --help
"""

from docharness.cli.app import app

__all__ = ["app"]
