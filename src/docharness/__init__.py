"""
doc-harness: keep the code examples in guide documents honest.

Extracts fenced code blocks from Markdown guides, decides which of them
are complete runnable programs, runs those under their language's
toolchain with a deadline, and aggregates one report per invocation.

Quick start::

    from pathlib import Path
    from docharness import Harness, load_settings

    report = Harness(load_settings(timeout_seconds=10)).run(Path("guides"))
    print(report.summary())
"""

__version__ = "0.1.0"

from docharness.core.config import HarnessSettings, load_settings
from docharness.harness import Harness, Inspection
from docharness.reporting import Report

__all__ = [
    "Harness",
    "HarnessSettings",
    "Inspection",
    "Report",
    "__version__",
    "load_settings",
]
