"""Allow ``python -m docharness``."""

from docharness.cli.app import app

app()
