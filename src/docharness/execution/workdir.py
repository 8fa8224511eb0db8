"""
Scoped temporary working directories.
"""

from __future__ import annotations

import shutil
import tempfile
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from docharness.core.logging import get_logger

logger = get_logger(__name__)


@contextmanager
def scoped_workdir(prefix: str = "docharness-", root: Path | None = None) -> Iterator[Path]:
    """Create a temporary directory and delete it on every exit path.

    ``root`` defaults to the system temp directory. Removal failures are
    retried once with ``ignore_errors`` and logged; they never mask the
    exception that is already propagating.
    """
    if root is not None:
        root.mkdir(parents=True, exist_ok=True)
    path = Path(tempfile.mkdtemp(prefix=prefix, dir=root))
    try:
        yield path
    finally:
        try:
            shutil.rmtree(path)
        except OSError as exc:
            logger.warning("workdir_cleanup_retry", path=str(path), error=str(exc))
            shutil.rmtree(path, ignore_errors=True)
