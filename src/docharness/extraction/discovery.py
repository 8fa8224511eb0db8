"""
Guide document discovery.
"""

from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path

from docharness.core.errors import ConfigError


def discover_documents(root: Path, patterns: Iterable[str] = ("*.md", "*.markdown")) -> list[Path]:
    """Return guide files under ``root``, sorted and de-duplicated.

    ``root`` may also be a single file, which is returned as-is. The
    sorted order is the report's document order.
    """
    if root.is_file():
        return [root]
    if not root.is_dir():
        raise ConfigError(f"not a directory: {root}").with_context(document=str(root))

    found: set[Path] = set()
    for pattern in patterns:
        found.update(path for path in root.rglob(pattern) if path.is_file())
    return sorted(found)
