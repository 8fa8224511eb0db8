"""Fence extraction: guide discovery and block splitting."""

from .discovery import discover_documents
from .extractor import (
    extract_document,
    iter_blocks,
    iter_sections,
    parse_document,
    parse_info,
)

__all__ = [
    "discover_documents",
    "extract_document",
    "iter_blocks",
    "iter_sections",
    "parse_document",
    "parse_info",
]
