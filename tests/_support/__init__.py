"""Shared helpers for doc-harness tests."""
