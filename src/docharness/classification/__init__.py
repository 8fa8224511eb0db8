"""Snippet classification: language registry and runnability policy."""

from .classifier import PROSE_TAGS, TRANSCRIPT_TAGS, classify, is_prompt_led
from .languages import LanguageRegistry, LanguageSpec, balanced, default_languages

__all__ = [
    "LanguageRegistry",
    "LanguageSpec",
    "PROSE_TAGS",
    "TRANSCRIPT_TAGS",
    "balanced",
    "classify",
    "default_languages",
    "is_prompt_led",
]
