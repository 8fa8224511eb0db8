"""Snippet Classifier — decide what each extracted block is.

Manifesto:
    Only complete programs are executed. Everything else (shell sessions,
    sample output, elided excerpts) is reported as skipped, never as a
    failure. The classifier is a pure function of the block's tag, flags
    and text: no I/O, no logging, no toolchain lookups.

Policy (first matching rule wins)::

    1. no tag, transcript tag, or prompt-led body     → transcript
    2. prose tag (text, output, mermaid, ...)         → prose-illustration
    3. "skip" / "norun" info-string flag              → fragment
    4. known language AND complete top-level unit     → runnable
    5. anything else                                  → fragment

    heuristics disagree (ClassificationAmbiguous)     → fragment, ambiguous=True

Examples:
    >>> from docharness.extraction import iter_blocks
    >>> block = next(iter_blocks("```python\\nprint(1 + 1)\\n```\\n"))
    >>> classify(block).classification.value
    'runnable'
    >>> block = next(iter_blocks("```\\n$ gem install rake\\n```\\n"))
    >>> classify(block).classification.value
    'transcript'

Tags:
    docharness, classification, heuristics, pure-function

Doc-Types:
    api-reference
"""

from __future__ import annotations

from docharness.classification.languages import LanguageRegistry
from docharness.core.errors import ClassificationAmbiguous
from docharness.models import Block, Classification, ClassifiedBlock

TRANSCRIPT_TAGS = frozenset({
    "console",
    "shell-session",
    "sh-session",
    "terminal",
    "session",
    "irb",
    "iex",
    "pycon",
})

PROSE_TAGS = frozenset({
    "text",
    "txt",
    "plaintext",
    "plain",
    "markdown",
    "md",
    "mermaid",
    "diff",
    "output",
    "log",
})

PROMPT_PREFIXES = ("$ ", "% ", ">>> ", "irb(", "irb>", "iex(", "iex>")

SKIP_FLAGS = frozenset({"skip", "norun", "no-run"})


def _first_line(text: str) -> str:
    for line in text.splitlines():
        if line.strip():
            return line.lstrip()
    return ""


def is_prompt_led(text: str) -> bool:
    """True when the body follows a shell/REPL prompt convention."""
    first = _first_line(text)
    return first == "$" or first.startswith(PROMPT_PREFIXES)


def classify(block: Block, registry: LanguageRegistry | None = None) -> ClassifiedBlock:
    """Classify ``block``. Pure; never raises for block content."""
    registry = registry or LanguageRegistry()
    tag = block.language

    if not tag:
        return ClassifiedBlock(block, Classification.TRANSCRIPT, reason="no language tag")
    if tag in TRANSCRIPT_TAGS:
        return ClassifiedBlock(block, Classification.TRANSCRIPT, reason=f"transcript tag '{tag}'")
    if is_prompt_led(block.text):
        return ClassifiedBlock(block, Classification.TRANSCRIPT, reason="prompt-led session")

    if tag in PROSE_TAGS:
        return ClassifiedBlock(block, Classification.PROSE_ILLUSTRATION, reason=f"prose tag '{tag}'")

    if block.flags & SKIP_FLAGS:
        return ClassifiedBlock(block, Classification.FRAGMENT, reason="marked skip in fence info")

    spec = registry.resolve(tag)
    if spec is None:
        return ClassifiedBlock(block, Classification.FRAGMENT, reason=f"no runner for tag '{tag}'")

    try:
        complete = spec.is_complete(block.text)
    except ClassificationAmbiguous as exc:
        return ClassifiedBlock(
            block,
            Classification.FRAGMENT,
            reason=f"ambiguous: {exc.message}",
            ambiguous=True,
        )

    if not complete:
        return ClassifiedBlock(block, Classification.FRAGMENT, reason=f"incomplete {spec.name} unit")
    return ClassifiedBlock(block, Classification.RUNNABLE, language=spec.name, reason=f"complete {spec.name} unit")
