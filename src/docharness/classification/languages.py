"""Runnable languages and their completeness heuristics.

A block tagged with a known language is only *runnable* if its body looks
like a complete top-level program for that language. The checks are
cheap and textual; they never execute anything.

Each check returns ``True`` (complete), ``False`` (clearly a fragment), or
raises :class:`~docharness.core.errors.ClassificationAmbiguous` when its
own signals disagree.

    Language  Aliases                     Completeness signal
    ────────  ──────────────────────────  ─────────────────────────────────────
    python    py, python3                 ast.parse succeeds, no "..." lines
    ruby      rb                          balanced brackets + keyword/end pairs
    elixir    ex, exs, elixir             balanced brackets + do|fn/end pairs
    shell     sh, bash, zsh, shell        shlex tokenises, balanced brackets
"""

from __future__ import annotations

import ast
import re
import shlex
from collections.abc import Callable, Iterable
from dataclasses import dataclass

from docharness.core.errors import ClassificationAmbiguous

_PAIRS = {")": "(", "]": "[", "}": "{"}
_DOUBLE_QUOTED = re.compile(r'"(?:\\.|[^"\\\n])*"')
_SINGLE_QUOTED = re.compile(r"'(?:\\.|[^'\\\n])*'")
_HASH_COMMENT = re.compile(r"#.*$", re.MULTILINE)
_PLACEHOLDER_LINE = re.compile(r"^\s*(?:#\s*)?(?:\.\.\.|…)\s*$", re.MULTILINE)


def balanced(text: str) -> bool:
    """True when (), [] and {} nest correctly."""
    stack: list[str] = []
    for char in text:
        if char in "([{":
            stack.append(char)
        elif char in _PAIRS:
            if not stack or stack.pop() != _PAIRS[char]:
                return False
    return not stack


def has_placeholder(text: str) -> bool:
    """A line that is only ``...`` marks elided code."""
    return bool(_PLACEHOLDER_LINE.search(text))


def _strip_strings_and_comments(text: str) -> str:
    text = _DOUBLE_QUOTED.sub('""', text)
    text = _SINGLE_QUOTED.sub("''", text)
    return _HASH_COMMENT.sub("", text)


def _has_statement(code: str) -> bool:
    return any(line.strip() for line in code.splitlines())


# ── Python ──────────────────────────────────────────────────────────────


def python_is_complete(text: str) -> bool:
    if has_placeholder(text):
        return False
    try:
        tree = ast.parse(text)
    except (SyntaxError, ValueError):
        return False
    return bool(tree.body)


# ── Ruby ────────────────────────────────────────────────────────────────

_RUBY_OPENERS = {"def", "class", "module", "if", "unless", "case", "while", "until", "for", "begin"}
_RUBY_LOOP_HEADS = {"while", "until", "for"}
_RUBY_ENDLESS_DEF = re.compile(r"^def\s+[\w.?!]+(?:\([^)]*\))?\s*=(?!=)")
_RUBY_ASSIGNED_OPENER = re.compile(r"=\s*(if|unless|case|begin)\b")
_DO = re.compile(r"\bdo\b")
_END = re.compile(r"(?<![.\w])end\b")


def _block_balance(code: str, count_line_opener: Callable[[str], int]) -> tuple[int, int]:
    opens = ends = 0
    for line in code.splitlines():
        stripped = line.strip()
        if not stripped:
            continue
        opens += count_line_opener(stripped)
        ends += len(_END.findall(stripped))
    return opens, ends


def _ruby_line_opens(line: str) -> int:
    first = re.split(r"[\s(;]", line, maxsplit=1)[0]
    opens = 0
    if first in _RUBY_OPENERS and not (first == "def" and _RUBY_ENDLESS_DEF.match(line)):
        opens += 1
    opens += len(_RUBY_ASSIGNED_OPENER.findall(line))
    if first not in _RUBY_LOOP_HEADS:
        opens += len(_DO.findall(line))
    return opens


def ruby_is_complete(text: str) -> bool:
    if has_placeholder(text):
        return False
    code = _strip_strings_and_comments(text)
    if not _has_statement(code) or not balanced(code):
        return False
    opens, ends = _block_balance(code, _ruby_line_opens)
    if opens > ends:
        return False
    if ends > opens:
        raise ClassificationAmbiguous(
            f"brackets balance but found {ends} 'end' for {opens} block openers"
        )
    return True


# ── Elixir ──────────────────────────────────────────────────────────────

_ELIXIR_DO = re.compile(r"\bdo\b(?!:)")
_ELIXIR_FN = re.compile(r"\bfn\b")


def _elixir_line_opens(line: str) -> int:
    return len(_ELIXIR_DO.findall(line)) + len(_ELIXIR_FN.findall(line))


def elixir_is_complete(text: str) -> bool:
    if has_placeholder(text):
        return False
    code = _strip_strings_and_comments(text)
    if not _has_statement(code) or not balanced(code):
        return False
    opens, ends = _block_balance(code, _elixir_line_opens)
    if opens > ends:
        return False
    if ends > opens:
        raise ClassificationAmbiguous(
            f"brackets balance but found {ends} 'end' for {opens} do/fn openers"
        )
    return True


# ── Shell ───────────────────────────────────────────────────────────────


def shell_is_complete(text: str) -> bool:
    if has_placeholder(text) or not _has_statement(text):
        return False
    try:
        shlex.split(text, comments=True)
    except ValueError:
        return False
    code = _strip_strings_and_comments(text)
    if not balanced(code):
        # case patterns such as "start)" legitimately unbalance parentheses
        raise ClassificationAmbiguous("shell quoting is valid but brackets do not balance")
    return True


# ── Registry ────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class LanguageSpec:
    """A runnable language: canonical name, tag aliases, completeness check."""

    name: str
    aliases: frozenset[str]
    is_complete: Callable[[str], bool]

    def matches(self, tag: str) -> bool:
        return tag == self.name or tag in self.aliases


def default_languages() -> list[LanguageSpec]:
    return [
        LanguageSpec("python", frozenset({"py", "python3"}), python_is_complete),
        LanguageSpec("ruby", frozenset({"rb"}), ruby_is_complete),
        LanguageSpec("elixir", frozenset({"ex", "exs"}), elixir_is_complete),
        LanguageSpec("shell", frozenset({"sh", "bash", "zsh"}), shell_is_complete),
    ]


class LanguageRegistry:
    """Maps fence tags to runnable languages.

    Built per harness invocation; there is no module-level registry.

    Example:
        >>> registry = LanguageRegistry()
        >>> registry.resolve("rb").name
        'ruby'
        >>> registry.resolve("text") is None
        True
    """

    def __init__(self, specs: Iterable[LanguageSpec] | None = None):
        self._specs: dict[str, LanguageSpec] = {}
        self._tags: dict[str, str] = {}
        for spec in default_languages() if specs is None else specs:
            self.register(spec)

    def register(self, spec: LanguageSpec) -> None:
        self._specs[spec.name] = spec
        for tag in {spec.name, *spec.aliases}:
            self._tags[tag] = spec.name

    def resolve(self, tag: str) -> LanguageSpec | None:
        name = self._tags.get(tag.lower())
        return self._specs.get(name) if name else None

    def names(self) -> list[str]:
        return sorted(self._specs)
