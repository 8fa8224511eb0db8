"""Fence Extractor — split guide documents into headings and fenced blocks.

Manifesto:
    The extractor is the only component that looks at raw guide text.
    It makes one lazy pass over the lines, tracks the nearest preceding
    heading, and yields immutable :class:`~docharness.models.Block`
    records in source order. Everything downstream works on those records.

Fence rules (CommonMark subset)::

    opener   ≤3 spaces indent, ≥3 backticks or tildes, optional info string
             (backtick fences may not carry a backtick in the info string)
    closer   same character, run at least as long as the opener,
             nothing but whitespace after it
    content  everything in between, verbatim; nested fences are content

Headings outside fences::

    ATX      "## Loading files"      (levels 1-6, optional closing #'s)
    setext   "Loading files" followed by "=====" (h1) or "-----" (h2)

An opener with no closer raises
:class:`~docharness.core.errors.MalformedDocument` with the opener's
1-based line number.

Examples:
    >>> blocks = list(iter_blocks("# Intro\\n```ruby\\nputs 1\\n```\\n"))
    >>> blocks[0].language, blocks[0].section, blocks[0].text
    ('ruby', 'Intro', 'puts 1')

Tags:
    docharness, extraction, markdown, fences, parser

Doc-Types:
    api-reference
"""

from __future__ import annotations

import re
from collections.abc import Iterator
from pathlib import Path

from docharness.core.errors import MalformedDocument
from docharness.models import Block, Document, Section

MEMORY_DOCUMENT = Path("<memory>")

_FENCE_OPEN = re.compile(r"^(?P<indent> {0,3})(?P<fence>`{3,}|~{3,})(?P<info>.*)$")
_ATX_HEADING = re.compile(r"^ {0,3}(?P<hashes>#{1,6})(?:[ \t]+(?P<title>.*?))?(?:[ \t]+#+)?[ \t]*$")
_SETEXT_UNDERLINE = re.compile(r"^ {0,3}(?P<char>=+|-+)[ \t]*$")
# list items and blockquotes cannot be setext heading content
_CONTAINER_START = re.compile(r"^ {0,3}(?:[-+*]|\d{1,9}[.)]|>)(?:[ \t]|$)")


def parse_info(info: str) -> tuple[str, frozenset[str], tuple[tuple[str, str], ...]]:
    """Split a fence info string into (language, flags, attrs).

    ``{.python}`` and ``{python}`` are accepted as the language token.
    Bare tokens after the language become lower-cased flags;
    ``key=value`` tokens become attributes.
    """
    tokens = info.split()
    if not tokens:
        return "", frozenset(), ()

    language = tokens[0].strip("{}").lstrip(".").lower()
    rest = tokens[1:]
    if "=" in language:
        language, rest = "", tokens

    flags: set[str] = set()
    attrs: dict[str, str] = {}
    for token in rest:
        if "=" in token:
            key, _, value = token.partition("=")
            attrs[key.lower()] = value.strip("\"'")
        else:
            flags.add(token.lower())
    return language, frozenset(flags), tuple(sorted(attrs.items()))


def _closes(line: str, char: str, length: int) -> bool:
    stripped = line.rstrip()
    body = stripped.lstrip(" ")
    if len(stripped) - len(body) > 3:
        return False
    run = len(body) - len(body.lstrip(char))
    return run >= length and body == char * run


def _scan(text: str, document: Path) -> Iterator[Section | Block]:
    """Yield sections and blocks in source order."""
    lines = text.splitlines()
    section: str | None = None
    ordinal = 0
    paragraph: list[str] = []
    in_container = False

    index = 0
    while index < len(lines):
        line = lines[index]
        lineno = index + 1

        opener = _FENCE_OPEN.match(line)
        if opener and not (opener.group("fence")[0] == "`" and "`" in opener.group("info")):
            fence = opener.group("fence")
            info = opener.group("info").strip()
            indent = len(opener.group("indent"))
            body: list[str] = []
            close_index = None
            for probe in range(index + 1, len(lines)):
                if _closes(lines[probe], fence[0], len(fence)):
                    close_index = probe
                    break
                body.append(_dedent(lines[probe], indent))
            if close_index is None:
                raise MalformedDocument(
                    f"unterminated fence opened at line {lineno}",
                    line=lineno,
                    document=str(document),
                )

            language, flags, attrs = parse_info(info)
            yield Block(
                document=document,
                ordinal=ordinal,
                language=language,
                text="\n".join(body),
                section=section,
                start_line=lineno,
                end_line=close_index + 1,
                info=info,
                flags=flags,
                attrs=attrs,
            )
            ordinal += 1
            paragraph = []
            index = close_index + 1
            continue

        atx = _ATX_HEADING.match(line)
        if atx:
            title = (atx.group("title") or "").strip()
            section = title
            yield Section(level=len(atx.group("hashes")), title=title, line=lineno)
            paragraph = []
            index += 1
            continue

        underline = _SETEXT_UNDERLINE.match(line)
        if underline and not paragraph:
            # thematic break
            index += 1
            continue
        if underline:
            title = " ".join(part.strip() for part in paragraph)
            level = 1 if underline.group("char")[0] == "=" else 2
            section = title
            yield Section(level=level, title=title, line=lineno - len(paragraph))
            paragraph = []
            index += 1
            continue

        if _CONTAINER_START.match(line):
            in_container = True
            paragraph = []
        elif not line.strip():
            in_container = False
            paragraph = []
        elif not in_container:
            paragraph.append(line)
        index += 1


def _dedent(line: str, indent: int) -> str:
    """Strip up to ``indent`` leading spaces, as CommonMark does for fenced content."""
    if not indent:
        return line
    stripped = line.lstrip(" ")
    removed = len(line) - len(stripped)
    return line[min(removed, indent):]


def iter_blocks(text: str, document: Path = MEMORY_DOCUMENT) -> Iterator[Block]:
    """Lazily yield the fenced blocks of ``text`` in source order.

    Each call starts a fresh pass, so the sequence is restartable per
    document. Raises :class:`MalformedDocument` on an unterminated fence,
    after yielding every block that precedes it.
    """
    for element in _scan(text, document):
        if isinstance(element, Block):
            yield element


def iter_sections(text: str, document: Path = MEMORY_DOCUMENT) -> Iterator[Section]:
    for element in _scan(text, document):
        if isinstance(element, Section):
            yield element


def extract_document(text: str, document: Path = MEMORY_DOCUMENT) -> Document:
    """Eagerly build a :class:`Document` from text."""
    sections: list[Section] = []
    blocks: list[Block] = []
    for element in _scan(text, document):
        if isinstance(element, Block):
            blocks.append(element)
        else:
            sections.append(element)
    return Document(path=document, sections=tuple(sections), blocks=tuple(blocks))


def parse_document(path: Path) -> Document:
    """Read a guide file (UTF-8) and extract it."""
    try:
        text = path.read_text(encoding="utf-8")
    except UnicodeDecodeError as exc:
        line = path.read_bytes()[: exc.start].count(b"\n") + 1
        raise MalformedDocument(
            f"not valid UTF-8 at line {line}: {exc.reason}",
            line=line,
            document=str(path),
            cause=exc,
        ) from exc
    except OSError as exc:
        raise MalformedDocument(f"cannot read guide: {exc}", document=str(path), cause=exc) from exc
    return extract_document(text, path)
