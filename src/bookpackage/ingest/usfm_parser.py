"""Parse USFM scripture markup.

Two levels of parsing:

- ``parse_bible_text`` passes the markup through unchanged and flags whether
  it carries paired ``\\zaln-s``/``\\zaln-e`` alignment milestones.
- ``parse_verses`` turns the markup into one token tree per verse, in the
  shape the alignment extractor walks:

    text       plain run between words ("In the ", ", ")
    word       ``\\w In|x-occurrence="1"\\w*`` with its attributes
    milestone  ``\\zaln-s |x-strong="H7225" ...\\*`` ... ``\\zaln-e\\*``
               wrapping the target words aligned to one source word

Headings, book metadata, footnotes and cross references are dropped.
Paragraph and poetry markers only separate text.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Any

logger = logging.getLogger(__name__)

MARKER_PATTERN = re.compile(r"\\(\+?[A-Za-z0-9-]*)(\*)?")
ATTRIBUTE_PATTERN = re.compile(r'([\w-]+)\s*=\s*"([^"]*)"')
BOOK_ID_PATTERN = re.compile(r"^\\id\s+([A-Z0-9]{3})", re.MULTILINE)
WHITESPACE = re.compile(r"\s+")

# Markers whose content runs to the end of the line and is not verse text
LINE_MARKERS = re.compile(
    r"^\\(id|ide|usfm|h|toc\d?|mt\d?|ms\d?|mr|s\d?|sr|r|d|sp|cl|rem|sts)(\s|$)"
)
NOTE_MARKERS = {"f", "fe", "x"}


@dataclass
class BibleText:
    book: str
    translation: str  # ULT, UST
    content: str
    has_alignment: bool = False


def has_alignment_markers(content: str) -> bool:
    return "\\zaln-s" in content and "\\zaln-e" in content


def parse_bible_text(content: str, book: str, translation: str) -> BibleText:
    """Wrap raw USFM with its alignment flag."""
    return BibleText(
        book=book.upper(),
        translation=translation.upper(),
        content=content,
        has_alignment=has_alignment_markers(content),
    )


@dataclass
class VerseObject:
    """One node of a verse token tree."""

    type: str  # text, word, milestone
    text: str = ""
    tag: str | None = None
    attributes: dict[str, str] = field(default_factory=dict)
    children: list["VerseObject"] = field(default_factory=list)

    def attribute(self, *names: str) -> str:
        """First non-empty attribute among ``names``, or an empty string."""
        for name in names:
            value = self.attributes.get(name)
            if value:
                return value
        return ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "VerseObject":
        """Build from a usfm-js style dict (attributes stored as top-level keys)."""
        reserved = {"type", "text", "tag", "children", "endTag", "attributes"}
        attributes = {
            k: str(v) for k, v in data.items() if k not in reserved and v is not None
        }
        attributes.update(
            {k: str(v) for k, v in (data.get("attributes") or {}).items()}
        )
        return cls(
            type=str(data.get("type", "text")),
            text=str(data.get("text", "")),
            tag=data.get("tag"),
            attributes=attributes,
            children=[cls.from_dict(c) for c in data.get("children") or []],
        )

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"type": self.type}
        if self.tag:
            data["tag"] = self.tag
        if self.text:
            data["text"] = self.text
        if self.attributes:
            data["attributes"] = dict(self.attributes)
        if self.children:
            data["children"] = [c.to_dict() for c in self.children]
        return data


@dataclass
class UsfmVerse:
    book: str
    chapter: int
    verse: str  # "1", or a bridge like "1-2"
    objects: list[VerseObject] = field(default_factory=list)

    @property
    def reference(self) -> str:
        return f"{self.book} {self.chapter}:{self.verse}"


def parse_attributes(text: str) -> dict[str, str]:
    """``x-strong="H1" x-lemma="a"`` -> dict; a leading ``|`` is ignored."""
    return dict(ATTRIBUTE_PATTERN.findall(text.lstrip().lstrip("|")))


def extract_book_id(content: str) -> str | None:
    match = BOOK_ID_PATTERN.search(content)
    return match.group(1) if match else None


def _strip_line_markers(content: str) -> str:
    lines = content.replace("\r\n", "\n").replace("\r", "\n").split("\n")
    return "\n".join(line for line in lines if not LINE_MARKERS.match(line.strip()))


class _VerseBuilder:
    """Accumulates verse objects while scanning the marker stream."""

    def __init__(self, book: str):
        self.book = book
        self.verses: list[UsfmVerse] = []
        self.chapter = 0
        self.current: UsfmVerse | None = None
        self.stack: list[list[VerseObject]] = []

    @property
    def container(self) -> list[VerseObject] | None:
        return self.stack[-1] if self.stack else None

    def start_chapter(self, number: int) -> None:
        self.finish_verse()
        self.chapter = number

    def start_verse(self, number: str) -> None:
        self.finish_verse()
        self.current = UsfmVerse(book=self.book, chapter=self.chapter, verse=number)
        self.stack = [self.current.objects]

    def finish_verse(self) -> None:
        if self.current is not None:
            self.verses.append(self.current)
        self.current = None
        self.stack = []

    def add_text(self, text: str) -> None:
        container = self.container
        if container is None or not text:
            return
        text = WHITESPACE.sub(" ", text)
        if container and container[-1].type == "text":
            merged = container[-1].text + text
            container[-1].text = WHITESPACE.sub(" ", merged)
        else:
            container.append(VerseObject(type="text", text=text))

    def add_word(self, body: str) -> None:
        container = self.container
        if container is None:
            return
        text, _, attrs = body.partition("|")
        container.append(
            VerseObject(
                type="word",
                tag="w",
                text=text.strip(),
                attributes=parse_attributes(attrs),
            )
        )

    def open_milestone(self, tag: str, body: str) -> None:
        container = self.container
        if container is None:
            return
        milestone = VerseObject(
            type="milestone", tag=tag, attributes=parse_attributes(body)
        )
        container.append(milestone)
        self.stack.append(milestone.children)

    def close_milestone(self) -> None:
        if len(self.stack) > 1:
            self.stack.pop()


def parse_verses(content: str, book: str | None = None) -> list[UsfmVerse]:
    """Split USFM into per-verse token trees, in document order."""
    book = (book or extract_book_id(content) or "UNK").upper()
    text = _strip_line_markers(content)
    builder = _VerseBuilder(book)

    # Pending capture: ("w", start) collects the word body until \w*,
    # ("zaln-s", start) collects milestone attributes until \*
    pending: tuple[str, int] | None = None
    note_depth = 0
    expect_number: str | None = None  # "c" or "v"
    position = 0

    for match in MARKER_PATTERN.finditer(text):
        chunk = text[position : match.start()]
        position = match.end()
        marker, closing = match.group(1), match.group(2) is not None

        if pending is not None:
            kind, start = pending
            if kind == "w" and marker == "w" and closing:
                builder.add_word(text[start : match.start()])
                pending = None
            elif kind != "w" and marker == "" and closing:
                if kind == "zaln-s":
                    builder.open_milestone("zaln", text[start : match.start()])
                pending = None
            continue

        if note_depth:
            if marker in NOTE_MARKERS:
                note_depth += -1 if closing else 1
            continue

        if expect_number is not None:
            chunk = _consume_number(builder, expect_number, chunk)
            expect_number = None
        builder.add_text(chunk)

        if marker in NOTE_MARKERS and not closing:
            note_depth = 1
        elif marker in ("c", "v") and not closing:
            expect_number = marker
        elif marker == "w" and not closing:
            pending = ("w", position)
        elif marker.endswith("-s") and not closing:
            # Other milestones (\k-s) carry attributes that are discarded
            pending = (marker, position)
        elif marker == "zaln-e":
            builder.close_milestone()

    tail = text[position:]
    if expect_number is not None:
        tail = _consume_number(builder, expect_number, tail)
    if pending is None and not note_depth:
        builder.add_text(tail)
    builder.finish_verse()
    return builder.verses


def _consume_number(builder: _VerseBuilder, marker: str, chunk: str) -> str:
    """Apply the number after ``\\c``/``\\v`` and return the remaining text."""
    stripped = chunk.lstrip()
    number, _, rest = stripped.partition(" ")
    if "\n" in number:
        number, _, more = number.partition("\n")
        rest = f"{more} {rest}" if rest else more
    if marker == "c":
        try:
            builder.start_chapter(int(number))
        except ValueError:
            logger.warning(f"Unreadable chapter number {number!r}")
        return ""
    builder.start_verse(number)
    return rest.lstrip()


def find_verse(
    verses: list[UsfmVerse], chapter: int, verse: int | str
) -> UsfmVerse | None:
    """Locate a verse, matching bridged verses that include ``verse``."""
    target = str(verse)
    for candidate in verses:
        if candidate.chapter != chapter:
            continue
        if candidate.verse == target:
            return candidate
        start, _, end = candidate.verse.partition("-")
        if end and start.isdigit() and end.isdigit() and target.isdigit():
            if int(start) <= int(target) <= int(end):
                return candidate
    return None


def plain_text(objects: list[VerseObject]) -> str:
    """Readable text of a verse token tree."""
    parts: list[str] = []

    def walk(nodes: list[VerseObject]) -> None:
        for node in nodes:
            if node.type in ("text", "word"):
                parts.append(node.text)
            walk(node.children)

    walk(objects)
    return WHITESPACE.sub(" ", "".join(parts)).strip()
