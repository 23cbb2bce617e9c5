"""Verse references and resource-container links.

Verse references come from TSV ``Reference`` cells: ``1:1``, ``1:1-3``,
``1:17-2:1`` or a bare chapter ``3``. Intro and front-matter references
(``front:intro``, ``1:intro``) have no verse and parse to None.

RC links look like ``rc://<lang>/<resource>/<type>/<project>/<path...>``,
e.g. ``rc://*/tw/dict/bible/kt/god`` or ``rc://*/ta/man/translate/figs-metaphor``.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Iterable, TypeVar

SIMPLE_PATTERN = re.compile(r"^(\d+):(\d+)(?:-(\d+))?$")
CROSS_CHAPTER_PATTERN = re.compile(r"^(\d+):(\d+)-(\d+):(\d+)$")
CHAPTER_PATTERN = re.compile(r"^(\d+)$")
BOOK_PREFIX_PATTERN = re.compile(r"^([1-3]?[A-Za-z]{2,3})\s+(.+)$")

R = TypeVar("R")


@dataclass(frozen=True)
class VerseReference:
    """A chapter, optional verse and optional end of range."""

    chapter: int
    verse: int | None = None
    end_chapter: int | None = None
    end_verse: int | None = None
    book: str = ""
    original: str = ""

    def contains(self, chapter: int, verse: int) -> bool:
        """True when (chapter, verse) falls inside this reference."""
        if self.verse is None:
            return chapter == self.chapter
        start = (self.chapter, self.verse)
        end = (
            self.end_chapter if self.end_chapter is not None else self.chapter,
            self.end_verse if self.end_verse is not None else self.verse,
        )
        return start <= (chapter, verse) <= end

    def __str__(self) -> str:
        if self.verse is None:
            text = str(self.chapter)
        else:
            text = f"{self.chapter}:{self.verse}"
            if self.end_chapter is not None and self.end_chapter != self.chapter:
                text += f"-{self.end_chapter}:{self.end_verse}"
            elif self.end_verse is not None:
                text += f"-{self.end_verse}"
        return f"{self.book} {text}" if self.book else text


def parse_verse_reference(reference: str, book: str = "") -> VerseReference | None:
    """Parse a reference string; None for intro rows and unrecognized text.

    A leading book code (``JON 1:3``) is accepted and wins over ``book``.
    """
    text = reference.strip()
    if "intro" in text or "front:" in text:
        return None
    prefixed = BOOK_PREFIX_PATTERN.match(text)
    if prefixed:
        book, text = prefixed.group(1).upper(), prefixed.group(2).strip()

    match = SIMPLE_PATTERN.match(text)
    if match:
        return VerseReference(
            chapter=int(match.group(1)),
            verse=int(match.group(2)),
            end_verse=int(match.group(3)) if match.group(3) else None,
            book=book,
            original=reference,
        )
    match = CROSS_CHAPTER_PATTERN.match(text)
    if match:
        return VerseReference(
            chapter=int(match.group(1)),
            verse=int(match.group(2)),
            end_chapter=int(match.group(3)),
            end_verse=int(match.group(4)),
            book=book,
            original=reference,
        )
    match = CHAPTER_PATTERN.match(text)
    if match:
        return VerseReference(chapter=int(match.group(1)), book=book, original=reference)
    return None


def helps_for_reference(
    reference: VerseReference,
    notes: Iterable[R] = (),
    questions: Iterable[R] = (),
    word_links: Iterable[R] = (),
) -> dict[str, list[Any]]:
    """Filter help records whose own reference overlaps ``reference``.

    Records need a ``reference`` attribute holding the TSV reference text.
    A chapter-only reference matches every record in that chapter.
    """

    def matches(record: Any) -> bool:
        parsed = parse_verse_reference(record.reference)
        if parsed is None:
            return False
        if reference.verse is None:
            return parsed.chapter == reference.chapter
        if parsed.verse is None:
            return False
        start, end = _bounds(parsed)
        query_start, query_end = _bounds(reference)
        return start <= query_end and query_start <= end

    return {
        "notes": [n for n in notes if matches(n)],
        "questions": [q for q in questions if matches(q)],
        "word_links": [w for w in word_links if matches(w)],
    }


def _bounds(reference: VerseReference) -> tuple[tuple[int, int], tuple[int, int]]:
    start = (reference.chapter, reference.verse or 0)
    end = (
        reference.end_chapter if reference.end_chapter is not None else reference.chapter,
        reference.end_verse if reference.end_verse is not None else reference.verse or 0,
    )
    return start, end


@dataclass(frozen=True)
class RCLink:
    language: str
    resource: str
    type: str
    project: str = ""
    path: tuple[str, ...] = ()
    original: str = ""

    @property
    def category(self) -> str | None:
        return self.path[0] if self.path else None

    @property
    def item(self) -> str | None:
        return self.path[-1] if self.path else None


def parse_rc_link(link: str) -> RCLink | None:
    """Split an ``rc://`` link into its parts; None for anything else."""
    link = link.strip()
    if not link.startswith("rc://"):
        return None
    parts = [p for p in link[len("rc://") :].split("/") if p]
    if len(parts) < 3:
        return None
    return RCLink(
        language=parts[0] or "*",
        resource=parts[1],
        type=parts[2],
        project=parts[3] if len(parts) > 3 else "",
        path=tuple(parts[4:]),
        original=link,
    )


def word_id_from_link(link: str) -> str:
    """``rc://*/tw/dict/bible/kt/god`` -> ``kt/god``; plain ids pass through."""
    rc = parse_rc_link(link)
    if rc is None:
        return link.strip()
    return "/".join(rc.path) if rc.path else rc.project


def article_id_from_link(link: str) -> str:
    """``rc://*/ta/man/translate/figs-metaphor`` -> ``translate/figs-metaphor``."""
    rc = parse_rc_link(link)
    if rc is None:
        return link.strip()
    return "/".join([rc.project, *rc.path]) if rc.project else "/".join(rc.path)
