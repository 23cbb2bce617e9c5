"""Parse Door43 TSV helps tables into typed records.

All three tables are header-driven: the first non-blank row names the columns
and every later row becomes one record, with missing trailing cells read as
empty strings. Table formats (tab-separated):

  Notes:        Reference ID Tags SupportReference Quote Occurrence Note
  Words links:  Reference ID Tags OrigWords Occurrence TWLink
  Questions:    Reference ID Tags Quote Occurrence Question Response

Parsers never raise on malformed input. A table missing expected columns is
logged and parsed with empty strings in their place.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)

NOTES_HEADERS = [
    "Reference",
    "ID",
    "Tags",
    "SupportReference",
    "Quote",
    "Occurrence",
    "Note",
]
WORDS_LINKS_HEADERS = ["Reference", "ID", "Tags", "OrigWords", "Occurrence", "TWLink"]
QUESTIONS_HEADERS = [
    "Reference",
    "ID",
    "Tags",
    "Quote",
    "Occurrence",
    "Question",
    "Response",
]

CHAPTER_VERSE_PATTERN = re.compile(r"^(\d+):(\d+)")


@dataclass
class TSVTable:
    """Header row plus one dict per data row."""

    headers: list[str] = field(default_factory=list)
    rows: list[dict[str, str]] = field(default_factory=list)


def _split_reference(reference: str) -> tuple[int, int]:
    """Chapter and first verse of a ``C:V`` reference; 0 for non-numeric parts."""
    match = CHAPTER_VERSE_PATTERN.match(reference.strip())
    if match:
        return int(match.group(1)), int(match.group(2))
    chapter = reference.split(":", 1)[0].strip()
    return (int(chapter) if chapter.isdigit() else 0), 0


def _occurrence(value: str) -> int:
    try:
        return int(value.strip())
    except ValueError:
        return 0


def parse_tsv(content: str) -> TSVTable:
    """Split TSV text into a header row and header-keyed row dicts."""
    lines = content.replace("\r\n", "\n").replace("\r", "\n").split("\n")
    table = TSVTable()
    for line in lines:
        if not line.strip():
            continue
        cells = line.split("\t")
        if not table.headers:
            table.headers = [c.strip() for c in cells]
            continue
        row = {
            header: cells[i] if i < len(cells) else ""
            for i, header in enumerate(table.headers)
        }
        table.rows.append(row)
    return table


def validate_tsv_headers(content: str, expected: list[str]) -> list[str]:
    """Return the expected column names missing from the table header."""
    headers = parse_tsv(content).headers
    return [name for name in expected if name not in headers]


@dataclass
class TranslationNote:
    reference: str
    chapter: int
    verse: int
    id: str
    tags: str
    support_reference: str
    quote: str
    occurrence: int
    note: str


@dataclass
class TranslationWordsLink:
    reference: str
    chapter: int
    verse: int
    id: str
    tags: str
    orig_words: str
    occurrence: int
    tw_link: str


@dataclass
class TranslationQuestion:
    reference: str
    chapter: int
    verse: int
    id: str
    tags: str
    quote: str
    occurrence: int
    question: str
    response: str


@dataclass
class TranslationNotes:
    book: str
    notes: list[TranslationNote] = field(default_factory=list)


@dataclass
class TranslationWordsLinks:
    book: str
    links: list[TranslationWordsLink] = field(default_factory=list)


@dataclass
class TranslationQuestions:
    book: str
    questions: list[TranslationQuestion] = field(default_factory=list)


def _is_front_matter(reference: str) -> bool:
    lowered = reference.lower()
    return "intro" in lowered or "front:" in lowered


def _warn_missing(content: str, expected: list[str], kind: str) -> None:
    missing = validate_tsv_headers(content, expected)
    if missing:
        logger.warning(f"{kind} table is missing columns {missing}")


def parse_translation_notes(content: str, book: str) -> TranslationNotes:
    """Parse a notes table, dropping book-introduction and front-matter rows."""
    _warn_missing(content, NOTES_HEADERS, "Notes")
    result = TranslationNotes(book=book.upper())
    for row in parse_tsv(content).rows:
        reference = row.get("Reference", "").strip()
        if _is_front_matter(reference):
            continue
        chapter, verse = _split_reference(reference)
        result.notes.append(
            TranslationNote(
                reference=reference,
                chapter=chapter,
                verse=verse,
                id=row.get("ID", ""),
                tags=row.get("Tags", ""),
                support_reference=row.get("SupportReference", ""),
                quote=row.get("Quote", ""),
                occurrence=_occurrence(row.get("Occurrence", "")),
                note=row.get("Note", ""),
            )
        )
    return result


def parse_translation_words_links(content: str, book: str) -> TranslationWordsLinks:
    """Parse a words-links table."""
    _warn_missing(content, WORDS_LINKS_HEADERS, "Words links")
    result = TranslationWordsLinks(book=book.upper())
    for row in parse_tsv(content).rows:
        reference = row.get("Reference", "").strip()
        chapter, verse = _split_reference(reference)
        result.links.append(
            TranslationWordsLink(
                reference=reference,
                chapter=chapter,
                verse=verse,
                id=row.get("ID", ""),
                tags=row.get("Tags", ""),
                orig_words=row.get("OrigWords", ""),
                occurrence=_occurrence(row.get("Occurrence", "")),
                tw_link=row.get("TWLink", "").strip(),
            )
        )
    return result


def parse_translation_questions(content: str, book: str) -> TranslationQuestions:
    """Parse a questions table."""
    _warn_missing(content, QUESTIONS_HEADERS, "Questions")
    result = TranslationQuestions(book=book.upper())
    for row in parse_tsv(content).rows:
        reference = row.get("Reference", "").strip()
        chapter, verse = _split_reference(reference)
        result.questions.append(
            TranslationQuestion(
                reference=reference,
                chapter=chapter,
                verse=verse,
                id=row.get("ID", ""),
                tags=row.get("Tags", ""),
                quote=row.get("Quote", ""),
                occurrence=_occurrence(row.get("Occurrence", "")),
                question=row.get("Question", ""),
                response=row.get("Response", ""),
            )
        )
    return result
