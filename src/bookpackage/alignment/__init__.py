"""Word alignment extraction.

Public API:
    extract_alignment(verse_objects, verse_ref) -> AlignmentResult
    extract_book_alignments(usfm, book) -> list[AlignmentResult]
"""

from bookpackage.alignment.extractor import (
    AlignmentGroup,
    AlignmentInstance,
    AlignmentResult,
    TokenAlignment,
    WordToken,
    extract_alignment,
    extract_book_alignments,
    extract_verse,
)

__all__ = [
    "AlignmentGroup",
    "AlignmentInstance",
    "AlignmentResult",
    "TokenAlignment",
    "WordToken",
    "extract_alignment",
    "extract_book_alignments",
    "extract_verse",
]
