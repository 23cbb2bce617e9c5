"""Content ingestion: HTTP, retry, raw fetch and resource parsers.

Public API:
    Fetching:
        Door43Client(settings, transport, sleep)
        RawContentFetcher.fetch(repository, path) -> str
        first_success(candidates, attempt) -> Outcome

    Parsing:
        parse_translation_notes / _words_links / _questions (TSV)
        parse_translation_word / parse_academy_article (Markdown)
        parse_bible_text / parse_verses (USFM)
"""

from bookpackage.ingest.client import Door43Client
from bookpackage.ingest.fetch import RawContentFetcher, decode_content
from bookpackage.ingest.markdown_parser import (
    AcademyArticle,
    TranslationWord,
    extract_section,
    parse_academy_article,
    parse_translation_word,
)
from bookpackage.ingest.references import (
    RCLink,
    VerseReference,
    article_id_from_link,
    helps_for_reference,
    parse_rc_link,
    parse_verse_reference,
    word_id_from_link,
)
from bookpackage.ingest.retry import (
    CandidateFailure,
    Outcome,
    RetryPolicy,
    first_success,
    retry_with_backoff,
)
from bookpackage.ingest.tsv_parser import (
    TranslationNotes,
    TranslationQuestions,
    TranslationWordsLinks,
    parse_translation_notes,
    parse_translation_questions,
    parse_translation_words_links,
    parse_tsv,
    validate_tsv_headers,
)
from bookpackage.ingest.usfm_parser import (
    BibleText,
    UsfmVerse,
    VerseObject,
    parse_bible_text,
    parse_verses,
    plain_text,
)

__all__ = [
    # Fetching
    "Door43Client",
    "RawContentFetcher",
    "decode_content",
    "RetryPolicy",
    "retry_with_backoff",
    "first_success",
    "Outcome",
    "CandidateFailure",
    # TSV
    "parse_tsv",
    "validate_tsv_headers",
    "parse_translation_notes",
    "parse_translation_words_links",
    "parse_translation_questions",
    "TranslationNotes",
    "TranslationWordsLinks",
    "TranslationQuestions",
    # Markdown
    "extract_section",
    "parse_translation_word",
    "parse_academy_article",
    "TranslationWord",
    "AcademyArticle",
    # USFM
    "parse_bible_text",
    "parse_verses",
    "plain_text",
    "BibleText",
    "UsfmVerse",
    "VerseObject",
    # References
    "parse_verse_reference",
    "helps_for_reference",
    "parse_rc_link",
    "word_id_from_link",
    "article_id_from_link",
    "VerseReference",
    "RCLink",
]
