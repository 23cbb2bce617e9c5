"""Consumer-facing resource service.

``ResourceService`` is the narrow interface the UI layer (and any offline
substitute implementing ``ResourceProvider``) talks to. Lookups return None or
empty results instead of raising; every failure is logged with what was
being fetched.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Protocol

import httpx

from bookpackage.config import (
    BOOK_NUMBERS,
    BOOK_SPECIFIC_TYPES,
    DEFAULT_RESOURCE_TYPES,
    LITERAL_TEXT,
    SIMPLIFIED_TEXT,
    TRANSLATION_NOTES,
    TRANSLATION_QUESTIONS,
    TRANSLATION_WORDS_LINKS,
    Settings,
)
from bookpackage.errors import Door43Error
from bookpackage.ingest.client import Door43Client
from bookpackage.ingest.fetch import RawContentFetcher
from bookpackage.ingest.markdown_parser import AcademyArticle, TranslationWord
from bookpackage.ingest.references import (
    VerseReference,
    helps_for_reference,
    parse_verse_reference,
)
from bookpackage.ingest.retry import Sleep, first_success
from bookpackage.ingest.tsv_parser import (
    TranslationNote,
    TranslationNotes,
    TranslationQuestion,
    TranslationQuestions,
    TranslationWordsLink,
    TranslationWordsLinks,
)
from bookpackage.ingest.usfm_parser import BibleText
from bookpackage.package.assembler import BookPackageAssembler
from bookpackage.package.models import (
    BookPackageRequest,
    BookTranslationPackage,
    OnDemandRequest,
    OnDemandType,
)
from bookpackage.package.ondemand import OnDemandLoader
from bookpackage.sources.locator import BookFileLocator
from bookpackage.sources.manifest import ManifestLoader
from bookpackage.sources.resolver import RepositoryResolver

logger = logging.getLogger(__name__)

TEXT_TYPES = {"ult": LITERAL_TEXT, "ust": SIMPLIFIED_TEXT}


@dataclass
class PassageHelps:
    reference: VerseReference
    notes: list[TranslationNote] = field(default_factory=list)
    questions: list[TranslationQuestion] = field(default_factory=list)
    word_links: list[TranslationWordsLink] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (self.notes or self.questions or self.word_links)


class ResourceProvider(Protocol):
    """Interface shared by the online service and offline substitutes."""

    async def initialize(self) -> None: ...

    async def get_available_books(self) -> list[str]: ...

    async def get_bible_text(self, book: str, text_type: str) -> BibleText | None: ...

    async def get_translation_notes(self, book: str) -> TranslationNotes | None: ...

    async def get_translation_words_links(
        self, book: str
    ) -> TranslationWordsLinks | None: ...

    async def get_translation_questions(
        self, book: str
    ) -> TranslationQuestions | None: ...

    async def get_translation_word(self, word_id: str) -> TranslationWord | None: ...

    async def get_translation_academy_article(
        self, article_id: str
    ) -> AcademyArticle | None: ...

    async def get_passage_helps(
        self, reference: str | VerseReference, book: str | None = None
    ) -> PassageHelps | None: ...


class ResourceService:
    """Door43-backed ResourceProvider.

    Args:
        settings: Content service, scope and cache settings
        transport: Optional httpx transport, passed to the HTTP client
        sleep: Awaitable used for retry backoff
    """

    def __init__(
        self,
        settings: Settings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        sleep: Sleep = asyncio.sleep,
    ):
        self.settings = settings or Settings.from_env()
        self.client = Door43Client(self.settings, transport=transport, sleep=sleep)
        fetcher = RawContentFetcher(self.client, self.settings)
        self.resolver = RepositoryResolver(self.client, self.settings)
        self.manifests = ManifestLoader(fetcher)
        self.assembler = BookPackageAssembler(
            resolver=self.resolver,
            manifests=self.manifests,
            locator=BookFileLocator(self.client, self.settings),
            fetcher=fetcher,
            settings=self.settings,
        )
        self.on_demand = OnDemandLoader(self.resolver, fetcher, self.settings)
        self._available_books: list[str] = []
        self.initialized = False

    async def initialize(self) -> None:
        """Load the book list from the literal-text repository manifest."""
        if self.initialized:
            return
        self._available_books = await self._load_available_books()
        self.initialized = True
        logger.info(f"Resource service ready: {len(self._available_books)} books")

    async def _load_available_books(self) -> list[str]:
        config = DEFAULT_RESOURCE_TYPES[LITERAL_TEXT]

        async def from_resource_id(resource_id: str) -> list[str]:
            repository = await self.resolver.resolve(
                resource_id, self.settings.organization, self.settings.language
            )
            manifest = await self.manifests.load(repository)
            return [p.identifier.upper() for p in manifest.projects]

        outcome = await first_success(
            config.candidates, from_resource_id, description="book list source"
        )
        books = [b for b in (outcome.value or []) if b in BOOK_NUMBERS]
        if not books:
            logger.warning(
                "Could not read the book list from the literal text manifest, "
                f"using the canonical list ({outcome.describe_failures() or 'no projects'})"
            )
            return list(BOOK_NUMBERS)
        return sorted(books, key=lambda b: BOOK_NUMBERS[b])

    async def get_available_books(self) -> list[str]:
        if not self.initialized:
            await self.initialize()
        return list(self._available_books)

    async def get_book_package(self, book: str) -> BookTranslationPackage | None:
        """The full book package, or None if assembly failed outright.

        Always requests every book-specific type so a cached package is
        never missing a type because an earlier caller asked for fewer.
        """
        request = BookPackageRequest.for_book(book, self.settings, BOOK_SPECIFIC_TYPES)
        try:
            return await self.assembler.assemble(request)
        except Door43Error as e:
            logger.error(f"Failed to assemble package for {request.cache_key}: {e}")
            return None

    async def _processed(self, book: str, resource_type: str) -> Any:
        package = await self.get_book_package(book)
        if package is None:
            return None
        processed = package.processed(resource_type)
        if processed is None:
            logger.warning(f"No {resource_type} found for {book.upper()}")
        return processed

    async def get_bible_text(self, book: str, text_type: str = "ult") -> BibleText | None:
        resource_type = TEXT_TYPES.get(text_type.lower())
        if resource_type is None:
            raise ValueError(f"Unknown text type {text_type!r}; expected ult or ust")
        return await self._processed(book, resource_type)

    async def get_translation_notes(self, book: str) -> TranslationNotes | None:
        return await self._processed(book, TRANSLATION_NOTES)

    async def get_translation_words_links(self, book: str) -> TranslationWordsLinks | None:
        return await self._processed(book, TRANSLATION_WORDS_LINKS)

    async def get_translation_questions(self, book: str) -> TranslationQuestions | None:
        return await self._processed(book, TRANSLATION_QUESTIONS)

    async def _on_demand(self, kind: OnDemandType, identifier: str) -> Any:
        request = OnDemandRequest(
            type=kind,
            identifier=identifier,
            language=self.settings.language,
            organization=self.settings.organization,
        )
        try:
            resource = await self.on_demand.fetch(request)
        except Door43Error as e:
            logger.error(f"Failed to load {kind.value} {identifier!r}: {e}")
            return None
        return resource.processed if resource else None

    async def get_translation_word(self, word_id: str) -> TranslationWord | None:
        """Word article by id (``kt/god``, ``god``) or ``rc://`` link."""
        return await self._on_demand(OnDemandType.TRANSLATION_WORDS, word_id)

    async def get_translation_academy_article(
        self, article_id: str
    ) -> AcademyArticle | None:
        """Academy article by id (``figs-metaphor``, ``translate/figs-metaphor``) or link."""
        return await self._on_demand(OnDemandType.TRANSLATION_ACADEMY, article_id)

    async def get_passage_helps(
        self, reference: str | VerseReference, book: str | None = None
    ) -> PassageHelps | None:
        """Notes, questions and word links overlapping a reference like ``JON 1:3``."""
        if isinstance(reference, str):
            parsed = parse_verse_reference(reference, (book or "").upper())
        else:
            parsed = reference
        if parsed is None or not parsed.book:
            logger.warning(f"Cannot look up helps for reference {reference!r}")
            return None

        notes = await self.get_translation_notes(parsed.book)
        questions = await self.get_translation_questions(parsed.book)
        links = await self.get_translation_words_links(parsed.book)
        matched = helps_for_reference(
            parsed,
            notes=notes.notes if notes else [],
            questions=questions.questions if questions else [],
            word_links=links.links if links else [],
        )
        return PassageHelps(
            reference=parsed,
            notes=matched["notes"],
            questions=matched["questions"],
            word_links=matched["word_links"],
        )

    async def search_notes(self, query: str, book: str) -> list[TranslationNote]:
        """Notes for ``book`` whose quote or text contains ``query``."""
        notes = await self.get_translation_notes(book)
        if notes is None:
            return []
        needle = query.lower()
        return [
            n for n in notes.notes if needle in n.quote.lower() or needle in n.note.lower()
        ]

    def cache_stats(self) -> dict[str, int]:
        return {
            "repositories": len(self.resolver.cache),
            "manifests": len(self.manifests.cache),
            "packages": len(self.assembler.cache),
            "on_demand": len(self.on_demand.cache),
        }

    def clear_cache(self) -> None:
        self.resolver.cache.clear()
        self.manifests.cache.clear()
        self.assembler.cache.clear()
        self.on_demand.cache.clear()
        self._available_books = []
        self.initialized = False
        logger.info("All caches cleared")

    async def aclose(self) -> None:
        await self.client.aclose()

    async def __aenter__(self) -> "ResourceService":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()
