"""API route definitions."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, Request

from bookpackage import __version__
from bookpackage.alignment.extractor import extract_alignment
from bookpackage.api.models import (
    AcademyArticleModel,
    AlignmentRequest,
    AlignmentResponse,
    BibleTextModel,
    BooksResponse,
    HealthModel,
    NoteModel,
    NotesResponse,
    PackageSummaryModel,
    PassageHelpsModel,
    QuestionModel,
    QuestionsResponse,
    TranslationWordModel,
    WordsLinkModel,
    WordsLinksResponse,
)
from bookpackage.ingest.usfm_parser import find_verse, parse_verses
from bookpackage.service import ResourceService

router = APIRouter()


def get_service(request: Request) -> ResourceService:
    return request.app.state.service


Service = Annotated[ResourceService, Depends(get_service)]


def _not_found(what: str) -> HTTPException:
    return HTTPException(status_code=404, detail=f"{what} not found")


@router.get("/health", response_model=HealthModel)
async def health_check(service: Service):
    """Health check endpoint."""
    return HealthModel(
        status="ok",
        version=__version__,
        base_url=service.settings.base_url,
        cache=service.cache_stats(),
    )


@router.get("/books", response_model=BooksResponse)
async def list_books(service: Service):
    books = await service.get_available_books()
    return BooksResponse(books=books, count=len(books))


@router.get("/books/{book}/package", response_model=PackageSummaryModel)
async def get_package(book: str, service: Service):
    """Assemble (or return the cached) book package and summarize its slots."""
    package = await service.get_book_package(book)
    if package is None:
        raise _not_found(f"Package for {book}")
    return PackageSummaryModel.model_validate(package.summary())


@router.get("/books/{book}/text/{text_type}", response_model=BibleTextModel)
async def get_text(book: str, text_type: str, service: Service):
    if text_type.lower() not in ("ult", "ust"):
        raise HTTPException(status_code=400, detail="text_type must be ult or ust")
    text = await service.get_bible_text(book, text_type)
    if text is None:
        raise _not_found(f"{text_type.upper()} for {book}")
    return BibleTextModel.model_validate(text)


@router.get("/books/{book}/notes", response_model=NotesResponse)
async def get_notes(book: str, service: Service):
    notes = await service.get_translation_notes(book)
    if notes is None:
        raise _not_found(f"Translation notes for {book}")
    return NotesResponse.model_validate(notes)


@router.get("/books/{book}/words-links", response_model=WordsLinksResponse)
async def get_words_links(book: str, service: Service):
    links = await service.get_translation_words_links(book)
    if links is None:
        raise _not_found(f"Translation words links for {book}")
    return WordsLinksResponse.model_validate(links)


@router.get("/books/{book}/questions", response_model=QuestionsResponse)
async def get_questions(book: str, service: Service):
    questions = await service.get_translation_questions(book)
    if questions is None:
        raise _not_found(f"Translation questions for {book}")
    return QuestionsResponse.model_validate(questions)


@router.get("/words/{word_id:path}", response_model=TranslationWordModel)
async def get_word(word_id: str, service: Service):
    """Translation Words article by id, e.g. ``kt/god`` or ``god``."""
    word = await service.get_translation_word(word_id)
    if word is None:
        raise _not_found(f"Translation word {word_id}")
    return TranslationWordModel.model_validate(word)


@router.get("/academy/{article_id:path}", response_model=AcademyArticleModel)
async def get_article(article_id: str, service: Service):
    """Translation Academy article, e.g. ``figs-metaphor``."""
    article = await service.get_translation_academy_article(article_id)
    if article is None:
        raise _not_found(f"Academy article {article_id}")
    return AcademyArticleModel.model_validate(article)


@router.get("/helps", response_model=PassageHelpsModel)
async def get_helps(
    service: Service,
    ref: Annotated[str, Query(description="Reference with book, e.g. 'JON 1:3'")],
):
    helps = await service.get_passage_helps(ref)
    if helps is None:
        raise HTTPException(status_code=400, detail=f"Unreadable reference {ref!r}")
    return PassageHelpsModel(
        reference=str(helps.reference),
        notes=[NoteModel.model_validate(n) for n in helps.notes],
        questions=[QuestionModel.model_validate(q) for q in helps.questions],
        word_links=[WordsLinkModel.model_validate(w) for w in helps.word_links],
    )


@router.post("/alignment", response_model=AlignmentResponse)
async def align(body: AlignmentRequest):
    """Extract word tokens and alignment groups for one verse."""
    if body.verse_objects is not None:
        result = extract_alignment(body.verse_objects, body.verse_ref or "verse")
    elif body.usfm is not None and body.chapter is not None and body.verse is not None:
        verse = find_verse(parse_verses(body.usfm), body.chapter, body.verse)
        if verse is None:
            raise _not_found(f"Verse {body.chapter}:{body.verse}")
        result = extract_alignment(verse.objects, body.verse_ref or verse.reference)
    else:
        raise HTTPException(
            status_code=400,
            detail="Provide verse_objects, or usfm with chapter and verse",
        )
    return AlignmentResponse.model_validate(result.to_dict())
