"""Pydantic models for API."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class HealthModel(BaseModel):
    status: str
    version: str
    base_url: str
    cache: Dict[str, int] = Field(default_factory=dict)


class BooksResponse(BaseModel):
    books: List[str]
    count: int


class SlotModel(BaseModel):
    """One resolved resource type in a package."""

    source: str = Field(..., description="Repository the content came from")
    path: str = Field(..., description="File path within the repository")


class RepositoryModel(BaseModel):
    url: str
    manifest: str = ""


class PackageSummaryModel(BaseModel):
    book: str
    language: str
    organization: str
    fetched_at: str
    slots: Dict[str, SlotModel]
    repositories: Dict[str, RepositoryModel]


class BibleTextModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    book: str
    translation: str
    content: str
    has_alignment: bool


class NoteModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    reference: str
    chapter: int
    verse: int
    id: str
    tags: str
    support_reference: str
    quote: str
    occurrence: int
    note: str


class WordsLinkModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    reference: str
    chapter: int
    verse: int
    id: str
    tags: str
    orig_words: str
    occurrence: int
    tw_link: str


class QuestionModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    reference: str
    chapter: int
    verse: int
    id: str
    tags: str
    quote: str
    occurrence: int
    question: str
    response: str


class NotesResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    book: str
    notes: List[NoteModel]


class WordsLinksResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    book: str
    links: List[WordsLinkModel]


class QuestionsResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    book: str
    questions: List[QuestionModel]


class TranslationWordModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    category: str = Field(..., description="kt, names or other")
    category_label: str
    title: str
    definition: str
    translation_suggestions: str
    bible_references: List[str]
    content: str


class AcademyArticleModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    title: str
    subtitle: str
    category: str
    description: str
    examples: str
    strategies: str
    content: str


class PassageHelpsModel(BaseModel):
    reference: str
    notes: List[NoteModel]
    questions: List[QuestionModel]
    word_links: List[WordsLinkModel]


class AlignmentRequest(BaseModel):
    """Either a verse token tree or USFM text plus the verse to extract."""

    verse_ref: Optional[str] = Field(None, description="Reference used in token ids")
    verse_objects: Optional[List[Dict[str, Any]]] = Field(
        None, description="usfm-js style verse objects"
    )
    usfm: Optional[str] = Field(None, description="USFM book text")
    chapter: Optional[int] = None
    verse: Optional[int] = None


class SpanModel(BaseModel):
    start: int
    end: int


class TokenAlignmentModel(BaseModel):
    strong: str
    lemma: str
    source_word: str
    group_id: str
    instance_in_group: int
    total_in_group: int


class WordTokenModel(BaseModel):
    id: str
    text: str
    span: SpanModel
    word_index: int
    is_highlightable: bool
    kind: str
    alignment: Optional[TokenAlignmentModel] = None


class AlignmentInstanceModel(BaseModel):
    token_id: str
    text: str
    position: int
    occurrence: int


class AlignmentGroupModel(BaseModel):
    group_id: str
    strong: str
    lemma: str
    source_word: str
    verse_ref: str
    instances: List[AlignmentInstanceModel]
    total_instances: int
    is_non_contiguous: bool


class AlignmentResponse(BaseModel):
    verse_ref: str
    text: str
    tokens: List[WordTokenModel]
    groups: List[AlignmentGroupModel]
