"""Book package and on-demand resource records."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from bookpackage.config import BOOK_SPECIFIC_TYPES, Settings


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class BookPackageRequest:
    book: str
    language: str
    organization: str
    resource_types: tuple[str, ...] = tuple(BOOK_SPECIFIC_TYPES)

    def __post_init__(self):
        object.__setattr__(self, "book", self.book.upper())
        object.__setattr__(self, "resource_types", tuple(self.resource_types))

    @classmethod
    def for_book(
        cls, book: str, settings: Settings, resource_types: list[str] | None = None
    ) -> "BookPackageRequest":
        return cls(
            book=book,
            language=settings.language,
            organization=settings.organization,
            resource_types=tuple(resource_types or BOOK_SPECIFIC_TYPES),
        )

    @property
    def cache_key(self) -> str:
        return f"{self.organization}/{self.language}/{self.book}"


@dataclass(frozen=True)
class ResourceSlot:
    """One resolved resource type within a package."""

    resource_type: str
    source: str  # repository name the content came from
    path: str
    raw_content: str
    processed: Any = None


@dataclass(frozen=True)
class RepositoryInfo:
    name: str
    url: str
    manifest_identifier: str = ""
    projects: tuple[str, ...] = ()


@dataclass(frozen=True)
class BookTranslationPackage:
    """Every resolved slot for one (organization, language, book).

    A slot is present only when its type resolved through the primary id or
    one backup. A package with no slots is a valid result.
    """

    book: str
    language: str
    organization: str
    fetched_at: datetime = field(default_factory=utc_now)
    repositories: dict[str, RepositoryInfo] = field(default_factory=dict)
    slots: dict[str, ResourceSlot] = field(default_factory=dict)

    def slot(self, resource_type: str) -> ResourceSlot | None:
        return self.slots.get(resource_type)

    def processed(self, resource_type: str) -> Any:
        slot = self.slots.get(resource_type)
        return slot.processed if slot else None

    @property
    def resolved_types(self) -> list[str]:
        return list(self.slots)

    @property
    def is_empty(self) -> bool:
        return not self.slots

    def summary(self) -> dict[str, Any]:
        return {
            "book": self.book,
            "language": self.language,
            "organization": self.organization,
            "fetched_at": self.fetched_at.isoformat(),
            "slots": {
                name: {"source": slot.source, "path": slot.path}
                for name, slot in self.slots.items()
            },
            "repositories": {
                name: {"url": info.url, "manifest": info.manifest_identifier}
                for name, info in self.repositories.items()
            },
        }


class OnDemandType(Enum):
    TRANSLATION_ACADEMY = "translation-academy"
    TRANSLATION_WORDS = "translation-words"


@dataclass(frozen=True)
class OnDemandRequest:
    type: OnDemandType
    identifier: str
    language: str
    organization: str

    @property
    def cache_key(self) -> str:
        return f"{self.type.value}:{self.organization}/{self.language}/{self.identifier}"


@dataclass(frozen=True)
class OnDemandResource:
    type: OnDemandType
    identifier: str
    source: str
    path: str
    content: str
    processed: Any = None
    fetched_at: datetime = field(default_factory=utc_now)
