"""Configuration settings for book package resolution."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Callable

import keyring
from keyring.errors import KeyringError, PasswordDeleteError

logger = logging.getLogger(__name__)

# Keychain entry holding the optional Door43 API token
SERVICE_NAME = "org.door43.bookpackage"
TOKEN_ACCOUNT = "api_token"
TOKEN_ENV_VAR = "DOOR43_TOKEN"


def get_stored_token() -> str | None:
    """Return the API token from the environment or the OS keychain.

    A missing or unusable keychain is not an error; requests simply go out
    unauthenticated with the lower rate limit.
    """
    token = os.environ.get(TOKEN_ENV_VAR)
    if token:
        return token
    try:
        return keyring.get_password(SERVICE_NAME, TOKEN_ACCOUNT)
    except KeyringError as e:
        logger.debug(f"Keychain retrieval failed: {e}")
        return None


def store_token(token: str) -> None:
    """Store the API token in the OS keychain."""
    keyring.set_password(SERVICE_NAME, TOKEN_ACCOUNT, token)
    logger.info("API token stored in OS keychain")


def delete_token() -> bool:
    """Remove the API token from the keychain. Returns False if none was stored."""
    try:
        keyring.delete_password(SERVICE_NAME, TOKEN_ACCOUNT)
    except PasswordDeleteError:
        return False
    logger.info("API token deleted from keychain")
    return True


@dataclass
class Settings:
    """Application settings."""

    # Content service
    base_url: str = "https://git.door43.org"
    user_agent: str = "BookPackageService/1.0.0"
    api_token: str | None = None
    stage: str = "prod"

    # Default resource scope
    language: str = "en"
    organization: str = "unfoldingWord"

    # Network behaviour
    timeout: float = 30.0
    max_retries: int = 3
    rate_limit_retries: int = 5
    backoff_base: float = 1.0

    # Cache lifetimes (seconds)
    package_ttl: float = 3600.0
    on_demand_ttl: float = 86400.0

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from BOOKPACKAGE_* environment variables."""
        settings = cls(api_token=get_stored_token())
        settings.base_url = os.environ.get("BOOKPACKAGE_BASE_URL", settings.base_url)
        settings.language = os.environ.get("BOOKPACKAGE_LANGUAGE", settings.language)
        settings.organization = os.environ.get(
            "BOOKPACKAGE_ORGANIZATION", settings.organization
        )
        if "BOOKPACKAGE_TIMEOUT" in os.environ:
            settings.timeout = float(os.environ["BOOKPACKAGE_TIMEOUT"])
        if "BOOKPACKAGE_MAX_RETRIES" in os.environ:
            settings.max_retries = int(os.environ["BOOKPACKAGE_MAX_RETRIES"])
        return settings

    @property
    def api_url(self) -> str:
        return f"{self.base_url.rstrip('/')}/api/v1"

    @property
    def catalog_search_url(self) -> str:
        return f"{self.api_url}/catalog/search"

    def repository_url(self, owner: str, name: str) -> str:
        return f"{self.api_url}/repos/{owner}/{name}"

    def contents_url(self, full_name: str, path: str) -> str:
        return f"{self.api_url}/repos/{full_name}/contents/{path.lstrip('/')}"

    def raw_url(self, full_name: str, ref: str, path: str) -> str:
        return f"{self.base_url.rstrip('/')}/{full_name}/raw/branch/{ref}/{path.lstrip('/')}"


def scripture_patterns(book: str, book_number: str | None = None) -> list[str]:
    """Filename candidates for a USFM book file."""
    patterns = []
    if book_number:
        patterns.append(f"{book_number}-{book.upper()}.usfm")
    patterns.append(f"{book.upper()}.usfm")
    patterns.append(f"{book.lower()}.usfm")
    return patterns


def tsv_patterns(prefix: str) -> Callable[[str, str | None], list[str]]:
    """Build a filename-candidate function for ``{prefix}_{BOOK}.tsv`` tables."""

    def patterns(book: str, book_number: str | None = None) -> list[str]:
        return [f"{prefix}_{book.upper()}.tsv", f"{book.lower()}.tsv"]

    return patterns


@dataclass(frozen=True)
class ResourceTypeConfig:
    """How one resource type is located.

    Book-specific types carry a filename pattern function; on-demand types
    carry the strategy that links reference their articles.
    """

    name: str
    primary: str
    backups: tuple[str, ...] = ()
    book_specific: bool = True
    file_patterns: Callable[[str, str | None], list[str]] | None = None
    on_demand_strategy: str | None = None  # reference-based, link-based

    @property
    def candidates(self) -> list[str]:
        """Resource ids in the order they are tried: primary, then backups."""
        return [self.primary, *self.backups]

    def filenames(self, book: str, book_number: str | None = None) -> list[str]:
        """Ordered, de-duplicated filename candidates for ``book``."""
        if self.file_patterns is None:
            return []
        seen: list[str] = []
        for name in self.file_patterns(book, book_number):
            if name not in seen:
                seen.append(name)
        return seen


LITERAL_TEXT = "literal_text"
SIMPLIFIED_TEXT = "simplified_text"
TRANSLATION_NOTES = "translation_notes"
TRANSLATION_WORDS_LINKS = "translation_words_links"
TRANSLATION_QUESTIONS = "translation_questions"
TRANSLATION_ACADEMY = "translation_academy"
TRANSLATION_WORDS = "translation_words"

DEFAULT_RESOURCE_TYPES: dict[str, ResourceTypeConfig] = {
    LITERAL_TEXT: ResourceTypeConfig(
        name=LITERAL_TEXT,
        primary="ult",
        backups=("glt",),
        file_patterns=scripture_patterns,
    ),
    SIMPLIFIED_TEXT: ResourceTypeConfig(
        name=SIMPLIFIED_TEXT,
        primary="ust",
        backups=("gst",),
        file_patterns=scripture_patterns,
    ),
    TRANSLATION_NOTES: ResourceTypeConfig(
        name=TRANSLATION_NOTES,
        primary="tn",
        file_patterns=tsv_patterns("tn"),
    ),
    TRANSLATION_WORDS_LINKS: ResourceTypeConfig(
        name=TRANSLATION_WORDS_LINKS,
        primary="twl",
        file_patterns=tsv_patterns("twl"),
    ),
    TRANSLATION_QUESTIONS: ResourceTypeConfig(
        name=TRANSLATION_QUESTIONS,
        primary="tq",
        file_patterns=tsv_patterns("tq"),
    ),
    TRANSLATION_ACADEMY: ResourceTypeConfig(
        name=TRANSLATION_ACADEMY,
        primary="ta",
        book_specific=False,
        on_demand_strategy="reference-based",
    ),
    TRANSLATION_WORDS: ResourceTypeConfig(
        name=TRANSLATION_WORDS,
        primary="tw",
        book_specific=False,
        on_demand_strategy="link-based",
    ),
}

BOOK_SPECIFIC_TYPES = [
    name for name, cfg in DEFAULT_RESOURCE_TYPES.items() if cfg.book_specific
]

# USFM book numbers used in filenames (the New Testament starts at 41)
BOOK_NUMBERS: dict[str, str] = {
    "GEN": "01",
    "EXO": "02",
    "LEV": "03",
    "NUM": "04",
    "DEU": "05",
    "JOS": "06",
    "JDG": "07",
    "RUT": "08",
    "1SA": "09",
    "2SA": "10",
    "1KI": "11",
    "2KI": "12",
    "1CH": "13",
    "2CH": "14",
    "EZR": "15",
    "NEH": "16",
    "EST": "17",
    "JOB": "18",
    "PSA": "19",
    "PRO": "20",
    "ECC": "21",
    "SNG": "22",
    "ISA": "23",
    "JER": "24",
    "LAM": "25",
    "EZK": "26",
    "DAN": "27",
    "HOS": "28",
    "JOL": "29",
    "AMO": "30",
    "OBA": "31",
    "JON": "32",
    "MIC": "33",
    "NAM": "34",
    "HAB": "35",
    "ZEP": "36",
    "HAG": "37",
    "ZEC": "38",
    "MAL": "39",
    "MAT": "41",
    "MRK": "42",
    "LUK": "43",
    "JHN": "44",
    "ACT": "45",
    "ROM": "46",
    "1CO": "47",
    "2CO": "48",
    "GAL": "49",
    "EPH": "50",
    "PHP": "51",
    "COL": "52",
    "1TH": "53",
    "2TH": "54",
    "1TI": "55",
    "2TI": "56",
    "TIT": "57",
    "PHM": "58",
    "HEB": "59",
    "JAS": "60",
    "1PE": "61",
    "2PE": "62",
    "1JN": "63",
    "2JN": "64",
    "3JN": "65",
    "JUD": "66",
    "REV": "67",
}


def book_number(book: str) -> str | None:
    """Return the zero-padded filename number for a book code."""
    return BOOK_NUMBERS.get(book.upper())
