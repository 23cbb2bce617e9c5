"""Book Package Assembler.

For each requested book-specific resource type, the candidate ids
``[primary, *backups]`` are tried in order through

    resolve repository -> load manifest -> locate book file -> fetch -> process

stopping at the first id that yields content. Resource types run as
concurrent tasks; a type that exhausts its candidates simply has no slot.

Packages are cached per ``organization/language/book`` for ``package_ttl``.
A cache hit is returned as-is, even when the new request names types the
cached package lacks. Concurrent requests for an uncached key share one
assembly.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable

from bookpackage.cache import TTLCache
from bookpackage.config import (
    DEFAULT_RESOURCE_TYPES,
    LITERAL_TEXT,
    SIMPLIFIED_TEXT,
    TRANSLATION_NOTES,
    TRANSLATION_QUESTIONS,
    TRANSLATION_WORDS_LINKS,
    ResourceTypeConfig,
    Settings,
)
from bookpackage.errors import ParseError
from bookpackage.ingest.client import Door43Client
from bookpackage.ingest.fetch import RawContentFetcher
from bookpackage.ingest.retry import first_success
from bookpackage.ingest.tsv_parser import (
    parse_translation_notes,
    parse_translation_questions,
    parse_translation_words_links,
)
from bookpackage.ingest.usfm_parser import parse_bible_text
from bookpackage.package.models import (
    BookPackageRequest,
    BookTranslationPackage,
    RepositoryInfo,
    ResourceSlot,
)
from bookpackage.sources.locator import BookFileLocator
from bookpackage.sources.manifest import ManifestLoader
from bookpackage.sources.resolver import RepositoryResolver

logger = logging.getLogger(__name__)

Processor = Callable[[str, str], Any]

PROCESSORS: dict[str, Processor] = {
    LITERAL_TEXT: lambda content, book: parse_bible_text(content, book, "ULT"),
    SIMPLIFIED_TEXT: lambda content, book: parse_bible_text(content, book, "UST"),
    TRANSLATION_NOTES: parse_translation_notes,
    TRANSLATION_WORDS_LINKS: parse_translation_words_links,
    TRANSLATION_QUESTIONS: parse_translation_questions,
}


def process_content(resource_type: str, content: str, book: str) -> Any:
    """Run the type's processor; None (with a warning) when it cannot."""
    processor = PROCESSORS.get(resource_type)
    if processor is None:
        return None
    try:
        return processor(content, book)
    except (ParseError, ValueError) as e:
        logger.warning(f"Could not process {resource_type} for {book}: {e}")
        return None


class BookPackageAssembler:
    """Builds and caches book translation packages."""

    def __init__(
        self,
        resolver: RepositoryResolver,
        manifests: ManifestLoader,
        locator: BookFileLocator,
        fetcher: RawContentFetcher,
        settings: Settings | None = None,
        resource_types: dict[str, ResourceTypeConfig] | None = None,
        cache: TTLCache[str, BookTranslationPackage] | None = None,
    ):
        self.resolver = resolver
        self.manifests = manifests
        self.locator = locator
        self.fetcher = fetcher
        self.settings = settings or Settings()
        self.resource_types = resource_types or DEFAULT_RESOURCE_TYPES
        self.cache: TTLCache[str, BookTranslationPackage] = (
            cache if cache is not None else TTLCache(ttl=self.settings.package_ttl)
        )
        self._in_flight: dict[str, asyncio.Future[BookTranslationPackage]] = {}

    @classmethod
    def from_client(
        cls, client: Door43Client, settings: Settings | None = None
    ) -> "BookPackageAssembler":
        """Wire resolver, manifest loader, locator and fetcher over one client."""
        settings = settings or client.settings
        fetcher = RawContentFetcher(client, settings)
        return cls(
            resolver=RepositoryResolver(client, settings),
            manifests=ManifestLoader(fetcher),
            locator=BookFileLocator(client, settings),
            fetcher=fetcher,
            settings=settings,
        )

    async def assemble(self, request: BookPackageRequest) -> BookTranslationPackage:
        key = request.cache_key
        cached = self.cache.get(key)
        if cached is not None:
            logger.debug(f"Using cached package for {key}")
            return cached

        pending = self._in_flight.get(key)
        if pending is None:
            pending = asyncio.ensure_future(self._assemble(request))
            self._in_flight[key] = pending
            pending.add_done_callback(lambda _: self._in_flight.pop(key, None))
        else:
            logger.debug(f"Joining in-flight assembly for {key}")
        # Cancelling one caller leaves the shared assembly running for the rest
        return await asyncio.shield(pending)

    async def _assemble(self, request: BookPackageRequest) -> BookTranslationPackage:
        configs = []
        for name in request.resource_types:
            config = self.resource_types.get(name)
            if config is None:
                logger.warning(f"Unknown resource type {name!r}, skipping")
            elif config.book_specific:
                configs.append(config)

        logger.info(
            f"Assembling {request.cache_key}: {[c.name for c in configs]}"
        )
        results = await asyncio.gather(
            *(self._resolve_type(request, config) for config in configs),
            return_exceptions=True,
        )

        slots: dict[str, ResourceSlot] = {}
        repositories: dict[str, RepositoryInfo] = {}
        for config, result in zip(configs, results):
            if isinstance(result, Exception):
                logger.error(
                    f"{config.name} for {request.cache_key} failed: "
                    f"{type(result).__name__}: {result}"
                )
                continue
            if result is None:
                continue
            slot, info = result
            slots[config.name] = slot
            repositories[info.name] = info

        package = BookTranslationPackage(
            book=request.book,
            language=request.language,
            organization=request.organization,
            repositories=repositories,
            slots=slots,
        )
        self.cache.set(request.cache_key, package)
        logger.info(
            f"Package {request.cache_key} ready with "
            f"{len(slots)}/{len(configs)} resource types"
        )
        return package

    async def _resolve_type(
        self, request: BookPackageRequest, config: ResourceTypeConfig
    ) -> tuple[ResourceSlot, RepositoryInfo] | None:
        async def attempt(resource_id: str) -> tuple[ResourceSlot, RepositoryInfo]:
            return await self._from_resource_id(request, config, resource_id)

        outcome = await first_success(
            config.candidates, attempt, description=f"{config.name} resource id"
        )
        if not outcome.succeeded:
            logger.warning(
                f"No {config.name} for {request.cache_key}: "
                f"{outcome.describe_failures()}"
            )
            return None
        if outcome.candidate != config.primary:
            logger.info(
                f"{config.name} for {request.book} resolved from backup "
                f"{outcome.candidate!r}"
            )
        return outcome.value

    async def _from_resource_id(
        self, request: BookPackageRequest, config: ResourceTypeConfig, resource_id: str
    ) -> tuple[ResourceSlot, RepositoryInfo]:
        repository = await self.resolver.resolve(
            resource_id, request.organization, request.language
        )
        manifest = await self.manifests.load(repository)
        path = await self.locator.locate(repository, manifest, request.book, config)
        content = await self.fetcher.fetch(repository, path)

        slot = ResourceSlot(
            resource_type=config.name,
            source=repository.name,
            path=path,
            raw_content=content,
            processed=process_content(config.name, content, request.book),
        )
        info = RepositoryInfo(
            name=repository.name,
            url=self.settings.repository_url(repository.owner, repository.name),
            manifest_identifier=manifest.identifier,
            projects=tuple(manifest.project_identifiers),
        )
        return slot, info

    def cached_packages(self) -> list[str]:
        return list(self.cache.keys())
