"""On-Demand Resource Loader: single articles referenced from notes and links.

Academy articles live in ``{lang}_ta`` as ``<section>/<slug>/01.md`` with
``title.md`` and ``sub-title.md`` beside them. Word articles live in
``{lang}_tw`` as ``bible/<category>/<word>.md``.

Identifiers may be plain (``figs-metaphor``, ``god``), sectioned
(``translate/figs-metaphor``, ``kt/god``) or full ``rc://`` links. A missing
article is returned as None; network exhaustion propagates.
"""

from __future__ import annotations

import logging

from bookpackage.cache import TTLCache
from bookpackage.config import (
    DEFAULT_RESOURCE_TYPES,
    TRANSLATION_ACADEMY,
    TRANSLATION_WORDS,
    Settings,
)
from bookpackage.errors import ExhaustedRetriesError, NotFoundError
from bookpackage.ingest.client import Door43Client
from bookpackage.ingest.fetch import RawContentFetcher
from bookpackage.ingest.markdown_parser import parse_academy_article, parse_translation_word
from bookpackage.ingest.references import article_id_from_link, word_id_from_link
from bookpackage.ingest.retry import first_success
from bookpackage.package.models import OnDemandRequest, OnDemandResource, OnDemandType
from bookpackage.sources.catalog import Repository
from bookpackage.sources.resolver import RepositoryResolver

logger = logging.getLogger(__name__)

# Section directories tried for an academy slug with no section
ACADEMY_SEARCH_ORDER = ["process", "translate", "checking", "intro"]
DEFAULT_WORD_CATEGORY = "kt"
WORD_SEARCH_ORDER = ["kt", "names", "other"]


def academy_paths(identifier: str) -> list[str]:
    """Candidate ``01.md`` paths for an academy identifier, in order."""
    article_id = article_id_from_link(identifier).strip("/")
    section, _, slug = article_id.rpartition("/")
    paths = []
    if section:
        paths.append(f"{article_id}/01.md")
    for candidate in ACADEMY_SEARCH_ORDER:
        path = f"{candidate}/{slug}/01.md"
        if path not in paths:
            paths.append(path)
    return paths


def word_paths(identifier: str) -> list[str]:
    """Candidate ``bible/<category>/<word>.md`` paths for a word identifier."""
    word_id = word_id_from_link(identifier).strip("/")
    if word_id.startswith("bible/"):
        word_id = word_id[len("bible/") :]
    if word_id.endswith(".md"):
        word_id = word_id[: -len(".md")]
    category, _, filename = word_id.rpartition("/")
    if category:
        return [f"bible/{category}/{filename}.md"]
    ordered = [DEFAULT_WORD_CATEGORY] + [
        c for c in WORD_SEARCH_ORDER if c != DEFAULT_WORD_CATEGORY
    ]
    return [f"bible/{c}/{filename}.md" for c in ordered]


class OnDemandLoader:
    """Resolves, fetches and caches academy and word articles."""

    def __init__(
        self,
        resolver: RepositoryResolver,
        fetcher: RawContentFetcher,
        settings: Settings | None = None,
        cache: TTLCache[str, OnDemandResource] | None = None,
    ):
        self.resolver = resolver
        self.fetcher = fetcher
        self.settings = settings or Settings()
        self.cache: TTLCache[str, OnDemandResource] = (
            cache if cache is not None else TTLCache(ttl=self.settings.on_demand_ttl)
        )

    @classmethod
    def from_client(
        cls, client: Door43Client, settings: Settings | None = None
    ) -> "OnDemandLoader":
        settings = settings or client.settings
        return cls(
            RepositoryResolver(client, settings),
            RawContentFetcher(client, settings),
            settings,
        )

    async def fetch(self, request: OnDemandRequest) -> OnDemandResource | None:
        """Return the article, or None when it does not exist.

        Raises:
            ExhaustedRetriesError: The repository or article could not be
                reached after every retry
        """
        key = request.cache_key
        cached = self.cache.get(key)
        if cached is not None:
            logger.debug(f"Using cached on-demand resource {key}")
            return cached

        if request.type is OnDemandType.TRANSLATION_ACADEMY:
            config = DEFAULT_RESOURCE_TYPES[TRANSLATION_ACADEMY]
            paths = academy_paths(request.identifier)
        else:
            config = DEFAULT_RESOURCE_TYPES[TRANSLATION_WORDS]
            paths = word_paths(request.identifier)

        try:
            repository = await self.resolver.resolve(
                config.primary, request.organization, request.language
            )
        except NotFoundError as e:
            logger.warning(f"No {config.primary} repository for {key}: {e}")
            return None

        async def fetch_path(path: str) -> str:
            return await self.fetcher.fetch(repository, path)

        outcome = await first_success(paths, fetch_path, description=f"{key} path")
        if not outcome.succeeded:
            if outcome.all_not_found:
                logger.warning(
                    f"{request.type.value} {request.identifier!r} not found "
                    f"in {repository.full_name} (tried {paths})"
                )
                return None
            outcome.raise_for_failure(key)

        path = outcome.candidate or ""
        content = outcome.value or ""
        if request.type is OnDemandType.TRANSLATION_ACADEMY:
            resource = await self._academy_resource(request, repository, path, content)
        else:
            word_id = path[len("bible/") : -len(".md")]
            resource = OnDemandResource(
                type=request.type,
                identifier=word_id,
                source=repository.name,
                path=path,
                content=content,
                processed=parse_translation_word(content, word_id, path),
            )

        self.cache.set(key, resource)
        return resource

    async def _academy_resource(
        self,
        request: OnDemandRequest,
        repository: Repository,
        path: str,
        content: str,
    ) -> OnDemandResource:
        directory = path.rsplit("/", 1)[0]
        title = await self._optional(repository, f"{directory}/title.md")
        subtitle = await self._optional(repository, f"{directory}/sub-title.md")
        article = parse_academy_article(content, directory, title, subtitle)
        return OnDemandResource(
            type=request.type,
            identifier=directory,
            source=repository.name,
            path=path,
            content=content,
            processed=article,
        )

    async def _optional(self, repository: Repository, path: str) -> str | None:
        try:
            return await self.fetcher.fetch(repository, path)
        except (NotFoundError, ExhaustedRetriesError) as e:
            logger.debug(f"Optional file {path} unavailable: {e}")
            return None
