"""Repository Resolver: find the repository behind a resource id.

Search order:
1. Catalog search filtered by owner, language and production stage,
   matching ``{language}_{resource_id}`` case-insensitively
2. Direct lookup of ``/repos/{organization}/{language}_{resource_id}``

Resolved repositories are cached for the life of the resolver. NotFound is
not cached, so a repository published later is picked up on the next call.
"""

from __future__ import annotations

import logging

from bookpackage.cache import TTLCache
from bookpackage.config import Settings
from bookpackage.errors import ExhaustedRetriesError, InvalidRecordError, NotFoundError
from bookpackage.ingest.client import Door43Client
from bookpackage.sources.catalog import Repository, parse_catalog_response

logger = logging.getLogger(__name__)


def repository_name(language: str, resource_id: str) -> str:
    return f"{language}_{resource_id}"


class RepositoryResolver:
    """Resolves (organization, language, resource id) to a Repository."""

    def __init__(
        self,
        client: Door43Client,
        settings: Settings | None = None,
        cache: TTLCache[tuple[str, str], Repository] | None = None,
    ):
        self.client = client
        self.settings = settings or client.settings
        self.cache: TTLCache[tuple[str, str], Repository] = (
            cache if cache is not None else TTLCache()
        )

    async def resolve(
        self,
        resource_id: str,
        organization: str | None = None,
        language: str | None = None,
    ) -> Repository:
        """Return the repository for ``resource_id``.

        Raises:
            NotFoundError: Neither the catalog nor direct lookup knows it
            ExhaustedRetriesError: Direct lookup kept failing
            InvalidRecordError: Direct lookup answered with something other than JSON
        """
        organization = organization or self.settings.organization
        language = language or self.settings.language
        name = repository_name(language, resource_id)
        cache_key = (organization.lower(), name.lower())

        cached = self.cache.get(cache_key)
        if cached is not None:
            logger.debug(f"Using cached repository {cached.full_name}")
            return cached

        repository = await self._search_catalog(name, organization, language)
        if repository is None:
            repository = await self._direct_lookup(name, organization)

        self.cache.set(cache_key, repository)
        logger.info(f"Resolved {organization}/{name} -> {repository.full_name}")
        return repository

    async def _search_catalog(
        self, name: str, organization: str, language: str
    ) -> Repository | None:
        params = {"owner": organization, "lang": language, "stage": self.settings.stage}
        try:
            payload = await self.client.get_json(
                self.settings.catalog_search_url, params=params
            )
        except (ExhaustedRetriesError, InvalidRecordError) as e:
            logger.warning(f"Catalog search for {name} failed, trying direct lookup: {e}")
            return None
        if payload is None:
            return None

        try:
            candidates = parse_catalog_response(payload)
        except InvalidRecordError as e:
            logger.warning(f"Unusable catalog response for {name}: {e}")
            return None

        for repository in candidates:
            if (
                repository.name.lower() == name.lower()
                and repository.owner.lower() == organization.lower()
            ):
                logger.debug(f"Found {repository.full_name} in catalog")
                return repository
        logger.debug(f"{organization}/{name} not in catalog ({len(candidates)} entries)")
        return None

    async def _direct_lookup(self, name: str, organization: str) -> Repository:
        url = self.settings.repository_url(organization, name)
        payload = await self.client.get_json(url)
        if payload is None:
            raise NotFoundError(
                f"Repository {organization}/{name}",
                attempted=["catalog search", url],
            )
        try:
            return Repository.from_catalog(payload)
        except InvalidRecordError as e:
            raise NotFoundError(f"Repository {organization}/{name}: {e}") from e
