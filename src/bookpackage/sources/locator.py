"""Book File Locator: map a book code to a file path in a repository.

Preference order:
1. A manifest project matching the book (identifier, then title) that
   declares a path; that path is authoritative and no probing happens
2. Filename candidates from the resource type's pattern function, each probed
   with a HEAD request against the raw-file endpoint
"""

from __future__ import annotations

import logging

from bookpackage.config import ResourceTypeConfig, Settings, book_number
from bookpackage.errors import NotFoundError
from bookpackage.ingest.client import Door43Client
from bookpackage.ingest.retry import first_success
from bookpackage.sources.catalog import Repository
from bookpackage.sources.manifest import Manifest

logger = logging.getLogger(__name__)


class BookFileLocator:
    def __init__(self, client: Door43Client, settings: Settings | None = None):
        self.client = client
        self.settings = settings or client.settings

    async def locate(
        self,
        repository: Repository,
        manifest: Manifest,
        book: str,
        config: ResourceTypeConfig,
    ) -> str:
        """Return the repository-relative path of ``book``.

        Raises:
            NotFoundError: No manifest project matches and no candidate exists
        """
        project = manifest.find_project(book)
        if project is not None and project.path:
            logger.debug(
                f"Manifest maps {book} to {project.path} in {repository.full_name}"
            )
            return project.path

        candidates = config.filenames(book, book_number(book))
        if not candidates:
            raise NotFoundError(f"No filename patterns for {config.name}")

        logger.debug(
            f"{book} not in {repository.full_name} manifest "
            f"({len(manifest.projects)} projects); probing {candidates}"
        )
        outcome = await first_success(
            candidates,
            lambda filename: self._probe(repository, filename),
            description=f"{repository.full_name} file",
        )
        if outcome.succeeded:
            return outcome.candidate  # type: ignore[return-value]
        outcome.raise_for_failure(f"{book} file in {repository.full_name}")
        raise AssertionError("unreachable")

    async def _probe(self, repository: Repository, filename: str) -> str:
        url = self.settings.raw_url(
            repository.full_name, repository.default_branch, filename
        )
        if await self.client.exists(url):
            return filename
        raise NotFoundError(url)
