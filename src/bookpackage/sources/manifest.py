"""Manifest Loader: a repository's ``manifest.yaml`` project list.

Only two parts of a resource-container manifest are used:

    dublin_core:
      identifier: ult
    projects:
      - title: Jonah
        identifier: jon
        path: ./32-JON.usfm

Parsing sits behind the ``ManifestParser`` protocol. ``LineManifestParser``
reads just the subset above without a YAML dependency on the hot path;
``YamlManifestParser`` is a full PyYAML parse of the same structure.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Protocol

import yaml

from bookpackage.cache import TTLCache
from bookpackage.errors import ParseError
from bookpackage.ingest.fetch import RawContentFetcher
from bookpackage.ingest.retry import first_success
from bookpackage.sources.catalog import Repository

logger = logging.getLogger(__name__)

MANIFEST_FILENAMES = ["manifest.yaml", "manifest.yml"]


def normalize_path(path: str) -> str:
    path = path.strip()
    while path.startswith("./"):
        path = path[2:]
    return path


@dataclass(frozen=True)
class ManifestProject:
    identifier: str
    title: str = ""
    path: str = ""
    sort: int | None = None


@dataclass
class Manifest:
    identifier: str = ""
    projects: list[ManifestProject] = field(default_factory=list)

    def find_project(self, book: str) -> ManifestProject | None:
        """Project whose identifier (or, failing that, title) equals ``book``.

        Identifier comparison is exact first, then case-insensitive.
        """
        for project in self.projects:
            if project.identifier == book:
                return project
        lowered = book.lower()
        for project in self.projects:
            if project.identifier.lower() == lowered:
                return project
        for project in self.projects:
            if project.title and project.title.lower() == lowered:
                return project
        return None

    @property
    def project_identifiers(self) -> list[str]:
        return [p.identifier for p in self.projects]


def _project_from_fields(fields: dict[str, Any]) -> ManifestProject | None:
    identifier = str(fields.get("identifier") or "").strip()
    if not identifier:
        return None
    sort = fields.get("sort")
    try:
        sort_value = int(sort) if sort is not None and str(sort).strip() else None
    except ValueError:
        sort_value = None
    return ManifestProject(
        identifier=identifier,
        title=str(fields.get("title") or "").strip(),
        path=normalize_path(str(fields.get("path") or "")),
        sort=sort_value,
    )


class ManifestParser(Protocol):
    def parse(self, content: str) -> Manifest: ...


def _unquote(value: str) -> str:
    value = value.strip()
    if len(value) >= 2 and value[0] == value[-1] and value[0] in "'\"":
        return value[1:-1]
    return value


class LineManifestParser:
    """Indentation-tracking reader for ``dublin_core.identifier`` and ``projects``.

    A ``- `` at the indent of the first project item starts a new project;
    deeper list items (project ``categories``) are ignored. A top-level key
    ends the project list.
    """

    def parse(self, content: str) -> Manifest:
        manifest = Manifest()
        section: str | None = None
        item_indent: int | None = None
        dublin_indent: int | None = None
        current: dict[str, Any] | None = None
        projects: list[dict[str, Any]] = []

        for raw_line in content.replace("\r\n", "\n").split("\n"):
            stripped = raw_line.strip()
            if not stripped or stripped.startswith("#"):
                continue
            indent = len(raw_line) - len(raw_line.lstrip())

            if indent == 0 and not stripped.startswith("-"):
                if current is not None:
                    projects.append(current)
                    current = None
                key = stripped.split(":", 1)[0].strip()
                section = key if stripped.endswith(":") else None
                item_indent = None
                dublin_indent = None
                continue

            if section == "dublin_core":
                if dublin_indent is None:
                    dublin_indent = indent
                if indent == dublin_indent and stripped.startswith("identifier:"):
                    manifest.identifier = _unquote(stripped.split(":", 1)[1])
                continue

            if section != "projects":
                continue

            if stripped.startswith("- ") or stripped == "-":
                if item_indent is None:
                    item_indent = indent
                if indent == item_indent:
                    if current is not None:
                        projects.append(current)
                    current = {}
                    stripped = stripped[1:].strip()
                    if not stripped:
                        continue
                elif current is not None:
                    continue

            if current is None or ":" not in stripped:
                continue
            key, _, value = stripped.partition(":")
            key = key.strip()
            value = _unquote(value)
            if value and key not in current:
                current[key] = value

        if current is not None:
            projects.append(current)

        for fields in projects:
            project = _project_from_fields(fields)
            if project is not None:
                manifest.projects.append(project)
        return manifest


class YamlManifestParser:
    """Full YAML parse via ``yaml.safe_load``."""

    def parse(self, content: str) -> Manifest:
        try:
            data = yaml.safe_load(content)
        except yaml.YAMLError as e:
            raise ParseError(f"Invalid manifest YAML: {e}") from e
        if data is None:
            return Manifest()
        if not isinstance(data, dict):
            raise ParseError(f"Manifest root is {type(data).__name__}, expected mapping")

        dublin_core = data.get("dublin_core") or {}
        identifier = dublin_core.get("identifier", "") if isinstance(dublin_core, dict) else ""
        manifest = Manifest(identifier=str(identifier or ""))
        for entry in data.get("projects") or []:
            if not isinstance(entry, dict):
                continue
            project = _project_from_fields(entry)
            if project is not None:
                manifest.projects.append(project)
        return manifest


class ManifestLoader:
    """Fetches and parses manifests, one cached per repository."""

    def __init__(
        self,
        fetcher: RawContentFetcher,
        parser: ManifestParser | None = None,
        cache: TTLCache[str, Manifest] | None = None,
    ):
        self.fetcher = fetcher
        self.parser = parser or LineManifestParser()
        self.cache: TTLCache[str, Manifest] = cache if cache is not None else TTLCache()

    async def load(self, repository: Repository) -> Manifest:
        """Return the repository's manifest.

        Raises:
            NotFoundError: No manifest filename exists on any ref
            ExhaustedRetriesError: Fetching kept failing
            ParseError: The parser rejected the content
        """
        cached = self.cache.get(repository.full_name)
        if cached is not None:
            logger.debug(f"Using cached manifest for {repository.full_name}")
            return cached

        async def fetch(filename: str) -> str:
            return await self.fetcher.fetch(repository, filename)

        outcome = await first_success(
            MANIFEST_FILENAMES, fetch, description=f"{repository.full_name} manifest"
        )
        if not outcome.succeeded:
            logger.warning(
                f"No manifest for {repository.full_name}: {outcome.describe_failures()}"
            )
            outcome.raise_for_failure(f"Manifest for {repository.full_name}")

        manifest = self.parser.parse(outcome.value or "")
        logger.debug(
            f"Parsed {outcome.candidate} for {repository.full_name}: "
            f"{len(manifest.projects)} projects"
        )
        self.cache.set(repository.full_name, manifest)
        return manifest
