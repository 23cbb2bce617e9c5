"""Repository discovery, manifests and book file location.

Public API:
    RepositoryResolver.resolve(resource_id, organization, language) -> Repository
    ManifestLoader.load(repository) -> Manifest
    BookFileLocator.locate(repository, manifest, book, config) -> str
"""

from bookpackage.sources.catalog import Repository, parse_catalog_response
from bookpackage.sources.locator import BookFileLocator
from bookpackage.sources.manifest import (
    MANIFEST_FILENAMES,
    LineManifestParser,
    Manifest,
    ManifestLoader,
    ManifestParser,
    ManifestProject,
    YamlManifestParser,
)
from bookpackage.sources.resolver import RepositoryResolver, repository_name

__all__ = [
    # Catalog records
    "Repository",
    "parse_catalog_response",
    # Resolution
    "RepositoryResolver",
    "repository_name",
    # Manifests
    "MANIFEST_FILENAMES",
    "Manifest",
    "ManifestProject",
    "ManifestParser",
    "LineManifestParser",
    "YamlManifestParser",
    "ManifestLoader",
    # Files
    "BookFileLocator",
]
