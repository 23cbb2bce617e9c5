"""Book package assembly and on-demand article loading.

Public API:
    BookPackageAssembler.assemble(request) -> BookTranslationPackage
    OnDemandLoader.fetch(request) -> OnDemandResource | None
"""

from bookpackage.package.assembler import (
    PROCESSORS,
    BookPackageAssembler,
    process_content,
)
from bookpackage.package.models import (
    BookPackageRequest,
    BookTranslationPackage,
    OnDemandRequest,
    OnDemandResource,
    OnDemandType,
    RepositoryInfo,
    ResourceSlot,
)
from bookpackage.package.ondemand import OnDemandLoader, academy_paths, word_paths

__all__ = [
    # Models
    "BookPackageRequest",
    "BookTranslationPackage",
    "ResourceSlot",
    "RepositoryInfo",
    "OnDemandType",
    "OnDemandRequest",
    "OnDemandResource",
    # Assembly
    "BookPackageAssembler",
    "PROCESSORS",
    "process_content",
    # On demand
    "OnDemandLoader",
    "academy_paths",
    "word_paths",
]
