"""Repository records from the Door43 catalog and repos APIs.

Both endpoints describe a repository with the same fields:

    name, owner.login, full_name, default_branch, branch_or_tag_name,
    subject, stage, updated_at

Responses are parsed into ``Repository`` at the API boundary. Entries missing
a name or owner raise InvalidRecordError rather than travelling downstream.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from bookpackage.errors import InvalidRecordError

logger = logging.getLogger(__name__)

DEFAULT_BRANCH = "master"
FALLBACK_REFS = ("master", "main")


@dataclass(frozen=True)
class Repository:
    """A content repository backing one resource id.

    Required fields:
        name: Repository name (``en_ult``)
        owner: Organization login (``unfoldingWord``)

    Optional fields:
        full_name: ``owner/name``; derived when absent
        default_branch: Falls back to the tag hint, then ``master``
        tag_or_branch_hint: Release tag or branch from the catalog
    """

    name: str
    owner: str
    full_name: str = ""
    default_branch: str = DEFAULT_BRANCH
    tag_or_branch_hint: str = DEFAULT_BRANCH
    subject: str = ""
    stage: str = ""
    updated_at: str = ""

    @property
    def refs(self) -> list[str]:
        """Refs to try for file content, in priority order, without repeats."""
        ordered: list[str] = []
        for ref in (self.tag_or_branch_hint, self.default_branch, *FALLBACK_REFS):
            if ref and ref not in ordered:
                ordered.append(ref)
        return ordered

    @property
    def url(self) -> str:
        return self.full_name

    @classmethod
    def from_catalog(cls, data: Any) -> "Repository":
        """Create Repository from a catalog or repos API entry."""
        if not isinstance(data, dict):
            raise InvalidRecordError(
                f"Expected an object, got {type(data).__name__}", "repository"
            )

        name = data.get("name")
        if not isinstance(name, str) or not name:
            raise InvalidRecordError("Missing required field: name", "repository")

        owner_field = data.get("owner")
        if isinstance(owner_field, dict):
            owner = owner_field.get("login") or owner_field.get("username") or ""
        elif isinstance(owner_field, str):
            owner = owner_field
        else:
            owner = ""
        full_name = data.get("full_name") or ""
        if not owner and "/" in full_name:
            owner = full_name.split("/", 1)[0]
        if not owner:
            raise InvalidRecordError(f"Missing owner for {name}", "repository")

        hint = data.get("branch_or_tag_name") or ""
        default_branch = data.get("default_branch") or hint or DEFAULT_BRANCH

        return cls(
            name=name,
            owner=owner,
            full_name=full_name or f"{owner}/{name}",
            default_branch=default_branch,
            tag_or_branch_hint=hint or default_branch,
            subject=str(data.get("subject") or ""),
            stage=str(data.get("stage") or ""),
            updated_at=str(data.get("updated_at") or data.get("released") or ""),
        )


def parse_catalog_response(payload: Any) -> list[Repository]:
    """Repositories from a catalog search response.

    The search endpoint wraps results as ``{"ok": true, "data": [...]}``; a
    bare list is accepted too. Invalid entries are skipped with a warning.
    """
    if isinstance(payload, dict):
        entries = payload.get("data")
    else:
        entries = payload
    if not isinstance(entries, list):
        raise InvalidRecordError("Catalog response has no result list", "catalog")

    repositories = []
    for entry in entries:
        try:
            repositories.append(Repository.from_catalog(entry))
        except InvalidRecordError as e:
            logger.warning(f"Skipping catalog entry: {e}")
    return repositories
