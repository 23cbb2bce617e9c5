"""Raw Content Fetcher: file text with ref fallback.

Refs are tried in order: the repository's release tag or branch hint, its
default branch, then literal ``master`` and ``main``. Each ref has its own
retry budget. The contents endpoint returns JSON with base64 file content.
"""

from __future__ import annotations

import base64
import binascii
import logging
from typing import TYPE_CHECKING

from bookpackage.config import Settings
from bookpackage.errors import NotFoundError, ParseError
from bookpackage.ingest.client import Door43Client
from bookpackage.ingest.retry import first_success

if TYPE_CHECKING:
    from bookpackage.sources.catalog import Repository

logger = logging.getLogger(__name__)


def decode_content(payload: dict) -> str:
    """Decode a contents-endpoint payload into text."""
    content = payload.get("content")
    if not isinstance(content, str):
        raise ParseError("Contents response has no 'content' field")
    encoding = payload.get("encoding", "base64")
    if encoding != "base64":
        return content
    try:
        return base64.b64decode(content).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError) as e:
        raise ParseError(f"Undecodable file content: {e}") from e


class RawContentFetcher:
    """Fetches file content from a repository, trying refs in priority order."""

    def __init__(self, client: Door43Client, settings: Settings | None = None):
        self.client = client
        self.settings = settings or client.settings

    async def fetch_at_ref(self, repository: Repository, path: str, ref: str) -> str:
        url = self.settings.contents_url(repository.full_name, path)
        payload = await self.client.get_json(url, params={"ref": ref})
        if payload is None:
            raise NotFoundError(f"{repository.full_name}/{path}@{ref}")
        if not isinstance(payload, dict):
            # A directory listing comes back as an array
            raise NotFoundError(f"{repository.full_name}/{path}@{ref} is not a file")
        return decode_content(payload)

    async def fetch(self, repository: Repository, path: str) -> str:
        """Return the text of ``path``.

        Raises:
            NotFoundError: When every ref reports the file absent
            ExhaustedRetriesError: When at least one ref failed by retry
                exhaustion and none succeeded
        """

        async def at_ref(ref: str) -> str:
            return await self.fetch_at_ref(repository, path, ref)

        outcome = await first_success(
            repository.refs, at_ref, description=f"{repository.full_name}/{path} ref"
        )
        if outcome.succeeded:
            logger.debug(
                f"Fetched {repository.full_name}/{path} at ref {outcome.candidate}"
            )
            return outcome.value  # type: ignore[return-value]

        logger.warning(
            f"Could not fetch {repository.full_name}/{path}: "
            f"{outcome.describe_failures()}"
        )
        outcome.raise_for_failure(f"{repository.full_name}/{path}")
        raise AssertionError("unreachable")
