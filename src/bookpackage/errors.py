"""Error taxonomy for repository resolution and content fetching.

NotFoundError is an expected outcome that moves resolution on to the next
candidate. The network errors are retried by the HTTP client and only surface
as ExhaustedRetriesError once every attempt for one request has failed.
"""

from __future__ import annotations


class Door43Error(Exception):
    """Base class for all resolution and fetch errors."""

    pass


class NotFoundError(Door43Error):
    """Raised when a repository, manifest or file does not exist."""

    def __init__(self, message: str, attempted: list[str] | None = None):
        self.attempted = list(attempted or [])
        if self.attempted:
            message = f"{message} (tried: {', '.join(self.attempted)})"
        super().__init__(message)


class RateLimitedError(Door43Error):
    """Raised for an HTTP 429 response."""

    def __init__(self, url: str, retry_after: str | None = None):
        self.url = url
        self.retry_after = retry_after
        super().__init__(f"Rate limited: {url}")


class TransientNetworkError(Door43Error):
    """Raised for timeouts, connection failures and 5xx responses."""

    def __init__(self, url: str, reason: str):
        self.url = url
        self.reason = reason
        super().__init__(f"Transient failure for {url}: {reason}")


class ExhaustedRetriesError(Door43Error):
    """Raised after every retry (and, for file fetches, every ref) failed."""

    def __init__(
        self,
        url: str,
        attempts: int,
        last_error: Exception | None = None,
        refs: list[str] | None = None,
    ):
        self.url = url
        self.attempts = attempts
        self.last_error = last_error
        self.refs = list(refs or [])
        message = f"Gave up on {url} after {attempts} attempts"
        if self.refs:
            message += f" across refs {self.refs}"
        if last_error is not None:
            message += f": {last_error}"
        super().__init__(message)


class ParseError(Door43Error):
    """Raised when a manifest, table or article cannot be parsed."""

    pass


class InvalidRecordError(Door43Error):
    """Raised when an API response has the wrong shape for its record type."""

    def __init__(self, message: str, record_type: str | None = None):
        self.record_type = record_type
        full_message = f"[{record_type}] {message}" if record_type else message
        super().__init__(full_message)
