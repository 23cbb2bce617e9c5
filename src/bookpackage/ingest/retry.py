"""Retry with exponential backoff, and first-success over ordered candidates.

Resolution tries many things in order (resource ids, refs, filenames,
manifest names). ``first_success`` is the one loop behind all of them: it
returns the first value an attempt produces and records why every earlier
candidate failed.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Generic, Iterable, TypeVar

from bookpackage.errors import (
    Door43Error,
    ExhaustedRetriesError,
    NotFoundError,
    RateLimitedError,
    TransientNetworkError,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")
C = TypeVar("C")

Sleep = Callable[[float], Awaitable[None]]


@dataclass(frozen=True)
class RetryPolicy:
    """Attempt ceilings and backoff base for one request.

    Transient failures consume ``max_attempts``. Rate-limit responses are
    retried even once that budget is spent, up to ``rate_limit_ceiling``.
    """

    max_attempts: int = 3
    base_delay: float = 1.0
    rate_limit_ceiling: int = 5

    def delay(self, attempt: int) -> float:
        """Backoff before the retry that follows 1-based ``attempt``."""
        return self.base_delay * (2**attempt)


async def retry_with_backoff(
    operation: Callable[[], Awaitable[T]],
    policy: RetryPolicy,
    description: str,
    sleep: Sleep = asyncio.sleep,
) -> T:
    """Run ``operation`` until it succeeds or the policy gives up.

    Args:
        operation: Coroutine factory; raises RateLimitedError or
            TransientNetworkError for retryable failures
        policy: Attempt ceilings and backoff base
        description: Target named in log messages and the final error
        sleep: Awaitable sleep, injectable for tests

    Raises:
        ExhaustedRetriesError: When either ceiling is reached
    """
    attempt = 0
    transient_failures = 0
    rate_limited = 0

    while True:
        attempt += 1
        try:
            return await operation()
        except RateLimitedError as e:
            rate_limited += 1
            if rate_limited > policy.rate_limit_ceiling:
                raise ExhaustedRetriesError(description, attempt, e) from e
            delay = policy.delay(attempt)
            logger.warning(
                f"Rate limited on {description}, retrying in {delay:.1f}s "
                f"(rate-limit retry {rate_limited}/{policy.rate_limit_ceiling})"
            )
        except TransientNetworkError as e:
            transient_failures += 1
            if transient_failures >= policy.max_attempts:
                raise ExhaustedRetriesError(description, attempt, e) from e
            delay = policy.delay(attempt)
            logger.warning(
                f"Attempt {transient_failures}/{policy.max_attempts} failed for "
                f"{description}: {e.reason}; retrying in {delay:.1f}s"
            )
        await sleep(delay)


@dataclass(frozen=True)
class CandidateFailure(Generic[C]):
    """Why one candidate did not produce a value."""

    candidate: C
    error: Exception

    @property
    def reason(self) -> str:
        return f"{type(self.error).__name__}: {self.error}"

    @property
    def is_not_found(self) -> bool:
        return isinstance(self.error, NotFoundError)


@dataclass
class Outcome(Generic[C, T]):
    """Result of ``first_success``: the winner, or every failure reason."""

    value: T | None = None
    candidate: C | None = None
    failures: list[CandidateFailure[C]] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return self.candidate is not None

    @property
    def all_not_found(self) -> bool:
        """True when every failure was an expected absence."""
        return all(f.is_not_found for f in self.failures)

    def describe_failures(self) -> str:
        return "; ".join(f"{f.candidate}: {f.reason}" for f in self.failures)

    def raise_for_failure(self, what: str) -> None:
        """Raise NotFoundError or ExhaustedRetriesError if nothing succeeded.

        NotFoundError when every candidate was absent; otherwise the last
        ExhaustedRetriesError, so callers can tell absence from outage.
        """
        if self.succeeded:
            return
        attempted = [str(f.candidate) for f in self.failures]
        if self.all_not_found:
            raise NotFoundError(what, attempted)
        exhausted = [
            f.error for f in self.failures if isinstance(f.error, ExhaustedRetriesError)
        ]
        last = exhausted[-1] if exhausted else self.failures[-1].error
        attempts = sum(
            e.attempts for e in exhausted
        ) or len(self.failures)
        raise ExhaustedRetriesError(what, attempts, last, refs=attempted)


async def first_success(
    candidates: Iterable[C],
    attempt: Callable[[C], Awaitable[T]],
    description: str = "candidate",
    advance_on: tuple[type[BaseException], ...] = (Door43Error,),
) -> Outcome[C, T]:
    """Try candidates sequentially and return the first success.

    Each candidate gets its own attempt (and so its own retry budget). Errors
    listed in ``advance_on`` move on to the next candidate; anything else
    propagates.
    """
    outcome: Outcome[C, T] = Outcome()
    for candidate in candidates:
        try:
            value = await attempt(candidate)
        except advance_on as e:
            logger.info(f"{description} {candidate!r} failed: {e}")
            outcome.failures.append(CandidateFailure(candidate, e))
            continue
        outcome.value = value
        outcome.candidate = candidate
        return outcome
    return outcome
