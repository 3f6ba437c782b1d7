"""Retry-with-backoff wrapper for inference calls.

with_retries() runs an async callable under a tenacity policy: bounded
attempts, exponential backoff with jitter, and a predicate that separates
transient failures (retried) from fatal ones (raised on first occurrence).
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, TypeVar

import httpx
import tenacity

from agent_harness.llm.errors import LLMClientError

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_WAIT = tenacity.wait_exponential(multiplier=1, min=1, max=30) + tenacity.wait_random(0, 2)


def is_transient_error(exc: BaseException) -> bool:
    """True for transient model client errors (429, 5xx) and transport failures."""
    if isinstance(exc, LLMClientError):
        return exc.transient
    return isinstance(exc, httpx.TransportError)


async def with_retries(
    fn: Callable[..., Awaitable[T]],
    *args: Any,
    attempts: int = 3,
    wait: tenacity.wait.wait_base | None = None,
    is_transient: Callable[[BaseException], bool] = is_transient_error,
    **kwargs: Any,
) -> T:
    """Await ``fn(*args, **kwargs)``, retrying transient failures.

    Args:
        fn: Async callable to run.
        attempts: Total attempts, first try included.
        wait: tenacity wait strategy. Defaults to exponential backoff with jitter.
        is_transient: Predicate deciding whether an exception is retried.

    Raises:
        The last exception once attempts are exhausted, or the first
        non-transient exception immediately.
    """
    retryer = tenacity.AsyncRetrying(
        retry=tenacity.retry_if_exception(is_transient),
        wait=wait if wait is not None else DEFAULT_WAIT,
        stop=tenacity.stop_after_attempt(attempts),
        before_sleep=tenacity.before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )
    return await retryer(fn, *args, **kwargs)
