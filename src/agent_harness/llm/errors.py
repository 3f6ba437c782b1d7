"""Errors raised by model clients, and their mapping from HTTP status codes.

Each error class says whether the failure is transient. Transient errors
(rate limits, provider 5xx) are retried around inference; every other
error ends the tick on its first occurrence.
"""

from __future__ import annotations

import logging

from agent_harness.exceptions import HarnessError

logger = logging.getLogger(__name__)

AUTH_ERROR_STATUS_CODES = frozenset({401, 403})


class LLMClientError(HarnessError):
    """Base for all model client errors."""

    transient = False


class LLMConfigError(LLMClientError):
    """The model cannot be called as configured, e.g. its API key is unset."""


class LLMRateLimitError(LLMClientError):
    """The provider answered 429.

    Attributes:
        retry_after: Seconds from the ``Retry-After`` header, or None.
    """

    transient = True

    def __init__(self, message: str = "Rate limited", retry_after: float | None = None) -> None:
        self.retry_after = retry_after
        if retry_after is not None:
            message = f"{message} (retry after {retry_after}s)"
        super().__init__(message)


class LLMServerError(LLMClientError):
    """The provider answered with a 5xx status."""

    transient = True

    def __init__(self, status_code: int, message: str) -> None:
        self.status_code = status_code
        super().__init__(message)


class LLMAuthError(LLMClientError):
    """The provider rejected the API key (401/403)."""


class LLMResponseError(LLMClientError):
    """A 4xx rejection, or a reply that is not a chat completion."""


def parse_retry_after(value: str | None) -> float | None:
    """Seconds from a ``Retry-After`` header; HTTP-date values are ignored."""
    if value is None:
        return None
    try:
        return float(value)
    except ValueError:
        logger.debug("Ignoring non-numeric Retry-After header: %r", value)
        return None


def error_for_status(
    status: int,
    body: str,
    retry_after: str | None = None,
) -> LLMClientError | None:
    """The error for an HTTP response status, or None below 400."""
    if status < 400:
        return None
    if status in AUTH_ERROR_STATUS_CODES:
        return LLMAuthError(f"Authentication failed: HTTP {status} - {body}")
    if status == 429:
        return LLMRateLimitError(
            f"Rate limited: HTTP 429 - {body}",
            retry_after=parse_retry_after(retry_after),
        )
    if status >= 500:
        return LLMServerError(status, f"Server error: HTTP {status} - {body}")
    return LLMResponseError(f"Request rejected: HTTP {status} - {body}")
