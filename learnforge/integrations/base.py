"""
Provider contract and shared HTTP error mapping.

A provider performs exactly one request/response exchange and translates
transport outcomes into the pipeline's error taxonomy. Retries, rate limiting
and context checks live in the CompletionGateway, not here.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Protocol

import httpx

from learnforge.core.errors import (
    EmptyResponse,
    GenerationError,
    InvalidCredentials,
    InvalidRequest,
    ProviderError,
    RateLimitExceeded,
    ServiceUnavailable,
)
from learnforge.core.models import RawCompletion

DEFAULT_RETRY_AFTER_SECONDS = 60


@dataclass(frozen=True)
class ProviderRequest:
    """Payload accepted by every provider."""

    system_prompt: str
    user_prompt: str
    model: str
    max_output_tokens: int
    temperature: float


class CompletionProvider(Protocol):
    """Anything that can turn a ProviderRequest into a RawCompletion."""

    name: str

    async def create_completion(self, request: ProviderRequest) -> RawCompletion:
        ...

    async def close(self) -> None:
        ...


def parse_retry_after(response: httpx.Response) -> int:
    """Seconds from a retry-after header, falling back to the default."""
    value = response.headers.get("retry-after")
    if value is None:
        return DEFAULT_RETRY_AFTER_SECONDS
    try:
        return max(1, int(float(value)))
    except ValueError:
        return DEFAULT_RETRY_AFTER_SECONDS


def error_for_status(provider: str, response: httpx.Response) -> GenerationError:
    """Map a non-2xx response onto the error taxonomy."""
    status = response.status_code
    detail = response.text[:200]

    if status == 429:
        return RateLimitExceeded(
            f"{provider} API rate limit exceeded",
            retry_after_seconds=parse_retry_after(response),
        )
    if status == 401:
        return InvalidCredentials(f"Invalid {provider} API key")
    if status == 400:
        return InvalidRequest(f"Invalid request to {provider} API. Detail: {detail}")
    if status == 503:
        return ServiceUnavailable(f"{provider} API temporarily unavailable")
    return ProviderError(f"{provider} API error ({status}). Detail: {detail}", status_code=status)


def error_for_transport(provider: str, exc: httpx.HTTPError) -> GenerationError:
    """Map timeouts and connection failures onto the error taxonomy."""
    if isinstance(exc, httpx.TimeoutException):
        return ProviderError(f"{provider} API request timed out: {exc}")
    return ProviderError(f"{provider} API request failed: {exc}")


def require_content(provider: str, content: Any) -> str:
    """Reject missing or blank completion text."""
    if not isinstance(content, str) or not content.strip():
        raise EmptyResponse(f"No content generated from {provider} response")
    return content


def decode_body(provider: str, response: httpx.Response) -> dict[str, Any]:
    """
    Decode a success response that must be a JSON object.

    Raises:
        ProviderError: the body is not JSON, or is JSON but not an object
    """
    try:
        data = response.json()
    except ValueError as e:
        raise ProviderError(f"{provider} API returned a non-JSON body", status_code=response.status_code) from e
    if not isinstance(data, dict):
        raise ProviderError(
            f"{provider} API returned {type(data).__name__} instead of an object",
            status_code=response.status_code,
        )
    return data


def as_mapping(value: Any) -> dict[str, Any]:
    """The value itself when it is an object, otherwise an empty one."""
    return value if isinstance(value, dict) else {}


def token_count(value: Any) -> int:
    """A usage counter as int; anything that is not a number counts as 0."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0
    return max(0, int(value))
