"""
Error taxonomy for the structured-generation pipeline.

Every failure that can leave the pipeline is a GenerationError with a stable
string code. The generic retry wrapper consults `fatal`; the orchestrator
consults `structural` to decide on the stricter-prompt retry.
"""
from __future__ import annotations

# Error codes the retry wrapper must never retry.
FATAL_ERROR_CODES = frozenset(
    {
        "INVALID_API_KEY",
        "CONTEXT_LENGTH_EXCEEDED",
        "INVALID_REQUEST",
    }
)


class GenerationError(Exception):
    """Base class for all pipeline failures."""

    code: str = "GENERATION_ERROR"
    structural: bool = False

    def __init__(self, message: str = "", code: str | None = None):
        super().__init__(message or self.__class__.__name__)
        if code is not None:
            self.code = code

    @property
    def fatal(self) -> bool:
        return self.code in FATAL_ERROR_CODES

    @property
    def message(self) -> str:
        return str(self)


# =============================================================================
# Provider / transport errors
# =============================================================================

class RateLimitExceeded(GenerationError):
    """Local limiter or provider 429."""

    code = "RATE_LIMIT_EXCEEDED"

    def __init__(self, message: str = "", retry_after_seconds: int = 60):
        super().__init__(message or f"Rate limit exceeded. Try again in {retry_after_seconds} seconds.")
        self.retry_after_seconds = retry_after_seconds


class ContextLengthExceeded(GenerationError):
    code = "CONTEXT_LENGTH_EXCEEDED"

    def __init__(self, input_tokens: int, max_input_tokens: int):
        super().__init__(
            f"Input too large. Maximum context length exceeded. "
            f"({input_tokens}/{max_input_tokens} tokens)"
        )
        self.input_tokens = input_tokens
        self.max_input_tokens = max_input_tokens


class InvalidCredentials(GenerationError):
    code = "INVALID_API_KEY"


class InvalidRequest(GenerationError):
    code = "INVALID_REQUEST"


class ServiceUnavailable(GenerationError):
    code = "SERVICE_UNAVAILABLE"


class EmptyResponse(GenerationError):
    code = "EMPTY_RESPONSE"


class ProviderError(GenerationError):
    """Any other provider failure (unexpected status, timeout, network error)."""

    code = "API_ERROR"

    def __init__(self, message: str = "", status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


# =============================================================================
# Structural errors (retried once with a stricter prompt)
# =============================================================================

class UnrecoverableJSON(GenerationError):
    code = "INVALID_JSON_RESPONSE"
    structural = True

    def __init__(self, message: str = "", raw_text: str = ""):
        super().__init__(message or "Failed to parse AI response as JSON")
        self.raw_text = raw_text


class SchemaValidationFailed(GenerationError):
    code = "SCHEMA_VALIDATION_FAILED"
    structural = True

    def __init__(self, message: str = "", reasons: list[str] | None = None):
        self.reasons = list(reasons or [])
        if not message:
            message = "No generated item passed validation"
            if self.reasons:
                message += f": {'; '.join(self.reasons[:5])}"
        super().__init__(message)


# =============================================================================
# Orchestration errors
# =============================================================================

class NoItemsGenerated(GenerationError):
    """Every chunk of a multi-chunk run failed."""

    code = "NO_ITEMS_GENERATED"

    def __init__(self, message: str = "", chunk_errors: list[GenerationError] | None = None):
        self.chunk_errors = list(chunk_errors or [])
        super().__init__(message or f"No items could be generated from any of {len(self.chunk_errors)} chunks")


class GenerationCancelled(GenerationError):
    """Cancellation token fired or the caller's deadline passed."""

    code = "CANCELLED"


__all__ = [
    "FATAL_ERROR_CODES",
    "GenerationError",
    "RateLimitExceeded",
    "ContextLengthExceeded",
    "InvalidCredentials",
    "InvalidRequest",
    "ServiceUnavailable",
    "EmptyResponse",
    "ProviderError",
    "UnrecoverableJSON",
    "SchemaValidationFailed",
    "NoItemsGenerated",
    "GenerationCancelled",
]
