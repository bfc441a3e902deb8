"""Core types shared by every pipeline stage: errors, models, cancellation."""

from learnforge.core.cancellation import CancellationToken, ensure_token
from learnforge.core.errors import (
    FATAL_ERROR_CODES,
    ContextLengthExceeded,
    EmptyResponse,
    GenerationCancelled,
    GenerationError,
    InvalidCredentials,
    InvalidRequest,
    NoItemsGenerated,
    ProviderError,
    RateLimitExceeded,
    SchemaValidationFailed,
    ServiceUnavailable,
    UnrecoverableJSON,
)
from learnforge.core.models import (
    ChunkPlan,
    Flashcard,
    GeneratedItem,
    GenerationRequest,
    ItemKind,
    PlannedChunk,
    QuestionType,
    QuizQuestion,
    RawCompletion,
)

__all__ = [
    "CancellationToken",
    "ensure_token",
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
    "ChunkPlan",
    "PlannedChunk",
    "RawCompletion",
    "GenerationRequest",
    "ItemKind",
    "QuestionType",
    "Flashcard",
    "QuizQuestion",
    "GeneratedItem",
]
