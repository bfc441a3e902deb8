"""
Resilient structured generation of learning items.

Pipeline per chunk:
    CompletionGateway -> JSONRecoveryParser -> ResponseNormalizer -> ItemValidator
then Deduplicator and truncation across chunks (GenerationOrchestrator).
"""

from learnforge.generation.dedupe import dedupe, question_key
from learnforge.generation.gateway import AttemptState, CompletionGateway, CompletionOptions
from learnforge.generation.json_recovery import JSONRecoveryParser
from learnforge.generation.normalizer import ResponseNormalizer
from learnforge.generation.orchestrator import ChunkResult, GenerationOrchestrator, GenerationResult
from learnforge.generation.rate_limiter import RateLimiter
from learnforge.generation.services import FlashcardGenerator, QuizGenerator
from learnforge.generation.validator import ItemValidator, ValidationOutcome

__all__ = [
    "AttemptState",
    "CompletionGateway",
    "CompletionOptions",
    "JSONRecoveryParser",
    "ResponseNormalizer",
    "ItemValidator",
    "ValidationOutcome",
    "RateLimiter",
    "dedupe",
    "question_key",
    "GenerationOrchestrator",
    "GenerationResult",
    "ChunkResult",
    "FlashcardGenerator",
    "QuizGenerator",
]
