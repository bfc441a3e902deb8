"""
learnforge - resilient structured generation of flashcards and quiz questions.

Turns long-form source text into validated learning items through a
generative-text provider: chunking within the context budget, rate-limited
retrying requests, JSON recovery, normalization, validation and deduplication.
"""

__version__ = "1.0.0"

from learnforge.config import Settings, get_settings
from learnforge.core import CancellationToken, GenerationError, GenerationRequest, ItemKind
from learnforge.generation import FlashcardGenerator, GenerationOrchestrator, QuizGenerator

__all__ = [
    "Settings",
    "get_settings",
    "CancellationToken",
    "GenerationError",
    "GenerationRequest",
    "ItemKind",
    "GenerationOrchestrator",
    "FlashcardGenerator",
    "QuizGenerator",
]
