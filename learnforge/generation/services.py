"""
Flashcard and quiz generation services.

Thin, kind-specific facades over GenerationOrchestrator for the calling
document/flashcard/quiz services:

    generator = FlashcardGenerator.from_settings(get_settings())
    cards = await generator.generate(text, count=10, difficulty="mixed")
    await generator.close()
"""
from __future__ import annotations

from typing import Any, Iterable, Optional, Sequence, Union

from loguru import logger

from learnforge.config import Settings, get_settings
from learnforge.core.cancellation import CancellationToken
from learnforge.core.errors import SchemaValidationFailed
from learnforge.core.models import (
    ALL_QUESTION_TYPES,
    DIFFICULTY_LEVELS,
    Flashcard,
    FlashcardDraft,
    GenerationRequest,
    ItemKind,
    QuestionType,
    QuizQuestion,
)
from learnforge.generation.gateway import DEFAULT_TEMPERATURE, CompletionGateway, CompletionOptions
from learnforge.generation.orchestrator import GenerationOrchestrator, GenerationResult
from learnforge.generation.prompts import (
    FLASHCARD_SYSTEM_PROMPT,
    build_single_flashcard_prompt,
    flashcards_to_content,
    schema_description,
)
from learnforge.integrations import build_provider


class _GeneratorBase:
    """Shared wiring: one gateway (and rate limiter) per generator."""

    def __init__(self, orchestrator: GenerationOrchestrator):
        self.orchestrator = orchestrator
        self.gateway = orchestrator.gateway
        self.settings = orchestrator.settings

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None):
        """Build a generator talking to the configured provider."""
        settings = settings or get_settings()
        gateway = CompletionGateway(build_provider(settings), settings)
        return cls(GenerationOrchestrator(gateway, settings))

    async def close(self) -> None:
        await self.gateway.close()


class FlashcardGenerator(_GeneratorBase):
    """Generate question/answer flashcards from source text."""

    async def generate(
        self,
        content: str,
        count: int,
        difficulty: str = "mixed",
        focus_areas: Sequence[str] = (),
        token: Optional[CancellationToken] = None,
    ) -> list[Flashcard]:
        request = GenerationRequest(
            source_text=content,
            desired_count=count,
            difficulty=difficulty,
            item_kind=ItemKind.FLASHCARD,
            focus_areas=tuple(focus_areas),
        )
        return await self.orchestrator.generate(request, token)

    async def generate_single(
        self,
        content: str,
        concept: str,
        difficulty: str = "medium",
        token: Optional[CancellationToken] = None,
    ) -> Flashcard:
        """
        Generate one flashcard focused on `concept`.

        Raises:
            ValueError: empty content/concept or unknown difficulty
            SchemaValidationFailed: the response held no valid flashcard
        """
        if not content or not content.strip():
            raise ValueError("Content is required for flashcard generation")
        if not concept or not concept.strip():
            raise ValueError("concept is required")
        if difficulty not in DIFFICULTY_LEVELS:
            raise ValueError(f"Unknown difficulty: {difficulty!r}")

        decoded = await self.gateway.complete_structured(
            build_single_flashcard_prompt(content, concept.strip(), difficulty),
            schema_description(ItemKind.FLASHCARD, wrapper="flashcard"),
            CompletionOptions(temperature=DEFAULT_TEMPERATURE),
            token=token,
            system_prompt=FLASHCARD_SYSTEM_PROMPT,
        )

        payload = decoded.get("flashcard", decoded) if isinstance(decoded, dict) else decoded
        collection = self.orchestrator.normalizer.normalize(payload, ItemKind.FLASHCARD)
        outcome = self.orchestrator.validator.validate(collection.items[:1])
        if not outcome.items:
            raise SchemaValidationFailed(reasons=outcome.rejections or ["response contained no flashcard"])
        return outcome.items[0]

    def validate(self, flashcards: Iterable[Union[Flashcard, dict[str, Any]]]) -> list[Flashcard]:
        """Keep only the flashcards that pass the validation rules."""
        drafts = []
        for card in flashcards:
            if isinstance(card, Flashcard):
                drafts.append(
                    FlashcardDraft(
                        question=card.question,
                        answer=card.answer,
                        explanation=card.explanation,
                        difficulty=card.difficulty,
                        tags=card.tags,
                    )
                )
            elif isinstance(card, dict):
                drafts.append(self.orchestrator.normalizer.normalize_flashcard(card))
            else:
                logger.warning(f"Skipping invalid flashcard of type {type(card).__name__}")

        outcome = self.orchestrator.validator.validate(drafts)
        for reason in outcome.rejections:
            logger.warning(f"Skipping invalid flashcard: {reason}")
        return outcome.items


class QuizGenerator(_GeneratorBase):
    """Generate quiz questions from source text or existing flashcards."""

    def _request(
        self,
        content: str,
        count: int,
        difficulty: str,
        question_types: Sequence[Union[QuestionType, str]],
        focus_areas: Sequence[str],
    ) -> GenerationRequest:
        return GenerationRequest(
            source_text=content,
            desired_count=count,
            difficulty=difficulty,
            item_kind=ItemKind.QUIZ_QUESTION,
            focus_areas=tuple(focus_areas),
            question_types=tuple(QuestionType(t) for t in question_types),
        )

    async def generate(
        self,
        content: str,
        count: int,
        difficulty: str = "mixed",
        question_types: Sequence[Union[QuestionType, str]] = ALL_QUESTION_TYPES,
        focus_areas: Sequence[str] = (),
        token: Optional[CancellationToken] = None,
    ) -> list[QuizQuestion]:
        request = self._request(content, count, difficulty, question_types, focus_areas)
        return await self.orchestrator.generate(request, token)

    async def generate_with_report(
        self,
        content: str,
        count: int,
        difficulty: str = "mixed",
        question_types: Sequence[Union[QuestionType, str]] = ALL_QUESTION_TYPES,
        focus_areas: Sequence[str] = (),
        token: Optional[CancellationToken] = None,
    ) -> GenerationResult:
        """Like generate(), also returning quiz metadata and per-chunk outcomes."""
        request = self._request(content, count, difficulty, question_types, focus_areas)
        return await self.orchestrator.generate_with_report(request, token)

    async def generate_from_flashcards(
        self,
        flashcards: Iterable[Flashcard],
        count: int,
        difficulty: str = "mixed",
        question_types: Sequence[Union[QuestionType, str]] = ALL_QUESTION_TYPES,
        token: Optional[CancellationToken] = None,
    ) -> list[QuizQuestion]:
        """Turn existing flashcards into quiz questions."""
        content = flashcards_to_content(flashcards)
        if not content:
            raise ValueError("At least one flashcard is required")
        request = self._request(content, count, difficulty, question_types, ())
        return await self.orchestrator.generate(request, token)
