"""
Item validation against the learning-item schema.

Invalid drafts are dropped with a reason; a batch only fails (at the
orchestrator) when nothing survives.
"""
from __future__ import annotations

from typing import Iterable, NamedTuple, Optional, Union

from loguru import logger
from pydantic import ValidationError

from learnforge.config import Settings, get_settings
from learnforge.core.models import (
    ALL_QUESTION_TYPES,
    Flashcard,
    FlashcardDraft,
    ItemDraft,
    QuestionType,
    QuizQuestion,
    QuizQuestionDraft,
)

ValidItem = Union[Flashcard, QuizQuestion]


class ValidationOutcome(NamedTuple):
    """Valid items and the reasons the others were rejected."""
    items: list[ValidItem]
    rejections: list[str]


class ItemValidator:
    """
    Apply field-length, option-count and answer-index rules.

    Rules:
        flashcard: question and answer within their configured length ranges
        quiz: question long enough; options within range and non-empty;
              correct_answer_index inside options; true_false has exactly 2
              options; multiple_choice has at least quiz_mcq_min_options;
              points within range; question type among the allowed ones
    """

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()

    def validate(
        self,
        drafts: Iterable[ItemDraft],
        allowed_types: Iterable[QuestionType] = ALL_QUESTION_TYPES,
    ) -> ValidationOutcome:
        """Split drafts into validated items and rejection reasons."""
        allowed = {QuestionType(t) for t in allowed_types}
        items: list[ValidItem] = []
        rejections: list[str] = []

        for position, draft in enumerate(drafts, start=1):
            if isinstance(draft, FlashcardDraft):
                item, reason = self._flashcard(draft)
            else:
                item, reason = self._quiz_question(draft, allowed)

            if item is None:
                message = f"item {position}: {reason}"
                logger.debug(f"Rejected {message}")
                rejections.append(message)
            else:
                items.append(item)

        return ValidationOutcome(items, rejections)

    def _flashcard(self, draft: FlashcardDraft) -> tuple[Optional[Flashcard], str]:
        s = self.settings
        question = draft.question.strip()
        answer = draft.answer.strip()

        if not question or not answer:
            return None, "missing question or answer"
        if len(question) < s.flashcard_question_min_chars:
            return None, f"question shorter than {s.flashcard_question_min_chars} chars"
        if len(question) > s.flashcard_question_max_chars:
            return None, f"question longer than {s.flashcard_question_max_chars} chars"
        if len(answer) < s.flashcard_answer_min_chars:
            return None, f"answer shorter than {s.flashcard_answer_min_chars} chars"
        if len(answer) > s.flashcard_answer_max_chars:
            return None, f"answer longer than {s.flashcard_answer_max_chars} chars"

        try:
            return Flashcard(
                question=question,
                answer=answer,
                explanation=draft.explanation,
                difficulty=draft.difficulty,
                tags=draft.tags,
            ), ""
        except ValidationError as e:
            return None, _first_error(e)

    def _quiz_question(
        self,
        draft: QuizQuestionDraft,
        allowed: set[QuestionType],
    ) -> tuple[Optional[QuizQuestion], str]:
        s = self.settings
        question = draft.question.strip()
        options = tuple(option.strip() for option in draft.options)

        try:
            question_type = QuestionType(draft.question_type)
        except ValueError:
            return None, f"unknown question type {draft.question_type!r}"

        if len(question) < s.quiz_question_min_chars:
            return None, f"question shorter than {s.quiz_question_min_chars} chars"
        if question_type not in allowed:
            return None, f"question type {question_type.value} not requested"
        if not s.quiz_min_options <= len(options) <= s.quiz_max_options:
            return None, f"{len(options)} options (expected {s.quiz_min_options}-{s.quiz_max_options})"
        if any(not option for option in options):
            return None, "empty option"
        if question_type is QuestionType.TRUE_FALSE and len(options) != 2:
            return None, f"true_false question with {len(options)} options"
        if question_type is QuestionType.MULTIPLE_CHOICE and len(options) < s.quiz_mcq_min_options:
            return None, f"multiple_choice question with fewer than {s.quiz_mcq_min_options} options"
        if not 0 <= draft.correct_answer_index < len(options):
            return None, f"correct answer index {draft.correct_answer_index} out of range"
        if not s.quiz_min_points <= draft.points <= s.quiz_max_points:
            return None, f"points {draft.points} out of range"

        try:
            return QuizQuestion(
                question=question,
                options=options,
                correct_answer_index=draft.correct_answer_index,
                explanation=draft.explanation,
                difficulty=draft.difficulty,
                tags=draft.tags,
                question_type=question_type,
                points=draft.points,
            ), ""
        except ValidationError as e:
            return None, _first_error(e)


def _first_error(error: ValidationError) -> str:
    details = error.errors()
    if not details:
        return "schema validation failed"
    first = details[0]
    location = ".".join(str(part) for part in first.get("loc", ()))
    return f"{location}: {first.get('msg', 'invalid')}"
