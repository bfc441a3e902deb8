"""
Domain models for the structured-generation pipeline.

Request/plan/completion records are frozen dataclasses; the validated learning
items are frozen Pydantic models discriminated by `kind`, so callers can
serialize them with `model_dump()` and re-validate them at their own boundary.
"""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Annotated, Any, Iterator, Literal, Union

from pydantic import BaseModel, ConfigDict, Field


class ItemKind(str, Enum):
    """Kind of learning item to generate."""
    FLASHCARD = "flashcard"
    QUIZ_QUESTION = "quiz_question"


class QuestionType(str, Enum):
    """Quiz question formats."""
    MULTIPLE_CHOICE = "multiple_choice"
    TRUE_FALSE = "true_false"
    FILL_BLANK = "fill_blank"


Difficulty = Literal["easy", "medium", "hard"]
RequestedDifficulty = Literal["easy", "medium", "hard", "mixed"]

DIFFICULTY_LEVELS: tuple[str, ...] = ("easy", "medium", "hard")
ALL_QUESTION_TYPES: tuple[QuestionType, ...] = tuple(QuestionType)


# =============================================================================
# Request / Plan / Completion
# =============================================================================

@dataclass(frozen=True)
class GenerationRequest:
    """
    What the caller wants generated from a piece of source text.

    Attributes:
        source_text: Plain text produced by the document-parsing subsystem
        desired_count: Number of items wanted (>= 1)
        difficulty: A fixed level ("easy"/"medium"/"hard") or "mixed"
        item_kind: Flashcards or quiz questions
        focus_areas: Topics the prompt should emphasise, in priority order
        question_types: Quiz formats allowed (ignored for flashcards)
    """
    source_text: str
    desired_count: int
    difficulty: RequestedDifficulty = "mixed"
    item_kind: ItemKind = ItemKind.FLASHCARD
    focus_areas: tuple[str, ...] = ()
    question_types: tuple[QuestionType, ...] = ALL_QUESTION_TYPES

    def __post_init__(self):
        if not self.source_text or not self.source_text.strip():
            raise ValueError("source_text is required for generation")
        if isinstance(self.desired_count, bool) or not isinstance(self.desired_count, int):
            raise ValueError("desired_count must be an integer")
        if self.desired_count < 1:
            raise ValueError("desired_count must be at least 1")
        if self.difficulty not in (*DIFFICULTY_LEVELS, "mixed"):
            raise ValueError(f"Unknown difficulty: {self.difficulty!r}")

        # Accept plain strings/lists from callers, store canonical immutable values
        object.__setattr__(self, "item_kind", ItemKind(self.item_kind))
        object.__setattr__(
            self,
            "focus_areas",
            tuple(area.strip() for area in self.focus_areas if area and area.strip()),
        )
        types = tuple(QuestionType(t) for t in self.question_types)
        if not types:
            raise ValueError("question_types must not be empty")
        object.__setattr__(self, "question_types", types)

    @property
    def difficulty_policy(self) -> Literal["fixed-level", "mixed"]:
        return "mixed" if self.difficulty == "mixed" else "fixed-level"

    def with_count(self, count: int) -> GenerationRequest:
        """Copy of this request for a single chunk."""
        return replace(self, desired_count=count)

    def with_text(self, text: str) -> GenerationRequest:
        return replace(self, source_text=text)


@dataclass(frozen=True)
class PlannedChunk:
    """One entry of a ChunkPlan."""
    text: str
    item_count: int


@dataclass(frozen=True)
class ChunkPlan:
    """Ordered chunks with the number of items requested from each."""
    chunks: tuple[PlannedChunk, ...] = field(default_factory=tuple)

    def __iter__(self) -> Iterator[PlannedChunk]:
        return iter(self.chunks)

    def __len__(self) -> int:
        return len(self.chunks)

    @property
    def total_items(self) -> int:
        return sum(chunk.item_count for chunk in self.chunks)

    @property
    def distribution(self) -> list[int]:
        return [chunk.item_count for chunk in self.chunks]


@dataclass(frozen=True)
class RawCompletion:
    """Text returned by one provider call."""
    text: str
    tokens_used: int
    model: str


# =============================================================================
# Drafts (normalized, not yet validated)
# =============================================================================

@dataclass(frozen=True)
class FlashcardDraft:
    question: str
    answer: str
    explanation: str | None = None
    difficulty: str = "medium"
    tags: tuple[str, ...] = ()


@dataclass(frozen=True)
class QuizQuestionDraft:
    question: str
    options: tuple[str, ...]
    correct_answer_index: int
    explanation: str | None = None
    difficulty: str = "medium"
    tags: tuple[str, ...] = ()
    question_type: str = QuestionType.MULTIPLE_CHOICE.value
    points: int = 1


ItemDraft = Union[FlashcardDraft, QuizQuestionDraft]


@dataclass(frozen=True)
class CollectionMetadata:
    """Quiz-level metadata reported alongside the questions."""
    total_questions: int = 0
    estimated_time_minutes: int = 0
    difficulty: str = "medium"
    topics: tuple[str, ...] = ()


@dataclass(frozen=True)
class NormalizedCollection:
    """Canonical item-collection shape produced by the ResponseNormalizer."""
    kind: ItemKind
    items: tuple[ItemDraft, ...] = ()
    metadata: CollectionMetadata = field(default_factory=CollectionMetadata)
    dropped: int = 0  # entries that were not objects at all


# =============================================================================
# Generated items (validated)
# =============================================================================

class Flashcard(BaseModel):
    """A validated question/answer flashcard."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["flashcard"] = "flashcard"
    question: str
    answer: str
    explanation: str | None = None
    difficulty: Difficulty = "medium"
    tags: tuple[str, ...] = ()


class QuizQuestion(BaseModel):
    """
    A validated quiz question.

    Serialization aliases are the camelCase keys the prompts ask models for;
    model_dump() keeps the field names unless by_alias=True.
    """

    model_config = ConfigDict(frozen=True)

    kind: Literal["quiz_question"] = "quiz_question"
    question: str
    options: tuple[str, ...] = Field(min_length=2)
    correct_answer_index: int = Field(ge=0, serialization_alias="correctAnswer")
    explanation: str | None = None
    difficulty: Difficulty = "medium"
    tags: tuple[str, ...] = ()
    question_type: QuestionType = Field(default=QuestionType.MULTIPLE_CHOICE, serialization_alias="questionType")
    points: int = Field(default=1, ge=1)

    @property
    def correct_answer(self) -> str:
        return self.options[self.correct_answer_index]


GeneratedItem = Annotated[Union[Flashcard, QuizQuestion], Field(discriminator="kind")]


def item_to_dict(item: Flashcard | QuizQuestion) -> dict[str, Any]:
    """Serialize an item for the calling service (enums as plain strings)."""
    return item.model_dump(mode="json")


__all__ = [
    "ItemKind",
    "QuestionType",
    "Difficulty",
    "RequestedDifficulty",
    "DIFFICULTY_LEVELS",
    "ALL_QUESTION_TYPES",
    "GenerationRequest",
    "PlannedChunk",
    "ChunkPlan",
    "RawCompletion",
    "FlashcardDraft",
    "QuizQuestionDraft",
    "ItemDraft",
    "CollectionMetadata",
    "NormalizedCollection",
    "Flashcard",
    "QuizQuestion",
    "GeneratedItem",
    "item_to_dict",
]
