"""
Coerce decoded provider payloads into the canonical item-collection shape.

Models return items under different keys, with camelCase or snake_case field
names, answer indices as strings, and tags as a comma-separated string. The
normalizer maps all of that onto FlashcardDraft / QuizQuestionDraft with a
default for every field, so one malformed entry never discards its siblings.
Drafts are not validated here; the ItemValidator decides what survives.
"""
from __future__ import annotations

import re
from typing import Any, Optional

from loguru import logger

from learnforge.core.models import (
    DIFFICULTY_LEVELS,
    CollectionMetadata,
    FlashcardDraft,
    ItemDraft,
    ItemKind,
    NormalizedCollection,
    QuestionType,
    QuizQuestionDraft,
)

# Collection keys in lookup order
ITEM_KEYS = ("items", "flashcards", "questions", "quiz_questions", "cards")

QUESTION_KEYS = ("question", "front", "prompt", "q")
ANSWER_KEYS = ("answer", "back", "a")
OPTION_KEYS = ("options", "choices", "answers")
CORRECT_KEYS = (
    "correctAnswer",
    "correct_answer",
    "correctAnswerIndex",
    "correct_answer_index",
    "correct_index",
    "answer_index",
)
TYPE_KEYS = ("questionType", "question_type", "type")

QUESTION_TYPE_ALIASES = {
    "multiple_choice": QuestionType.MULTIPLE_CHOICE,
    "multiple-choice": QuestionType.MULTIPLE_CHOICE,
    "multiple choice": QuestionType.MULTIPLE_CHOICE,
    "multiplechoice": QuestionType.MULTIPLE_CHOICE,
    "mcq": QuestionType.MULTIPLE_CHOICE,
    "true_false": QuestionType.TRUE_FALSE,
    "true-false": QuestionType.TRUE_FALSE,
    "true/false": QuestionType.TRUE_FALSE,
    "truefalse": QuestionType.TRUE_FALSE,
    "boolean": QuestionType.TRUE_FALSE,
    "tf": QuestionType.TRUE_FALSE,
    "fill_blank": QuestionType.FILL_BLANK,
    "fill-blank": QuestionType.FILL_BLANK,
    "fill_in_the_blank": QuestionType.FILL_BLANK,
    "fill-in-the-blank": QuestionType.FILL_BLANK,
    "fill in the blank": QuestionType.FILL_BLANK,
    "cloze": QuestionType.FILL_BLANK,
}

MINUTES_PER_QUESTION = 2

_LETTER_INDEX = re.compile(r"^\(?([A-Fa-f])[).:]?$")


class ResponseNormalizer:
    """Map a decoded payload onto a NormalizedCollection."""

    def normalize(self, decoded: Any, kind: ItemKind) -> NormalizedCollection:
        """
        Normalize a decoded payload.

        Accepted shapes:
            - null / scalar          -> empty collection
            - bare array             -> the item list
            - object with items key  -> that list (non-list value -> empty)
            - object without one     -> treated as a single item if it looks like one
        """
        kind = ItemKind(kind)
        raw_items, container = self._extract_items(decoded)

        drafts: list[ItemDraft] = []
        dropped = 0
        for entry in raw_items:
            if not isinstance(entry, dict):
                dropped += 1
                continue
            if kind is ItemKind.FLASHCARD:
                drafts.append(self.normalize_flashcard(entry))
            else:
                drafts.append(self.normalize_quiz_question(entry))

        if dropped:
            logger.debug(f"Dropped {dropped} non-object entries from response")

        metadata = self._metadata(container, drafts, kind)
        return NormalizedCollection(kind=kind, items=tuple(drafts), metadata=metadata, dropped=dropped)

    # =========================================================================
    # Items
    # =========================================================================

    def normalize_flashcard(self, entry: dict[str, Any]) -> FlashcardDraft:
        return FlashcardDraft(
            question=_text(_first(entry, QUESTION_KEYS)),
            answer=_text(_first(entry, ANSWER_KEYS)),
            explanation=_optional_text(entry.get("explanation")),
            difficulty=_difficulty(entry.get("difficulty")),
            tags=_tags(entry.get("tags")),
        )

    def normalize_quiz_question(self, entry: dict[str, Any]) -> QuizQuestionDraft:
        options = _options(_first(entry, OPTION_KEYS))
        return QuizQuestionDraft(
            question=_text(_first(entry, QUESTION_KEYS)),
            options=options,
            correct_answer_index=_correct_index(_first(entry, CORRECT_KEYS), options),
            explanation=_optional_text(entry.get("explanation")),
            difficulty=_difficulty(entry.get("difficulty")),
            tags=_tags(entry.get("tags")),
            question_type=_question_type(_first(entry, TYPE_KEYS), options),
            points=_points(entry.get("points")),
        )

    # =========================================================================
    # Collection
    # =========================================================================

    @staticmethod
    def _extract_items(decoded: Any) -> tuple[list[Any], dict[str, Any]]:
        if isinstance(decoded, list):
            return decoded, {}
        if not isinstance(decoded, dict):
            return [], {}

        for key in ITEM_KEYS:
            if key in decoded:
                value = decoded[key]
                if isinstance(value, list):
                    return value, decoded
                logger.debug(f"Field {key!r} is {type(value).__name__}, not a list; treating as empty")
                return [], decoded

        # A single item returned without a wrapper
        if any(key in decoded for key in QUESTION_KEYS):
            return [decoded], {}
        return [], decoded

    @staticmethod
    def _metadata(container: dict[str, Any], drafts: list[ItemDraft], kind: ItemKind) -> CollectionMetadata:
        raw = container.get("metadata")
        raw = raw if isinstance(raw, dict) else {}
        count = len(drafts)

        topics = _tags(raw.get("topics"))
        if not topics:
            seen: dict[str, None] = {}
            for draft in drafts:
                for tag in draft.tags:
                    seen.setdefault(tag, None)
            topics = tuple(seen)

        minutes = count * MINUTES_PER_QUESTION if kind is ItemKind.QUIZ_QUESTION else 0
        difficulty = raw.get("difficulty")
        return CollectionMetadata(
            total_questions=count,
            estimated_time_minutes=minutes,
            difficulty=difficulty if difficulty in (*DIFFICULTY_LEVELS, "mixed") else "medium",
            topics=topics,
        )


# =============================================================================
# Field coercion
# =============================================================================

def _first(entry: dict[str, Any], keys: tuple[str, ...]) -> Any:
    for key in keys:
        if key in entry and entry[key] is not None:
            return entry[key]
    return None


def _text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, (str, int, float)) and not isinstance(value, bool):
        return str(value).strip()
    return ""


def _optional_text(value: Any) -> Optional[str]:
    text = _text(value)
    return text or None


def _difficulty(value: Any) -> str:
    if isinstance(value, str) and value.strip().lower() in DIFFICULTY_LEVELS:
        return value.strip().lower()
    return "medium"


def _tags(value: Any) -> tuple[str, ...]:
    if isinstance(value, str):
        value = value.split(",")
    if not isinstance(value, list):
        return ()
    tags = (str(tag).strip() for tag in value if tag is not None and not isinstance(tag, (dict, list)))
    return tuple(tag for tag in tags if tag)


def _options(value: Any) -> tuple[str, ...]:
    if not isinstance(value, list):
        return ()
    options = []
    for option in value:
        if isinstance(option, bool):
            options.append("True" if option else "False")
        elif isinstance(option, dict):
            # {"text": "..."} / {"label": "..."} option objects
            options.append(_text(option.get("text") or option.get("label") or option.get("value")))
        else:
            options.append(_text(option))
    return tuple(options)


def _correct_index(value: Any, options: tuple[str, ...]) -> int:
    """Resolve an answer index, option text, letter or boolean to an index (-1 if unresolvable)."""
    if isinstance(value, bool):
        value = "True" if value else "False"
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value.is_integer() else -1
    if not isinstance(value, str):
        return -1

    text = value.strip()
    if re.fullmatch(r"-?\d+", text):
        return int(text)

    lowered = [option.casefold() for option in options]
    if text.casefold() in lowered:
        return lowered.index(text.casefold())

    letter = _LETTER_INDEX.match(text)
    if letter:
        index = ord(letter.group(1).upper()) - ord("A")
        if index < len(options):
            return index
    return -1


def _question_type(value: Any, options: tuple[str, ...]) -> str:
    if isinstance(value, str):
        alias = QUESTION_TYPE_ALIASES.get(value.strip().lower())
        if alias is not None:
            return alias.value
    if len(options) == 2 and {option.casefold() for option in options} == {"true", "false"}:
        return QuestionType.TRUE_FALSE.value
    return QuestionType.MULTIPLE_CHOICE.value


def _points(value: Any) -> int:
    if isinstance(value, bool):
        return 1
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return 1
