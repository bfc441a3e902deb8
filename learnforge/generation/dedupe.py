"""Question-text deduplication across and within chunks."""
from __future__ import annotations

import re
from typing import Iterable, Protocol, TypeVar

_WHITESPACE = re.compile(r"\s+")


class HasQuestion(Protocol):
    question: str


T = TypeVar("T", bound=HasQuestion)


def question_key(question: str) -> str:
    """Case-folded, trimmed question text with runs of whitespace collapsed."""
    return _WHITESPACE.sub(" ", question.strip()).casefold()


def dedupe(items: Iterable[T]) -> list[T]:
    """Keep the first item for each question key, preserving order."""
    seen: set[str] = set()
    unique: list[T] = []
    for item in items:
        key = question_key(item.question)
        if key in seen:
            continue
        seen.add(key)
        unique.append(item)
    return unique
