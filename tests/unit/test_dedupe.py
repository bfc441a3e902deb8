"""
Unit tests for question deduplication.
"""

from learnforge.core.models import Flashcard
from learnforge.generation.dedupe import dedupe, question_key


def card(question: str, answer: str = "An answer here") -> Flashcard:
    return Flashcard(question=question, answer=answer)


def test_case_and_whitespace_collisions_collapse():
    items = [card("What is mitosis?"), card("what is MITOSIS? ")]
    assert dedupe(items) == [items[0]]


def test_internal_whitespace_collapsed():
    assert question_key("What  is\n mitosis?") == question_key("what is mitosis?")


def test_first_seen_order_preserved():
    items = [card("B question?"), card("A question?"), card("b QUESTION?"), card("C question?")]
    result = dedupe(items)
    assert [item.question for item in result] == ["B question?", "A question?", "C question?"]


def test_keeps_first_answer_on_collision():
    items = [card("Same?", "first answer"), card("same?", "second answer")]
    assert dedupe(items)[0].answer == "first answer"


def test_empty():
    assert dedupe([]) == []


def test_distinct_questions_untouched():
    items = [card(f"Question number {i}?") for i in range(5)]
    assert dedupe(items) == items
