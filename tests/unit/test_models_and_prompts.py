"""
Unit tests for request/item models and prompt construction.
"""

import json

import pytest
from pydantic import TypeAdapter

from learnforge.core.models import (
    Flashcard,
    GeneratedItem,
    GenerationRequest,
    ItemKind,
    QuestionType,
    QuizQuestion,
    item_to_dict,
)
from learnforge.generation.prompts import (
    STRICT_RETRY_SUFFIX,
    build_prompt,
    flashcards_to_content,
    get_system_prompt,
    schema_description,
)


class TestGenerationRequest:
    def test_defaults(self):
        request = GenerationRequest(source_text="Text.", desired_count=3)
        assert request.item_kind is ItemKind.FLASHCARD
        assert request.difficulty_policy == "mixed"
        assert request.question_types == tuple(QuestionType)

    def test_coerces_strings(self):
        request = GenerationRequest(
            source_text="Text.",
            desired_count=3,
            difficulty="hard",
            item_kind="quiz_question",
            focus_areas=[" routing ", ""],
            question_types=["true_false"],
        )
        assert request.item_kind is ItemKind.QUIZ_QUESTION
        assert request.difficulty_policy == "fixed-level"
        assert request.focus_areas == ("routing",)
        assert request.question_types == (QuestionType.TRUE_FALSE,)

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"source_text": "", "desired_count": 1},
            {"source_text": "   ", "desired_count": 1},
            {"source_text": "x", "desired_count": 0},
            {"source_text": "x", "desired_count": "3"},
            {"source_text": "x", "desired_count": True},
            {"source_text": "x", "desired_count": 1, "difficulty": "extreme"},
            {"source_text": "x", "desired_count": 1, "item_kind": "essay"},
            {"source_text": "x", "desired_count": 1, "question_types": []},
        ],
    )
    def test_invalid_requests(self, kwargs):
        with pytest.raises(ValueError):
            GenerationRequest(**kwargs)

    def test_immutable(self):
        request = GenerationRequest(source_text="Text.", desired_count=3)
        with pytest.raises(AttributeError):
            request.desired_count = 5

    def test_with_count_and_text(self):
        request = GenerationRequest(source_text="Text.", desired_count=3, difficulty="easy")
        chunk = request.with_text("Chunk.").with_count(1)
        assert (chunk.source_text, chunk.desired_count, chunk.difficulty) == ("Chunk.", 1, "easy")
        assert request.desired_count == 3


class TestGeneratedItems:
    def test_discriminated_union(self):
        adapter = TypeAdapter(GeneratedItem)
        item = adapter.validate_python(
            {"kind": "quiz_question", "question": "Q?", "options": ["a", "b"], "correct_answer_index": 1,
             "question_type": "true_false"}
        )
        assert isinstance(item, QuizQuestion)
        assert item.correct_answer == "b"

    def test_item_to_dict(self):
        item = QuizQuestion(question="Q?", options=("a", "b", "c"), correct_answer_index=0, tags=("x",))
        data = item_to_dict(item)
        assert data["kind"] == "quiz_question"
        assert data["question_type"] == "multiple_choice"
        assert data["options"] == ["a", "b", "c"]

    def test_items_are_frozen(self):
        card = Flashcard(question="Q?", answer="A")
        with pytest.raises(Exception):
            card.question = "changed"


class TestPrompts:
    def test_flashcard_prompt(self):
        request = GenerationRequest(source_text="Mitochondria make ATP.", desired_count=4,
                                    focus_areas=("energy",))
        prompt = build_prompt(request)
        assert "exactly 4" in prompt
        assert "Mitochondria make ATP." in prompt
        assert "Focus on these areas: energy" in prompt
        assert "vary between easy, medium, and hard" in prompt
        assert STRICT_RETRY_SUFFIX not in prompt

    def test_quiz_prompt_lists_only_requested_types(self):
        request = GenerationRequest(source_text="Text.", desired_count=2, item_kind=ItemKind.QUIZ_QUESTION,
                                    question_types=(QuestionType.TRUE_FALSE,))
        prompt = build_prompt(request)
        assert "True/False" in prompt
        assert "Multiple Choice:" not in prompt
        assert '"questionType": "true_false"' in prompt
        assert '"estimatedTime": 4' in prompt

    def test_strict_prompt(self):
        request = GenerationRequest(source_text="Text.", desired_count=2)
        assert build_prompt(request, strict=True).endswith(STRICT_RETRY_SUFFIX)

    def test_system_prompts_differ_by_kind(self):
        assert get_system_prompt(ItemKind.FLASHCARD) != get_system_prompt(ItemKind.QUIZ_QUESTION)

    def test_schema_description_is_json(self):
        schema = json.loads(schema_description(ItemKind.QUIZ_QUESTION))
        item = schema["properties"]["questions"]["items"]
        assert "options" in item["properties"]
        assert "kind" not in item["properties"]
        assert "question" in item["required"]

    def test_quiz_schema_uses_response_format_keys(self):
        schema = json.loads(schema_description(ItemKind.QUIZ_QUESTION))
        properties = schema["properties"]["questions"]["items"]["properties"]
        assert {"correctAnswer", "questionType"} <= set(properties)
        assert "correct_answer_index" not in properties
        assert "question_type" not in properties

        request = GenerationRequest(source_text="Text.", desired_count=1, item_kind=ItemKind.QUIZ_QUESTION)
        prompt = build_prompt(request)
        assert '"correctAnswer"' in prompt and '"questionType"' in prompt

    def test_schema_refs_resolve_from_root(self):
        schema = json.loads(schema_description(ItemKind.QUIZ_QUESTION))
        item = schema["properties"]["questions"]["items"]
        assert "$defs" not in item
        assert "QuestionType" in schema["$defs"]
        assert "#/$defs/QuestionType" in json.dumps(item["properties"]["questionType"])

    def test_item_to_dict_keeps_field_names(self):
        item = QuizQuestion(question="Q?", options=("a", "b"), correct_answer_index=1)
        assert "correct_answer_index" in item_to_dict(item)

    def test_wrapped_schema(self):
        schema = json.loads(schema_description(ItemKind.FLASHCARD, wrapper="flashcard"))
        assert schema["required"] == ["flashcard"]

    def test_flashcards_to_content(self):
        cards = [
            Flashcard(question="Q1?", answer="A1", explanation="E1"),
            Flashcard(question="Q2?", answer="A2"),
        ]
        assert flashcards_to_content(cards) == "Q: Q1?\nA: A1\nExplanation: E1\n\n---\nQ: Q2?\nA: A2\n"
