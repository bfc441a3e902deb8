"""
Integration tests for FlashcardGenerator and QuizGenerator.
"""

import pytest

from learnforge.core.errors import SchemaValidationFailed
from learnforge.core.models import Flashcard, QuestionType, QuizQuestion
from learnforge.generation import FlashcardGenerator, QuizGenerator
from learnforge.generation.gateway import DEFAULT_TEMPERATURE, CompletionGateway
from learnforge.generation.orchestrator import GenerationOrchestrator
from learnforge.integrations import OpenAIProvider


@pytest.fixture
def wire(settings, no_sleep, rng):
    def build(generator_cls, provider):
        gateway = CompletionGateway(provider, settings, sleep=no_sleep, rng=rng)
        return generator_cls(GenerationOrchestrator(gateway, settings, sleep=no_sleep))
    return build


class TestFlashcardGenerator:
    @pytest.mark.asyncio
    async def test_generate(self, wire, make_provider, sample_flashcard):
        provider = make_provider([{"flashcards": [sample_flashcard]}])
        generator = wire(FlashcardGenerator, provider)

        cards = await generator.generate("Mitochondria produce ATP.", count=1, focus_areas=["energy"])

        assert cards == [
            Flashcard(
                question="What is the main function of mitochondria?",
                answer="To produce ATP through cellular respiration",
                explanation="Mitochondria generate most of the cell's ATP.",
                difficulty="medium",
                tags=("biology", "cells"),
            )
        ]
        assert "Focus on these areas: energy" in provider.requests[0].user_prompt

    @pytest.mark.asyncio
    async def test_generate_single(self, wire, make_provider, sample_flashcard):
        provider = make_provider([{"flashcard": sample_flashcard}])
        generator = wire(FlashcardGenerator, provider)

        card = await generator.generate_single("Mitochondria produce ATP.", "mitochondria")

        assert card.question == sample_flashcard["question"]
        assert provider.requests[0].temperature == DEFAULT_TEMPERATURE
        assert "mitochondria" in provider.requests[0].user_prompt

    @pytest.mark.asyncio
    async def test_generate_single_accepts_unwrapped_card(self, wire, make_provider, sample_flashcard):
        generator = wire(FlashcardGenerator, make_provider([sample_flashcard]))

        card = await generator.generate_single("Mitochondria produce ATP.", "mitochondria")

        assert card.answer == sample_flashcard["answer"]

    @pytest.mark.asyncio
    async def test_generate_single_invalid_card(self, wire, make_provider):
        generator = wire(FlashcardGenerator, make_provider([{"flashcard": {"question": "Short?"}}]))

        with pytest.raises(SchemaValidationFailed):
            await generator.generate_single("Mitochondria produce ATP.", "mitochondria")

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "content,concept,difficulty",
        [("", "x", "easy"), ("text", " ", "easy"), ("text", "x", "impossible")],
    )
    async def test_generate_single_rejects_bad_arguments(self, wire, make_provider, content, concept, difficulty):
        provider = make_provider()
        generator = wire(FlashcardGenerator, provider)

        with pytest.raises(ValueError):
            await generator.generate_single(content, concept, difficulty)
        assert provider.requests == []

    def test_validate_filters_invalid_cards(self, wire, make_provider, sample_flashcard):
        generator = wire(FlashcardGenerator, make_provider())
        good = Flashcard(question="What does DNS translate?", answer="Names to addresses")

        kept = generator.validate([good, sample_flashcard, {"question": "Tiny", "answer": "x"}, 42])

        assert [card.question for card in kept] == [good.question, sample_flashcard["question"]]


class TestQuizGenerator:
    @pytest.mark.asyncio
    async def test_generate_with_report(self, wire, make_provider, sample_quiz_question):
        payload = {"questions": [sample_quiz_question], "metadata": {"topics": ["cell biology"]}}
        generator = wire(QuizGenerator, make_provider([payload]))

        result = await generator.generate_with_report("Cells contain organelles.", count=1)

        question = result.items[0]
        assert isinstance(question, QuizQuestion)
        assert question.correct_answer == "Mitochondrion"
        assert result.metadata.total_questions == 1
        assert result.metadata.estimated_time_minutes == 2
        assert result.metadata.topics == ("cell biology",)

    @pytest.mark.asyncio
    async def test_unrequested_question_type_rejected(self, wire, make_provider, sample_quiz_question):
        provider = make_provider(default={"questions": [sample_quiz_question]})
        generator = wire(QuizGenerator, provider)

        with pytest.raises(SchemaValidationFailed) as exc_info:
            await generator.generate("Cells contain organelles.", count=1, question_types=["true_false"])

        assert len(provider.requests) == 2
        assert any("not requested" in reason for reason in exc_info.value.reasons)

    @pytest.mark.asyncio
    async def test_true_false_inferred(self, wire, make_provider):
        payload = {
            "questions": [
                {"question": "Mitochondria produce ATP.", "options": ["True", "False"], "correctAnswer": True}
            ]
        }
        generator = wire(QuizGenerator, make_provider([payload]))

        questions = await generator.generate(
            "Mitochondria produce ATP.", count=1, question_types=[QuestionType.TRUE_FALSE]
        )

        assert questions[0].question_type is QuestionType.TRUE_FALSE
        assert questions[0].correct_answer == "True"

    @pytest.mark.asyncio
    async def test_generate_from_flashcards(self, wire, make_provider, sample_quiz_question):
        provider = make_provider([{"questions": [sample_quiz_question]}])
        generator = wire(QuizGenerator, provider)
        cards = [
            Flashcard(question="What do mitochondria make?", answer="ATP"),
            Flashcard(question="Where is DNA stored?", answer="In the nucleus"),
        ]

        questions = await generator.generate_from_flashcards(cards, count=1)

        assert len(questions) == 1
        prompt = provider.requests[0].user_prompt
        assert "Q: What do mitochondria make?\nA: ATP" in prompt
        assert "---" in prompt

    @pytest.mark.asyncio
    async def test_generate_from_no_flashcards(self, wire, make_provider):
        generator = wire(QuizGenerator, make_provider())

        with pytest.raises(ValueError):
            await generator.generate_from_flashcards([], count=1)


class TestFromSettings:
    @pytest.mark.asyncio
    async def test_builds_configured_provider(self, settings):
        generator = QuizGenerator.from_settings(settings)

        assert isinstance(generator.gateway.provider, OpenAIProvider)
        assert generator.settings is settings
        await generator.close()
