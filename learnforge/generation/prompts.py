"""
Prompt text for flashcard and quiz generation.

Each item kind has:
1. A system prompt describing the author's role and quality rules
2. A user prompt builder with the content, count, difficulty and focus areas
3. A response-format example the JSON recovery path is tuned for

STRICT_RETRY_SUFFIX is appended to the user prompt for the single stricter
retry after a JSON or schema failure.
"""
from __future__ import annotations

import json
from typing import Iterable, Sequence

from learnforge.core.models import (
    Flashcard,
    GenerationRequest,
    ItemKind,
    QuestionType,
    QuizQuestion,
)

# =============================================================================
# System Prompts
# =============================================================================

FLASHCARD_SYSTEM_PROMPT = """You are an expert educational content creator specializing in creating high-quality flashcards for effective learning.

Your task is to analyze the provided content and generate flashcards that:
1. Cover the most important concepts, facts, and relationships
2. Use varied question types (definitions, applications, comparisons, cause-effect)
3. Are appropriately challenging but not overwhelming
4. Include clear, concise answers with helpful explanations

Guidelines:
- Questions should be specific and unambiguous
- Answers should be complete but concise
- Avoid trivial or overly complex questions
- Include context when necessary
- Use only information from the provided content"""

QUIZ_SYSTEM_PROMPT = """You are an expert educational content creator specializing in quiz generation.
Always respond with valid JSON matching the exact format requested.
Do not include any text outside the JSON structure."""

JSON_RULES = """Rules for JSON response:
- Use double quotes for all strings
- No trailing commas
- Ensure all brackets and braces are properly closed
- Do not include any text before or after the JSON object"""

STRICT_RETRY_SUFFIX = """

IMPORTANT: Your previous answer could not be used because it was not valid JSON or did not match the required format.
Return ONLY one JSON object in exactly the structure shown above. No markdown fences, no commentary, no truncated items.
Every item must include every required field."""

# =============================================================================
# Instructions
# =============================================================================

DIFFICULTY_INSTRUCTIONS = {
    "easy": "Create straightforward questions that test basic understanding and recall of key concepts.",
    "medium": "Create questions that require understanding and application of concepts with some analytical thinking.",
    "hard": "Create challenging questions that require deep analysis, synthesis, and critical thinking.",
    "mixed": "Create a mix of easy, medium, and hard questions to provide varied difficulty levels.",
}

QUESTION_TYPE_INSTRUCTIONS = {
    QuestionType.MULTIPLE_CHOICE: "Multiple choice questions with 4 options where only one is correct.",
    QuestionType.TRUE_FALSE: "True/false questions that test specific facts or concepts.",
    QuestionType.FILL_BLANK: "Fill-in-the-blank questions where key terms or concepts are missing.",
}

QUESTION_TYPE_FORMAT = {
    QuestionType.MULTIPLE_CHOICE: "- Multiple Choice: Provide exactly 4 options, with correctAnswer being the index (0-3)",
    QuestionType.TRUE_FALSE: '- True/False: Provide exactly 2 options ["True", "False"], with correctAnswer being 0 or 1',
    QuestionType.FILL_BLANK: '- Fill Blank: Format as "The ____ is responsible for..." with options being possible answers',
}

# =============================================================================
# Response Formats
# =============================================================================

FLASHCARD_FORMAT = """{
  "flashcards": [
    {
      "question": "What is the main function of mitochondria in cells?",
      "answer": "To produce ATP (energy) through cellular respiration",
      "explanation": "Mitochondria generate most of the cell's supply of ATP, which is used as energy currency.",
      "difficulty": "medium",
      "tags": ["biology", "cell-biology"]
    }
  ]
}"""

QUIZ_FORMAT = """{
  "questions": [
    {
      "question": "Clear, specific question text",
      "options": ["Option A", "Option B", "Option C", "Option D"],
      "correctAnswer": 0,
      "explanation": "Detailed explanation of why this answer is correct",
      "difficulty": "easy|medium|hard",
      "tags": ["tag1", "tag2"],
      "questionType": "%(types)s",
      "points": 1
    }
  ],
  "metadata": {
    "totalQuestions": %(count)d,
    "estimatedTime": %(minutes)d,
    "difficulty": "%(difficulty)s",
    "topics": ["topic1", "topic2"]
  }
}"""


# =============================================================================
# Builders
# =============================================================================

def get_system_prompt(kind: ItemKind) -> str:
    """Get the system prompt for an item kind."""
    if ItemKind(kind) is ItemKind.QUIZ_QUESTION:
        return QUIZ_SYSTEM_PROMPT
    return FLASHCARD_SYSTEM_PROMPT


def build_prompt(request: GenerationRequest, strict: bool = False) -> str:
    """Build the user prompt for one chunk of a request."""
    if request.item_kind is ItemKind.QUIZ_QUESTION:
        prompt = build_quiz_prompt(request)
    else:
        prompt = build_flashcard_prompt(request)
    return prompt + STRICT_RETRY_SUFFIX if strict else prompt


def build_flashcard_prompt(request: GenerationRequest) -> str:
    count = request.desired_count
    if request.difficulty == "mixed":
        difficulty = "vary between easy, medium, and hard"
    else:
        difficulty = request.difficulty

    lines = [
        f"Analyze the following content and generate exactly {count} high-quality flashcards.",
        "",
        "Content to analyze:",
        '"""',
        request.source_text,
        '"""',
        "",
        "Requirements:",
        f"- Generate exactly {count} flashcards",
        f"- Difficulty level: {difficulty}",
    ]
    if request.focus_areas:
        lines.append(f"- Focus on these areas: {', '.join(request.focus_areas)}")
    lines += [
        "- Ensure variety in question types (definitions, applications, examples, comparisons)",
        "- Each flashcard should test understanding, not just memorization",
        "- Include brief explanations to help with learning",
        "",
        "CRITICAL: Return ONLY valid JSON. No additional text, no markdown, no explanations outside the JSON.",
        "",
        "Response format - EXACTLY this structure:",
        FLASHCARD_FORMAT,
        "",
        JSON_RULES,
        '- The "explanation" field is optional but recommended',
        '- The "tags" field should be an array of strings',
    ]
    return "\n".join(lines)


def build_quiz_prompt(request: GenerationRequest) -> str:
    count = request.desired_count
    types = request.question_types
    type_descriptions = " ".join(QUESTION_TYPE_INSTRUCTIONS[t] for t in types)
    focus = ", ".join(request.focus_areas) or "All content areas"

    response_format = QUIZ_FORMAT % {
        "types": "|".join(t.value for t in types),
        "count": count,
        "minutes": count * 2,
        "difficulty": request.difficulty,
    }

    lines = [
        f"Generate {count} quiz questions from the following content.",
        "",
        "CONTENT TO ANALYZE:",
        request.source_text,
        "",
        "REQUIREMENTS:",
        f"- Difficulty: {request.difficulty} - {DIFFICULTY_INSTRUCTIONS[request.difficulty]}",
        f"- Question Types: {type_descriptions}",
        f"- Focus Areas: {focus}",
        "- Each question must be clear, unambiguous, and test important concepts",
        "- Provide detailed explanations for correct answers",
        "- Ensure questions are directly based on the provided content",
        "- Make incorrect options plausible but clearly wrong",
        "",
        "RESPONSE FORMAT:",
        "Return a JSON object with the following structure:",
        response_format,
        "",
        "QUESTION TYPE SPECIFIC INSTRUCTIONS:",
        *(QUESTION_TYPE_FORMAT[t] for t in types),
        "",
        "CRITICAL: Return ONLY valid JSON. No additional text, no markdown, no explanations outside the JSON.",
        "",
        JSON_RULES,
        "- correctAnswer must be a valid index (0-based) for the options array",
        "- All required fields must be present",
    ]
    return "\n".join(lines)


def build_single_flashcard_prompt(content: str, concept: str, difficulty: str) -> str:
    return "\n".join(
        [
            f'Create a single flashcard about "{concept}" from this content:',
            "",
            '"""',
            content,
            '"""',
            "",
            f"Focus specifically on: {concept}",
            f"Difficulty level: {difficulty}",
            "",
            "Create a flashcard that tests understanding of this concept with a clear question and comprehensive answer.",
        ]
    )


def flashcards_to_content(flashcards: Iterable[Flashcard]) -> str:
    """Render flashcards as Q/A blocks for quiz generation."""
    blocks = []
    for card in flashcards:
        block = f"Q: {card.question}\nA: {card.answer}\n"
        if card.explanation:
            block += f"Explanation: {card.explanation}\n"
        blocks.append(block)
    return "\n---\n".join(blocks)


# =============================================================================
# Schema descriptions (for complete_structured)
# =============================================================================

def schema_description(kind: ItemKind, wrapper: str | None = None) -> str:
    """
    JSON schema of the collection (or a single wrapped item) as indented text.

    Keys are the ones the response formats above show (correctAnswer,
    questionType); shared definitions stay at the root so $refs resolve.
    """
    item_schema, defs = _item_schema(kind)
    if wrapper is not None:
        schema = {"type": "object", "properties": {wrapper: item_schema}, "required": [wrapper]}
    else:
        key = "questions" if ItemKind(kind) is ItemKind.QUIZ_QUESTION else "flashcards"
        schema = {
            "type": "object",
            "properties": {key: {"type": "array", "items": item_schema}},
            "required": [key],
        }
    if defs:
        schema["$defs"] = defs
    return json.dumps(schema, indent=2)


def _item_schema(kind: ItemKind) -> tuple[dict, dict]:
    model = QuizQuestion if ItemKind(kind) is ItemKind.QUIZ_QUESTION else Flashcard
    schema = model.model_json_schema(by_alias=True, mode="serialization")
    properties = dict(schema.get("properties", {}))
    properties.pop("kind", None)
    required: Sequence[str] = [name for name in schema.get("required", []) if name != "kind"]
    item = {"type": "object", "properties": properties, "required": list(required)}
    return item, schema.get("$defs", {})
