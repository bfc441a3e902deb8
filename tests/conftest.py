"""
Pytest Configuration and Fixtures.

This file configures pytest and provides shared fixtures for all tests:
a controllable clock, a no-op sleep, settings tuned for fast tests and a
scripted provider that replays canned completions.
"""
import json
import random
import sys
from pathlib import Path

import pytest

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from learnforge.config import Settings  # noqa: E402
from learnforge.core.models import RawCompletion  # noqa: E402


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests (scripted provider, full pipeline)")
    config.addinivalue_line("markers", "slow: Slow tests")


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their location."""
    for item in items:
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
        elif "integration" in str(item.fspath):
            item.add_marker(pytest.mark.integration)


# =============================================================================
# Test doubles
# =============================================================================

class FakeClock:
    """Monotonic clock advanced by hand."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingSleep:
    """Async sleep replacement that records requested delays and returns at once."""

    def __init__(self, clock: FakeClock | None = None):
        self.delays: list[float] = []
        self.clock = clock

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)
        if self.clock is not None:
            self.clock.advance(seconds)


class ScriptedProvider:
    """
    CompletionProvider that replays a script.

    Each script entry is a string (returned as completion text), a dict/list
    (JSON-encoded first), an exception instance (raised), or a callable taking
    the ProviderRequest and returning one of those.
    """

    name = "Scripted"

    def __init__(self, script=None, default=None):
        self.script = list(script or [])
        self.default = default
        self.requests = []
        self.closed = False

    async def create_completion(self, request):
        self.requests.append(request)
        if self.script:
            entry = self.script.pop(0)
        elif self.default is not None:
            entry = self.default
        else:
            raise AssertionError("ScriptedProvider ran out of responses")

        if callable(entry) and not isinstance(entry, BaseException):
            entry = entry(request)
        if isinstance(entry, BaseException):
            raise entry
        if not isinstance(entry, str):
            entry = json.dumps(entry)
        return RawCompletion(text=entry, tokens_used=len(entry) // 4, model=request.model)

    async def close(self):
        self.closed = True


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture(scope="session")
def project_root():
    """Return the project root directory."""
    return PROJECT_ROOT


@pytest.fixture
def clock():
    """Provide a hand-driven clock."""
    return FakeClock()


@pytest.fixture
def no_sleep():
    """Provide a sleep that returns immediately and records delays."""
    return RecordingSleep()


@pytest.fixture
def rng():
    """Provide a seeded random source for jitter."""
    return random.Random(42)


@pytest.fixture
def settings():
    """Settings with no .env influence and no real delays."""
    return Settings(
        _env_file=None,
        ai_provider="openai",
        openai_api_key="sk-test",
        ai_model="gpt-4o-2024-11-20",
        inter_chunk_delay_seconds=0.0,
        structural_retry_delay_seconds=0.0,
    )


@pytest.fixture
def scripted_provider():
    """Provide an empty scripted provider (tests fill .script)."""
    return ScriptedProvider()


@pytest.fixture
def sample_flashcard():
    """Provide a sample flashcard payload as a model would return it."""
    return {
        "question": "What is the main function of mitochondria?",
        "answer": "To produce ATP through cellular respiration",
        "explanation": "Mitochondria generate most of the cell's ATP.",
        "difficulty": "medium",
        "tags": ["biology", "cells"],
    }


@pytest.fixture
def sample_quiz_question():
    """Provide a sample quiz question payload as a model would return it."""
    return {
        "question": "Which organelle produces most of a cell's ATP?",
        "options": ["Nucleus", "Mitochondrion", "Ribosome", "Golgi apparatus"],
        "correctAnswer": 1,
        "explanation": "Cellular respiration happens in the mitochondria.",
        "difficulty": "easy",
        "tags": ["biology"],
        "questionType": "multiple_choice",
        "points": 1,
    }


@pytest.fixture
def make_provider():
    """Provide the ScriptedProvider class for tests that need several scripts."""
    return ScriptedProvider


@pytest.fixture
def clocked_sleep(clock):
    """Provide a recording sleep that advances the shared fake clock."""
    return RecordingSleep(clock)
