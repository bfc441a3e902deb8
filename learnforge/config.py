"""
Configuration settings for the learnforge generation pipeline.

Uses Pydantic Settings for environment variable management with .env file support.
"""
from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ========================================
    # AI Provider
    # ========================================
    ai_provider: Literal["openai", "anthropic"] = Field(
        default="openai",
        description="Generative-text provider used for structured generation",
    )
    openai_api_key: str | None = Field(
        default=None,
        description="OpenAI API key",
    )
    openai_base_url: str = Field(
        default="https://api.openai.com/v1",
        description="Base URL for the OpenAI-compatible chat completions API",
    )
    anthropic_api_key: str | None = Field(
        default=None,
        description="Anthropic API key for Claude models",
    )
    anthropic_base_url: str = Field(
        default="https://api.anthropic.com/v1",
        description="Base URL for the Anthropic messages API",
    )
    anthropic_version: str = Field(
        default="2023-06-01",
        description="Value of the anthropic-version request header",
    )
    ai_model: str = Field(
        default="gpt-4o-2024-11-20",
        description="Model identifier sent to the provider",
    )
    request_timeout_seconds: float = Field(
        default=60.0,
        description="Per-request timeout for provider calls",
    )

    # ─── Model budgets ─────────────────────────────────────────────────────────
    # Keys are matched as substrings of the model identifier, first match wins.
    model_input_budgets: dict[str, int] = Field(
        default_factory=lambda: {"gpt-4o": 120_000, "claude": 180_000},
        description="Maximum input tokens per model family (leaves room for the response)",
    )
    default_input_budget: int = Field(
        default=8_000,
        description="Maximum input tokens for models not listed in model_input_budgets",
    )
    model_output_budgets: dict[str, int] = Field(
        default_factory=lambda: {"gpt-4o": 8_000, "claude": 8_000},
        description="Default maximum output tokens per model family",
    )
    default_output_budget: int = Field(
        default=2_000,
        description="Default maximum output tokens for unlisted models",
    )

    # ========================================
    # Rate Limiting & Retry
    # ========================================
    rate_limit_max_requests: int = Field(
        default=20,
        description="Maximum provider requests per rate-limit window",
    )
    rate_limit_window_seconds: float = Field(
        default=60.0,
        description="Length of the rate-limit window",
    )
    retry_max_attempts: int = Field(
        default=3,
        description="Attempts made by the generic retry wrapper (including the first)",
    )
    retry_base_delay_seconds: float = Field(
        default=1.0,
        description="Base delay for exponential backoff",
    )
    retry_max_jitter_seconds: float = Field(
        default=1.0,
        description="Upper bound of the random jitter added to each backoff",
    )
    retry_max_delay_seconds: float = Field(
        default=60.0,
        description="Cap applied to any single retry delay",
    )

    # ========================================
    # Chunking
    # ========================================
    chars_per_token: int = Field(
        default=4,
        description="Characters per token used by the token estimator",
    )
    max_tokens_per_chunk: int = Field(
        default=80_000,
        description="Token budget above which source text is chunked",
    )
    max_chunk_chars: int = Field(
        default=100_000,
        description="Maximum characters per chunk",
    )
    split_oversized_sentences: bool = Field(
        default=True,
        description="Hard-split single sentences longer than max_chunk_chars",
    )

    # ========================================
    # Orchestration
    # ========================================
    inter_chunk_delay_seconds: float = Field(
        default=1.0,
        description="Pause between consecutive chunk requests",
    )
    structural_retry_delay_seconds: float = Field(
        default=1.0,
        description="Pause before the stricter retry after a JSON/schema failure",
    )
    max_items_per_request: int = Field(
        default=50,
        description="Upper bound for GenerationRequest.desired_count",
    )
    cap_items_per_chunk: bool = Field(
        default=True,
        description="Keep at most the allotted item count from each chunk",
    )
    flashcard_temperature: float = Field(
        default=0.8,
        description="Sampling temperature for the first flashcard attempt",
    )
    quiz_temperature: float = Field(
        default=0.7,
        description="Sampling temperature for the first quiz attempt",
    )
    strict_temperature: float = Field(
        default=0.3,
        description="Sampling temperature for the stricter structural retry",
    )
    structured_temperature: float = Field(
        default=0.3,
        description="Temperature used by complete_structured when none is given",
    )

    # ========================================
    # Item Validation Thresholds
    # ========================================
    flashcard_question_min_chars: int = Field(default=10)
    flashcard_question_max_chars: int = Field(default=500)
    flashcard_answer_min_chars: int = Field(default=5)
    flashcard_answer_max_chars: int = Field(default=1000)
    quiz_question_min_chars: int = Field(default=10)
    quiz_min_options: int = Field(
        default=2,
        description="Minimum options for any quiz question",
    )
    quiz_mcq_min_options: int = Field(
        default=3,
        description="Minimum options for multiple-choice questions",
    )
    quiz_max_options: int = Field(
        default=6,
        description="Maximum options for any quiz question",
    )
    quiz_min_points: int = Field(default=1)
    quiz_max_points: int = Field(default=10)

    # ========================================
    # Logging
    # ========================================
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Logging verbosity level",
    )
    log_file: str | None = Field(
        default=None,
        description="Log file path (None for stderr only)",
    )

    # ========================================
    # Helper Methods
    # ========================================
    def input_budget_for(self, model: str) -> int:
        """Return the maximum input tokens allowed for a model."""
        return _lookup_budget(model, self.model_input_budgets, self.default_input_budget)

    def output_budget_for(self, model: str) -> int:
        """Return the default maximum output tokens for a model."""
        return _lookup_budget(model, self.model_output_budgets, self.default_output_budget)

    def has_ai_configured(self) -> bool:
        """Check if the selected AI provider has credentials."""
        if self.ai_provider == "anthropic":
            return bool(self.anthropic_api_key)
        return bool(self.openai_api_key)


def _lookup_budget(model: str, budgets: dict[str, int], default: int) -> int:
    model_lower = model.lower()
    for family, budget in budgets.items():
        if family.lower() in model_lower:
            return budget
    return default


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
