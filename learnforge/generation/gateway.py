"""
Completion gateway: one structured-generation request with retry policy.

Responsibilities:
- Reject prompts that cannot fit the model's input budget (fatal)
- Admit each attempt through the gateway's RateLimiter
- Retry retryable failures with exponential backoff plus jitter
- Never retry fatal errors (invalid credentials, context length, invalid request)
- For structured calls, append the schema to the system prompt and recover
  JSON from the returned text
"""
from __future__ import annotations

import asyncio
import random
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional, TypeVar

from loguru import logger

from learnforge.config import Settings, get_settings
from learnforge.core.cancellation import CancellationToken, Sleep, ensure_token
from learnforge.core.errors import (
    ContextLengthExceeded,
    GenerationCancelled,
    GenerationError,
    RateLimitExceeded,
)
from learnforge.core.models import RawCompletion
from learnforge.generation.json_recovery import JSONRecoveryParser
from learnforge.generation.rate_limiter import RateLimiter
from learnforge.integrations.base import CompletionProvider, ProviderRequest
from learnforge.processing.tokens import TokenBudgetEstimator

T = TypeVar("T")

DEFAULT_SYSTEM_PROMPT = "You are a helpful AI assistant."
DEFAULT_TEMPERATURE = 0.7

STRUCTURED_SUFFIX = (
    "\n\nYou must respond with valid JSON that matches this schema:\n{schema}\n\n"
    "IMPORTANT: Return ONLY the JSON response, no additional text, "
    "no markdown formatting, no explanations."
)


@dataclass(frozen=True)
class CompletionOptions:
    """Per-call overrides (None means use the configured default)."""
    model: Optional[str] = None
    max_output_tokens: Optional[int] = None
    temperature: Optional[float] = None


@dataclass
class AttemptState:
    """Progress of one retried operation."""
    attempt_number: int = 0
    last_error: Optional[GenerationError] = None
    next_delay: float = 0.0


class CompletionGateway:
    """Rate-limited, retrying front door to a CompletionProvider."""

    def __init__(
        self,
        provider: CompletionProvider,
        settings: Optional[Settings] = None,
        rate_limiter: Optional[RateLimiter] = None,
        estimator: Optional[TokenBudgetEstimator] = None,
        parser: Optional[JSONRecoveryParser] = None,
        sleep: Sleep = asyncio.sleep,
        rng: Optional[random.Random] = None,
    ):
        """
        Initialize the gateway.

        Args:
            provider: Transport used for each attempt
            settings: Budgets, retry policy and rate limits (defaults to get_settings())
            rate_limiter: Limiter owned by this gateway (built from settings if omitted)
            estimator: Estimator for the context check (weighted by default)
            parser: JSON recovery parser for structured calls
            sleep: Coroutine used for backoff waits (tests pass a no-op)
            rng: Random source for jitter (tests pass a seeded one)
        """
        self.provider = provider
        self.settings = settings or get_settings()
        self.rate_limiter = rate_limiter or RateLimiter(
            max_requests=self.settings.rate_limit_max_requests,
            window_seconds=self.settings.rate_limit_window_seconds,
        )
        self.estimator = estimator or TokenBudgetEstimator(
            chars_per_token=self.settings.chars_per_token,
            weighted=True,
        )
        self.parser = parser or JSONRecoveryParser()
        self._sleep = sleep
        self._rng = rng or random.Random()
        self.tokens_used = 0

    async def close(self) -> None:
        await self.provider.close()

    # =========================================================================
    # Requests
    # =========================================================================

    async def complete(
        self,
        prompt: str,
        system_prompt: str = DEFAULT_SYSTEM_PROMPT,
        options: Optional[CompletionOptions] = None,
        token: Optional[CancellationToken] = None,
    ) -> RawCompletion:
        """
        Issue one completion, retrying retryable failures.

        Raises:
            ContextLengthExceeded: prompt exceeds the model's input budget (not retried)
            GenerationError: the last error once retries are exhausted, or any fatal error
            GenerationCancelled: the token fired
        """
        token = ensure_token(token)
        options = options or CompletionOptions()
        model = options.model or self.settings.ai_model

        token.raise_if_cancelled()
        self.check_context(prompt, system_prompt, model)

        request = ProviderRequest(
            system_prompt=system_prompt,
            user_prompt=prompt,
            model=model,
            max_output_tokens=options.max_output_tokens or self.settings.output_budget_for(model),
            temperature=DEFAULT_TEMPERATURE if options.temperature is None else options.temperature,
        )

        async def attempt() -> RawCompletion:
            self.rate_limiter.admit()
            return await self.provider.create_completion(request)

        completion = await self.with_retry(attempt, token, description=f"{self.provider.name} completion")
        self.tokens_used += completion.tokens_used
        return completion

    async def complete_structured(
        self,
        prompt: str,
        schema_description: str,
        options: Optional[CompletionOptions] = None,
        token: Optional[CancellationToken] = None,
        system_prompt: str = DEFAULT_SYSTEM_PROMPT,
    ) -> Any:
        """
        Issue a completion constrained to a JSON schema and decode the result.

        Raises:
            UnrecoverableJSON: the text could not be turned into JSON
            GenerationError: as for complete()
        """
        options = options or CompletionOptions()
        if options.temperature is None:
            options = CompletionOptions(
                model=options.model,
                max_output_tokens=options.max_output_tokens,
                temperature=self.settings.structured_temperature,
            )

        structured_system = self.structured_system_prompt(system_prompt, schema_description)
        completion = await self.complete(prompt, structured_system, options, token)
        return self.parser.recover(completion.text)

    @staticmethod
    def structured_system_prompt(system_prompt: str, schema_description: str) -> str:
        return system_prompt + STRUCTURED_SUFFIX.format(schema=schema_description)

    # =========================================================================
    # Policy
    # =========================================================================

    def input_usage(self, prompt: str, system_prompt: str, model: Optional[str] = None) -> tuple[int, int]:
        """Return (estimated prompt tokens, input budget) for `model`."""
        model = model or self.settings.ai_model
        return self.estimator.estimate(prompt + system_prompt), self.settings.input_budget_for(model)

    def check_context(self, prompt: str, system_prompt: str, model: str) -> None:
        """Raise ContextLengthExceeded when the prompt cannot fit the model's input budget."""
        input_tokens, budget = self.input_usage(prompt, system_prompt, model)
        if input_tokens > budget:
            logger.error(f"Prompt needs ~{input_tokens} tokens, {model} accepts {budget}")
            raise ContextLengthExceeded(input_tokens, budget)

    def backoff_delay(self, attempt_number: int, error: GenerationError) -> float:
        """
        Delay before the attempt after `attempt_number`.

        base * 2^(attempt-1) plus uniform jitter, capped at retry_max_delay_seconds.
        A rate-limit error waits at least its retry-after hint (also capped).
        """
        s = self.settings
        delay = s.retry_base_delay_seconds * (2 ** (attempt_number - 1))
        delay += self._rng.uniform(0, s.retry_max_jitter_seconds)
        delay = min(delay, s.retry_max_delay_seconds)
        if isinstance(error, RateLimitExceeded):
            delay = max(delay, min(float(error.retry_after_seconds), s.retry_max_delay_seconds))
        return delay

    async def with_retry(
        self,
        operation: Callable[[], Awaitable[T]],
        token: Optional[CancellationToken] = None,
        description: str = "operation",
    ) -> T:
        """
        Run `operation` up to retry_max_attempts times.

        Fatal errors and cancellation propagate immediately; other
        GenerationErrors are retried after backoff_delay().
        """
        token = ensure_token(token)
        max_attempts = max(1, self.settings.retry_max_attempts)
        state = AttemptState()

        while True:
            state.attempt_number += 1
            token.raise_if_cancelled()
            try:
                return await operation()
            except GenerationCancelled:
                raise
            except GenerationError as e:
                state.last_error = e
                if e.fatal:
                    logger.error(f"{description} failed with fatal {e.code}: {e}")
                    raise
                if state.attempt_number >= max_attempts:
                    logger.error(f"{description} failed after {state.attempt_number} attempts: {e.code}")
                    raise

                state.next_delay = self.backoff_delay(state.attempt_number, e)
                logger.warning(
                    f"{description} attempt {state.attempt_number}/{max_attempts} failed "
                    f"({e.code}), retrying in {state.next_delay:.1f}s"
                )
                await token.wait(state.next_delay, sleep=self._sleep)
