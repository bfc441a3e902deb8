"""
OpenAI chat-completions provider.

Talks to any OpenAI-compatible `/chat/completions` endpoint over httpx.
"""
from __future__ import annotations

from typing import Any, Optional

import httpx
from loguru import logger

from learnforge.core.models import RawCompletion
from learnforge.integrations.base import (
    ProviderRequest,
    as_mapping,
    decode_body,
    error_for_status,
    error_for_transport,
    require_content,
    token_count,
)
from learnforge.processing.tokens import TokenBudgetEstimator


class OpenAIProvider:
    """HTTP client for the OpenAI chat completions API."""

    name = "OpenAI"

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://api.openai.com/v1",
        timeout_seconds: float = 60.0,
        client: Optional[httpx.AsyncClient] = None,
        estimator: Optional[TokenBudgetEstimator] = None,
    ):
        """
        Initialize OpenAI provider.

        Args:
            api_key: OpenAI API key
            base_url: Base URL of the API (no trailing /chat/completions)
            timeout_seconds: Per-request timeout
            client: Pre-built httpx client (tests inject one)
            estimator: Used when the response carries no usage block
        """
        if not api_key:
            raise ValueError("OpenAI API key required")
        self.api_url = base_url.rstrip("/")
        self.estimator = estimator or TokenBudgetEstimator()
        self.client = client or httpx.AsyncClient(
            timeout=httpx.Timeout(timeout_seconds),
            headers={
                "Authorization": f"Bearer {api_key}",
                "Content-Type": "application/json",
            },
        )

    async def close(self) -> None:
        """Close the HTTP client."""
        await self.client.aclose()

    def build_payload(self, request: ProviderRequest) -> dict[str, Any]:
        return {
            "model": request.model,
            "messages": [
                {"role": "system", "content": request.system_prompt},
                {"role": "user", "content": request.user_prompt},
            ],
            "max_tokens": request.max_output_tokens,
            "temperature": request.temperature,
            "top_p": 1,
            "frequency_penalty": 0,
            "presence_penalty": 0,
        }

    async def create_completion(self, request: ProviderRequest) -> RawCompletion:
        """
        Issue one chat completion.

        Raises:
            GenerationError subclasses for every non-success outcome
        """
        try:
            response = await self.client.post(
                f"{self.api_url}/chat/completions",
                json=self.build_payload(request),
            )
        except httpx.HTTPError as e:
            raise error_for_transport(self.name, e) from e

        if response.status_code >= 400:
            raise error_for_status(self.name, response)

        data = decode_body(self.name, response)
        choices = data.get("choices")
        first = choices[0] if isinstance(choices, list) and choices else None
        message = as_mapping(as_mapping(first).get("message"))
        content = require_content(self.name, message.get("content"))

        usage = as_mapping(data.get("usage"))
        tokens_used = token_count(usage.get("total_tokens")) or self.estimator.estimate(content + request.user_prompt)

        model = data.get("model")
        logger.debug(f"OpenAI response: {len(content)} chars, {tokens_used} tokens")
        return RawCompletion(
            text=content,
            tokens_used=tokens_used,
            model=model if isinstance(model, str) and model else request.model,
        )
