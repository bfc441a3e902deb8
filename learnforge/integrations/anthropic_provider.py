"""
Anthropic messages provider.

Talks to the `/messages` endpoint over httpx.
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


class AnthropicProvider:
    """HTTP client for the Anthropic messages API."""

    name = "Anthropic"

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://api.anthropic.com/v1",
        api_version: str = "2023-06-01",
        timeout_seconds: float = 60.0,
        client: Optional[httpx.AsyncClient] = None,
        estimator: Optional[TokenBudgetEstimator] = None,
    ):
        if not api_key:
            raise ValueError("Anthropic API key required")
        self.api_url = base_url.rstrip("/")
        self.estimator = estimator or TokenBudgetEstimator()
        self.client = client or httpx.AsyncClient(
            timeout=httpx.Timeout(timeout_seconds),
            headers={
                "x-api-key": api_key,
                "anthropic-version": api_version,
                "content-type": "application/json",
            },
        )

    async def close(self) -> None:
        """Close the HTTP client."""
        await self.client.aclose()

    def build_payload(self, request: ProviderRequest) -> dict[str, Any]:
        return {
            "model": request.model,
            "system": request.system_prompt,
            "messages": [{"role": "user", "content": request.user_prompt}],
            "max_tokens": request.max_output_tokens,
            "temperature": request.temperature,
        }

    async def create_completion(self, request: ProviderRequest) -> RawCompletion:
        try:
            response = await self.client.post(
                f"{self.api_url}/messages",
                json=self.build_payload(request),
            )
        except httpx.HTTPError as e:
            raise error_for_transport(self.name, e) from e

        if response.status_code >= 400:
            raise error_for_status(self.name, response)

        data = decode_body(self.name, response)
        blocks = data.get("content")
        if not isinstance(blocks, list):
            blocks = []
        text = "".join(
            block["text"]
            for block in blocks
            if isinstance(block, dict) and block.get("type") == "text" and isinstance(block.get("text"), str)
        )
        content = require_content(self.name, text)

        usage = as_mapping(data.get("usage"))
        tokens_used = token_count(usage.get("input_tokens")) + token_count(usage.get("output_tokens"))
        if not tokens_used:
            tokens_used = self.estimator.estimate(content + request.user_prompt)

        model = data.get("model")
        logger.debug(f"Anthropic response: {len(content)} chars, {tokens_used} tokens")
        return RawCompletion(
            text=content,
            tokens_used=tokens_used,
            model=model if isinstance(model, str) and model else request.model,
        )
