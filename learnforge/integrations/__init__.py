"""Generative-text providers reachable over HTTP."""
from __future__ import annotations

from learnforge.config import Settings
from learnforge.integrations.anthropic_provider import AnthropicProvider
from learnforge.integrations.base import CompletionProvider, ProviderRequest
from learnforge.integrations.openai_provider import OpenAIProvider


def build_provider(settings: Settings) -> CompletionProvider:
    """Create the provider selected by settings.ai_provider."""
    if settings.ai_provider == "anthropic":
        if not settings.anthropic_api_key:
            raise ValueError("Anthropic API key required (set ANTHROPIC_API_KEY)")
        return AnthropicProvider(
            api_key=settings.anthropic_api_key,
            base_url=settings.anthropic_base_url,
            api_version=settings.anthropic_version,
            timeout_seconds=settings.request_timeout_seconds,
        )

    if not settings.openai_api_key:
        raise ValueError("OpenAI API key required (set OPENAI_API_KEY)")
    return OpenAIProvider(
        api_key=settings.openai_api_key,
        base_url=settings.openai_base_url,
        timeout_seconds=settings.request_timeout_seconds,
    )


__all__ = [
    "CompletionProvider",
    "ProviderRequest",
    "OpenAIProvider",
    "AnthropicProvider",
    "build_provider",
]
