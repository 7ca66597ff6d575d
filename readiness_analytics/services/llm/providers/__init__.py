"""
Provider adapter implementations.

Usage:
    from readiness_analytics.services.llm.providers import get_provider

    provider = get_provider("openai", settings.get_llm_config("openai"))
    response = await provider.analyze(request)
"""

from typing import Any, Dict, Optional

from .base import BaseProviderAdapter, Completion, ProviderAdapterConfig, ProviderResponse
from .gemini import GeminiAdapter
from .openai import OpenAIAdapter


def get_provider(provider_name: str, config: Optional[Dict[str, Any]] = None) -> BaseProviderAdapter:
    """
    Factory function to get a provider adapter by name.

    Args:
        provider_name: Name of the provider ("openai", "gemini")
        config: Optional configuration dictionary

    Returns:
        An instance of the appropriate adapter

    Raises:
        ValueError: If provider_name is not recognized
    """
    provider_name_lower = provider_name.lower()

    if provider_name_lower == "openai":
        return OpenAIAdapter(dict(config or {}))
    elif provider_name_lower == "gemini":
        return GeminiAdapter(dict(config or {}))
    else:
        raise ValueError(f"Unknown LLM provider: {provider_name}")


__all__ = [
    "BaseProviderAdapter",
    "Completion",
    "ProviderAdapterConfig",
    "ProviderResponse",
    "GeminiAdapter",
    "OpenAIAdapter",
    "get_provider",
]
