"""Core module with shared LLM provider abstractions."""

from .llm import (
    LLMProvider,
    LLMResponse,
    OpenAICompatibleProvider,
    AnthropicProvider,
    MockProvider,
    create_provider,
    extract_chat_content,
)
from .providers import PROVIDERS, ProviderSpec, get_provider_spec

__all__ = [
    # LLM providers
    "LLMProvider",
    "LLMResponse",
    "OpenAICompatibleProvider",
    "AnthropicProvider",
    "MockProvider",
    "create_provider",
    "extract_chat_content",
    # Provider catalog
    "PROVIDERS",
    "ProviderSpec",
    "get_provider_spec",
]
