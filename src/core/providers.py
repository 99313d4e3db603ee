"""Catalog of chat-completion providers the AI team can run on."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict


class ProviderSpec(BaseModel):
    """Static description of one provider endpoint."""

    model_config = ConfigDict(frozen=True, protected_namespaces=())

    id: str
    name: str
    base_url: str
    model: str
    thinking_model: str | None = None
    key_placeholder: str = "sk-..."
    api_key_env: str | None = None  # conventional env var for the key
    protocol: Literal["openai", "anthropic"] = "openai"


PROVIDERS: tuple[ProviderSpec, ...] = (
    ProviderSpec(
        id="deepseek",
        name="DeepSeek",
        base_url="https://api.deepseek.com",
        model="deepseek-chat",
        thinking_model="deepseek-reasoner",
        api_key_env="DEEPSEEK_API_KEY",
    ),
    ProviderSpec(
        id="openai",
        name="OpenAI",
        base_url="https://api.openai.com/v1",
        model="gpt-4o",
        thinking_model="o3-mini",
        api_key_env="OPENAI_API_KEY",
    ),
    ProviderSpec(
        id="anthropic",
        name="Anthropic",
        base_url="https://api.anthropic.com/v1",
        model="claude-sonnet-4-20250514",
        key_placeholder="sk-ant-...",
        api_key_env="ANTHROPIC_API_KEY",
        protocol="anthropic",
    ),
    ProviderSpec(
        id="zhipu",
        name="Zhipu GLM",
        base_url="https://open.bigmodel.cn/api/paas/v4",
        model="glm-4-flash",
        key_placeholder="...",
        api_key_env="ZHIPU_API_KEY",
    ),
    ProviderSpec(
        id="qwen",
        name="Qwen",
        base_url="https://dashscope.aliyuncs.com/compatible-mode/v1",
        model="qwen-plus",
        thinking_model="qwq-32b",
        api_key_env="DASHSCOPE_API_KEY",
    ),
    ProviderSpec(
        id="moonshot",
        name="Moonshot (Kimi)",
        base_url="https://api.moonshot.cn/v1",
        model="moonshot-v1-8k",
        api_key_env="MOONSHOT_API_KEY",
    ),
    ProviderSpec(
        id="doubao",
        name="Doubao",
        base_url="https://ark.cn-beijing.volces.com/api/v3",
        model="doubao-1.5-pro-32k-250115",
        thinking_model="doubao-1.5-thinking-pro-250415",
        key_placeholder="...",
        api_key_env="ARK_API_KEY",
    ),
    ProviderSpec(
        id="openrouter",
        name="OpenRouter",
        base_url="https://openrouter.ai/api/v1",
        model="anthropic/claude-3.5-sonnet",
        api_key_env="OPENROUTER_API_KEY",
    ),
    ProviderSpec(
        id="custom",
        name="Custom (OpenAI-compatible)",
        base_url="",
        model="",
        key_placeholder="...",
    ),
)

DEFAULT_PROVIDER_ID = "deepseek"


def get_provider_spec(provider_id: str) -> ProviderSpec:
    """Look up a provider; unknown ids fall back to the default provider."""
    for p in PROVIDERS:
        if p.id == provider_id:
            return p
    return get_provider_spec(DEFAULT_PROVIDER_ID)


def provider_ids() -> list[str]:
    return [p.id for p in PROVIDERS]
