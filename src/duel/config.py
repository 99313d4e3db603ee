"""Model-side configuration for the AI team."""

from __future__ import annotations

import os

from pydantic import BaseModel, Field

from src.core.llm import LLMProvider, create_provider
from src.core.providers import DEFAULT_PROVIDER_ID

from .agents.llm_agents import AIEncryptor, AIGuesser, AIInterceptor
from .orchestrator import DEFAULT_TIMEOUT_S, ModelPhaseRunner
from .session import DuelSession

_TRUTHY = {"1", "true", "yes", "on"}


class AIConfig(BaseModel):
    """Which provider/model plays the AI team. The API key is never persisted."""

    model_config = {"protected_namespaces": ()}

    provider_id: str = DEFAULT_PROVIDER_ID
    api_key: str | None = Field(default=None, repr=False)
    use_thinking: bool = False
    base_url: str | None = None  # required for the "custom" provider
    model: str | None = None  # required for the "custom" provider
    timeout_s: float = Field(default=DEFAULT_TIMEOUT_S, gt=0)
    encrypt_temperature: float = 0.7
    guess_temperature: float = 0.3

    @classmethod
    def from_env(cls) -> "AIConfig":
        """
        Read DECRYPTO_* environment variables. A missing DECRYPTO_API_KEY falls
        back to the provider's conventional variable (e.g. DEEPSEEK_API_KEY).
        """
        kwargs: dict[str, object] = {
            "provider_id": os.environ.get("DECRYPTO_PROVIDER", DEFAULT_PROVIDER_ID),
            "api_key": os.environ.get("DECRYPTO_API_KEY") or None,
            "use_thinking": os.environ.get("DECRYPTO_USE_THINKING", "").strip().lower() in _TRUTHY,
            "base_url": os.environ.get("DECRYPTO_BASE_URL") or None,
            "model": os.environ.get("DECRYPTO_MODEL") or None,
        }
        timeout = os.environ.get("DECRYPTO_TIMEOUT_S")
        if timeout:
            kwargs["timeout_s"] = float(timeout)
        return cls(**kwargs)  # type: ignore[arg-type]

    def create_provider(self) -> LLMProvider:
        return create_provider(
            self.provider_id,
            api_key=self.api_key,
            use_thinking=self.use_thinking,
            base_url=self.base_url,
            model=self.model,
        )


def build_runner(
    session: DuelSession,
    config: AIConfig,
    provider: LLMProvider | None = None,
) -> ModelPhaseRunner:
    """Wire the three AI roles to one provider."""
    p = provider or config.create_provider()
    return ModelPhaseRunner(
        session,
        encryptor=AIEncryptor(provider=p, temperature=config.encrypt_temperature),
        guesser=AIGuesser(provider=p, temperature=config.guess_temperature, use_thinking=config.use_thinking),
        interceptor=AIInterceptor(provider=p, temperature=config.guess_temperature, use_thinking=config.use_thinking),
        timeout_s=config.timeout_s,
    )
