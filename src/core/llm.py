"""LLM provider abstraction for the AI team."""

from __future__ import annotations

import asyncio
import logging
import os
import re
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

import httpx

from .providers import ProviderSpec, get_provider_spec

logger = logging.getLogger("llm")

_THINK_RE = re.compile(r"<think>.*?</think>", re.DOTALL)


@dataclass
class LLMResponse:
    """Response from an LLM call."""
    content: str
    model: str
    input_tokens: int
    output_tokens: int
    latency_ms: float
    raw_response: dict[str, Any] | None = None
    reasoning_trace: str | None = None  # For reasoning models


class LLMProvider(ABC):
    """Abstract base class for LLM providers."""

    @abstractmethod
    async def complete(
        self,
        messages: list[dict[str, str]],
        temperature: float = 0.7,
        max_tokens: int = 1024,
    ) -> LLMResponse:
        """Generate a completion from the LLM."""
        pass


def extract_chat_content(data: dict[str, Any]) -> tuple[str, str | None]:
    """
    Pull (content, reasoning) out of a chat-completions payload.

    <think> blocks are stripped from the content. Reasoning models sometimes
    return an empty content with the answer at the end of reasoning_content;
    in that case the last paragraph of the reasoning is used.
    """
    choices = data.get("choices") or []
    message = choices[0].get("message") if choices else None
    if not isinstance(message, dict):
        raise RuntimeError("Malformed response: missing choices or message")

    content = _THINK_RE.sub("", message.get("content") or "").strip()
    reasoning = message.get("reasoning_content") or None

    if not content and reasoning:
        logger.warning("Empty content, extracting answer from reasoning_content")
        last_section = _THINK_RE.sub("", reasoning).strip().split("\n\n")[-1]
        content = last_section.strip()

    if not content:
        raise RuntimeError("Model returned empty content")
    return content, reasoning


class OpenAICompatibleProvider(LLMProvider):
    """LLM provider for any OpenAI-compatible /chat/completions endpoint."""

    def __init__(
        self,
        model: str,
        api_key: str | None,
        base_url: str,
        is_thinking: bool = False,
        timeout: float = 120.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.model = model
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.is_thinking = is_thinking
        self.timeout = timeout
        self._transport = transport

        if not self.api_key:
            raise ValueError("API key required. Set DECRYPTO_API_KEY or pass api_key.")
        if not self.base_url or not self.model:
            raise ValueError("base_url and model are required for an OpenAI-compatible provider.")

    async def complete(
        self,
        messages: list[dict[str, str]],
        temperature: float = 0.7,
        max_tokens: int = 1024,
        max_retries: int = 3,
    ) -> LLMResponse:
        """Generate a completion with retry on 429/5xx and network errors."""
        start_time = time.perf_counter()
        last_error: Exception | None = None

        body: dict[str, Any] = {
            "model": self.model,
            "messages": messages,
            "max_tokens": max_tokens,
        }
        # Reasoning models reject a temperature parameter.
        if not self.is_thinking:
            body["temperature"] = temperature

        logger.info(f"Calling {self.base_url} model={self.model} thinking={self.is_thinking}")

        for attempt in range(max_retries):
            try:
                async with httpx.AsyncClient(transport=self._transport) as client:
                    response = await client.post(
                        f"{self.base_url}/chat/completions",
                        headers={
                            "Authorization": f"Bearer {self.api_key}",
                            "Content-Type": "application/json",
                        },
                        json=body,
                        timeout=self.timeout,
                    )

                    if response.status_code != 200:
                        try:
                            error_data = response.json()
                            error_msg = error_data.get("error", {}).get("message", response.text)
                        except Exception:
                            error_msg = response.text

                        if response.status_code >= 500 or response.status_code == 429:
                            last_error = RuntimeError(f"API error ({response.status_code}): {error_msg}")
                            if attempt < max_retries - 1:
                                wait_time = 2 ** attempt
                                logger.warning(f"API error {response.status_code}, retrying in {wait_time}s (attempt {attempt + 1}/{max_retries})")
                                await asyncio.sleep(wait_time)
                                continue
                        raise RuntimeError(f"API error ({response.status_code}): {error_msg}")

                    data = response.json()
                    break

            except (httpx.RemoteProtocolError, httpx.ReadError, httpx.ConnectError, httpx.TimeoutException) as e:
                last_error = e
                if attempt < max_retries - 1:
                    wait_time = 2 ** attempt
                    logger.warning(f"Network error ({type(e).__name__}), retrying in {wait_time}s (attempt {attempt + 1}/{max_retries}): {e}")
                    await asyncio.sleep(wait_time)
                    continue
                raise RuntimeError(f"Network error after {max_retries} attempts: {e}") from e
        else:
            raise RuntimeError(f"Failed after {max_retries} attempts") from last_error

        latency_ms = (time.perf_counter() - start_time) * 1000

        content, reasoning = extract_chat_content(data)
        usage = data.get("usage", {})

        return LLMResponse(
            content=content,
            model=self.model,
            input_tokens=usage.get("prompt_tokens", 0),
            output_tokens=usage.get("completion_tokens", 0),
            latency_ms=latency_ms,
            raw_response=data,
            reasoning_trace=reasoning,
        )


class AnthropicProvider(LLMProvider):
    """LLM provider using Anthropic API directly."""

    def __init__(
        self,
        model: str = "claude-sonnet-4-20250514",
        api_key: str | None = None,
        base_url: str = "https://api.anthropic.com/v1",
        timeout: float = 60.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.model = model
        self.api_key = api_key or os.environ.get("ANTHROPIC_API_KEY")
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

        if not self.api_key:
            raise ValueError(
                "Anthropic API key required. Set ANTHROPIC_API_KEY environment variable "
                "or pass api_key parameter."
            )

    async def complete(
        self,
        messages: list[dict[str, str]],
        temperature: float = 0.7,
        max_tokens: int = 1024,
    ) -> LLMResponse:
        """Generate a completion using Anthropic API."""
        start_time = time.perf_counter()

        system_message = None
        anthropic_messages = []

        for msg in messages:
            if msg["role"] == "system":
                system_message = msg["content"]
            else:
                anthropic_messages.append({
                    "role": msg["role"],
                    "content": msg["content"],
                })

        request_body: dict[str, Any] = {
            "model": self.model,
            "messages": anthropic_messages,
            "temperature": temperature,
            "max_tokens": max_tokens,
        }

        if system_message:
            request_body["system"] = system_message

        async with httpx.AsyncClient(transport=self._transport) as client:
            response = await client.post(
                f"{self.base_url}/messages",
                headers={
                    "x-api-key": self.api_key,
                    "anthropic-version": "2023-06-01",
                    "Content-Type": "application/json",
                },
                json=request_body,
                timeout=self.timeout,
            )
            response.raise_for_status()
            data = response.json()

        latency_ms = (time.perf_counter() - start_time) * 1000

        text_blocks = [b.get("text", "") for b in data.get("content", []) if b.get("type") == "text"]
        thinking_blocks = [b.get("thinking", "") for b in data.get("content", []) if b.get("type") == "thinking"]
        content = "".join(text_blocks).strip()
        if not content:
            raise RuntimeError("Model returned empty content")
        usage = data.get("usage", {})

        return LLMResponse(
            content=content,
            model=self.model,
            input_tokens=usage.get("input_tokens", 0),
            output_tokens=usage.get("output_tokens", 0),
            latency_ms=latency_ms,
            raw_response=data,
            reasoning_trace="\n".join(thinking_blocks) or None,
        )


class MockProvider(LLMProvider):
    """
    Mock LLM provider for testing.

    Responses are cycled; an Exception instance in the list is raised instead
    of returned, to simulate provider failures.
    """

    def __init__(
        self,
        responses: list[str | Exception] | None = None,
        model: str = "mock-model",
        delay_s: float = 0.0,
    ):
        self.responses = responses or ["Mock response"]
        self.model = model
        self.delay_s = delay_s
        self.call_count = 0
        self.last_messages: list[dict[str, str]] = []

    async def complete(
        self,
        messages: list[dict[str, str]],
        temperature: float = 0.7,
        max_tokens: int = 1024,
    ) -> LLMResponse:
        """Return a mock response."""
        self.last_messages = messages

        response_idx = self.call_count % len(self.responses)
        content = self.responses[response_idx]
        self.call_count += 1

        if self.delay_s:
            await asyncio.sleep(self.delay_s)
        if isinstance(content, Exception):
            raise content

        return LLMResponse(
            content=content,
            model=self.model,
            input_tokens=len(str(messages)) // 4,
            output_tokens=len(content) // 4,
            latency_ms=10.0,
            raw_response=None,
        )


def resolve_api_key(spec: ProviderSpec, api_key: str | None) -> str | None:
    if api_key:
        return api_key
    if spec.api_key_env:
        return os.environ.get(spec.api_key_env)
    return None


def create_provider(
    provider_id: str = "deepseek",
    api_key: str | None = None,
    use_thinking: bool = False,
    base_url: str | None = None,
    model: str | None = None,
    **kwargs,
) -> LLMProvider:
    """
    Factory function to create LLM providers from the catalog.

    With use_thinking, the provider's thinking model is used when it has one.
    An explicit model always wins over the catalog entry, thinking or not;
    base_url/model are required for "custom".
    """
    if provider_id == "mock":
        return MockProvider(**kwargs)

    spec = get_provider_spec(provider_id)
    key = resolve_api_key(spec, api_key)
    is_thinking = use_thinking and spec.thinking_model is not None
    resolved_model = model or (spec.thinking_model if is_thinking else spec.model)
    resolved_base = base_url or spec.base_url

    if spec.protocol == "anthropic":
        return AnthropicProvider(model=resolved_model, api_key=key, base_url=resolved_base, **kwargs)
    return OpenAICompatibleProvider(
        model=resolved_model,  # type: ignore[arg-type]
        api_key=key,
        base_url=resolved_base,
        is_thinking=is_thinking,
        **kwargs,
    )
