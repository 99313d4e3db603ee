"""Model-driven players for the AI team."""

from .llm_agents import AIEncryptor, AIGuesser, AIInterceptor, AIParseError

__all__ = ["AIEncryptor", "AIGuesser", "AIInterceptor", "AIParseError"]
