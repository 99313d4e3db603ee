"""Human-vs-AI Decrypto: phase state machine, scoring and AI team."""

from .models import (
    ActionResult,
    Code,
    DuelConfig,
    GameEndResult,
    GameState,
    Phase,
    PhaseResult,
    ReasoningLog,
    RoundData,
    TeamState,
)
from .game import KeywordBank, WordSource, check_game_end, check_guess, generate_code
from .session import DuelSession
from .agents import AIEncryptor, AIGuesser, AIInterceptor, AIParseError
from .orchestrator import FALLBACK_CLUES, FALLBACK_CODE, ModelPhaseRunner
from .config import AIConfig, build_runner

__all__ = [
    # Models
    "ActionResult",
    "Code",
    "DuelConfig",
    "GameEndResult",
    "GameState",
    "Phase",
    "PhaseResult",
    "ReasoningLog",
    "RoundData",
    "TeamState",
    # Rules
    "KeywordBank",
    "WordSource",
    "check_game_end",
    "check_guess",
    "generate_code",
    # Session
    "DuelSession",
    # Agents
    "AIEncryptor",
    "AIGuesser",
    "AIInterceptor",
    "AIParseError",
    "ModelPhaseRunner",
    "FALLBACK_CLUES",
    "FALLBACK_CODE",
    "AIConfig",
    "build_runner",
]
