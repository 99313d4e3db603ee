"""Data models for the human-vs-AI Decrypto duel."""

from __future__ import annotations

import time
from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


Code = tuple[int, int, int]
Clues = tuple[str, str, str]
Keywords = tuple[str, str, str, str]
Winner = Literal["human", "ai", "draw"]
LogRole = Literal["encryptor", "guesser", "interceptor"]

CODE_DIGITS = (1, 2, 3, 4)


def validate_code(digits: tuple[int, ...] | list[int]) -> str | None:
    """Return an error message if `digits` is not a valid code, else None."""
    if len(digits) != 3:
        return "Code must have exactly 3 digits"
    if any(not isinstance(x, int) or isinstance(x, bool) for x in digits):
        return "Code digits must be integers"
    if any(x not in CODE_DIGITS for x in digits):
        return "Code digits must be in {1,2,3,4}"
    if len(set(digits)) != 3:
        return "Code digits must be distinct"
    return None


class Phase(str, Enum):
    """Per-round phase of a duel session."""
    IDLE = "idle"
    HUMAN_ENCRYPT = "human_encrypt"
    HUMAN_GUESS = "human_guess"
    AI_INTERCEPT = "ai_intercept"
    HUMAN_PHASE_RESULT = "human_phase_result"
    AI_ENCRYPT = "ai_encrypt"
    AI_GUESS = "ai_guess"
    HUMAN_INTERCEPT = "human_intercept"
    AI_PHASE_RESULT = "ai_phase_result"
    ROUND_END = "round_end"
    GAME_OVER = "game_over"


class TeamState(BaseModel):
    """Keywords and cumulative counters for one team."""

    model_config = ConfigDict(frozen=True)

    keywords: Keywords = ("", "", "", "")
    intercept_count: int = 0
    miscommunication_count: int = 0


class ReasoningLog(BaseModel):
    """
    Audit record of one model call. Observational only: never read by game logic.
    """

    model_config = ConfigDict(frozen=True)

    role: LogRole
    input: str
    output: str
    reasoning: str | None = None
    timestamp: float = Field(default_factory=time.time)


class PhaseResult(BaseModel):
    """One team's performance in one round."""

    model_config = ConfigDict(frozen=True)

    code: Code
    clues: Clues
    team_guess: Code | None = None
    team_guess_correct: bool | None = None
    intercept_guess: Code | None = None
    intercept_correct: bool | None = None


class RoundData(BaseModel):
    """Completed round record, appended once to the session history."""

    model_config = ConfigDict(frozen=True)

    round: int
    human_phase: PhaseResult
    ai_phase: PhaseResult
    ai_logs: tuple[ReasoningLog, ...] = ()


class GameEndResult(BaseModel):
    """Outcome of the termination rule."""

    model_config = ConfigDict(frozen=True)

    ended: bool
    winner: Winner | None = None
    reason: str | None = None


class ActionResult(BaseModel):
    """
    Outcome of a session entry point.

    ok=False with ignored=True means the action arrived out of phase (stale or
    duplicate) and was dropped; ok=False with ignored=False is a validation failure.
    """

    model_config = ConfigDict(frozen=True)

    ok: bool
    ignored: bool = False
    error: str | None = None
    correct: bool | None = None  # set when the action evaluated a guess

    @classmethod
    def success(cls, correct: bool | None = None) -> "ActionResult":
        return cls(ok=True, correct=correct)

    @classmethod
    def rejected(cls, error: str) -> "ActionResult":
        return cls(ok=False, error=error)

    @classmethod
    def stale(cls, error: str) -> "ActionResult":
        return cls(ok=False, ignored=True, error=error)


class GameState(BaseModel):
    """Root aggregate of a duel session. Mutated only by DuelSession transitions."""

    phase: Phase = Phase.IDLE
    round: int = 0
    max_rounds: int = 8
    human_team: TeamState = Field(default_factory=TeamState)
    ai_team: TeamState = Field(default_factory=TeamState)

    # Current-round slots, cleared every round.
    current_human_code: Code | None = None
    current_ai_code: Code | None = None
    current_human_clues: Clues | None = None
    current_ai_clues: Clues | None = None
    current_human_guess: Code | None = None
    current_ai_team_guess: Code | None = None
    current_ai_intercept_guess: Code | None = None
    current_human_intercept_guess: Code | None = None

    history: tuple[RoundData, ...] = ()
    ai_thinking_logs: tuple[ReasoningLog, ...] = ()

    winner: Winner | None = None
    end_reason: str | None = None
    is_ai_thinking: bool = False


class DuelConfig(BaseModel):
    """Config for a duel session."""

    max_rounds: int = Field(default=8, ge=1)
    keyword_bank_path: str | None = None  # default to data/wordlist.txt
    seed: int | None = None
