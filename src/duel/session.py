"""Phase state machine and game lifecycle for a human-vs-AI Decrypto duel.

One DuelSession owns one GameState. Every entry point either applies a full
transition and returns ActionResult.success(), or leaves the state untouched
and reports why. Submissions that arrive in the wrong phase (a model reply
landing after the round moved on, a double click) are dropped as stale.
"""

from __future__ import annotations

import logging
import random
from collections.abc import Sequence

from .game import KeywordBank, WordSource, check_game_end, check_guess, generate_code
from .history import build_phase_result, record_round
from .models import (
    ActionResult,
    Clues,
    Code,
    DuelConfig,
    GameState,
    Phase,
    ReasoningLog,
    TeamState,
    validate_code,
)

logger = logging.getLogger(__name__)


def validate_clues(clues: Sequence[str]) -> tuple[Clues | None, str | None]:
    """
    Validate a clue submission.

    Returns:
        (clues, error) - clues are stripped; error is None if valid.
    """
    if isinstance(clues, str) or len(clues) != 3:
        return None, "Exactly 3 clues are required"
    out: list[str] = []
    for i, c in enumerate(clues, start=1):
        if not isinstance(c, str):
            return None, f"Clue {i} must be a string"
        w = c.strip()
        if not w:
            return None, f"Clue {i} cannot be blank"
        out.append(w)
    return (out[0], out[1], out[2]), None


def coerce_code(guess: Sequence[int]) -> tuple[Code | None, str | None]:
    """Validate a guessed code and normalise it to a tuple."""
    if isinstance(guess, str):
        return None, "Code must be a sequence of 3 digits"
    try:
        digits = tuple(guess)
    except TypeError:
        return None, "Code must be a sequence of 3 digits"
    error = validate_code(digits)
    if error is not None:
        return None, error
    return digits, None  # type: ignore[return-value]


class DuelSession:
    """Explicitly owned session handle. Not thread-safe; callers serialise access."""

    def __init__(
        self,
        config: DuelConfig | None = None,
        word_source: WordSource | None = None,
        rng: random.Random | None = None,
    ):
        self.config = config or DuelConfig()
        self._rng = rng or random.Random(self.config.seed)
        self._word_source = word_source
        self._state = GameState(max_rounds=self.config.max_rounds)
        self._generation = 0

    @property
    def word_source(self) -> WordSource:
        if self._word_source is None:
            self._word_source = KeywordBank.from_file(self.config.keyword_bank_path, seed=self.config.seed)
        return self._word_source

    @property
    def state(self) -> GameState:
        """Deep copy of the current state; mutating it does not affect the session."""
        return self._state.model_copy(deep=True)

    @property
    def phase(self) -> Phase:
        return self._state.phase

    @property
    def generation(self) -> int:
        """Bumped by start_game and reset_game; tags work that belongs to one game."""
        return self._generation

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _expect(self, phase: Phase, action: str) -> ActionResult | None:
        if self._state.phase == phase:
            return None
        logger.debug(f"Ignoring {action}: expected phase {phase.value}, current {self._state.phase.value}")
        return ActionResult.stale(f"{action} is not allowed in phase {self._state.phase.value}")

    def _reject(self, action: str, error: str) -> ActionResult:
        logger.warning(f"Rejected {action}: {error}")
        return ActionResult.rejected(error)

    def _draw_codes(self) -> tuple[Code, Code]:
        return generate_code(self._rng), generate_code(self._rng)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start_game(self) -> ActionResult:
        """Deal keywords and codes and open round 1. A finished game must be reset first."""
        if self._state.phase == Phase.GAME_OVER:
            logger.debug("Ignoring start_game: game is over, reset first")
            return ActionResult.stale("start_game is not allowed in phase game_over; reset first")
        try:
            words = [str(w).strip().upper() for w in self.word_source.draw_keywords(8)]
        except Exception as e:
            logger.error(f"Word source failed: {e}")
            return ActionResult.rejected(f"Word source failed: {e}")
        if len(words) < 8 or len(set(words)) < 8 or any(not w for w in words):
            return self._reject("start_game", "Word source must return 8 distinct keywords")

        human_code, ai_code = self._draw_codes()
        self._state = GameState(
            phase=Phase.HUMAN_ENCRYPT,
            round=1,
            max_rounds=self.config.max_rounds,
            human_team=TeamState(keywords=tuple(words[:4])),  # type: ignore[arg-type]
            ai_team=TeamState(keywords=tuple(words[4:8])),  # type: ignore[arg-type]
            current_human_code=human_code,
            current_ai_code=ai_code,
        )
        self._generation += 1
        logger.info(f"Game started: max_rounds={self.config.max_rounds}")
        return ActionResult.success()

    def reset_game(self) -> ActionResult:
        """Discard everything and return to the pre-game state."""
        self._state = GameState(max_rounds=self.config.max_rounds)
        self._generation += 1
        logger.info("Game reset")
        return ActionResult.success()

    def set_ai_thinking(self, value: bool) -> ActionResult:
        """Informational flag for an outstanding model call."""
        if self._state.phase in (Phase.IDLE, Phase.GAME_OVER):
            return ActionResult.stale(f"set_ai_thinking is not allowed in phase {self._state.phase.value}")
        new_state = self._state.model_copy(deep=True)
        new_state.is_ai_thinking = bool(value)
        self._state = new_state
        return ActionResult.success()

    # ------------------------------------------------------------------
    # Human half of the round
    # ------------------------------------------------------------------

    def submit_human_clues(self, clues: Sequence[str]) -> ActionResult:
        stale = self._expect(Phase.HUMAN_ENCRYPT, "submit_human_clues")
        if stale is not None:
            return stale
        parsed, error = validate_clues(clues)
        if parsed is None:
            return self._reject("submit_human_clues", error or "invalid clues")

        new_state = self._state.model_copy(deep=True)
        new_state.current_human_clues = parsed
        new_state.phase = Phase.HUMAN_GUESS
        self._state = new_state
        return ActionResult.success()

    def submit_human_guess(self, guess: Sequence[int]) -> ActionResult:
        stale = self._expect(Phase.HUMAN_GUESS, "submit_human_guess")
        if stale is not None:
            return stale
        code, error = coerce_code(guess)
        if code is None:
            return self._reject("submit_human_guess", error or "invalid code")

        new_state = self._state.model_copy(deep=True)
        correct = check_guess(code, new_state.current_human_code)  # type: ignore[arg-type]
        if not correct:
            new_state.human_team = new_state.human_team.model_copy(
                update={"miscommunication_count": new_state.human_team.miscommunication_count + 1}
            )
        new_state.current_human_guess = code
        new_state.phase = Phase.AI_INTERCEPT
        self._state = new_state
        return ActionResult.success(correct=correct)

    def submit_ai_intercept(self, guess: Sequence[int], log: ReasoningLog | None = None) -> ActionResult:
        stale = self._expect(Phase.AI_INTERCEPT, "submit_ai_intercept")
        if stale is not None:
            return stale
        code, error = coerce_code(guess)
        if code is None:
            return self._reject("submit_ai_intercept", error or "invalid code")

        new_state = self._state.model_copy(deep=True)
        correct = check_guess(code, new_state.current_human_code)  # type: ignore[arg-type]
        if correct:
            new_state.ai_team = new_state.ai_team.model_copy(
                update={"intercept_count": new_state.ai_team.intercept_count + 1}
            )
        new_state.current_ai_intercept_guess = code
        if log is not None:
            new_state.ai_thinking_logs = (*new_state.ai_thinking_logs, log)
        new_state.is_ai_thinking = False
        new_state.phase = Phase.HUMAN_PHASE_RESULT
        self._state = new_state
        return ActionResult.success(correct=correct)

    def finish_human_phase(self) -> ActionResult:
        stale = self._expect(Phase.HUMAN_PHASE_RESULT, "finish_human_phase")
        if stale is not None:
            return stale
        new_state = self._state.model_copy(deep=True)
        new_state.phase = Phase.AI_ENCRYPT
        new_state.is_ai_thinking = True
        self._state = new_state
        return ActionResult.success()

    # ------------------------------------------------------------------
    # AI half of the round
    # ------------------------------------------------------------------

    def submit_ai_clues(self, clues: Sequence[str], log: ReasoningLog | None = None) -> ActionResult:
        stale = self._expect(Phase.AI_ENCRYPT, "submit_ai_clues")
        if stale is not None:
            return stale
        parsed, error = validate_clues(clues)
        if parsed is None:
            return self._reject("submit_ai_clues", error or "invalid clues")

        new_state = self._state.model_copy(deep=True)
        new_state.current_ai_clues = parsed
        if log is not None:
            new_state.ai_thinking_logs = (*new_state.ai_thinking_logs, log)
        new_state.phase = Phase.AI_GUESS
        self._state = new_state
        return ActionResult.success()

    def submit_ai_guess(self, guess: Sequence[int], log: ReasoningLog | None = None) -> ActionResult:
        stale = self._expect(Phase.AI_GUESS, "submit_ai_guess")
        if stale is not None:
            return stale
        code, error = coerce_code(guess)
        if code is None:
            return self._reject("submit_ai_guess", error or "invalid code")

        new_state = self._state.model_copy(deep=True)
        correct = check_guess(code, new_state.current_ai_code)  # type: ignore[arg-type]
        if not correct:
            new_state.ai_team = new_state.ai_team.model_copy(
                update={"miscommunication_count": new_state.ai_team.miscommunication_count + 1}
            )
        new_state.current_ai_team_guess = code
        if log is not None:
            new_state.ai_thinking_logs = (*new_state.ai_thinking_logs, log)
        new_state.is_ai_thinking = False
        new_state.phase = Phase.HUMAN_INTERCEPT
        self._state = new_state
        return ActionResult.success(correct=correct)

    def submit_human_intercept(self, guess: Sequence[int]) -> ActionResult:
        stale = self._expect(Phase.HUMAN_INTERCEPT, "submit_human_intercept")
        if stale is not None:
            return stale
        code, error = coerce_code(guess)
        if code is None:
            return self._reject("submit_human_intercept", error or "invalid code")

        new_state = self._state.model_copy(deep=True)
        correct = check_guess(code, new_state.current_ai_code)  # type: ignore[arg-type]
        if correct:
            new_state.human_team = new_state.human_team.model_copy(
                update={"intercept_count": new_state.human_team.intercept_count + 1}
            )
        new_state.current_human_intercept_guess = code
        new_state.phase = Phase.AI_PHASE_RESULT
        self._state = new_state
        return ActionResult.success(correct=correct)

    def finish_ai_phase(self) -> ActionResult:
        """Close the round: record both phase results and the buffered model logs."""
        stale = self._expect(Phase.AI_PHASE_RESULT, "finish_ai_phase")
        if stale is not None:
            return stale
        s = self._state
        human_phase = build_phase_result(
            code=s.current_human_code,  # type: ignore[arg-type]
            clues=s.current_human_clues,  # type: ignore[arg-type]
            team_guess=s.current_human_guess,
            intercept_guess=s.current_ai_intercept_guess,
        )
        ai_phase = build_phase_result(
            code=s.current_ai_code,  # type: ignore[arg-type]
            clues=s.current_ai_clues,  # type: ignore[arg-type]
            team_guess=s.current_ai_team_guess,
            intercept_guess=s.current_human_intercept_guess,
        )

        new_state = s.model_copy(deep=True)
        new_state.history = record_round(
            s.history,
            round_number=s.round,
            human_phase=human_phase,
            ai_phase=ai_phase,
            logs=s.ai_thinking_logs,
        )
        new_state.ai_thinking_logs = ()
        new_state.phase = Phase.ROUND_END
        self._state = new_state
        logger.info(
            f"Round {s.round} recorded: human {s.human_team.intercept_count}I/{s.human_team.miscommunication_count}M, "
            f"ai {s.ai_team.intercept_count}I/{s.ai_team.miscommunication_count}M"
        )
        return ActionResult.success()

    def advance_to_next_round(self) -> ActionResult:
        stale = self._expect(Phase.ROUND_END, "advance_to_next_round")
        if stale is not None:
            return stale
        new_state = self._state.model_copy(deep=True)
        next_round = new_state.round + 1
        end = check_game_end(new_state.human_team, new_state.ai_team, next_round, new_state.max_rounds)
        new_state.round = next_round

        if end.ended:
            new_state.phase = Phase.GAME_OVER
            new_state.winner = end.winner
            new_state.end_reason = end.reason
            new_state.is_ai_thinking = False
            self._state = new_state
            logger.info(f"Game over: winner={end.winner} ({end.reason})")
            return ActionResult.success()

        human_code, ai_code = self._draw_codes()
        new_state.current_human_code = human_code
        new_state.current_ai_code = ai_code
        new_state.current_human_clues = None
        new_state.current_ai_clues = None
        new_state.current_human_guess = None
        new_state.current_ai_team_guess = None
        new_state.current_ai_intercept_guess = None
        new_state.current_human_intercept_guess = None
        new_state.ai_thinking_logs = ()
        new_state.is_ai_thinking = False
        new_state.phase = Phase.HUMAN_ENCRYPT
        self._state = new_state
        logger.info(f"Round {next_round} started")
        return ActionResult.success()
