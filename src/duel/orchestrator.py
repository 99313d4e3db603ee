from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable

from .agents.llm_agents import AIEncryptor, AIGuesser, AIInterceptor, AIParseError
from .models import ActionResult, LogRole, Phase, ReasoningLog
from .session import DuelSession
from .views import view_for_encryptor, view_for_guesser, view_for_interceptor

logger = logging.getLogger(__name__)

FALLBACK_CODE = (1, 2, 3)
FALLBACK_CLUES = ("CLUE 1", "CLUE 2", "CLUE 3")
DEFAULT_TIMEOUT_S = 180.0


def fallback_log(role: LogRole, error: BaseException, input_text: str = "") -> ReasoningLog:
    """Log recorded in place of a failed model call."""
    if isinstance(error, asyncio.TimeoutError):
        description = "model call timed out"
    else:
        description = str(error) or type(error).__name__
    return ReasoningLog(role=role, input=input_text, output=f"Error: {description}")


class ModelPhaseRunner:
    """
    Drives the three model phases of a DuelSession.

    Each run_* call is a no-op unless the session is in that phase, and at
    most one call per phase is in flight for a given game. Results that come
    back after the session was reset or restarted are dropped. Any failure (exception, timeout,
    unparseable text, rejected result) becomes a fallback submission so the
    round never stalls.
    """

    def __init__(
        self,
        session: DuelSession,
        encryptor: AIEncryptor,
        guesser: AIGuesser,
        interceptor: AIInterceptor,
        timeout_s: float = DEFAULT_TIMEOUT_S,
    ):
        self.session = session
        self.encryptor = encryptor
        self.guesser = guesser
        self.interceptor = interceptor
        self.timeout_s = timeout_s
        self._in_flight: set[tuple[int, Phase]] = set()

    def is_in_flight(self, phase: Phase) -> bool:
        return (self.session.generation, phase) in self._in_flight

    async def _run_phase(
        self,
        *,
        phase: Phase,
        role: LogRole,
        call: Callable[[], Awaitable[tuple[Any, ReasoningLog]]],
        submit: Callable[[Any, ReasoningLog], ActionResult],
        fallback: Any,
    ) -> ActionResult:
        if self.session.phase != phase:
            return ActionResult.stale(f"Session is not in phase {phase.value}")
        key = (self.session.generation, phase)
        if key in self._in_flight:
            return ActionResult.stale(f"A model call for {phase.value} is already in flight")

        self._in_flight.add(key)
        self.session.set_ai_thinking(True)
        try:
            try:
                result, log = await asyncio.wait_for(call(), timeout=self.timeout_s)
            except AIParseError as e:
                logger.warning(f"{role} reply unparseable, using fallback: {e}")
                result, log = fallback, e.log.model_copy(update={"output": f"Error: {e}\n\n{e.log.output}"})
            except Exception as e:
                logger.warning(f"{role} call failed, using fallback: {type(e).__name__}: {e}")
                result, log = fallback, fallback_log(role, e)

            # The session was reset or restarted while the call was pending.
            if self.session.generation != key[0]:
                logger.info(f"Dropped {role} result from an earlier game")
                return ActionResult.stale(f"{role} result belongs to an earlier game")

            outcome = submit(result, log)
            if not outcome.ok and not outcome.ignored:
                # Model produced something structured but invalid (e.g. a blank clue).
                logger.warning(f"{role} result rejected ({outcome.error}), using fallback")
                outcome = submit(fallback, log.model_copy(update={"output": f"Error: {outcome.error}\n\n{log.output}"}))
            if outcome.ignored:
                logger.info(f"Dropped stale {role} result: {outcome.error}")
            return outcome
        finally:
            self._in_flight.discard(key)
            if self.session.generation == key[0] and self.session.phase == phase:
                self.session.set_ai_thinking(False)

    async def run_ai_intercept(self) -> ActionResult:
        state = self.session.state
        if state.phase != Phase.AI_INTERCEPT:
            return ActionResult.stale(f"Session is not in phase {Phase.AI_INTERCEPT.value}")
        view = view_for_interceptor(state)
        return await self._run_phase(
            phase=Phase.AI_INTERCEPT,
            role="interceptor",
            call=lambda: self.interceptor.intercept(view),
            submit=self.session.submit_ai_intercept,
            fallback=FALLBACK_CODE,
        )

    async def run_ai_encrypt(self) -> ActionResult:
        state = self.session.state
        if state.phase != Phase.AI_ENCRYPT:
            return ActionResult.stale(f"Session is not in phase {Phase.AI_ENCRYPT.value}")
        view = view_for_encryptor(state)
        return await self._run_phase(
            phase=Phase.AI_ENCRYPT,
            role="encryptor",
            call=lambda: self.encryptor.generate(view),
            submit=self.session.submit_ai_clues,
            fallback=FALLBACK_CLUES,
        )

    async def run_ai_guess(self) -> ActionResult:
        state = self.session.state
        if state.phase != Phase.AI_GUESS:
            return ActionResult.stale(f"Session is not in phase {Phase.AI_GUESS.value}")
        view = view_for_guesser(state)
        return await self._run_phase(
            phase=Phase.AI_GUESS,
            role="guesser",
            call=lambda: self.guesser.guess(view),
            submit=self.session.submit_ai_guess,
            fallback=FALLBACK_CODE,
        )

    async def run_ai_turn(self) -> ActionResult:
        """AI encrypt then AI guess, back to back."""
        outcome = await self.run_ai_encrypt()
        if not outcome.ok:
            return outcome
        return await self.run_ai_guess()
