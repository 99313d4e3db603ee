"""Tests for the model-phase runner: fallbacks, timeouts and stale results."""

from __future__ import annotations

import asyncio
import random

import pytest

from src.core.llm import MockProvider
from src.duel.agents.llm_agents import AIEncryptor, AIGuesser, AIInterceptor
from src.duel.config import AIConfig, build_runner
from src.duel.game import WordSource
from src.duel.models import DuelConfig, Phase, ReasoningLog
from src.duel.orchestrator import FALLBACK_CLUES, FALLBACK_CODE, ModelPhaseRunner
from src.duel.session import DuelSession


class FixedWords(WordSource):
    def draw_keywords(self, n: int) -> list[str]:
        return ["WHALE", "CLOCK", "FOREST", "PIANO", "APPLE", "BREAD", "CHAIR", "DELTA"][:n]


def _session() -> DuelSession:
    s = DuelSession(DuelConfig(seed=3), word_source=FixedWords(), rng=random.Random(3))
    s.start_game()
    return s


def _runner(session: DuelSession, provider: MockProvider, timeout_s: float = 5.0) -> ModelPhaseRunner:
    return ModelPhaseRunner(
        session,
        encryptor=AIEncryptor(provider=provider),
        guesser=AIGuesser(provider=provider),
        interceptor=AIInterceptor(provider=provider),
        timeout_s=timeout_s,
    )


def _to_ai_intercept(s: DuelSession) -> None:
    s.submit_human_clues(["sea", "tick", "keys"])
    s.submit_human_guess(s.state.current_human_code)
    assert s.phase == Phase.AI_INTERCEPT


def _answer(code: tuple[int, int, int]) -> str:
    return f"ANSWER: {code[0]} {code[1]} {code[2]}"


@pytest.mark.asyncio
async def test_intercept_success_scores_for_ai() -> None:
    s = _session()
    _to_ai_intercept(s)
    provider = MockProvider(responses=[_answer(s.state.current_human_code)])
    result = await _runner(s, provider).run_ai_intercept()

    assert result.ok and result.correct is True
    st = s.state
    assert st.phase == Phase.HUMAN_PHASE_RESULT
    assert st.ai_team.intercept_count == 1
    assert st.is_ai_thinking is False
    assert st.ai_thinking_logs[-1].role == "interceptor"


@pytest.mark.asyncio
async def test_intercept_provider_failure_uses_fallback() -> None:
    s = _session()
    _to_ai_intercept(s)
    provider = MockProvider(responses=[RuntimeError("API error (401): bad key")])
    result = await _runner(s, provider).run_ai_intercept()

    assert result.ok
    st = s.state
    assert st.phase == Phase.HUMAN_PHASE_RESULT
    assert st.current_ai_intercept_guess == FALLBACK_CODE
    log = st.ai_thinking_logs[-1]
    assert log.role == "interceptor"
    assert log.output.startswith("Error:")
    assert "bad key" in log.output


@pytest.mark.asyncio
async def test_timeout_uses_fallback() -> None:
    s = _session()
    _to_ai_intercept(s)
    provider = MockProvider(responses=[_answer((4, 3, 2))], delay_s=1.0)
    result = await _runner(s, provider, timeout_s=0.05).run_ai_intercept()

    assert result.ok
    st = s.state
    assert st.phase == Phase.HUMAN_PHASE_RESULT
    assert st.current_ai_intercept_guess == FALLBACK_CODE
    assert "timed out" in st.ai_thinking_logs[-1].output


@pytest.mark.asyncio
async def test_unparseable_reply_uses_fallback_and_keeps_raw_output() -> None:
    s = _session()
    _to_ai_intercept(s)
    provider = MockProvider(responses=["I cannot tell."])
    await _runner(s, provider).run_ai_intercept()

    st = s.state
    assert st.current_ai_intercept_guess == FALLBACK_CODE
    assert st.ai_thinking_logs[-1].output.startswith("Error:")
    assert "I cannot tell." in st.ai_thinking_logs[-1].output


@pytest.mark.asyncio
async def test_ai_turn_encrypts_then_guesses() -> None:
    s = _session()
    _to_ai_intercept(s)
    s.submit_ai_intercept((1, 2, 3))
    s.finish_human_phase()
    ai_code = s.state.current_ai_code
    provider = MockProvider(responses=["1. CIDER\n2. LOAF\n3. STOOL", _answer(ai_code)])
    result = await _runner(s, provider).run_ai_turn()

    assert result.ok and result.correct is True
    st = s.state
    assert st.phase == Phase.HUMAN_INTERCEPT
    assert st.current_ai_clues == ("CIDER", "LOAF", "STOOL")
    assert st.ai_team.miscommunication_count == 0
    assert st.is_ai_thinking is False
    assert [log.role for log in st.ai_thinking_logs] == ["encryptor", "guesser"]


@pytest.mark.asyncio
async def test_encrypt_failure_uses_fallback_clues() -> None:
    s = _session()
    _to_ai_intercept(s)
    s.submit_ai_intercept((1, 2, 3))
    s.finish_human_phase()
    provider = MockProvider(responses=[ConnectionError("network down")])
    result = await _runner(s, provider).run_ai_encrypt()

    assert result.ok
    st = s.state
    assert st.phase == Phase.AI_GUESS
    assert st.current_ai_clues == FALLBACK_CLUES
    assert st.ai_thinking_logs[-1].role == "encryptor"


@pytest.mark.asyncio
async def test_guess_failure_counts_as_miscommunication_when_wrong() -> None:
    s = _session()
    _to_ai_intercept(s)
    s.submit_ai_intercept((1, 2, 3))
    s.finish_human_phase()
    s.submit_ai_clues(["a", "b", "c"])
    provider = MockProvider(responses=[RuntimeError("boom")])
    await _runner(s, provider).run_ai_guess()

    st = s.state
    assert st.phase == Phase.HUMAN_INTERCEPT
    assert st.current_ai_team_guess == FALLBACK_CODE
    expected = 0 if st.current_ai_code == FALLBACK_CODE else 1
    assert st.ai_team.miscommunication_count == expected


@pytest.mark.asyncio
async def test_wrong_phase_is_noop() -> None:
    s = _session()
    provider = MockProvider(responses=[_answer((1, 2, 3))])
    before = s.state.model_dump_json()
    result = await _runner(s, provider).run_ai_intercept()

    assert result.ignored
    assert provider.call_count == 0
    assert s.state.model_dump_json() == before


@pytest.mark.asyncio
async def test_second_call_for_same_phase_is_refused() -> None:
    s = _session()
    _to_ai_intercept(s)
    provider = MockProvider(responses=[_answer((4, 3, 2))], delay_s=0.1)
    runner = _runner(s, provider)

    first = asyncio.create_task(runner.run_ai_intercept())
    await asyncio.sleep(0.01)
    assert runner.is_in_flight(Phase.AI_INTERCEPT)
    second = await runner.run_ai_intercept()
    assert second.ignored
    assert (await first).ok
    assert provider.call_count == 1
    assert not runner.is_in_flight(Phase.AI_INTERCEPT)


@pytest.mark.asyncio
async def test_stale_result_after_reset_is_dropped() -> None:
    s = _session()
    _to_ai_intercept(s)
    provider = MockProvider(responses=[_answer((4, 3, 2))], delay_s=0.1)
    runner = _runner(s, provider)

    task = asyncio.create_task(runner.run_ai_intercept())
    await asyncio.sleep(0.01)
    s.reset_game()
    result = await task

    assert result.ignored
    st = s.state
    assert st.phase == Phase.IDLE
    assert st.ai_thinking_logs == ()
    assert st.is_ai_thinking is False


@pytest.mark.asyncio
async def test_pending_call_from_previous_game_does_not_block_or_leak() -> None:
    s = _session()
    _to_ai_intercept(s)
    provider = MockProvider(responses=[_answer((4, 3, 2)), _answer((2, 3, 4))], delay_s=0.2)
    runner = _runner(s, provider)

    old = asyncio.create_task(runner.run_ai_intercept())
    await asyncio.sleep(0.05)
    s.reset_game()
    s.start_game()
    _to_ai_intercept(s)
    assert not runner.is_in_flight(Phase.AI_INTERCEPT)

    new = asyncio.create_task(runner.run_ai_intercept())
    old_result = await old
    assert old_result.ignored
    assert s.phase == Phase.AI_INTERCEPT
    assert s.state.current_ai_intercept_guess is None

    new_result = await new
    assert new_result.ok
    st = s.state
    assert st.phase == Phase.HUMAN_PHASE_RESULT
    assert st.current_ai_intercept_guess == (2, 3, 4)
    assert len(st.ai_thinking_logs) == 1
    assert provider.call_count == 2


@pytest.mark.asyncio
async def test_build_runner_with_injected_provider() -> None:
    s = _session()
    _to_ai_intercept(s)
    provider = MockProvider(responses=[_answer((4, 3, 2))])
    runner = build_runner(s, AIConfig(provider_id="mock", timeout_s=2.0), provider=provider)
    result = await runner.run_ai_intercept()
    assert result.ok
    assert runner.timeout_s == 2.0


class BlankClueEncryptor:
    """Returns a structurally valid but blank clue set."""

    async def generate(self, view):
        return ("SEA", "  ", "KEYS"), ReasoningLog(role="encryptor", input="", output="SEA\n\nKEYS")


@pytest.mark.asyncio
async def test_rejected_model_clues_fall_back() -> None:
    s = _session()
    _to_ai_intercept(s)
    s.submit_ai_intercept((1, 2, 3))
    s.finish_human_phase()
    provider = MockProvider()
    runner = _runner(s, provider)
    runner.encryptor = BlankClueEncryptor()  # type: ignore[assignment]
    result = await runner.run_ai_encrypt()

    assert result.ok
    st = s.state
    assert st.current_ai_clues == FALLBACK_CLUES
    assert st.ai_thinking_logs[-1].output.startswith("Error:")
