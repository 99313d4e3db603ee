from __future__ import annotations

from .game import check_guess
from .models import Clues, Code, PhaseResult, ReasoningLog, RoundData


def build_phase_result(
    *,
    code: Code,
    clues: Clues,
    team_guess: Code | None,
    intercept_guess: Code | None,
) -> PhaseResult:
    """
    Snapshot one team's round. Correctness fields stay None when the matching
    guess was never submitted.
    """
    return PhaseResult(
        code=code,
        clues=clues,
        team_guess=team_guess,
        team_guess_correct=None if team_guess is None else check_guess(team_guess, code),
        intercept_guess=intercept_guess,
        intercept_correct=None if intercept_guess is None else check_guess(intercept_guess, code),
    )


def record_round(
    history: tuple[RoundData, ...],
    *,
    round_number: int,
    human_phase: PhaseResult,
    ai_phase: PhaseResult,
    logs: tuple[ReasoningLog, ...],
) -> tuple[RoundData, ...]:
    """Return `history` with one new RoundData appended. Pure aggregation."""
    round_data = RoundData(
        round=round_number,
        human_phase=human_phase,
        ai_phase=ai_phase,
        ai_logs=tuple(logs),
    )
    return (*history, round_data)
