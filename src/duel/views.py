from __future__ import annotations

from typing import Any, Literal

from .models import GameState, Keywords, RoundData
from .parsing import format_code


FORBIDDEN_INTERNAL_KEYS = {
    # raw session internals that must never be in any model view
    "current_human_code",
    "current_ai_code",
    "current_human_guess",
    "current_ai_team_guess",
    "ai_thinking_logs",
    "ai_logs",
    "human_team",
    "ai_team",
}

ROLE_FORBIDDEN_KEYS = {
    "encryptor": set(),  # encryptor sees own keywords + own code
    "guesser": {"code"},
    "interceptor": {"keywords", "code", "opponent_keywords"},
}

NO_HISTORY = "(no history yet)"


def build_clue_history_table(history: tuple[RoundData, ...] | list[RoundData], team: Literal["human", "ai"]) -> str:
    """
    Public clue table for one team: every past round's clues and revealed code.
    This is all an interceptor knows about the opponent's keywords.
    """
    if not history:
        return NO_HISTORY
    lines = ["Round | Clue 1 | Clue 2 | Clue 3 | Code"]
    for r in history:
        phase = r.human_phase if team == "human" else r.ai_phase
        lines.append(
            f"R{r.round} | {phase.clues[0]} | {phase.clues[1]} | {phase.clues[2]} | {format_code(phase.code)}"
        )
    return "\n".join(lines)


def build_keyword_clue_map(
    history: tuple[RoundData, ...] | list[RoundData],
    team: Literal["human", "ai"],
    keywords: Keywords,
) -> str:
    """
    Past clues grouped by the keyword number they were given for.
    Only for roles that know the keywords (encryptor and guesser).
    """
    if not history:
        return NO_HISTORY
    by_digit: dict[int, list[str]] = {1: [], 2: [], 3: [], 4: []}
    for r in history:
        phase = r.human_phase if team == "human" else r.ai_phase
        for clue, digit in zip(phase.clues, phase.code):
            by_digit[digit].append(f"R{r.round}:{clue}")

    lines = []
    for n in range(1, 5):
        clue_list = ", ".join(by_digit[n]) if by_digit[n] else "(none yet)"
        lines.append(f"#{n} {keywords[n - 1]} <- {clue_list}")
    return "\n".join(lines)


def view_for_encryptor(state: GameState) -> dict[str, Any]:
    """
    AI encryptor sees:
    - own keywords
    - own current code
    - own per-keyword clue history (public to the opponent as well)
    """
    if state.current_ai_code is None:
        raise ValueError("AI code is not set")
    return {
        "role": "encryptor",
        "round": state.round,
        "keywords": list(state.ai_team.keywords),
        "code": list(state.current_ai_code),
        "keyword_clue_map": build_keyword_clue_map(state.history, "ai", state.ai_team.keywords),
    }


def view_for_guesser(state: GameState) -> dict[str, Any]:
    """
    AI receiver sees:
    - own keywords
    - the clues its encryptor just gave
    - own per-keyword clue history
    Must NOT see:
    - own current code
    """
    if state.current_ai_clues is None:
        raise ValueError("AI clues are not set")
    return {
        "role": "guesser",
        "round": state.round,
        "keywords": list(state.ai_team.keywords),
        "clues": list(state.current_ai_clues),
        "keyword_clue_map": build_keyword_clue_map(state.history, "ai", state.ai_team.keywords),
    }


def view_for_interceptor(state: GameState) -> dict[str, Any]:
    """
    AI interceptor sees:
    - the human team's clues for this round
    - the human team's public clue/code history
    Must NOT see:
    - human keywords
    - human current code
    """
    if state.current_human_clues is None:
        raise ValueError("Human clues are not set")
    return {
        "role": "interceptor",
        "round": state.round,
        "clues": list(state.current_human_clues),
        "opponent_history": build_clue_history_table(state.history, "human"),
    }


def assert_no_internal_leaks(payload: Any) -> None:
    """
    Recursively assert that session internals do not appear in a payload.
    """
    if isinstance(payload, dict):
        for k, v in payload.items():
            if isinstance(k, str) and k in FORBIDDEN_INTERNAL_KEYS:
                raise AssertionError(f"Forbidden internal field present in payload: {k}")
            assert_no_internal_leaks(v)
    elif isinstance(payload, list):
        for item in payload:
            assert_no_internal_leaks(item)


def assert_view_safe(payload: Any) -> None:
    """
    Validate a view payload for leakage based on its declared role.
    """
    if not isinstance(payload, dict):
        raise AssertionError("View payload must be a dict")
    role = payload.get("role")
    if role not in ROLE_FORBIDDEN_KEYS:
        raise AssertionError(f"Unknown role in view payload: {role!r}")

    assert_no_internal_leaks(payload)
    forbidden = ROLE_FORBIDDEN_KEYS[role]  # type: ignore[index]
    for k in forbidden:
        if k in payload:
            raise AssertionError(f"Forbidden field for role={role}: {k}")
