from __future__ import annotations

import itertools
import random
from abc import ABC, abstractmethod
from pathlib import Path

from .models import CODE_DIGITS, Code, GameEndResult, TeamState


def _repo_root() -> Path:
    # src/duel/game.py -> src/duel -> src -> repo
    return Path(__file__).resolve().parent.parent.parent


def load_keyword_bank(path: str | None) -> list[str]:
    if path is None:
        path = str(_repo_root() / "data" / "wordlist.txt")
    p = Path(path)
    words: list[str] = []
    seen: set[str] = set()
    with open(p, "r") as f:
        for line in f:
            w = line.strip().upper()
            if not w or w in seen:
                continue
            seen.add(w)
            words.append(w)
    if len(words) < 8:
        raise ValueError(f"Keyword bank too small: {len(words)} words")
    return words


class WordSource(ABC):
    """Source of distinct keyword strings."""

    @abstractmethod
    def draw_keywords(self, n: int) -> list[str]:
        """Return `n` distinct keywords."""
        pass


class KeywordBank(WordSource):
    """Word source backed by an in-memory keyword list."""

    def __init__(self, words: list[str] | None = None, seed: int | None = None):
        self.words = list(words) if words is not None else load_keyword_bank(None)
        self._rng = random.Random(seed)

    @classmethod
    def from_file(cls, path: str | None = None, seed: int | None = None) -> "KeywordBank":
        return cls(load_keyword_bank(path), seed=seed)

    def draw_keywords(self, n: int) -> list[str]:
        if n > len(self.words):
            raise ValueError(f"Cannot draw {n} keywords from a bank of {len(self.words)}")
        return self._rng.sample(self.words, n)


def generate_all_codes() -> list[Code]:
    """
    All 24 possible codes: permutations of length 3 from digits 1..4.
    """
    return list(itertools.permutations(CODE_DIGITS, 3))  # type: ignore[arg-type]


def generate_code(rng: random.Random | None = None) -> Code:
    """Random code: 3 distinct digits from {1,2,3,4} in random order."""
    r = rng or random
    a, b, c = r.sample(CODE_DIGITS, 3)
    return (a, b, c)


def check_guess(guess: Code, code: Code) -> bool:
    """Exact positional match; order matters."""
    return tuple(guess) == tuple(code)


def check_game_end(
    human_team: TeamState,
    ai_team: TeamState,
    round_number: int,
    max_rounds: int,
) -> GameEndResult:
    """
    Termination rule, evaluated after the round counter has been incremented.

    Miscommunication losses are checked before interception wins, so a team
    with 2 miscommunications loses even if it also holds 2 interceptions.
    """
    h = human_team
    a = ai_team

    if h.miscommunication_count >= 2 and a.miscommunication_count >= 2:
        return GameEndResult(ended=True, winner="draw", reason="Both teams reached 2 miscommunications")
    if h.miscommunication_count >= 2:
        return GameEndResult(ended=True, winner="ai", reason="Human team reached 2 miscommunications")
    if a.miscommunication_count >= 2:
        return GameEndResult(ended=True, winner="human", reason="AI team reached 2 miscommunications")

    if h.intercept_count >= 2 and a.intercept_count >= 2:
        return GameEndResult(ended=True, winner="draw", reason="Both teams reached 2 interceptions")
    if h.intercept_count >= 2:
        return GameEndResult(ended=True, winner="human", reason="Human team reached 2 interceptions")
    if a.intercept_count >= 2:
        return GameEndResult(ended=True, winner="ai", reason="AI team reached 2 interceptions")

    if round_number > max_rounds:
        if h.intercept_count > a.intercept_count:
            return GameEndResult(
                ended=True, winner="human", reason=f"{max_rounds} rounds played, human team intercepted more"
            )
        if a.intercept_count > h.intercept_count:
            return GameEndResult(
                ended=True, winner="ai", reason=f"{max_rounds} rounds played, AI team intercepted more"
            )
        return GameEndResult(
            ended=True, winner="draw", reason=f"{max_rounds} rounds played, interceptions tied"
        )

    return GameEndResult(ended=False)
