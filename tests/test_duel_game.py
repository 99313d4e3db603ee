"""Tests for code generation, guess evaluation, termination and the keyword bank."""

from __future__ import annotations

import random

import pytest

from src.duel.game import (
    KeywordBank,
    check_game_end,
    check_guess,
    generate_all_codes,
    generate_code,
    load_keyword_bank,
)
from src.duel.models import TeamState


def _team(intercepts: int = 0, miscomms: int = 0) -> TeamState:
    return TeamState(
        keywords=("A", "B", "C", "D"),
        intercept_count=intercepts,
        miscommunication_count=miscomms,
    )


# ============================================================================
# Code generation
# ============================================================================

class TestCodeGeneration:

    def test_generated_codes_are_valid(self):
        """1000 random codes: 3 distinct digits from 1..4."""
        rng = random.Random(7)
        for _ in range(1000):
            code = generate_code(rng)
            assert len(code) == 3
            assert all(d in (1, 2, 3, 4) for d in code)
            assert len(set(code)) == 3

    def test_default_rng_produces_valid_codes(self):
        for _ in range(1000):
            code = generate_code()
            assert len(set(code)) == 3
            assert set(code) <= {1, 2, 3, 4}

    def test_seeded_rng_is_reproducible(self):
        a = [generate_code(random.Random(3)) for _ in range(5)]
        b = [generate_code(random.Random(3)) for _ in range(5)]
        assert a == b

    def test_all_24_codes_reachable(self):
        rng = random.Random(11)
        seen = {generate_code(rng) for _ in range(2000)}
        assert seen == set(generate_all_codes())
        assert len(seen) == 24


# ============================================================================
# Guess evaluation
# ============================================================================

class TestCheckGuess:

    def test_exact_match(self):
        assert check_guess((1, 2, 3), (1, 2, 3)) is True

    def test_order_matters(self):
        assert check_guess((2, 1, 3), (1, 2, 3)) is False

    def test_disjoint_digit(self):
        assert check_guess((1, 2, 4), (1, 2, 3)) is False

    def test_list_and_tuple_compare_equal(self):
        assert check_guess([4, 1, 2], (4, 1, 2)) is True  # type: ignore[arg-type]


# ============================================================================
# Termination rule
# ============================================================================

class TestCheckGameEnd:

    def test_continues_with_no_counters(self):
        result = check_game_end(_team(), _team(), 2, 8)
        assert result.ended is False
        assert result.winner is None

    def test_both_miscommunications_is_draw(self):
        result = check_game_end(_team(miscomms=2), _team(miscomms=2), 3, 8)
        assert result.ended and result.winner == "draw"

    def test_human_miscommunications_ai_wins(self):
        result = check_game_end(_team(miscomms=2), _team(miscomms=1), 3, 8)
        assert result.winner == "ai"

    def test_ai_miscommunications_human_wins(self):
        result = check_game_end(_team(), _team(miscomms=2), 3, 8)
        assert result.winner == "human"

    @pytest.mark.parametrize("round_number", [1, 4, 8])
    def test_miscommunication_checked_before_interception(self, round_number):
        """2 miscomms + 2 intercepts loses to a clean opponent at any round <= max."""
        result = check_game_end(_team(intercepts=2, miscomms=2), _team(), round_number, 8)
        assert result.ended is True
        assert result.winner == "ai"

        result = check_game_end(_team(), _team(intercepts=2, miscomms=2), round_number, 8)
        assert result.winner == "human"

    def test_both_interceptions_is_draw(self):
        result = check_game_end(_team(intercepts=2), _team(intercepts=2), 3, 8)
        assert result.winner == "draw"

    def test_human_interceptions_human_wins(self):
        result = check_game_end(_team(intercepts=2), _team(intercepts=1), 3, 8)
        assert result.winner == "human"

    def test_ai_interceptions_ai_wins(self):
        result = check_game_end(_team(intercepts=1), _team(intercepts=3), 3, 8)
        assert result.winner == "ai"

    def test_round_limit_more_intercepts_wins(self):
        result = check_game_end(_team(intercepts=1), _team(), 9, 8)
        assert result.ended is True
        assert result.winner == "human"

        result = check_game_end(_team(), _team(intercepts=1), 9, 8)
        assert result.winner == "ai"

    def test_round_limit_tie_is_draw(self):
        result = check_game_end(_team(intercepts=1), _team(intercepts=1), 9, 8)
        assert result.winner == "draw"
        assert result.reason

    def test_last_round_not_yet_over(self):
        result = check_game_end(_team(intercepts=1), _team(), 8, 8)
        assert result.ended is False


# ============================================================================
# Keyword bank
# ============================================================================

class TestKeywordBank:

    def test_default_wordlist_loads(self):
        words = load_keyword_bank(None)
        assert len(words) >= 8
        assert len(words) == len(set(words))
        assert all(w == w.upper() for w in words)

    def test_too_small_bank_rejected(self, tmp_path):
        p = tmp_path / "words.txt"
        p.write_text("one\ntwo\n\nthree\n")
        with pytest.raises(ValueError, match="too small"):
            load_keyword_bank(str(p))

    def test_duplicates_are_collapsed(self, tmp_path):
        p = tmp_path / "words.txt"
        p.write_text("\n".join(["a", "A", "b", "c", "d", "e", "f", "g", "h"]))
        assert load_keyword_bank(str(p)) == ["A", "B", "C", "D", "E", "F", "G", "H"]

    def test_draw_keywords_distinct(self):
        bank = KeywordBank([f"W{i}" for i in range(20)], seed=1)
        words = bank.draw_keywords(8)
        assert len(words) == 8
        assert len(set(words)) == 8

    def test_draw_more_than_bank_raises(self):
        bank = KeywordBank(["A", "B", "C"])
        with pytest.raises(ValueError):
            bank.draw_keywords(8)
