from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from src.core.llm import LLMProvider

from ..models import Clues, Code, ReasoningLog
from ..parsing import format_code, parse_clues_from_text, parse_code_from_text
from ..views import assert_view_safe

logger = logging.getLogger(__name__)


class AIParseError(Exception):
    """Model text could not be turned into a structured result. Carries the call log."""

    def __init__(self, message: str, log: ReasoningLog):
        super().__init__(message)
        self.log = log


def _strategy_for_round(round_number: int) -> str:
    if round_number <= 2:
        return (
            f"Round {round_number} (early).\n"
            "Strategy: use indirect associations your teammate can follow, and set up a clue style you can extend.\n"
            "- Prefer usage scenes, functions, feelings or stories around the keyword\n"
            "- No synonyms, near-synonyms or category words (APPLE must not become FRUIT)\n"
            "- No direct physical descriptions (APPLE must not become RED ROUND)\n"
            "Good: APPLE -> NEWTON, PIANO -> CHOPIN\n"
            "Bad: APPLE -> FRUIT, PIANO -> INSTRUMENT"
        )
    if round_number <= 4:
        return (
            f"Round {round_number} (mid game). The opponent has started analysing your keywords from past clues.\n"
            "Strategy: switch association dimension every round.\n"
            "- If you used scenes before, use emotion, culture or senses now\n"
            "- Puns, opposites and literary references are allowed\n"
            "- Your teammate must still single out the right keyword among the 4; the opponent must not"
        )
    return (
        f"Round {round_number} (late game). The opponent has plenty of history and may have guessed some keywords.\n"
        "Strategy: highly abstract, ambiguous clues.\n"
        "- Use associations only someone who knows the keyword would get\n"
        "- Reverse associations, metaphors and feelings are fine\n"
        "- Every clue must use a different dimension from all previous rounds\n"
        "- Goal: even if the opponent knows the keywords, the number mapping stays hidden"
    )


def _keyword_lines(keywords: list[str]) -> str:
    return "\n".join(f"{i}: {w}" for i, w in enumerate(keywords, start=1))


def _clue_lines(clues: list[str]) -> str:
    return "\n".join(f"Clue {i}: {c}" for i, c in enumerate(clues, start=1))


@dataclass(frozen=True)
class AIEncryptor:
    provider: LLMProvider
    temperature: float = 0.7

    async def generate(self, view: dict[str, Any]) -> tuple[Clues, ReasoningLog]:
        assert_view_safe(view)
        keywords: list[str] = view["keywords"]
        code: Code = tuple(view["code"])  # type: ignore[assignment]

        system = (
            "You are playing the board game Decrypto as the ENCRYPTOR.\n\n"
            "## The core tension\n"
            "Your clues must let your teammate decode the code, but the opponent sees them too. "
            "Clues that are too obvious let the opponent work out your keywords over several rounds and intercept.\n\n"
            f"## Your team's keywords\n{_keyword_lines(keywords)}\n\n"
            f"## Past clues per keyword (visible to the opponent)\n{view['keyword_clue_map']}\n\n"
            "## Clue rules\n"
            "- Each clue is 1-3 words\n"
            "- Never use the keyword itself, part of it, a synonym, a translation or a category word\n"
            "- Never repeat a previous clue\n"
            "- Your teammate must be able to pick the right keyword among the 4\n\n"
            f"## Strategy\n{_strategy_for_round(int(view['round']))}"
        )
        user = (
            f"Code this round: {format_code(code)}\n\n"
            "Positions:\n"
            + "\n".join(
                f"- Position {i} -> #{d} {keywords[d - 1]}" for i, d in enumerate(code, start=1)
            )
            + "\n\nGive one clue per position. Output exactly 3 lines formatted as \"N. clue\":\n1.\n2.\n3."
        )
        messages = [{"role": "system", "content": system}, {"role": "user", "content": user}]

        resp = await self.provider.complete(messages=messages, temperature=self.temperature)
        log = ReasoningLog(role="encryptor", input=user, output=resp.content, reasoning=resp.reasoning_trace)
        clues = parse_clues_from_text(resp.content)
        if clues is None:
            logger.error(f"Encryptor reply could not be parsed: {resp.content!r}")
            raise AIParseError("Encryptor output could not be parsed into 3 clues", log)
        logger.info(f"Encryptor clues: {clues}")
        return clues, log


def _answer_format(use_thinking: bool, analysis: str) -> str:
    if use_thinking:
        return (
            "## Output format\n"
            "Output a single line: ANSWER: X X X (digits 1-4, space separated, all different)\n\n"
            "Example:\nANSWER: 3 1 4"
        )
    return (
        "## Output format\n"
        f"Analyse first, then answer. Strictly follow:\n\n{analysis}\n\n"
        "ANSWER: X X X\n\n"
        "The answer must be the last line, formatted as \"ANSWER: X X X\" with three different digits."
    )


@dataclass(frozen=True)
class AIGuesser:
    """The AI receiver: knows its keywords, not its code."""

    provider: LLMProvider
    temperature: float = 0.3
    use_thinking: bool = False

    async def guess(self, view: dict[str, Any]) -> tuple[Code, ReasoningLog]:
        assert_view_safe(view)
        keywords: list[str] = view["keywords"]
        clues: list[str] = view["clues"]

        analysis = "Analysis:\n" + "\n".join(
            f"- Clue {i} \"..\" -> fit with "
            + ", ".join(f"#{n} {w}: ?" for n, w in enumerate(keywords, start=1))
            + " -> most likely #?"
            for i in range(1, 4)
        )
        system = (
            "You are playing the board game Decrypto as the RECEIVER.\n\n"
            f"## Your team's keywords\n{_keyword_lines(keywords)}\n\n"
            f"## Past clues per keyword\n{view['keyword_clue_map']}\n\n"
            "## Task\n"
            "Your encryptor gave 3 clues for a secret 3-digit code you do not know, in code order. "
            "Work out which keyword number each clue points to.\n\n"
            "## Method\n"
            "1. Rate each clue against all 4 keywords (meaning, scene, feeling)\n"
            "2. Use the history: clues for the same keyword tend to share a theme\n"
            "3. Pick the best keyword number\n"
            "4. The code has 3 different digits; if two clues point to the same keyword, reconsider\n\n"
            f"{_answer_format(self.use_thinking, analysis)}"
        )
        tail = "ANSWER:" if self.use_thinking else "Analyse each clue, then answer:"
        user = f"This round's clues:\n{_clue_lines(clues)}\n\n{tail}"
        messages = [{"role": "system", "content": system}, {"role": "user", "content": user}]

        resp = await self.provider.complete(messages=messages, temperature=self.temperature)
        log = ReasoningLog(role="guesser", input=user, output=resp.content, reasoning=resp.reasoning_trace)
        code = parse_code_from_text(resp.content)
        if code is None:
            logger.error(f"Guesser reply could not be parsed: {resp.content!r}")
            raise AIParseError("Guesser output could not be parsed into a code", log)
        logger.info(f"Guesser code: {code}")
        return code, log


@dataclass(frozen=True)
class AIInterceptor:
    """Guesses the human code from clue history alone."""

    provider: LLMProvider
    temperature: float = 0.3
    use_thinking: bool = False

    async def intercept(self, view: dict[str, Any]) -> tuple[Code, ReasoningLog]:
        assert_view_safe(view)
        clues: list[str] = view["clues"]

        analysis = (
            "Keyword themes:\n"
            + "\n".join(f"- #{n}: theme from past clues is \"..\"" for n in range(1, 5))
            + "\n\nThis round:\n"
            + "\n".join(f"- Clue {i} \"..\" -> closest to #? (short reason)" for i in range(1, 4))
        )
        system = (
            "You are playing the board game Decrypto as the INTERCEPTOR.\n\n"
            "## Background\n"
            "The opponent has 4 secret keywords numbered 1-4. Each round their encryptor gives a clue for "
            "the keyword behind each digit of their code. Infer the theme of each number from the history, "
            "then crack this round's code.\n\n"
            f"## Opponent clue history (codes revealed)\n{view['opponent_history']}\n\n"
            "## Method\n"
            "Step 1, themes: collect all clues given for each number and find what they share.\n"
            "Step 2, match: compare each new clue with the 4 themes and pick the closest number. "
            "The code has 3 different digits; resolve conflicts.\n\n"
            f"{_answer_format(self.use_thinking, analysis)}"
        )
        tail = "ANSWER:" if self.use_thinking else "Infer the themes, match the clues, then answer:"
        user = f"Opponent clues this round:\n{_clue_lines(clues)}\n\n{tail}"
        messages = [{"role": "system", "content": system}, {"role": "user", "content": user}]

        resp = await self.provider.complete(messages=messages, temperature=self.temperature)
        log = ReasoningLog(role="interceptor", input=user, output=resp.content, reasoning=resp.reasoning_trace)
        code = parse_code_from_text(resp.content)
        if code is None:
            logger.error(f"Interceptor reply could not be parsed: {resp.content!r}")
            raise AIParseError("Interceptor output could not be parsed into a code", log)
        logger.info(f"Interceptor code: {code}")
        return code, log
