"""Best-effort extraction of clues and codes from free model text and human input."""

from __future__ import annotations

import re

from .models import Clues, Code, validate_code


_THINK_RE = re.compile(r"<think>.*?</think>", re.DOTALL)
_NUMBERED_LINE_RE = re.compile(r"^\s*\d\s*[.:)\]]\s*(.+)$")
_ANSWER_RE = re.compile(r"ANSWER\s*[:=]\s*([1-4])[\s,-]+([1-4])[\s,-]+([1-4])", re.IGNORECASE)
_DIGIT_RE = re.compile(r"[1-4]")
_INPUT_SEP_RE = re.compile(r"[,\s-]+")


def strip_thinking_tags(text: str) -> str:
    """Remove <think>...</think> blocks emitted by reasoning models."""
    return _THINK_RE.sub("", text).strip()


def _strip_code_fences(text: str) -> str:
    t = text.strip()
    if t.startswith("```"):
        t = re.sub(r"^```[a-zA-Z0-9_-]*\s*", "", t)
        t = re.sub(r"\s*```$", "", t)
    return t.strip()


def _as_code(digits: list[int]) -> Code | None:
    if len(digits) < 3:
        return None
    triple = tuple(digits[:3])
    if validate_code(triple) is not None:
        return None
    return triple  # type: ignore[return-value]


def parse_clues_from_text(text: str) -> Clues | None:
    """
    Extract three clues from an encryptor reply.

    Numbered lines ("1. OCEAN", "2) TICK") win; otherwise the first three
    non-blank lines are used.
    """
    lines = [ln for ln in _strip_code_fences(strip_thinking_tags(text)).split("\n") if ln.strip()]
    numbered: list[str] = []
    for line in lines:
        m = _NUMBERED_LINE_RE.match(line)
        if m and m.group(1).strip():
            numbered.append(m.group(1).strip())
    if len(numbered) >= 3:
        return numbered[0], numbered[1], numbered[2]

    if len(lines) >= 3:
        return lines[0].strip(), lines[1].strip(), lines[2].strip()
    return None


def parse_code_from_text(text: str) -> Code | None:
    """
    Extract a code from a guesser/interceptor reply.

    Tried in order:
      1. an "ANSWER: x y z" line
      2. digits 1-4 on the last line
      3. the last three digits 1-4 anywhere in the text
    Each candidate must be 3 distinct digits.
    """
    t = strip_thinking_tags(text)

    m = _ANSWER_RE.search(t)
    if m:
        code = _as_code([int(m.group(1)), int(m.group(2)), int(m.group(3))])
        if code is not None:
            return code

    last_line = t.strip().split("\n")[-1] if t.strip() else ""
    last_digits = [int(d) for d in _DIGIT_RE.findall(last_line)]
    code = _as_code(last_digits)
    if code is not None:
        return code

    all_digits = [int(d) for d in _DIGIT_RE.findall(t)]
    if len(all_digits) >= 3:
        return _as_code(all_digits[-3:])
    return None


def parse_code_input(text: str) -> Code | None:
    """Parse human input such as "3 1 4", "3,1,4" or "3-1-4"."""
    parts = [p for p in _INPUT_SEP_RE.split(text.strip()) if p]
    if len(parts) != 3:
        return None
    try:
        digits = [int(p) for p in parts]
    except ValueError:
        return None
    return _as_code(digits)


def format_code(code: Code) -> str:
    return " - ".join(str(d) for d in code)
