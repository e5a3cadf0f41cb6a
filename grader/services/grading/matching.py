"""
Exact Matchers

Literal comparators for the `exact` strategy, one per exercise type:

- write: whitespace-normalized full text, reports the matched alternative
- fill-in: case- and whitespace-insensitive
- predict: normalized program output, reports the matched alternative

These never fail, which makes `exact` the floor every fallback ends on.
"""

import re
from dataclasses import dataclass
from typing import Optional

_HORIZONTAL_WHITESPACE = re.compile(r"[ \t]+")
_ANY_WHITESPACE = re.compile(r"\s+")
_TRAILING_NEWLINES = re.compile(r"\n+$")


@dataclass(frozen=True)
class MatchResult:
    is_correct: bool
    matched_alternative: Optional[str] = None


def normalize_code(code: str) -> str:
    """
    Normalize source text for literal comparison.

    Line endings become \\n, trailing whitespace and blank lines are dropped,
    runs of spaces and tabs collapse to one space. Leading indentation is
    collapsed too but not removed, so nesting still matters.
    """
    lines = code.replace("\r\n", "\n").replace("\r", "\n").split("\n")
    kept = [_HORIZONTAL_WHITESPACE.sub(" ", line.rstrip()) for line in lines]
    return "\n".join(line for line in kept if line.strip())


def normalize_output(text: str) -> str:
    """Normalize captured or predicted stdout: \\r\\n to \\n, trim, drop trailing newlines."""
    return _TRAILING_NEWLINES.sub("", text.replace("\r\n", "\n").strip())


def _normalize_fill_in(text: str) -> str:
    return _ANY_WHITESPACE.sub("", text).lower()


def check_write_answer(
    user_answer: str,
    expected_answer: str,
    accepted_solutions: Optional[list[str]] = None,
) -> MatchResult:
    normalized_user = normalize_code(user_answer)
    if normalized_user == normalize_code(expected_answer):
        return MatchResult(is_correct=True)

    for alternative in accepted_solutions or []:
        if normalized_user == normalize_code(alternative):
            return MatchResult(is_correct=True, matched_alternative=alternative)

    return MatchResult(is_correct=False)


def check_fill_in_answer(
    user_answer: str,
    expected_answer: str,
    accepted_solutions: Optional[list[str]] = None,
) -> MatchResult:
    """Fill-in answers are short; which alternative matched is not reported."""
    normalized_user = _normalize_fill_in(user_answer)
    candidates = [expected_answer, *(accepted_solutions or [])]
    is_correct = any(normalized_user == _normalize_fill_in(c) for c in candidates)
    return MatchResult(is_correct=is_correct)


def check_predict_answer(
    user_answer: str,
    expected_answer: str,
    accepted_solutions: Optional[list[str]] = None,
) -> MatchResult:
    normalized_user = normalize_output(user_answer)
    if normalized_user == normalize_output(expected_answer):
        return MatchResult(is_correct=True)

    for alternative in accepted_solutions or []:
        if normalized_user == normalize_output(alternative):
            return MatchResult(is_correct=True, matched_alternative=alternative)

    return MatchResult(is_correct=False)


def find_matched_alternative(
    user_answer: str, accepted_solutions: Optional[list[str]] = None
) -> Optional[str]:
    """First alternative equal to the answer after trimming and dropping trailing newlines."""
    normalized_user = normalize_output(user_answer)
    for alternative in accepted_solutions or []:
        if normalize_output(alternative) == normalized_user:
            return alternative
    return None
