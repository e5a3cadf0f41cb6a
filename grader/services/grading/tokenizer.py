"""
Python Token Comparison

Turns Python source into a normalized sequence of (token type, lexeme)
pairs and compares submissions token-by-token. Comments and pure layout
tokens are dropped; identifiers, operators and literals are kept verbatim,
so renaming a variable changes the token stream.

Usage:
    from grader.services.grading.tokenizer import compare_by_tokens

    result = compare_by_tokens("x = 1  # set", "x=1", [])
    assert result.match
"""

import io
import logging
import tokenize
from typing import Optional

from grader.models.comparison import Token, TokenCompareResult

logger = logging.getLogger(__name__)

# Token types that carry no meaning for comparison
IGNORED_TOKEN_TYPES = frozenset(
    {
        tokenize.COMMENT,
        tokenize.NL,
        tokenize.NEWLINE,
        tokenize.ENCODING,
        tokenize.ENDMARKER,
    }
)


def tokenize_code(code: str) -> Optional[list[Token]]:
    """
    Lex Python source into comparable tokens.

    Args:
        code: Python source text

    Returns:
        List of (token type, lexeme) pairs, or None if the code can't be lexed
    """
    try:
        return [
            (tok.type, tok.string)
            for tok in tokenize.generate_tokens(io.StringIO(code).readline)
            if tok.type not in IGNORED_TOKEN_TYPES
        ]
    except (tokenize.TokenError, SyntaxError):
        # IndentationError is a SyntaxError subclass
        return None


def compare_by_tokens(
    user_answer: str,
    expected_answer: str,
    accepted_solutions: Optional[list[str]] = None,
) -> TokenCompareResult:
    """
    Compare a submission against the expected answer and alternatives.

    An unlexable submission is a plain no-match: the tokenizer did its job
    by reporting it.

    Args:
        user_answer: Learner's submission
        expected_answer: Primary expected answer
        accepted_solutions: Alternatives, checked in order

    Returns:
        TokenCompareResult with the matched alternative (None for the primary)
    """
    user_tokens = tokenize_code(user_answer)
    if user_tokens is None:
        return TokenCompareResult(match=False)

    expected_tokens = tokenize_code(expected_answer)
    if expected_tokens is not None and user_tokens == expected_tokens:
        return TokenCompareResult(match=True)

    for alternative in accepted_solutions or []:
        alt_tokens = tokenize_code(alternative)
        if alt_tokens is not None and user_tokens == alt_tokens:
            return TokenCompareResult(match=True, matched_alternative=alternative)

    return TokenCompareResult(match=False)
