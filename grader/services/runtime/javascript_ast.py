"""
JavaScript Token and AST Comparison

Built on esprima. Trees are converted to plain dicts with position info
and raw source text removed, so `'a'` and `"a"` or `1` and `1.0` compare
equal while any structural difference does not. Booleans are tagged so
they never equal numbers.

JavaScript trees are not alpha-renamed. A parse failure on either side
means the comparison could not be made and is reported as unavailable,
which lets the router fall back to an exact comparison.
"""

import logging
from typing import Any, Optional

import esprima

from grader.models.comparison import AstCompareResult, Token, TokenCompareResult

logger = logging.getLogger(__name__)

# Properties that carry no meaning for comparison
SKIPPED_PROPERTIES = frozenset({"range", "loc", "raw", "start", "end"})


def _parse(code: str) -> Optional[Any]:
    try:
        return esprima.parseModule(code)
    except Exception:
        # esprima raises its own Error type and occasionally internal errors
        return None


def tokenize_javascript(code: str) -> Optional[list[Token]]:
    """
    Lex JavaScript into (token type, value) pairs.

    The tokenizer alone accepts incomplete programs, so the code is parsed
    first and None is returned if that fails.
    """
    if _parse(code) is None:
        return None
    try:
        return [(token.type, str(token.value)) for token in esprima.tokenize(code)]
    except Exception:
        return None


def to_plain(node: Any) -> Any:
    """Convert an esprima node tree into dicts, lists and primitives."""
    if isinstance(node, bool):
        # Python treats True == 1; JavaScript `true` and `1` are different literals
        return {"bool": node}
    if isinstance(node, (list, tuple)):
        return [to_plain(item) for item in node]
    if isinstance(node, dict):
        return {
            key: to_plain(value)
            for key, value in node.items()
            if key not in SKIPPED_PROPERTIES
        }
    if hasattr(node, "__dict__"):
        return {
            key: to_plain(value)
            for key, value in vars(node).items()
            if key not in SKIPPED_PROPERTIES
        }
    return node


def compare_by_tokens(
    user_answer: str,
    expected_answer: str,
    accepted_solutions: Optional[list[str]] = None,
) -> TokenCompareResult:
    user_tokens = tokenize_javascript(user_answer)
    expected_tokens = tokenize_javascript(expected_answer)
    if user_tokens is None or expected_tokens is None:
        return TokenCompareResult(match=False)

    if user_tokens == expected_tokens:
        return TokenCompareResult(match=True)

    for alternative in accepted_solutions or []:
        alt_tokens = tokenize_javascript(alternative)
        if alt_tokens is not None and user_tokens == alt_tokens:
            return TokenCompareResult(match=True, matched_alternative=alternative)

    return TokenCompareResult(match=False)


def compare_by_ast(
    user_answer: str,
    expected_answer: str,
    accepted_solutions: Optional[list[str]] = None,
) -> AstCompareResult:
    user_tree = _parse(user_answer)
    expected_tree = _parse(expected_answer)
    if user_tree is None or expected_tree is None:
        return AstCompareResult(match=False, infra_available=False, error="Parse error")

    user_plain = to_plain(user_tree)
    if user_plain == to_plain(expected_tree):
        return AstCompareResult(match=True)

    for alternative in accepted_solutions or []:
        alt_tree = _parse(alternative)
        if alt_tree is not None and user_plain == to_plain(alt_tree):
            return AstCompareResult(match=True, matched_alternative=alternative)

    return AstCompareResult(match=False)
