"""
Construct Detector

Checks whether a submission uses a given Python construct (slice,
comprehension, f-string, ...). Used for coaching only, never for
correctness, so the occasional false positive or negative is acceptable.

Every construct has two tests:
- a syntax-tree test, used when the submission parses
- a lexical test, used for fragments that don't parse (fill-in answers
  such as `[::-1]`), run after string contents and comments are blanked

Generator expressions and comprehensions are told apart by the innermost
bracket enclosing the `for` clause: `(` means generator, `[` or `{` means
comprehension.

Usage:
    from grader.services.grading.construct_detector import detect

    result = detect("[x * 2 for x in nums]", ConstructKind.COMPREHENSION)
    assert result.detected
"""

import ast
import logging
import re
from dataclasses import dataclass
from typing import Callable, Iterable, Optional, Union

from grader.enums.grading import ConstructKind

logger = logging.getLogger(__name__)

_STRING_PREFIX_CHARS = frozenset("rRbBuUfF")
_OPENING = {"(": ")", "[": "]", "{": "}"}
_CLOSING = frozenset(")]}")


@dataclass(frozen=True)
class ConstructCheckResult:
    """Outcome of a construct check; construct_type is None when nothing matched."""

    detected: bool
    construct_type: Optional[ConstructKind] = None


@dataclass(frozen=True)
class ConstructRule:
    node_test: Callable[[ast.AST], bool]
    lexical_test: Callable[[str], bool]


# Lexical helpers


def _pattern_test(pattern: str) -> Callable[[str], bool]:
    compiled = re.compile(pattern)
    return lambda code: compiled.search(code) is not None


def _read_string(code: str, start: int, quote: str, raw: bool) -> tuple[str, int]:
    """Return (body, index after the closing quote) for the literal at `start`."""
    index = start + len(quote)
    body_start = index
    while index < len(code):
        if code.startswith(quote, index):
            return code[body_start:index], index + len(quote)
        char = code[index]
        if char == "\\" and not raw:
            index += 2
            continue
        if char == "\n" and len(quote) == 1:
            # Unterminated single-line string ends at the newline
            return code[body_start:index], index
        index += 1
    return code[body_start:], len(code)


def _has_interpolation(body: str) -> bool:
    return re.search(r"(?<!\{)\{(?!\{)[^{}]+\}", body) is not None


def strip_strings_and_comments(code: str) -> str:
    """
    Blank out string contents and comments in one pass.

    Plain strings become `""`. f-strings with at least one interpolation
    become `f"{x}"` so the f-string test still sees them.
    """
    out: list[str] = []
    index = 0
    length = len(code)

    while index < length:
        char = code[index]

        if char == "#":
            newline = code.find("\n", index)
            index = length if newline == -1 else newline
            continue

        if char.isalpha() or char == "_":
            end = index
            while end < length and (code[end].isalnum() or code[end] == "_"):
                end += 1
            word = code[index:end]
            is_prefix = (
                end < length
                and code[end] in "\"'"
                and len(word) <= 2
                and all(c in _STRING_PREFIX_CHARS for c in word)
            )
            if not is_prefix:
                out.append(word)
                index = end
                continue
            prefix = word.lower()
            index = end
            char = code[index]
        else:
            prefix = ""

        if char in "\"'":
            quote = char * 3 if code.startswith(char * 3, index) else char
            body, index = _read_string(code, index, quote, raw="r" in prefix)
            if "f" in prefix and _has_interpolation(body):
                out.append('f"{x}"')
            else:
                out.append('""')
            continue

        out.append(char)
        index += 1

    return "".join(out)


def _for_clause_brackets(code: str) -> list[Optional[str]]:
    """Innermost open bracket around each `for ... in` clause (None at top level)."""
    brackets: list[Optional[str]] = []
    stack: list[str] = []
    for match in re.finditer(r"[\[\](){}]|\bfor\b", code):
        token = match.group()
        if token in _OPENING:
            stack.append(token)
        elif token in _CLOSING:
            if stack and _OPENING[stack[-1]] == token:
                stack.pop()
        elif re.search(r"\bin\b", code[match.end():]):
            brackets.append(stack[-1] if stack else None)
    return brackets


def _lexical_comprehension(code: str) -> bool:
    return any(b in ("[", "{") for b in _for_clause_brackets(code))


def _lexical_generator(code: str) -> bool:
    return any(b == "(" for b in _for_clause_brackets(code))


# Syntax-tree helpers


def _is_builtin_call(name: str) -> Callable[[ast.AST], bool]:
    def test(node: ast.AST) -> bool:
        return (
            isinstance(node, ast.Call)
            and isinstance(node.func, ast.Name)
            and node.func.id == name
        )

    return test


def _is_interpolated_string(node: ast.AST) -> bool:
    return isinstance(node, ast.JoinedStr) and any(
        isinstance(value, ast.FormattedValue) for value in node.values
    )


CONSTRUCT_RULES: dict[ConstructKind, ConstructRule] = {
    ConstructKind.SLICE: ConstructRule(
        node_test=lambda node: isinstance(node, ast.Slice),
        lexical_test=_pattern_test(r"\[[^\]]*:[^\]]*\]"),
    ),
    ConstructKind.COMPREHENSION: ConstructRule(
        node_test=lambda node: isinstance(node, (ast.ListComp, ast.SetComp, ast.DictComp)),
        lexical_test=_lexical_comprehension,
    ),
    ConstructKind.F_STRING: ConstructRule(
        node_test=_is_interpolated_string,
        lexical_test=_pattern_test(r"f[\"'][^\"']*\{[^}]+\}[^\"']*[\"']"),
    ),
    ConstructKind.TERNARY: ConstructRule(
        node_test=lambda node: isinstance(node, ast.IfExp),
        lexical_test=_pattern_test(r"\S+\s+if\s+.+\s+else\s+\S+"),
    ),
    ConstructKind.ENUMERATE: ConstructRule(
        node_test=_is_builtin_call("enumerate"),
        lexical_test=_pattern_test(r"\benumerate\s*\("),
    ),
    ConstructKind.ZIP: ConstructRule(
        node_test=_is_builtin_call("zip"),
        lexical_test=_pattern_test(r"\bzip\s*\("),
    ),
    ConstructKind.LAMBDA: ConstructRule(
        node_test=lambda node: isinstance(node, ast.Lambda),
        lexical_test=_pattern_test(r"\blambda\b[^:]*:"),
    ),
    ConstructKind.GENERATOR_EXPR: ConstructRule(
        node_test=lambda node: isinstance(node, ast.GeneratorExp),
        lexical_test=_lexical_generator,
    ),
}


def _parse(code: str) -> Optional[ast.AST]:
    for mode in ("exec", "eval"):
        try:
            return ast.parse(code, mode=mode)
        except (SyntaxError, ValueError):
            continue
    return None


def _coerce_kind(kind: Union[ConstructKind, str]) -> Optional[ConstructKind]:
    try:
        return ConstructKind(kind)
    except ValueError:
        return None


def detect(code: str, kind: Union[ConstructKind, str]) -> ConstructCheckResult:
    """
    Check whether code uses a construct.

    Args:
        code: Raw submitted text
        kind: Construct to look for; unknown kinds are never detected

    Returns:
        ConstructCheckResult carrying the kind when detected
    """
    construct = _coerce_kind(kind)
    if construct is None or construct not in CONSTRUCT_RULES:
        logger.debug(f"Unknown construct kind: {kind}")
        return ConstructCheckResult(detected=False)

    rule = CONSTRUCT_RULES[construct]
    tree = _parse(code)
    if tree is not None:
        detected = any(rule.node_test(node) for node in ast.walk(tree))
    else:
        detected = rule.lexical_test(strip_strings_and_comments(code))

    return ConstructCheckResult(
        detected=detected, construct_type=construct if detected else None
    )


def detect_any(
    code: str, kinds: Iterable[Union[ConstructKind, str]]
) -> ConstructCheckResult:
    """Return the first construct (in the given order) that code uses."""
    for kind in kinds:
        result = detect(code, kind)
        if result.detected:
            return result
    return ConstructCheckResult(detected=False)
