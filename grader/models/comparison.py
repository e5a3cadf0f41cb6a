"""
Comparison Result Types

Small internal result types shared by the tokenizer, the canonicalizer and
the language runtimes. Unlike the Pydantic models these never cross the
grader boundary, so they are plain dataclasses.
"""

from dataclasses import dataclass
from typing import Optional, Union

# (token type, lexeme). Python uses numeric token types, JavaScript uses labels.
Token = tuple[Union[int, str], str]


@dataclass(frozen=True)
class TokenCompareResult:
    """Result of comparing token streams."""

    match: bool
    matched_alternative: Optional[str] = None


@dataclass(frozen=True)
class AstCompareResult:
    """
    Result of comparing canonicalized syntax trees.

    `infra_available=False` means the comparison engine itself could not run
    and the caller may fall back to a simpler strategy.
    """

    match: bool
    matched_alternative: Optional[str] = None
    infra_available: bool = True
    error: Optional[str] = None


@dataclass(frozen=True)
class CanonicalizeOptions:
    """
    Canonicalization switches.

    Attributes:
        rename_locals: Alpha-rename parameters and loop targets to _v0, _v1, ...
        normalize_slices: Drop a literal 0 start and a literal 1 step
        ignore_docstrings: Strip leading docstrings of modules, functions, classes
        mode: "auto" tries a statement parse then an expression parse;
            "exec" and "eval" force one parse mode
    """

    rename_locals: bool = True
    normalize_slices: bool = True
    ignore_docstrings: bool = True
    mode: str = "auto"
