"""Models for grader input, output and internal comparison results."""

from grader.models.base import FrozenOutput, StrictInput
from grader.models.comparison import (
    AstCompareResult,
    CanonicalizeOptions,
    Token,
    TokenCompareResult,
)
from grader.models.grading import (
    DEFAULT_VERIFICATION_TEMPLATE,
    Exercise,
    GradingResult,
    TargetConstruct,
)

__all__ = [
    "AstCompareResult",
    "CanonicalizeOptions",
    "DEFAULT_VERIFICATION_TEMPLATE",
    "Exercise",
    "FrozenOutput",
    "GradingResult",
    "StrictInput",
    "TargetConstruct",
    "Token",
    "TokenCompareResult",
]
