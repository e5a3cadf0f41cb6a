"""
Centralized enum definitions for the grader.

Usage:
    from grader.enums import ExerciseType, GradingStrategy, ConstructKind

    # Or import from the specific module
    from grader.enums.grading import FailureKind
"""

from grader.enums.grading import (
    CodeLanguage,
    ConstructKind,
    ExerciseType,
    FailureKind,
    FallbackReason,
    GradingStrategy,
)

__all__ = [
    "CodeLanguage",
    "ConstructKind",
    "ExerciseType",
    "FailureKind",
    "FallbackReason",
    "GradingStrategy",
]
