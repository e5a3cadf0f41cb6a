"""
Grading Enums

Defines enums for exercise types, grading strategies, supported languages,
construct kinds and sandbox failure classification.
"""

from enum import Enum


class ExerciseType(str, Enum):
    """
    Types of exercises the grader understands.

    - WRITE: Learner writes a full snippet of code
    - FILL_IN: Learner fills a blank inside a given snippet
    - PREDICT: Learner reads a snippet and types the output it prints
    """

    WRITE = "write"
    FILL_IN = "fill-in"
    PREDICT = "predict"


class GradingStrategy(str, Enum):
    """
    Interchangeable comparison strategies.

    Ordered roughly from least to most infrastructure needed:
    - EXACT: Literal string comparison, cannot fail
    - TOKEN: Lexer token streams must match
    - AST: Canonicalized syntax trees must match
    - EXECUTION: Run code in the sandbox and compare output
    """

    EXACT = "exact"
    TOKEN = "token"
    AST = "ast"
    EXECUTION = "execution"


class CodeLanguage(str, Enum):
    """
    Supported source languages for exercises.
    """

    PYTHON = "python"
    JAVASCRIPT = "javascript"


class ConstructKind(str, Enum):
    """
    Language constructs a learner can be nudged toward.
    """

    SLICE = "slice"
    COMPREHENSION = "comprehension"
    F_STRING = "f-string"
    TERNARY = "ternary"
    ENUMERATE = "enumerate"
    ZIP = "zip"
    LAMBDA = "lambda"
    GENERATOR_EXPR = "generator-expr"


class FailureKind(str, Enum):
    """
    Classification of a failed sandbox run.

    Only INFRASTRUCTURE and TIMEOUT make a strategy eligible for fallback.
    """

    USER_CODE = "user_code"  # Syntax error, exception, failed assertion
    INFRASTRUCTURE = "infrastructure"  # Worker failed to start, crashed, transport error
    TIMEOUT = "timeout"  # Exceeded the time budget, worker recycled


class FallbackReason(str, Enum):
    """
    Why a fallback strategy produced the verdict.
    """

    INFRA_UNAVAILABLE = "infra_unavailable"
