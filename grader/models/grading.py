"""
Grading Models (Pydantic)

Input descriptor and output result for the grading engine:
- Exercise: externally owned, consumed read-only by the grader
- TargetConstruct: construct a learner is nudged toward using
- GradingResult: produced once per submission, immutable

Internal per-strategy results are plain dataclasses and live next to the
code that produces them (models.comparison, strategy_router, sandbox.base).
"""

from __future__ import annotations

from typing import Optional

from pydantic import Field

from grader.enums.grading import (
    CodeLanguage,
    ConstructKind,
    ExerciseType,
    GradingStrategy,
)
from grader.models.base import FrozenOutput, StrictInput


DEFAULT_VERIFICATION_TEMPLATE = "print({{answer}})"


class TargetConstruct(StrictInput):
    """
    A construct the learner is nudged toward using.

    Only consulted after the answer was graded correct. When the construct
    is missing, `feedback` (or a generic default) is returned as coaching.
    """

    type: ConstructKind = Field(..., description="Construct kind to look for")
    feedback: Optional[str] = Field(
        None, description="Coaching text shown when the construct is missing"
    )


class Exercise(StrictInput):
    """
    Exercise descriptor as seen by the grader.

    The grading strategy is resolved in this order:
    explicit `grading_strategy` > `verification_script` presence > type default.
    """

    slug: str = Field("unknown", description="Exercise identifier for telemetry")
    exercise_type: ExerciseType = Field(..., description="write, fill-in or predict")
    language: CodeLanguage = Field(
        CodeLanguage.PYTHON, description="Source language of the exercise"
    )
    expected_answer: str = Field(
        ..., description="Canonical answer, or expected stdout for predict"
    )
    accepted_solutions: list[str] = Field(
        default_factory=list, description="Ordered alternatives, first match wins"
    )
    grading_strategy: Optional[GradingStrategy] = Field(
        None, description="Explicit strategy override"
    )
    verification_script: Optional[str] = Field(
        None, description="Code appended to the submission and executed"
    )
    target_construct: Optional[TargetConstruct] = None
    code: Optional[str] = Field(
        None, description="Read-only snippet for predict exercises"
    )
    verify_by_execution: bool = Field(
        False, description="Grade a write answer by running it through a template"
    )
    verification_template: Optional[str] = Field(
        None, description="Template with an {{answer}} placeholder"
    )

    @property
    def effective_template(self) -> str:
        """Verification template, falling back to printing the answer."""
        return self.verification_template or DEFAULT_VERIFICATION_TEMPLATE


class GradingResult(FrozenOutput):
    """
    Final verdict for one submission.

    `used_target_construct` is None when no target construct is declared
    or the answer was incorrect. `grading_method` names the strategy that
    produced the verdict, suffixed with "-fallback" when the fallback ran.
    """

    is_correct: bool
    used_target_construct: Optional[bool] = None
    coaching_feedback: Optional[str] = None
    grading_method: str
    normalized_user_answer: str
    normalized_expected_answer: str
    matched_alternative: Optional[str] = None
