"""
Strategy Selection

Resolves which strategy grades an exercise and what it falls back to:

1. An explicit `grading_strategy` wins; its fallback comes from FALLBACK_TABLE.
2. A `verification_script` implies `execution`, falling back to `token`.
3. Otherwise the exercise type decides (TYPE_DEFAULTS).
"""

from dataclasses import dataclass
from typing import Optional

from grader.enums.grading import ExerciseType, GradingStrategy
from grader.models.grading import Exercise


@dataclass(frozen=True)
class StrategyConfig:
    primary: GradingStrategy
    fallback: Optional[GradingStrategy] = None


FALLBACK_TABLE: dict[GradingStrategy, Optional[GradingStrategy]] = {
    GradingStrategy.TOKEN: GradingStrategy.EXACT,
    GradingStrategy.EXECUTION: GradingStrategy.EXACT,
    GradingStrategy.AST: GradingStrategy.EXACT,
    GradingStrategy.EXACT: None,
}

SCRIPT_STRATEGY = StrategyConfig(
    primary=GradingStrategy.EXECUTION, fallback=GradingStrategy.TOKEN
)

TYPE_DEFAULTS: dict[ExerciseType, StrategyConfig] = {
    ExerciseType.FILL_IN: StrategyConfig(primary=GradingStrategy.EXACT),
    ExerciseType.PREDICT: StrategyConfig(
        primary=GradingStrategy.EXECUTION, fallback=GradingStrategy.EXACT
    ),
    ExerciseType.WRITE: StrategyConfig(
        primary=GradingStrategy.AST, fallback=GradingStrategy.EXACT
    ),
}


def get_default_strategy(exercise: Exercise) -> StrategyConfig:
    """Primary strategy and optional fallback for an exercise."""
    if exercise.grading_strategy is not None:
        return StrategyConfig(
            primary=exercise.grading_strategy,
            fallback=FALLBACK_TABLE[exercise.grading_strategy],
        )

    if exercise.verification_script:
        return SCRIPT_STRATEGY

    return TYPE_DEFAULTS[exercise.exercise_type]
