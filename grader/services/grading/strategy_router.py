"""
Strategy Router

Runs the primary grading strategy for an exercise and, only when that
strategy's infrastructure was unavailable, one fallback strategy. A wrong
answer never triggers the fallback.

This is the only place that decides on fallback. Runtimes, sandboxes and
comparison engines report problems; the router turns every exception they
raise into an `infra_available=False` result.

Usage:
    from grader.services.grading.strategy_router import StrategyRouter

    router = StrategyRouter()
    result = await router.grade("def f(n): return n+1", exercise, runtime)
    print(result.grading_method)  # "ast" or "ast-fallback"
"""

import logging
from dataclasses import dataclass
from typing import Optional

from grader.config.settings import get_settings
from grader.enums.grading import (
    CodeLanguage,
    ExerciseType,
    FallbackReason,
    GradingStrategy,
)
from grader.models.comparison import CanonicalizeOptions
from grader.models.grading import Exercise
from grader.services.grading.execution import (
    verify_predict_answer,
    verify_with_script,
    verify_write_answer,
)
from grader.services.grading.matching import (
    check_fill_in_answer,
    check_predict_answer,
    check_write_answer,
    find_matched_alternative,
)
from grader.services.grading.strategy_defaults import get_default_strategy
from grader.services.runtime.base import LanguageRuntime
from grader.services.runtime.registry import RuntimeRegistry, get_runtime_registry

logger = logging.getLogger(__name__)
settings = get_settings()

AST_OPTIONS = CanonicalizeOptions(
    rename_locals=True,
    normalize_slices=True,
    ignore_docstrings=True,
)


@dataclass(frozen=True)
class StrategyResult:
    """Outcome of one strategy attempt."""

    is_correct: bool
    infra_available: bool = True
    matched_alternative: Optional[str] = None
    error: Optional[str] = None


def _unavailable(error: str) -> StrategyResult:
    return StrategyResult(is_correct=False, infra_available=False, error=error)


@dataclass(frozen=True)
class GradingWithStrategyResult:
    """Outcome of a routed grading call, including fallback bookkeeping."""

    is_correct: bool
    infra_available: bool
    strategy: GradingStrategy
    primary_strategy: GradingStrategy
    matched_alternative: Optional[str] = None
    error: Optional[str] = None
    fallback_used: bool = False
    fallback_reason: Optional[FallbackReason] = None

    @property
    def grading_method(self) -> str:
        """Tag of the strategy that produced the verdict, e.g. "ast" or "ast-fallback"."""
        if self.fallback_used:
            return f"{self.primary_strategy.value}-fallback"
        return self.strategy.value

    @classmethod
    def from_attempt(
        cls,
        attempt: StrategyResult,
        strategy: GradingStrategy,
        primary_strategy: GradingStrategy,
        fallback_reason: Optional[FallbackReason] = None,
    ) -> "GradingWithStrategyResult":
        return cls(
            is_correct=attempt.is_correct,
            infra_available=attempt.infra_available,
            matched_alternative=attempt.matched_alternative,
            error=attempt.error,
            strategy=strategy,
            primary_strategy=primary_strategy,
            fallback_used=fallback_reason is not None,
            fallback_reason=fallback_reason,
        )


def grade_exact(user_answer: str, exercise: Exercise) -> StrategyResult:
    """Literal comparison routed by exercise type. Cannot fail."""
    if exercise.exercise_type == ExerciseType.FILL_IN:
        match = check_fill_in_answer(
            user_answer, exercise.expected_answer, exercise.accepted_solutions
        )
    elif exercise.exercise_type == ExerciseType.PREDICT:
        match = check_predict_answer(
            user_answer, exercise.expected_answer, exercise.accepted_solutions
        )
    else:
        match = check_write_answer(
            user_answer, exercise.expected_answer, exercise.accepted_solutions
        )
    return StrategyResult(
        is_correct=match.is_correct, matched_alternative=match.matched_alternative
    )


class StrategyRouter:
    """
    Dispatches a submission to exact, token, ast or execution grading.

    Python exercises are served by the runtime handle the caller passes in;
    a missing handle means token, ast and execution grading are unavailable.
    Other languages are looked up in the runtime registry.
    """

    def __init__(
        self,
        registry: Optional[RuntimeRegistry] = None,
        timeout_ms: Optional[int] = None,
    ):
        self.registry = registry or get_runtime_registry()
        self.timeout_ms = timeout_ms or settings.SANDBOX_TIMEOUT_MS

    async def grade(
        self,
        user_answer: str,
        exercise: Exercise,
        runtime: Optional[LanguageRuntime] = None,
    ) -> GradingWithStrategyResult:
        """
        Grade with the primary strategy, falling back once if its infrastructure failed.

        Args:
            user_answer: Learner's submission
            exercise: Exercise descriptor
            runtime: Runtime handle for Python exercises

        Returns:
            GradingWithStrategyResult
        """
        config = get_default_strategy(exercise)
        result = await self.run_strategy(config.primary, user_answer, exercise, runtime)

        if not result.infra_available and config.fallback is not None:
            logger.warning(
                f"Strategy '{config.primary.value}' unavailable for {exercise.slug} "
                f"({result.error}), falling back to '{config.fallback.value}'"
            )
            fallback_result = await self.run_strategy(
                config.fallback, user_answer, exercise, runtime
            )
            return GradingWithStrategyResult.from_attempt(
                fallback_result,
                strategy=config.fallback,
                primary_strategy=config.primary,
                fallback_reason=FallbackReason.INFRA_UNAVAILABLE,
            )

        return GradingWithStrategyResult.from_attempt(
            result, strategy=config.primary, primary_strategy=config.primary
        )

    async def run_strategy(
        self,
        strategy: GradingStrategy,
        user_answer: str,
        exercise: Exercise,
        runtime: Optional[LanguageRuntime] = None,
    ) -> StrategyResult:
        """Run a single strategy. Never raises."""
        if strategy == GradingStrategy.EXACT:
            return grade_exact(user_answer, exercise)

        try:
            resolved = await self._resolve_runtime(exercise, runtime)
            if resolved is None:
                return _unavailable(
                    f"No {exercise.language.value} runtime available"
                )

            if strategy == GradingStrategy.TOKEN:
                return await self._grade_token(resolved, user_answer, exercise)
            if strategy == GradingStrategy.AST:
                return await self._grade_ast(resolved, user_answer, exercise)
            if strategy == GradingStrategy.EXECUTION:
                return await self._grade_execution(resolved, user_answer, exercise)
        except Exception as e:
            logger.warning(
                f"Strategy '{strategy.value}' failed for {exercise.slug}: {e}"
            )
            return _unavailable(str(e) or type(e).__name__)

        return _unavailable(f"Unknown grading strategy: {strategy}")

    async def _resolve_runtime(
        self, exercise: Exercise, runtime: Optional[LanguageRuntime]
    ) -> Optional[LanguageRuntime]:
        if runtime is not None and runtime.language == exercise.language:
            return runtime
        if exercise.language == CodeLanguage.PYTHON:
            return None
        return await self.registry.get(exercise.language)

    async def _grade_token(
        self, runtime: LanguageRuntime, user_answer: str, exercise: Exercise
    ) -> StrategyResult:
        result = await runtime.compare_by_tokens(
            user_answer, exercise.expected_answer, exercise.accepted_solutions
        )
        return StrategyResult(
            is_correct=result.match, matched_alternative=result.matched_alternative
        )

    async def _grade_ast(
        self, runtime: LanguageRuntime, user_answer: str, exercise: Exercise
    ) -> StrategyResult:
        result = await runtime.compare_by_ast(
            user_answer,
            exercise.expected_answer,
            exercise.accepted_solutions,
            AST_OPTIONS,
        )
        return StrategyResult(
            is_correct=result.match,
            infra_available=result.infra_available,
            matched_alternative=result.matched_alternative,
            error=result.error,
        )

    async def _grade_execution(
        self, runtime: LanguageRuntime, user_answer: str, exercise: Exercise
    ) -> StrategyResult:
        if exercise.verification_script:
            verification = await verify_with_script(
                runtime, user_answer, exercise.verification_script, self.timeout_ms
            )
            return StrategyResult(
                is_correct=verification.passed,
                infra_available=verification.infra_available,
                error=verification.error,
            )

        if exercise.exercise_type == ExerciseType.PREDICT and exercise.code:
            verification = await verify_predict_answer(
                runtime, exercise.code, user_answer, self.timeout_ms
            )
            if not verification.infra_available:
                return _unavailable(verification.error or "Execution unavailable")

            # Output may legitimately vary (set or dict ordering); accept listed alternatives
            if not verification.passed and exercise.accepted_solutions:
                rescue = check_predict_answer(
                    user_answer, exercise.expected_answer, exercise.accepted_solutions
                )
                if rescue.is_correct:
                    return StrategyResult(
                        is_correct=True,
                        matched_alternative=find_matched_alternative(
                            user_answer, exercise.accepted_solutions
                        ),
                    )
            return StrategyResult(
                is_correct=verification.passed, error=verification.error
            )

        if exercise.verify_by_execution:
            verification = await verify_write_answer(
                runtime,
                user_answer,
                exercise.expected_answer,
                exercise.effective_template,
                self.timeout_ms,
            )
            return StrategyResult(
                is_correct=verification.passed,
                infra_available=verification.infra_available,
                error=verification.error,
            )

        # A descriptor with nothing to run is not an infrastructure problem
        return StrategyResult(
            is_correct=False,
            error=f"Nothing to execute for {exercise.exercise_type.value} exercise",
        )
