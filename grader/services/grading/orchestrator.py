"""
Grading Orchestrator

Two-pass entry point of the grading engine:

Pass 1 (correctness): the strategy router decides is_correct.
Pass 2 (construct check): only for correct answers to exercises with a
target construct. Detection runs on the raw submitted text. A missing
construct yields coaching feedback, never a wrong verdict.

`grade()` never raises. If routing blows up unexpectedly the verdict comes
from exact matching, tagged "exact-fallback".

Usage:
    from grader.services.grading.orchestrator import GradingOrchestrator

    orchestrator = GradingOrchestrator()
    result = await orchestrator.grade("3", exercise, runtime)
    if should_show_coaching(result):
        print(result.coaching_feedback)
"""

import logging
from typing import Optional

from grader.config.settings import get_settings
from grader.enums.grading import ExerciseType, FallbackReason, GradingStrategy
from grader.models.grading import Exercise, GradingResult
from grader.services.grading.construct_detector import detect
from grader.services.grading.matching import normalize_code, normalize_output
from grader.services.grading.strategy_router import (
    GradingWithStrategyResult,
    StrategyRouter,
    grade_exact,
)
from grader.services.grading.telemetry import (
    LoggingTelemetrySink,
    NullTelemetrySink,
    TelemetrySink,
    create_telemetry_record,
    emit_telemetry,
)
from grader.services.runtime.base import LanguageRuntime

logger = logging.getLogger(__name__)
settings = get_settings()


def should_show_coaching(result: GradingResult) -> bool:
    """Coaching is shown only for correct answers that skipped the target construct."""
    return result.is_correct and result.used_target_construct is False


def normalize_for_display(text: str, exercise_type: ExerciseType) -> str:
    if exercise_type == ExerciseType.WRITE:
        return normalize_code(text)
    if exercise_type == ExerciseType.PREDICT:
        return normalize_output(text)
    return text.strip()


class GradingOrchestrator:
    """
    Two-pass grader.

    Holds no per-call state; one instance can grade any number of
    submissions.
    """

    def __init__(
        self,
        router: Optional[StrategyRouter] = None,
        telemetry_sink: Optional[TelemetrySink] = None,
        default_coaching_feedback: Optional[str] = None,
    ):
        """
        Initialize the orchestrator.

        Args:
            router: Strategy router (default: one backed by the global registry)
            telemetry_sink: Where telemetry records go (default depends on TELEMETRY_ENABLED)
            default_coaching_feedback: Coaching text when the exercise declares none
        """
        self.router = router or StrategyRouter()
        if telemetry_sink is None:
            telemetry_sink = (
                LoggingTelemetrySink()
                if settings.TELEMETRY_ENABLED
                else NullTelemetrySink()
            )
        self.telemetry_sink = telemetry_sink
        self.default_coaching_feedback = (
            default_coaching_feedback or settings.DEFAULT_COACHING_FEEDBACK
        )

    async def grade(
        self,
        user_answer: str,
        exercise: Exercise,
        runtime: Optional[LanguageRuntime] = None,
    ) -> GradingResult:
        """
        Grade one submission.

        Args:
            user_answer: Learner's raw submission
            exercise: Exercise descriptor
            runtime: Runtime handle for Python exercises; None disables
                token, ast and execution grading for them

        Returns:
            GradingResult
        """
        routed = await self._check_correctness(user_answer, exercise, runtime)

        base = {
            "is_correct": routed.is_correct,
            "grading_method": routed.grading_method,
            "normalized_user_answer": normalize_for_display(
                user_answer, exercise.exercise_type
            ),
            "normalized_expected_answer": normalize_for_display(
                exercise.expected_answer, exercise.exercise_type
            ),
        }

        if not routed.is_correct:
            result = GradingResult(**base)
        else:
            used_construct, coaching = self._check_construct(user_answer, exercise)
            result = GradingResult(
                **base,
                matched_alternative=routed.matched_alternative,
                used_target_construct=used_construct,
                coaching_feedback=coaching,
            )

        emit_telemetry(
            self.telemetry_sink,
            create_telemetry_record(
                exercise_id=exercise.slug,
                strategy=routed.strategy,
                was_correct=result.is_correct,
                fallback_used=routed.fallback_used,
                fallback_reason=routed.fallback_reason,
                matched_alternative=result.matched_alternative,
                user_answer=user_answer,
            ),
        )
        return result

    async def _check_correctness(
        self,
        user_answer: str,
        exercise: Exercise,
        runtime: Optional[LanguageRuntime],
    ) -> GradingWithStrategyResult:
        """Pass 1."""
        try:
            return await self.router.grade(user_answer, exercise, runtime)
        except Exception as e:
            logger.error(
                f"Strategy routing failed for {exercise.slug}, using exact match: {e}",
                exc_info=True,
            )
            return GradingWithStrategyResult.from_attempt(
                grade_exact(user_answer, exercise),
                strategy=GradingStrategy.EXACT,
                primary_strategy=GradingStrategy.EXACT,
                fallback_reason=FallbackReason.INFRA_UNAVAILABLE,
            )

    def _check_construct(
        self, user_answer: str, exercise: Exercise
    ) -> tuple[Optional[bool], Optional[str]]:
        """Pass 2. Returns (used_target_construct, coaching_feedback)."""
        target = exercise.target_construct
        if target is None:
            return None, None

        try:
            detected = detect(user_answer, target.type).detected
        except Exception as e:
            # Pathological input (e.g. nesting past the parser's limits)
            logger.warning(f"Construct check failed for {exercise.slug}: {e}")
            return None, None

        if detected:
            return True, None
        return False, target.feedback or self.default_coaching_feedback
