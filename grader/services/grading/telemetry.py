"""
Grading Telemetry

One anonymized record per grading call: which strategy produced the
verdict, whether a fallback ran and why, and a hash of the answer. The raw
answer text is never part of a record.

Emission is fire-and-forget. A failing sink is logged and ignored so it
can never change a grading result.

Usage:
    from grader.services.grading.telemetry import LoggingTelemetrySink, create_telemetry_record

    record = create_telemetry_record(exercise_id="slice-basics", ...)
    emit_telemetry(LoggingTelemetrySink(), record)
"""

import json
import logging
from datetime import datetime, timezone
from typing import Optional, Protocol, runtime_checkable

from grader.enums.grading import FallbackReason, GradingStrategy
from grader.models.base import FrozenOutput
from grader.utils.hash_utils import hash_answer

logger = logging.getLogger(__name__)


class GradingTelemetry(FrozenOutput):
    """Anonymized record of one grading call."""

    exercise_id: str
    strategy: GradingStrategy
    was_correct: bool
    fallback_used: bool
    fallback_reason: Optional[FallbackReason] = None
    matched_alternative: Optional[str] = None
    hashed_answer: str
    timestamp: datetime


@runtime_checkable
class TelemetrySink(Protocol):
    """Write-only destination for telemetry records."""

    def emit(self, record: GradingTelemetry) -> None: ...


class LoggingTelemetrySink:
    """Default sink: one JSON debug log line per record."""

    def __init__(self, logger_name: str = "grader.telemetry"):
        self._logger = logging.getLogger(logger_name)

    def emit(self, record: GradingTelemetry) -> None:
        self._logger.debug(
            json.dumps(record.model_dump(mode="json", by_alias=True), sort_keys=True)
        )


class NullTelemetrySink:
    """Sink that drops everything. Used when TELEMETRY_ENABLED is off."""

    def emit(self, record: GradingTelemetry) -> None:
        return None


def create_telemetry_record(
    exercise_id: str,
    strategy: GradingStrategy,
    was_correct: bool,
    fallback_used: bool,
    user_answer: str,
    fallback_reason: Optional[FallbackReason] = None,
    matched_alternative: Optional[str] = None,
) -> GradingTelemetry:
    """Build a record, hashing the answer."""
    return GradingTelemetry(
        exercise_id=exercise_id,
        strategy=strategy,
        was_correct=was_correct,
        fallback_used=fallback_used,
        fallback_reason=fallback_reason,
        matched_alternative=matched_alternative,
        hashed_answer=hash_answer(user_answer),
        timestamp=datetime.now(timezone.utc),
    )


def emit_telemetry(sink: TelemetrySink, record: GradingTelemetry) -> None:
    """Send a record to a sink, swallowing sink failures."""
    try:
        sink.emit(record)
    except Exception as e:
        logger.warning(f"Telemetry sink failed for {record.exercise_id}: {e}")
