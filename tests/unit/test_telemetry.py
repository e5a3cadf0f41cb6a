"""
Unit tests for grading telemetry.
"""

import json
import logging

from grader.enums.grading import FallbackReason, GradingStrategy
from grader.services.grading.telemetry import (
    LoggingTelemetrySink,
    NullTelemetrySink,
    create_telemetry_record,
    emit_telemetry,
)
from grader.utils.hash_utils import hash_answer


def make_record(**overrides):
    fields = {
        "exercise_id": "slice-basics",
        "strategy": GradingStrategy.AST,
        "was_correct": True,
        "fallback_used": False,
        "user_answer": "secret = x[::-1]",
    }
    fields.update(overrides)
    return create_telemetry_record(**fields)


class TestCreateTelemetryRecord:
    """Tests for create_telemetry_record."""

    def test_answer_is_hashed(self):
        record = make_record()

        assert record.hashed_answer == hash_answer("secret = x[::-1]")
        assert "secret" not in record.model_dump_json()

    def test_timestamp_is_utc(self):
        assert make_record().timestamp.utcoffset().total_seconds() == 0

    def test_camel_case_dump(self):
        record = make_record(
            fallback_used=True,
            fallback_reason=FallbackReason.INFRA_UNAVAILABLE,
            strategy=GradingStrategy.EXACT,
        )

        dumped = record.model_dump(mode="json", by_alias=True)

        assert dumped["exerciseId"] == "slice-basics"
        assert dumped["strategy"] == "exact"
        assert dumped["fallbackUsed"] is True
        assert dumped["fallbackReason"] == FallbackReason.INFRA_UNAVAILABLE.value
        assert "hashedAnswer" in dumped


class TestSinks:
    """Tests for the built-in sinks and emit_telemetry."""

    def test_logging_sink_writes_json(self, caplog):
        caplog.set_level(logging.DEBUG, logger="grader.telemetry")

        LoggingTelemetrySink().emit(make_record())

        payload = json.loads(caplog.records[-1].getMessage())
        assert payload["exerciseId"] == "slice-basics"
        assert payload["wasCorrect"] is True

    def test_null_sink_drops(self):
        assert NullTelemetrySink().emit(make_record()) is None

    def test_emit_swallows_sink_errors(self, caplog):
        class BrokenSink:
            def emit(self, record):
                raise ValueError("disk full")

        with caplog.at_level(logging.WARNING):
            emit_telemetry(BrokenSink(), make_record())

        assert "disk full" in caplog.text
