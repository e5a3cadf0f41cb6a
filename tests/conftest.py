"""
Shared Test Fixtures and Configuration

This module provides pytest fixtures used across unit and integration tests.
"""

from pathlib import Path
from typing import Callable, Optional, Union

import pytest
from dotenv import load_dotenv

from grader.enums.grading import CodeLanguage, ExerciseType
from grader.models.grading import Exercise
from grader.services.runtime.python_runtime import PythonRuntime
from grader.services.runtime.registry import RuntimeRegistry
from grader.services.sandbox.base import DEFAULT_TIMEOUT_MS, ExecutionResult

# Load .env from the project root before any fixtures run
_env_file = Path(__file__).parent.parent / ".env"
if _env_file.exists():
    load_dotenv(_env_file)


# ============================================================================
# Fake Sandbox
# ============================================================================


class FakeSandbox:
    """
    In-memory sandbox for unit tests.

    `responder` maps submitted code to an ExecutionResult. Every call is
    recorded in `calls`.
    """

    def __init__(
        self,
        responder: Union[
            ExecutionResult, Callable[[str], ExecutionResult], None
        ] = None,
    ):
        self.responder = responder or ExecutionResult.ok("")
        self.calls: list[tuple[str, int]] = []
        self.shutdown_called = False

    def is_ready(self) -> bool:
        return not self.shutdown_called

    async def execute(
        self, code: str, timeout_ms: int = DEFAULT_TIMEOUT_MS
    ) -> ExecutionResult:
        self.calls.append((code, timeout_ms))
        if callable(self.responder):
            return self.responder(code)
        return self.responder

    async def shutdown(self) -> None:
        self.shutdown_called = True


class RecordingSink:
    """Telemetry sink that keeps every record."""

    def __init__(self):
        self.records = []

    def emit(self, record) -> None:
        self.records.append(record)


# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture
def fake_sandbox() -> FakeSandbox:
    return FakeSandbox()


@pytest.fixture
def python_runtime(fake_sandbox: FakeSandbox) -> PythonRuntime:
    """Python runtime whose executor is the fake sandbox."""
    return PythonRuntime(sandbox=fake_sandbox)


@pytest.fixture
def empty_registry() -> RuntimeRegistry:
    """Registry with no runtimes, so only explicitly passed handles are used."""
    return RuntimeRegistry()


@pytest.fixture
def recording_sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def make_exercise() -> Callable[..., Exercise]:
    """
    Factory for exercises with sensible defaults.

    Example:
        exercise = make_exercise(ExerciseType.WRITE, "x = 1", accepted_solutions=["x=1"])
    """

    def _make(
        exercise_type: ExerciseType = ExerciseType.WRITE,
        expected_answer: str = "",
        language: CodeLanguage = CodeLanguage.PYTHON,
        slug: Optional[str] = None,
        **kwargs,
    ) -> Exercise:
        return Exercise(
            slug=slug or f"test-{exercise_type.value}",
            exercise_type=exercise_type,
            expected_answer=expected_answer,
            language=language,
            **kwargs,
        )

    return _make
