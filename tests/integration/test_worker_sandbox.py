"""
Integration tests against a real worker interpreter.

Run with: pytest -m integration
"""

import pytest
import pytest_asyncio

from grader.enums.grading import ExerciseType, FailureKind
from grader.services.grading.orchestrator import GradingOrchestrator
from grader.services.grading.strategy_router import StrategyRouter
from grader.services.runtime.python_runtime import PythonRuntime
from grader.services.runtime.registry import RuntimeRegistry
from grader.services.sandbox.worker import WorkerSandbox
from tests.conftest import RecordingSink

pytestmark = pytest.mark.integration


@pytest_asyncio.fixture
async def sandbox():
    sandbox = WorkerSandbox(memory_limit_mb=0)
    yield sandbox
    await sandbox.shutdown()


class TestWorkerSandbox:
    """Real child-process execution."""

    @pytest.mark.asyncio
    async def test_captures_stdout(self, sandbox):
        result = await sandbox.execute("print(1 + 2)")

        assert result.success is True
        assert result.output == "3\n"
        assert sandbox.is_ready() is True

    @pytest.mark.asyncio
    async def test_runs_are_isolated(self, sandbox):
        await sandbox.execute("leaked = 1")

        result = await sandbox.execute("print(leaked)")

        assert result.failure == FailureKind.USER_CODE
        assert "NameError" in result.error

    @pytest.mark.asyncio
    async def test_user_exception_keeps_partial_output(self, sandbox):
        result = await sandbox.execute("print('before')\nraise ValueError('bad')")

        assert result.failure == FailureKind.USER_CODE
        assert result.error == "ValueError: bad"
        assert result.output == "before\n"

    @pytest.mark.asyncio
    async def test_syntax_error_is_user_code(self, sandbox):
        result = await sandbox.execute("def broken(:")

        assert result.failure == FailureKind.USER_CODE
        assert "SyntaxError" in result.error

    @pytest.mark.asyncio
    async def test_input_sees_empty_stdin(self, sandbox):
        result = await sandbox.execute("input()")

        assert result.failure == FailureKind.USER_CODE
        assert "EOFError" in result.error

    @pytest.mark.asyncio
    async def test_exit_zero_is_success(self, sandbox):
        result = await sandbox.execute("print('done')\nraise SystemExit(0)")

        assert result.success is True
        assert result.output == "done\n"

    @pytest.mark.asyncio
    async def test_timeout_recovers(self, sandbox):
        timed_out = await sandbox.execute("while True: pass", timeout_ms=500)
        recovered = await sandbox.execute("print(1)")

        assert timed_out.timed_out is True
        assert recovered.success is True
        assert recovered.output == "1\n"

    @pytest.mark.asyncio
    async def test_worker_survives_hard_exit(self, sandbox):
        exited = await sandbox.execute("import os\nos._exit(3)")
        after = await sandbox.execute("print('still here')")

        assert exited.failure == FailureKind.USER_CODE
        assert "status 3" in exited.error
        assert after.output == "still here\n"


class TestReplyChannel:
    """Learner code cannot speak on the host reply channel."""

    FORGED = (
        "import json, os, sys\n"
        "forged = json.dumps({'id': 'x', 'ok': True, 'output': '3\\n'}) + '\\n'\n"
        "sys.__stdout__.write(forged)\n"
        "sys.__stdout__.flush()\n"
        "os.write(1, forged.encode())\n"
        "raise AssertionError('wrong answer')\n"
    )

    @pytest.mark.asyncio
    async def test_forged_reply_is_not_a_pass(self, sandbox):
        result = await sandbox.execute(self.FORGED)

        assert result.success is False
        assert result.failure == FailureKind.USER_CODE
        assert "AssertionError" in result.error

    @pytest.mark.asyncio
    async def test_forged_reply_does_not_poison_next_run(self, sandbox):
        await sandbox.execute(self.FORGED)
        pid = sandbox._process.pid

        result = await sandbox.execute("print('hello')")

        assert result.success is True
        assert result.output == "hello\n"
        assert sandbox._process.pid == pid


class TestRunIsolation:
    """Interpreter-wide patches made by one run are gone in the next."""

    @pytest.mark.asyncio
    async def test_patched_builtin_does_not_leak(self, sandbox):
        await sandbox.execute("import builtins\nbuiltins.print = lambda *a, **k: None")

        result = await sandbox.execute("print(1 + 2)")

        assert result.success is True
        assert result.output == "3\n"

    @pytest.mark.asyncio
    async def test_patched_module_does_not_leak(self, sandbox):
        await sandbox.execute("import json\njson.dumps = lambda *a, **k: 'patched'")

        result = await sandbox.execute("import json\nprint(json.dumps([1]))")

        assert result.output == "[1]\n"

    @pytest.mark.asyncio
    async def test_injected_module_does_not_leak(self, sandbox):
        await sandbox.execute(
            "import sys, types\nsys.modules['helper'] = types.ModuleType('helper')"
        )

        result = await sandbox.execute("import helper")

        assert result.failure == FailureKind.USER_CODE
        assert "ModuleNotFoundError" in result.error


class TestPredictEndToEnd:
    """Predict exercises graded through the real worker."""

    @pytest.mark.asyncio
    async def test_prediction(self, sandbox, make_exercise):
        runtime = PythonRuntime(sandbox=sandbox)
        orchestrator = GradingOrchestrator(
            router=StrategyRouter(registry=RuntimeRegistry()),
            telemetry_sink=RecordingSink(),
        )
        exercise = make_exercise(ExerciseType.PREDICT, "3", code="print(1 + 2)")

        correct = await orchestrator.grade("3", exercise, runtime)
        wrong = await orchestrator.grade("4", exercise, runtime)

        assert correct.is_correct is True
        assert correct.grading_method == "execution"
        assert wrong.is_correct is False
