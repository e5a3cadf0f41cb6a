"""
Unit tests for the persistent worker sandbox.

The child process is replaced with mocks here; tests/integration runs the
real worker.
"""

import json
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from grader.enums.grading import FailureKind
from grader.errors import SandboxError
from grader.services.sandbox.worker import WorkerSandbox


def sandbox_with_stdout(lines: list) -> WorkerSandbox:
    """Sandbox wired to a fake, already-started worker emitting the given lines."""
    sandbox = WorkerSandbox(python_binary="python3", memory_limit_mb=0)
    process = MagicMock()
    process.pid = 4242
    process.returncode = None
    process.wait = AsyncMock(return_value=-9)
    process.stdin.write = MagicMock()
    process.stdin.drain = AsyncMock()
    process.stdout.readline = AsyncMock(side_effect=lines)
    sandbox._process = process
    sandbox._ready = True
    return sandbox


def reply_line(**payload) -> bytes:
    return json.dumps(payload).encode() + b"\n"


class TestToResult:
    """Reply classification."""

    def test_success(self):
        result = WorkerSandbox._to_result({"ok": True, "output": "3\n"})

        assert result.success is True
        assert result.output == "3\n"

    def test_user_code_failure(self):
        result = WorkerSandbox._to_result(
            {"ok": False, "kind": "user_code", "error": "NameError: x", "output": "a\n"}
        )

        assert result.failure == FailureKind.USER_CODE
        assert result.error == "NameError: x"
        assert result.output == "a\n"

    def test_other_failure_is_infrastructure(self):
        result = WorkerSandbox._to_result({"ok": False, "kind": "infrastructure"})

        assert result.failure == FailureKind.INFRASTRUCTURE
        assert result.error == "Execution failed"


class TestReadReply:
    """Single-line reply parsing."""

    @pytest.mark.asyncio
    async def test_reads_one_line(self):
        sandbox = sandbox_with_stdout([reply_line(id="a1", ok=True, output="")])

        assert await sandbox._read_reply() == {"id": "a1", "ok": True, "output": ""}

    @pytest.mark.asyncio
    async def test_eof_is_sandbox_error(self):
        sandbox = sandbox_with_stdout([b""])

        with pytest.raises(SandboxError, match="exited unexpectedly"):
            await sandbox._read_reply()

    @pytest.mark.asyncio
    async def test_stray_text_is_malformed(self):
        """Nothing but replies may appear on the reply channel."""
        sandbox = sandbox_with_stdout([b"printed to real stdout\n"])

        with pytest.raises(SandboxError, match="Malformed"):
            await sandbox._read_reply()

    @pytest.mark.asyncio
    async def test_non_object_is_malformed(self):
        sandbox = sandbox_with_stdout([b"[1, 2]\n"])

        with pytest.raises(SandboxError, match="not an object"):
            await sandbox._read_reply()

    @pytest.mark.asyncio
    async def test_oversized_line(self):
        sandbox = sandbox_with_stdout([ValueError("Separator is not found")])

        with pytest.raises(SandboxError, match="too large"):
            await sandbox._read_reply()


class TestExecute:
    """Request ids, crash handling and start-up failures."""

    @pytest.mark.asyncio
    async def test_matching_reply_accepted(self):
        sandbox = sandbox_with_stdout(
            [reply_line(id="feedface", ok=True, output="3\n")]
        )

        with patch(
            "grader.services.sandbox.worker.secrets.token_hex", return_value="feedface"
        ):
            result = await sandbox.execute("print(1 + 2)")

        assert result.success is True
        assert result.output == "3\n"
        sent = json.loads(sandbox._process.stdin.write.call_args.args[0])
        assert sent == {"id": "feedface", "code": "print(1 + 2)"}
        assert sandbox.is_ready() is True

    @pytest.mark.asyncio
    async def test_mismatched_reply_kills_worker(self):
        """A reply for some other request is never trusted as a result."""
        sandbox = sandbox_with_stdout(
            [reply_line(id="forged", ok=True, output="3\n")]
        )
        process = sandbox._process

        with patch(
            "grader.services.sandbox.worker.secrets.token_hex", return_value="feedface"
        ), patch("grader.services.sandbox.worker.os.killpg") as killpg:
            result = await sandbox.execute("print(1 + 2)")

        assert result.success is False
        assert result.failure == FailureKind.INFRASTRUCTURE
        assert "Mismatched" in result.error
        killpg.assert_called_once()
        assert killpg.call_args.args[0] == 4242
        process.wait.assert_awaited()
        assert sandbox.is_ready() is False

    @pytest.mark.asyncio
    async def test_reply_without_id_kills_worker(self):
        sandbox = sandbox_with_stdout([reply_line(ok=True, output="")])

        with patch("grader.services.sandbox.worker.os.killpg"):
            result = await sandbox.execute("pass")

        assert result.failure == FailureKind.INFRASTRUCTURE
        assert sandbox.is_ready() is False

    @pytest.mark.asyncio
    async def test_worker_exit_is_infra(self):
        sandbox = sandbox_with_stdout([b""])

        with patch("grader.services.sandbox.worker.os.killpg"):
            result = await sandbox.execute("pass")

        assert result.failure == FailureKind.INFRASTRUCTURE
        assert "crashed" in result.error

    @pytest.mark.asyncio
    async def test_kill_tolerates_vanished_group(self):
        sandbox = sandbox_with_stdout([])
        sandbox._process.returncode = 0

        with patch(
            "grader.services.sandbox.worker.os.killpg",
            side_effect=ProcessLookupError(),
        ):
            await sandbox.shutdown()

        assert sandbox._process is None
        assert sandbox.is_ready() is False

    @pytest.mark.asyncio
    async def test_missing_interpreter_is_infra(self):
        sandbox = WorkerSandbox(python_binary="/nonexistent/python")

        with patch(
            "grader.services.sandbox.worker.asyncio.create_subprocess_exec",
            AsyncMock(side_effect=FileNotFoundError("No such file")),
        ):
            result = await sandbox.execute("print(1)")

        assert result.failure == FailureKind.INFRASTRUCTURE
        assert "failed to start" in result.error
        assert sandbox.is_ready() is False

    def test_not_ready_before_first_run(self):
        assert WorkerSandbox().is_ready() is False
