"""
Persistent Python Worker Sandbox

Runs learner code from a long-lived child interpreter so that repeated
grading calls don't pay interpreter start-up every time.

Protocol (one JSON document per line):
    host   -> worker: {"id": "<request id>", "code": "..."}
    worker -> host:   {"id": "<request id>", "ok": true, "output": "..."}
                      {"id": "<request id>", "ok": false, "kind": "user_code", "error": "...", "output": "..."}

The worker moves its host pipes to private descriptors and points fds 0 and
1 at /dev/null before serving anything. Each request is run in a forked
child that closes those descriptors first and reports back over its own
pipe, so learner code can neither reach the host channel nor leave patched
builtins or modules behind for the next run. A reply whose id doesn't match
the request in flight is treated as a crash.

Memory is capped with resource.setrlimit where the platform supports it.

Usage:
    from grader.services.sandbox.worker import WorkerSandbox

    sandbox = WorkerSandbox()
    result = await sandbox.execute("print(1 + 2)", timeout_ms=5000)
    assert result.output == "3\\n"
    await sandbox.shutdown()
"""

import asyncio
import json
import logging
import os
import secrets
import signal
import sys
from typing import Optional

from grader.config.settings import get_settings
from grader.errors import SandboxError
from grader.services.sandbox.base import (
    DEFAULT_TIMEOUT_MS,
    ExecutionResult,
    log_sandbox_event,
    truncate_log_message,
)

logger = logging.getLogger(__name__)
settings = get_settings()

BACKEND_NAME = "worker"

# Upper bound for one reply line (captured output is inlined in it)
MAX_REPLY_BYTES = 8 * 1024 * 1024

WORKER_SOURCE = r'''
import contextlib
import io
import json
import os
import sys

_MEMORY_LIMIT = int(sys.argv[1])

try:
    import resource as _resource
    if _MEMORY_LIMIT > 0:
        _resource.setrlimit(_resource.RLIMIT_AS, (_MEMORY_LIMIT, _MEMORY_LIMIT))
    del _resource
except (ImportError, ValueError, OSError):
    pass

# Host channel lives on private fds; 0 and 1 (and sys.__stdout__) go nowhere
_REQUEST_FD = os.dup(0)
_REPLY_FD = os.dup(1)
_devnull = os.open(os.devnull, os.O_RDWR)
os.dup2(_devnull, 0)
os.dup2(_devnull, 1)
os.close(_devnull)
_requests = os.fdopen(_REQUEST_FD, "r", encoding="utf-8")
_replies = os.fdopen(_REPLY_FD, "w", encoding="utf-8")
sys.stdin = io.StringIO()


def _reply(payload):
    _replies.write(json.dumps(payload) + "\n")
    _replies.flush()


def _run(code):
    buffer = io.StringIO()
    namespace = {"__name__": "__main__", "__builtins__": __builtins__}
    try:
        with contextlib.redirect_stdout(buffer):
            exec(compile(code, "<submission>", "exec"), namespace)
    except SystemExit as exc:
        if exc.code not in (None, 0):
            return {"ok": False, "kind": "user_code",
                    "error": f"SystemExit: {exc.code}", "output": buffer.getvalue()}
    except BaseException as exc:
        return {"ok": False, "kind": "user_code",
                "error": f"{type(exc).__name__}: {exc}", "output": buffer.getvalue()}
    return {"ok": True, "output": buffer.getvalue()}


def _child(code, result_fd):
    try:
        os.close(_REQUEST_FD)
        os.close(_REPLY_FD)
        payload = json.dumps(_run(code))
        with os.fdopen(result_fd, "w", encoding="utf-8") as result:
            result.write(payload)
    finally:
        os._exit(0)


def _serve(code):
    read_fd, write_fd = os.pipe()
    pid = os.fork()
    if pid == 0:
        os.close(read_fd)
        _child(code, write_fd)
    os.close(write_fd)
    with os.fdopen(read_fd, "rb") as result:
        data = result.read()
    _, status = os.waitpid(pid, 0)

    if not data:
        exit_code = os.waitstatus_to_exitcode(status)
        return {"ok": False, "kind": "user_code",
                "error": f"Submission exited without a result (status {exit_code})",
                "output": ""}
    try:
        parsed = json.loads(data.decode("utf-8"))
    except ValueError:
        parsed = None
    if not isinstance(parsed, dict):
        # The child writes exactly one object; anything else came from the submission
        return {"ok": False, "kind": "user_code",
                "error": "Submission tampered with its result channel", "output": ""}
    return parsed


_reply({"ready": True})
for _line in _requests:
    try:
        _request = json.loads(_line)
        _id = _request["id"]
        _code = _request["code"]
    except (ValueError, KeyError, TypeError):
        _reply({"ok": False, "kind": "infrastructure", "error": "Malformed request"})
        continue
    try:
        _result = _serve(_code)
    except OSError as exc:
        _result = {"ok": False, "kind": "infrastructure", "error": f"fork failed: {exc}"}
    _result["id"] = _id
    _reply(_result)
'''


class WorkerSandbox:
    """
    Sandbox backed by one persistent child interpreter.

    The worker is owned by this object alone. Runs are serialized by an
    asyncio.Lock. A timeout, crash or mismatched reply kills the worker's
    whole process group and marks the sandbox not ready; the next call
    spawns a fresh one.
    """

    def __init__(
        self,
        python_binary: Optional[str] = None,
        memory_limit_mb: Optional[int] = None,
        startup_timeout_ms: Optional[int] = None,
    ):
        """
        Initialize the worker sandbox. Nothing is spawned until first use.

        Args:
            python_binary: Interpreter for the worker (default: running interpreter)
            memory_limit_mb: Address-space cap for the worker, 0 disables it
            startup_timeout_ms: How long to wait for the worker's ready line
        """
        self.python_binary = (
            python_binary or settings.SANDBOX_PYTHON_BINARY or sys.executable
        )
        self.memory_limit_mb = (
            memory_limit_mb
            if memory_limit_mb is not None
            else settings.SANDBOX_MEMORY_LIMIT_MB
        )
        self.startup_timeout_ms = (
            startup_timeout_ms or settings.SANDBOX_STARTUP_TIMEOUT_MS
        )
        self._process: Optional[asyncio.subprocess.Process] = None
        self._ready = False
        self._lock = asyncio.Lock()

    def is_ready(self) -> bool:
        return (
            self._ready
            and self._process is not None
            and self._process.returncode is None
        )

    async def execute(
        self, code: str, timeout_ms: int = DEFAULT_TIMEOUT_MS
    ) -> ExecutionResult:
        """
        Run code in the worker and capture its stdout.

        Args:
            code: Python source to execute as a module
            timeout_ms: Wall-clock budget for this run

        Returns:
            ExecutionResult classified as success, user_code, timeout or infrastructure
        """
        async with self._lock:
            try:
                await self._ensure_started()
            except (OSError, SandboxError, asyncio.TimeoutError) as e:
                log_sandbox_event(
                    logging.ERROR,
                    event="sandbox.worker.start_failed",
                    backend=BACKEND_NAME,
                    error=str(e) or type(e).__name__,
                )
                await self._kill()
                return ExecutionResult.infra_error(
                    f"Sandbox worker failed to start: {e or type(e).__name__}"
                )

            request_id = secrets.token_hex(8)
            try:
                request = json.dumps({"id": request_id, "code": code}) + "\n"
                self._process.stdin.write(request.encode("utf-8"))
                await self._process.stdin.drain()
                reply = await asyncio.wait_for(
                    self._read_reply(), timeout=timeout_ms / 1000
                )
                if reply.get("id") != request_id:
                    raise SandboxError("Mismatched sandbox reply")
            except asyncio.TimeoutError:
                log_sandbox_event(
                    logging.WARNING,
                    event="sandbox.execution.timed_out",
                    backend=BACKEND_NAME,
                    timeout_ms=timeout_ms,
                    pid=self._process.pid if self._process else None,
                )
                await self._kill()
                return ExecutionResult.timeout()
            except (OSError, SandboxError) as e:
                log_sandbox_event(
                    logging.ERROR,
                    event="sandbox.execution.crashed",
                    backend=BACKEND_NAME,
                    crash_type=type(e).__name__,
                    error=str(e),
                )
                await self._kill()
                return ExecutionResult.infra_error(f"Sandbox worker crashed: {e}")

        return self._to_result(reply)

    async def shutdown(self) -> None:
        """Stop the worker if one is running."""
        async with self._lock:
            await self._kill()

    async def _ensure_started(self) -> None:
        if self.is_ready():
            return
        # A half-dead process from an earlier failure must not linger
        await self._kill()

        memory_limit_bytes = max(self.memory_limit_mb, 0) * 1024 * 1024
        self._process = await asyncio.create_subprocess_exec(
            self.python_binary,
            "-I",
            "-c",
            WORKER_SOURCE,
            str(memory_limit_bytes),
            stdin=asyncio.subprocess.PIPE,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.DEVNULL,
            limit=MAX_REPLY_BYTES,
            start_new_session=True,
        )
        reply = await asyncio.wait_for(
            self._read_reply(), timeout=self.startup_timeout_ms / 1000
        )
        if not reply.get("ready"):
            raise SandboxError("Sandbox worker sent an unexpected greeting")

        self._ready = True
        log_sandbox_event(
            logging.INFO,
            event="sandbox.worker.spawned",
            backend=BACKEND_NAME,
            pid=self._process.pid,
            memory_limit_mb=self.memory_limit_mb,
        )

    async def _read_reply(self) -> dict:
        """Read exactly one reply line from the worker."""
        try:
            raw = await self._process.stdout.readline()
        except ValueError as e:
            # Reply line exceeded the stream limit
            raise SandboxError(f"Sandbox reply too large: {e}") from e
        if not raw:
            raise SandboxError("Sandbox worker exited unexpectedly")

        line = raw.decode("utf-8", errors="replace").rstrip("\n")
        try:
            reply = json.loads(line)
        except json.JSONDecodeError as e:
            logger.debug(f"Unparseable worker reply: {truncate_log_message(line)}")
            raise SandboxError(f"Malformed sandbox reply: {e}") from e
        if not isinstance(reply, dict):
            raise SandboxError("Malformed sandbox reply: not an object")
        return reply

    async def _kill(self) -> None:
        self._ready = False
        process, self._process = self._process, None
        if process is None:
            return
        try:
            # The worker leads its own session; this also reaches forked runs
            os.killpg(process.pid, signal.SIGKILL)
        except ProcessLookupError:
            pass
        if process.returncode is None:
            await process.wait()
        log_sandbox_event(
            logging.WARNING,
            event="sandbox.worker.killed",
            backend=BACKEND_NAME,
            pid=process.pid,
        )

    @staticmethod
    def _to_result(reply: dict) -> ExecutionResult:
        if reply.get("ok"):
            return ExecutionResult.ok(reply.get("output", ""))
        error = reply.get("error") or "Execution failed"
        if reply.get("kind") == "user_code":
            return ExecutionResult.user_error(error, output=reply.get("output"))
        return ExecutionResult.infra_error(error)
