"""
Node.js Sandbox

Runs JavaScript submissions in a `node` child process. Inside it the code is
evaluated in a fresh `vm` context whose only global is a capturing console,
so it cannot reach `require`, `process` or the harness' own variables.

Output follows REPL conventions: captured console lines joined by newlines,
or the completion value of the script when nothing was logged.

Usage:
    from grader.services.sandbox.node_runner import NodeRunner

    runner = NodeRunner()
    result = await runner.execute("console.log(1 + 2)")
    assert result.output == "3"
"""

import asyncio
import json
import logging
import secrets
import shutil
from typing import Optional

from grader.config.settings import get_settings
from grader.services.sandbox.base import (
    DEFAULT_TIMEOUT_MS,
    ExecutionResult,
    log_sandbox_event,
    truncate_log_message,
)

logger = logging.getLogger(__name__)
settings = get_settings()

BACKEND_NAME = "node"

# Extra wall-clock time granted to the node process on top of the vm timeout
PROCESS_GRACE_MS = 2000

HARNESS_TEMPLATE = """
const vm = require('vm');
const MARKER = %(marker)s;
const code = %(code)s;
const logs = [];
const capture = (prefix) => (...args) => {
  logs.push(prefix + args.map((a) => String(a)).join(' '));
};
const sandboxConsole = {
  log: capture(''),
  error: capture('[ERROR] '),
  warn: capture('[WARN] '),
  info: capture('[INFO] '),
};
let reply;
try {
  const value = vm.runInNewContext(code, { console: sandboxConsole }, {
    filename: 'submission.js',
    timeout: %(timeout_ms)d,
  });
  const output = logs.length > 0 ? logs.join('\\n') : (value !== undefined ? String(value) : '');
  reply = { ok: true, output };
} catch (err) {
  const timedOut = err && err.code === 'ERR_SCRIPT_EXECUTION_TIMEOUT';
  reply = {
    ok: false,
    kind: timedOut ? 'timeout' : 'user_code',
    error: (err && err.message) || String(err),
    output: logs.join('\\n'),
  };
}
process.stdout.write(MARKER + JSON.stringify(reply) + '\\n');
"""


def build_harness(code: str, timeout_ms: int, marker: str) -> str:
    """Embed a submission in the vm harness. JSON string literals are valid JS."""
    return HARNESS_TEMPLATE % {
        "marker": json.dumps(marker),
        "code": json.dumps(code),
        "timeout_ms": timeout_ms,
    }


class NodeRunner:
    """
    Sandbox that starts one `node` process per run.

    A missing `node` binary is an infrastructure failure, so JavaScript
    exercises degrade to their fallback strategy instead of failing.
    """

    def __init__(self, node_binary: Optional[str] = None):
        self.node_binary = node_binary or settings.NODE_BINARY

    def is_ready(self) -> bool:
        return shutil.which(self.node_binary) is not None

    async def shutdown(self) -> None:
        # Nothing persistent to stop
        return None

    async def execute(
        self, code: str, timeout_ms: int = DEFAULT_TIMEOUT_MS
    ) -> ExecutionResult:
        """
        Execute JavaScript in a fresh vm context.

        Args:
            code: JavaScript source
            timeout_ms: Budget enforced by the vm and, with some grace, the process

        Returns:
            ExecutionResult classified as success, user_code, timeout or infrastructure
        """
        marker = f"__grader_{secrets.token_hex(8)}__"
        harness = build_harness(code, timeout_ms, marker)

        try:
            process = await asyncio.create_subprocess_exec(
                self.node_binary,
                "-",
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            log_sandbox_event(
                logging.ERROR,
                event="sandbox.worker.start_failed",
                backend=BACKEND_NAME,
                error=str(e),
            )
            return ExecutionResult.infra_error(f"Node.js is not available: {e}")

        try:
            stdout, stderr = await asyncio.wait_for(
                process.communicate(harness.encode("utf-8")),
                timeout=(timeout_ms + PROCESS_GRACE_MS) / 1000,
            )
        except asyncio.TimeoutError:
            process.kill()
            await process.wait()
            log_sandbox_event(
                logging.WARNING,
                event="sandbox.execution.timed_out",
                backend=BACKEND_NAME,
                timeout_ms=timeout_ms,
            )
            return ExecutionResult.timeout()

        for raw in stdout.decode("utf-8", errors="replace").splitlines():
            if raw.startswith(marker):
                try:
                    reply = json.loads(raw[len(marker):])
                except json.JSONDecodeError as e:
                    return ExecutionResult.infra_error(f"Malformed node reply: {e}")
                return self._to_result(reply, timeout_ms)

        log_sandbox_event(
            logging.ERROR,
            event="sandbox.execution.crashed",
            backend=BACKEND_NAME,
            exit_code=process.returncode,
            stderr_excerpt=truncate_log_message(
                stderr.decode("utf-8", errors="replace")
            ),
        )
        return ExecutionResult.infra_error(
            f"Node process exited with status {process.returncode} without a result"
        )

    @staticmethod
    def _to_result(reply: dict, timeout_ms: int) -> ExecutionResult:
        if reply.get("ok"):
            return ExecutionResult.ok(reply.get("output", ""))
        if reply.get("kind") == "timeout":
            log_sandbox_event(
                logging.WARNING,
                event="sandbox.execution.timed_out",
                backend=BACKEND_NAME,
                timeout_ms=timeout_ms,
            )
            return ExecutionResult.timeout()
        return ExecutionResult.user_error(
            reply.get("error") or "Execution failed", output=reply.get("output")
        )
