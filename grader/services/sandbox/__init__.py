"""
Sandboxed code execution backends.

- WorkerSandbox: persistent child interpreter (default)
- DockerSandbox: one container per run
- NodeRunner: JavaScript in a node vm context
"""

from grader.services.sandbox.base import (
    DEFAULT_TIMEOUT_MS,
    ExecutionResult,
    SandboxBackend,
)
from grader.services.sandbox.factory import create_sandbox
from grader.services.sandbox.node_runner import NodeRunner
from grader.services.sandbox.worker import WorkerSandbox

__all__ = [
    "DEFAULT_TIMEOUT_MS",
    "ExecutionResult",
    "NodeRunner",
    "SandboxBackend",
    "WorkerSandbox",
    "create_sandbox",
]
