"""
Sandbox Backend Interface

Every backend runs learner code in isolation and returns an ExecutionResult
whose `failure` tells the strategy router whether the learner or the
infrastructure is to blame.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Optional, Protocol, runtime_checkable

from grader.enums.grading import FailureKind

_SANDBOX_LOGGER = logging.getLogger("grader.sandbox")

DEFAULT_TIMEOUT_MS = 5000
TIMEOUT_ERROR = "timeout"


@dataclass(frozen=True)
class ExecutionResult:
    """Result of one sandboxed run."""

    success: bool
    output: Optional[str] = None
    error: Optional[str] = None
    failure: Optional[FailureKind] = None

    @property
    def timed_out(self) -> bool:
        return self.failure == FailureKind.TIMEOUT

    @property
    def is_infra_failure(self) -> bool:
        """Timeouts count as infrastructure: the sandbox may simply be overloaded."""
        return self.failure in (FailureKind.INFRASTRUCTURE, FailureKind.TIMEOUT)

    @classmethod
    def ok(cls, output: str) -> ExecutionResult:
        return cls(success=True, output=output)

    @classmethod
    def user_error(cls, error: str, output: Optional[str] = None) -> ExecutionResult:
        return cls(success=False, output=output, error=error, failure=FailureKind.USER_CODE)

    @classmethod
    def infra_error(cls, error: str) -> ExecutionResult:
        return cls(success=False, error=error, failure=FailureKind.INFRASTRUCTURE)

    @classmethod
    def timeout(cls) -> ExecutionResult:
        return cls(success=False, error=TIMEOUT_ERROR, failure=FailureKind.TIMEOUT)


@runtime_checkable
class SandboxBackend(Protocol):
    """Anything that can run a program and report captured stdout."""

    async def execute(
        self, code: str, timeout_ms: int = DEFAULT_TIMEOUT_MS
    ) -> ExecutionResult: ...

    def is_ready(self) -> bool: ...

    async def shutdown(self) -> None: ...


def log_sandbox_event(
    level: int,
    *,
    event: str,
    backend: str,
    exc_info: bool = False,
    **fields: object,
) -> None:
    """Emit one structured sandbox event as a JSON log line."""
    payload: dict[str, object] = {"event": event, "backend": backend}
    payload.update(fields)
    _SANDBOX_LOGGER.log(
        level,
        json.dumps(payload, ensure_ascii=True, sort_keys=True, default=str),
        exc_info=exc_info,
    )


def truncate_log_message(value: object, max_length: int = 200) -> str:
    if max_length < 4 or not isinstance(value, str):
        return ""

    normalized = value.replace("\n", "\\n")
    if len(normalized) <= max_length:
        return normalized
    return f"{normalized[: max_length - 3]}..."
