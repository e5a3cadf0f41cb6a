"""Factory for creating sandbox backends based on configuration."""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

from grader.config.settings import get_settings
from grader.services.sandbox.base import SandboxBackend
from grader.services.sandbox.worker import WorkerSandbox

if TYPE_CHECKING:
    from grader.config.settings import Settings


def create_sandbox(config: Optional[Settings] = None) -> SandboxBackend:
    """Create a Python sandbox based on SANDBOX_BACKEND ("worker" or "docker")."""
    config = config or get_settings()
    backend = config.SANDBOX_BACKEND.strip().lower()

    if backend == "docker":
        from grader.services.sandbox.docker_sandbox import DockerSandbox

        return DockerSandbox(
            image=config.SANDBOX_DOCKER_IMAGE,
            memory_limit_mb=config.SANDBOX_MEMORY_LIMIT_MB,
        )
    if backend != "worker":
        raise ValueError(f"Unknown sandbox backend: {config.SANDBOX_BACKEND}")

    return WorkerSandbox(
        python_binary=config.SANDBOX_PYTHON_BINARY or None,
        memory_limit_mb=config.SANDBOX_MEMORY_LIMIT_MB,
        startup_timeout_ms=config.SANDBOX_STARTUP_TIMEOUT_MS,
    )
