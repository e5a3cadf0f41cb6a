"""
Docker Code Sandbox

Secure Docker-based sandbox for executing learner-submitted code
with strict resource limits to prevent:
- Resource exhaustion (CPU, memory, disk)
- Network access (data exfiltration)
- File system access (reading secrets)
- Long-running processes (DoS)

One throw-away container per run. Slower than the worker sandbox, but the
learner's code never shares a kernel namespace with the grader.

Usage:
    from grader.services.sandbox.docker_sandbox import DockerSandbox

    sandbox = DockerSandbox()
    result = await sandbox.execute("print('Hello')", timeout_ms=5000)
"""

import asyncio
import logging
import shutil
import tempfile
from pathlib import Path
from typing import Optional

import docker
from docker.errors import APIError, DockerException, ImageNotFound

from grader.config.settings import get_settings
from grader.services.sandbox.base import (
    DEFAULT_TIMEOUT_MS,
    ExecutionResult,
    log_sandbox_event,
    truncate_log_message,
)

logger = logging.getLogger(__name__)
settings = get_settings()

BACKEND_NAME = "docker"


def _last_line(text: str) -> str:
    lines = [line for line in text.splitlines() if line.strip()]
    return lines[-1].strip() if lines else ""


class DockerSandbox:
    """
    Docker sandbox for Python code.

    Security features:
    - Memory limit (no swap)
    - CPU quota (50% of one core)
    - Network disabled
    - Read-only filesystem (except /tmp)
    - Non-root user
    - Process limit (50 max)
    - Execution timeout
    """

    CPU_QUOTA = 50000  # 50% of one core
    MAX_PIDS = 50
    EXTENSION = ".py"
    COMMAND = ["python3", "-I"]

    def __init__(
        self,
        image: Optional[str] = None,
        memory_limit_mb: Optional[int] = None,
        client: Optional[docker.DockerClient] = None,
    ):
        """
        Initialize the Docker sandbox.

        Args:
            image: Image used for every run
            memory_limit_mb: Container memory cap
            client: Pre-built Docker client (default: docker.from_env())
        """
        self.image = image or settings.SANDBOX_DOCKER_IMAGE
        self.memory_limit = f"{memory_limit_mb or settings.SANDBOX_MEMORY_LIMIT_MB}m"
        self.docker_client: Optional[docker.DockerClient] = client
        self.enabled = True

        if self.docker_client is None:
            try:
                self.docker_client = docker.from_env()
                self.docker_client.ping()
                logger.info("Docker sandbox initialized successfully")
            except DockerException as e:
                logger.warning(f"Docker not available: {e}")
                self.enabled = False

    def is_ready(self) -> bool:
        return self.enabled and self.docker_client is not None

    async def execute(
        self, code: str, timeout_ms: int = DEFAULT_TIMEOUT_MS
    ) -> ExecutionResult:
        """
        Execute code in a fresh container.

        Args:
            code: Python source to run
            timeout_ms: Wall-clock budget for the container

        Returns:
            ExecutionResult; Docker problems are infrastructure failures
        """
        if not self.is_ready():
            return ExecutionResult.infra_error("Docker sandbox is not available")

        temp_dir = tempfile.mkdtemp(prefix="sandbox_")
        try:
            code_file = Path(temp_dir) / f"code{self.EXTENSION}"
            code_file.write_text(code, encoding="utf-8")
            command = self.COMMAND + [f"/code/code{self.EXTENSION}"]

            return await self._run_container(
                command=command,
                code_dir=temp_dir,
                timeout=timeout_ms / 1000,
            )
        finally:
            try:
                shutil.rmtree(temp_dir)
            except OSError as e:
                logger.warning(f"Failed to clean up temp dir: {e}")

    async def shutdown(self) -> None:
        if self.docker_client is not None:
            self.docker_client.close()
        self.enabled = False

    async def _run_container(
        self,
        command: list[str],
        code_dir: str,
        timeout: float,
    ) -> ExecutionResult:
        """
        Run code in a Docker container with security limits.

        Args:
            command: Command to execute
            code_dir: Directory containing code
            timeout: Execution timeout in seconds

        Returns:
            Execution result
        """
        container = None
        loop = asyncio.get_running_loop()

        try:
            try:
                self.docker_client.images.get(self.image)
            except ImageNotFound:
                logger.info(f"Pulling image {self.image}...")
                await loop.run_in_executor(None, self.docker_client.images.pull, self.image)

            container = self.docker_client.containers.create(
                image=self.image,
                command=command,
                volumes={
                    code_dir: {"bind": "/code", "mode": "ro"},
                },
                working_dir="/code",
                mem_limit=self.memory_limit,
                memswap_limit=self.memory_limit,
                cpu_quota=self.CPU_QUOTA,
                network_disabled=True,
                read_only=True,
                pids_limit=self.MAX_PIDS,
                cap_drop=["ALL"],
                security_opt=["no-new-privileges"],
                tmpfs={"/tmp": "size=10m,mode=1777"},
                user="nobody",
            )
            container.start()

            try:
                status = await asyncio.wait_for(
                    loop.run_in_executor(None, container.wait),
                    timeout=timeout,
                )
            except asyncio.TimeoutError:
                try:
                    container.kill()
                except APIError as e:
                    logger.warning(f"Failed to kill timed out container: {e}")
                log_sandbox_event(
                    logging.WARNING,
                    event="sandbox.execution.timed_out",
                    backend=BACKEND_NAME,
                    container_id=container.short_id,
                    timeout_seconds=timeout,
                )
                return ExecutionResult.timeout()

            exit_code = status.get("StatusCode", 1)
            stdout = container.logs(stdout=True, stderr=False).decode(
                "utf-8", errors="replace"
            )
            stderr = container.logs(stdout=False, stderr=True).decode(
                "utf-8", errors="replace"
            )
            log_sandbox_event(
                logging.INFO,
                event="sandbox.execution.completed",
                backend=BACKEND_NAME,
                container_id=container.short_id,
                exit_code=exit_code,
                stderr_excerpt=truncate_log_message(stderr),
            )

            if exit_code == 0:
                return ExecutionResult.ok(stdout)
            return ExecutionResult.user_error(
                _last_line(stderr) or f"Process exited with status {exit_code}",
                output=stdout,
            )

        except DockerException as e:
            log_sandbox_event(
                logging.ERROR,
                event="sandbox.execution.crashed",
                backend=BACKEND_NAME,
                crash_type=type(e).__name__,
                error=str(e),
            )
            return ExecutionResult.infra_error(f"Docker error: {e}")
        finally:
            if container is not None:
                try:
                    container.remove(force=True)
                except DockerException as e:
                    logger.warning(f"Failed to remove container: {e}")
