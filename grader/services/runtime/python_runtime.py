"""
Python Runtime

Serves Python exercises: the tokenizer and canonicalizer run in-process,
execution goes to the configured sandbox backend.

The comparison engine is loaded lazily the first time it is needed and kept
for the lifetime of the runtime. `reset_engine()` exists for tests.

Usage:
    from grader.services.runtime.python_runtime import PythonRuntime

    runtime = PythonRuntime()
    await runtime.initialize()
    result = await runtime.compare_by_ast("def f(a): return a", "def f(b): return b")
    await runtime.terminate()
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Callable, Optional

from grader.config.settings import get_settings
from grader.enums.grading import CodeLanguage
from grader.errors import RuntimeUnavailableError
from grader.models.comparison import (
    AstCompareResult,
    CanonicalizeOptions,
    Token,
    TokenCompareResult,
)
from grader.services.grading.canonicalizer import compare_by_ast
from grader.services.grading.tokenizer import compare_by_tokens, tokenize_code
from grader.services.runtime.base import LanguageRuntime
from grader.services.sandbox.base import (
    DEFAULT_TIMEOUT_MS,
    ExecutionResult,
    SandboxBackend,
)
from grader.services.sandbox.factory import create_sandbox

logger = logging.getLogger(__name__)
settings = get_settings()


@dataclass(frozen=True)
class ComparisonEngine:
    """Loaded comparison functions. Immutable once built."""

    tokenize: Callable[[str], Optional[list[Token]]]
    compare_tokens: Callable[..., TokenCompareResult]
    compare_ast: Callable[..., AstCompareResult]


def load_python_engine() -> ComparisonEngine:
    return ComparisonEngine(
        tokenize=tokenize_code,
        compare_tokens=compare_by_tokens,
        compare_ast=compare_by_ast,
    )


class PythonRuntime(LanguageRuntime):
    """
    Runtime handle for Python exercises.

    Owns its sandbox. The sandbox is created on initialize() unless one is
    injected, which is how tests substitute a fake executor.
    """

    language = CodeLanguage.PYTHON

    def __init__(
        self,
        sandbox: Optional[SandboxBackend] = None,
        engine_loader: Callable[[], ComparisonEngine] = load_python_engine,
    ):
        self._sandbox = sandbox
        self._engine_loader = engine_loader
        self._engine: Optional[ComparisonEngine] = None
        self._engine_lock = asyncio.Lock()
        self._terminated = False

    async def initialize(self) -> None:
        await self._get_engine()
        if self._sandbox is None:
            self._sandbox = create_sandbox()
        logger.info("Python runtime initialized")

    def is_ready(self) -> bool:
        return not self._terminated and self._engine is not None

    async def execute(
        self, code: str, timeout_ms: int = DEFAULT_TIMEOUT_MS
    ) -> ExecutionResult:
        if self._terminated:
            return ExecutionResult.infra_error("Python runtime has been terminated")
        if self._sandbox is None:
            self._sandbox = create_sandbox()
        return await self._sandbox.execute(code, timeout_ms=timeout_ms)

    async def tokenize(self, code: str) -> Optional[list[Token]]:
        engine = await self._get_engine()
        return engine.tokenize(code)

    async def compare_by_tokens(
        self,
        user_answer: str,
        expected_answer: str,
        accepted_solutions: Optional[list[str]] = None,
    ) -> TokenCompareResult:
        engine = await self._get_engine()
        return engine.compare_tokens(user_answer, expected_answer, accepted_solutions)

    async def compare_by_ast(
        self,
        user_answer: str,
        expected_answer: str,
        accepted_solutions: Optional[list[str]] = None,
        options: Optional[CanonicalizeOptions] = None,
    ) -> AstCompareResult:
        engine = await self._get_engine()
        return engine.compare_ast(
            user_answer, expected_answer, accepted_solutions, options
        )

    async def terminate(self) -> None:
        self._terminated = True
        self._engine = None
        if self._sandbox is not None:
            await self._sandbox.shutdown()
            self._sandbox = None
        logger.info("Python runtime terminated")

    def reset_engine(self) -> None:
        """Forget the loaded engine so the next call loads it again."""
        self._engine = None

    async def _get_engine(self) -> ComparisonEngine:
        if self._terminated:
            raise RuntimeUnavailableError(
                "Python runtime has been terminated",
                details={"language": self.language.value},
            )
        if self._engine is not None:
            return self._engine

        async with self._engine_lock:
            if self._engine is None:
                try:
                    self._engine = self._engine_loader()
                except Exception as e:
                    raise RuntimeUnavailableError(
                        f"Failed to load Python comparison engine: {e}",
                        details={"language": self.language.value},
                    ) from e
                logger.info("Python comparison engine loaded")
        return self._engine
