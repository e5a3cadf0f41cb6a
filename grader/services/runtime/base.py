"""
Language Runtime Interface

A runtime bundles everything the strategy router needs from one source
language: sandboxed execution, a lexer and a syntax-tree comparison engine.
Runtimes are created once, initialized explicitly and passed to the grader;
they carry their own guarded-once initialization state.
"""

from abc import ABC, abstractmethod
from typing import Optional

from grader.enums.grading import CodeLanguage
from grader.models.comparison import (
    AstCompareResult,
    CanonicalizeOptions,
    Token,
    TokenCompareResult,
)
from grader.services.sandbox.base import DEFAULT_TIMEOUT_MS, ExecutionResult


class LanguageRuntime(ABC):
    """
    Abstract base class for per-language grading runtimes.

    Methods may raise `RuntimeUnavailableError`; the strategy router turns
    any exception from a runtime into an infrastructure failure.
    """

    language: CodeLanguage

    @abstractmethod
    async def initialize(self) -> None:
        """Load the comparison engine and prepare the executor. Idempotent."""
        pass

    @abstractmethod
    def is_ready(self) -> bool:
        pass

    @abstractmethod
    async def execute(
        self, code: str, timeout_ms: int = DEFAULT_TIMEOUT_MS
    ) -> ExecutionResult:
        """Run code in this runtime's sandbox and capture stdout."""
        pass

    @abstractmethod
    async def tokenize(self, code: str) -> Optional[list[Token]]:
        pass

    @abstractmethod
    async def compare_by_tokens(
        self,
        user_answer: str,
        expected_answer: str,
        accepted_solutions: Optional[list[str]] = None,
    ) -> TokenCompareResult:
        pass

    @abstractmethod
    async def compare_by_ast(
        self,
        user_answer: str,
        expected_answer: str,
        accepted_solutions: Optional[list[str]] = None,
        options: Optional[CanonicalizeOptions] = None,
    ) -> AstCompareResult:
        pass

    @abstractmethod
    async def terminate(self) -> None:
        """Release the sandbox. A terminated runtime refuses further work."""
        pass
