"""
JavaScript Runtime

Token and AST comparison via esprima, execution via the Node.js sandbox.
"""

import logging
from typing import Optional

from grader.enums.grading import CodeLanguage
from grader.errors import RuntimeUnavailableError
from grader.models.comparison import (
    AstCompareResult,
    CanonicalizeOptions,
    Token,
    TokenCompareResult,
)
from grader.services.runtime import javascript_ast
from grader.services.runtime.base import LanguageRuntime
from grader.services.sandbox.base import DEFAULT_TIMEOUT_MS, ExecutionResult
from grader.services.sandbox.node_runner import NodeRunner

logger = logging.getLogger(__name__)


class JavaScriptRuntime(LanguageRuntime):
    """Runtime handle for JavaScript exercises."""

    language = CodeLanguage.JAVASCRIPT

    def __init__(self, runner: Optional[NodeRunner] = None):
        self._runner = runner
        self._ready = False
        self._terminated = False

    async def initialize(self) -> None:
        if self._terminated:
            raise RuntimeUnavailableError(
                "JavaScript runtime has been terminated",
                details={"language": self.language.value},
            )
        if self._runner is None:
            self._runner = NodeRunner()
        if not self._runner.is_ready():
            logger.warning(
                f"Node.js binary '{self._runner.node_binary}' not found, "
                "JavaScript execution will be unavailable"
            )
        self._ready = True
        logger.info("JavaScript runtime initialized")

    def is_ready(self) -> bool:
        return self._ready and not self._terminated

    async def execute(
        self, code: str, timeout_ms: int = DEFAULT_TIMEOUT_MS
    ) -> ExecutionResult:
        if not self.is_ready():
            return ExecutionResult.infra_error("JavaScript runtime not initialized")
        return await self._runner.execute(code, timeout_ms=timeout_ms)

    async def tokenize(self, code: str) -> Optional[list[Token]]:
        self._check_usable()
        return javascript_ast.tokenize_javascript(code)

    async def compare_by_tokens(
        self,
        user_answer: str,
        expected_answer: str,
        accepted_solutions: Optional[list[str]] = None,
    ) -> TokenCompareResult:
        self._check_usable()
        return javascript_ast.compare_by_tokens(
            user_answer, expected_answer, accepted_solutions
        )

    async def compare_by_ast(
        self,
        user_answer: str,
        expected_answer: str,
        accepted_solutions: Optional[list[str]] = None,
        options: Optional[CanonicalizeOptions] = None,
    ) -> AstCompareResult:
        # No canonicalization switches apply to JavaScript trees
        self._check_usable()
        return javascript_ast.compare_by_ast(
            user_answer, expected_answer, accepted_solutions
        )

    async def terminate(self) -> None:
        self._terminated = True
        self._ready = False
        if self._runner is not None:
            await self._runner.shutdown()
            self._runner = None
        logger.info("JavaScript runtime terminated")

    def _check_usable(self) -> None:
        if self._terminated:
            raise RuntimeUnavailableError(
                "JavaScript runtime has been terminated",
                details={"language": self.language.value},
            )
