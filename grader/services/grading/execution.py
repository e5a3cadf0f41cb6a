"""
Execution-Based Verification

Grading modes built on a runtime's sandboxed executor:

- verify_predict_answer: run the exercise snippet, compare its output with
  the learner's typed prediction
- verify_write_answer: substitute the learner's answer into a template,
  run it and compare with the expected output
- verify_with_script: run learner code followed by a verification script;
  a clean run passes

All three report `infra_available=False` when the sandbox itself failed or
timed out, which is what allows the router to fall back.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from grader.config.settings import get_settings
from grader.models.grading import DEFAULT_VERIFICATION_TEMPLATE
from grader.services.grading.matching import normalize_output
from grader.services.runtime.base import LanguageRuntime
from grader.services.sandbox.base import ExecutionResult

logger = logging.getLogger(__name__)
settings = get_settings()

ANSWER_PLACEHOLDER = "{{answer}}"

__all__ = [
    "ANSWER_PLACEHOLDER",
    "VerificationResult",
    "normalize_output",
    "render_template",
    "verify_predict_answer",
    "verify_with_script",
    "verify_write_answer",
]


@dataclass(frozen=True)
class VerificationResult:
    """Outcome of an execution-based check."""

    passed: bool
    infra_available: bool = True
    error: Optional[str] = None


def render_template(template: str, answer: str) -> str:
    return template.replace(ANSWER_PLACEHOLDER, answer)


def _infra_failure(result: ExecutionResult) -> Optional[VerificationResult]:
    if result.is_infra_failure:
        logger.warning(f"Execution infrastructure failure: {result.error}")
        return VerificationResult(
            passed=False,
            infra_available=False,
            error=result.error or "Infrastructure error",
        )
    return None


async def _compare_output(
    runtime: LanguageRuntime, code: str, expected_output: str, timeout_ms: Optional[int]
) -> VerificationResult:
    result = await runtime.execute(code, timeout_ms=timeout_ms or settings.SANDBOX_TIMEOUT_MS)

    unavailable = _infra_failure(result)
    if unavailable is not None:
        return unavailable
    if not result.success or result.output is None:
        return VerificationResult(passed=False, error=result.error)

    passed = normalize_output(result.output) == normalize_output(expected_output)
    return VerificationResult(passed=passed)


async def verify_predict_answer(
    runtime: LanguageRuntime,
    code: str,
    typed_output: str,
    timeout_ms: Optional[int] = None,
) -> VerificationResult:
    """
    Run a predict exercise's snippet and compare with the learner's prediction.

    Args:
        runtime: Runtime whose sandbox runs the snippet
        code: Read-only snippet from the exercise
        typed_output: What the learner predicted it prints
        timeout_ms: Execution budget (default SANDBOX_TIMEOUT_MS)

    Returns:
        VerificationResult
    """
    return await _compare_output(runtime, code, typed_output, timeout_ms)


async def verify_write_answer(
    runtime: LanguageRuntime,
    user_answer: str,
    expected_output: str,
    template: str = DEFAULT_VERIFICATION_TEMPLATE,
    timeout_ms: Optional[int] = None,
) -> VerificationResult:
    """
    Run the learner's answer through a template and compare the output.

    Args:
        runtime: Runtime whose sandbox runs the rendered program
        user_answer: Learner's code, substituted for {{answer}}
        expected_output: Output the rendered program should print
        template: Program template, `print({{answer}})` by default
        timeout_ms: Execution budget (default SANDBOX_TIMEOUT_MS)

    Returns:
        VerificationResult
    """
    code = render_template(template, user_answer)
    return await _compare_output(runtime, code, expected_output, timeout_ms)


async def verify_with_script(
    runtime: LanguageRuntime,
    user_code: str,
    verification_script: str,
    timeout_ms: Optional[int] = None,
) -> VerificationResult:
    """
    Run learner code followed by a verification script as one program.

    A clean run passes. A syntax error, raised exception or failed assertion
    fails. A sandbox failure reports the infrastructure as unavailable.
    """
    full_code = f"{user_code}\n\n{verification_script}"
    result = await runtime.execute(
        full_code, timeout_ms=timeout_ms or settings.SANDBOX_TIMEOUT_MS
    )

    unavailable = _infra_failure(result)
    if unavailable is not None:
        return unavailable
    if not result.success:
        return VerificationResult(
            passed=False, error=result.error or "Verification failed"
        )
    return VerificationResult(passed=True)
