"""
Answer grading services.

Leaves first: tokenizer, canonicalizer, construct detector, exact matchers
and execution helpers; then the strategy router and the two-pass
orchestrator on top.
"""

from grader.services.grading.tokenizer import compare_by_tokens, tokenize_code
from grader.services.grading.canonicalizer import canonicalize, compare_by_ast
from grader.services.grading.construct_detector import (
    ConstructCheckResult,
    detect,
    detect_any,
)
from grader.services.grading.matching import normalize_code, normalize_output
from grader.services.grading.strategy_defaults import (
    StrategyConfig,
    get_default_strategy,
)
from grader.services.grading.strategy_router import (
    GradingWithStrategyResult,
    StrategyResult,
    StrategyRouter,
)
from grader.services.grading.telemetry import (
    GradingTelemetry,
    LoggingTelemetrySink,
    TelemetrySink,
)
from grader.services.grading.orchestrator import (
    GradingOrchestrator,
    should_show_coaching,
)

__all__ = [
    "ConstructCheckResult",
    "GradingOrchestrator",
    "GradingTelemetry",
    "GradingWithStrategyResult",
    "LoggingTelemetrySink",
    "StrategyConfig",
    "StrategyResult",
    "StrategyRouter",
    "TelemetrySink",
    "canonicalize",
    "compare_by_ast",
    "compare_by_tokens",
    "detect",
    "detect_any",
    "get_default_strategy",
    "normalize_code",
    "normalize_output",
    "should_show_coaching",
    "tokenize_code",
]
