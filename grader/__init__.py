"""
Multi-strategy answer grading engine.

Usage:
    from grader import Exercise, GradingOrchestrator, PythonRuntime

    runtime = PythonRuntime()
    await runtime.initialize()
    result = await GradingOrchestrator().grade("3", exercise, runtime)
"""

from grader.models import Exercise, GradingResult, TargetConstruct
from grader.services.grading import GradingOrchestrator, should_show_coaching
from grader.services.runtime import (
    JavaScriptRuntime,
    LanguageRuntime,
    PythonRuntime,
    get_runtime_registry,
)

__version__ = "0.1.0"

__all__ = [
    "Exercise",
    "GradingOrchestrator",
    "GradingResult",
    "JavaScriptRuntime",
    "LanguageRuntime",
    "PythonRuntime",
    "TargetConstruct",
    "get_runtime_registry",
    "should_show_coaching",
]
