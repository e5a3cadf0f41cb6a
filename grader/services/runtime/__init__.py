"""
Per-language grading runtimes.

- LanguageRuntime: interface used by the strategy router
- PythonRuntime: in-process tokenizer/canonicalizer, sandboxed execution
- JavaScriptRuntime: esprima comparison, Node.js execution
- RuntimeRegistry: language tag to runtime lookup
"""

from grader.services.runtime.base import LanguageRuntime
from grader.services.runtime.registry import RuntimeRegistry, get_runtime_registry
from grader.services.runtime.python_runtime import PythonRuntime
from grader.services.runtime.javascript_runtime import JavaScriptRuntime

__all__ = [
    "JavaScriptRuntime",
    "LanguageRuntime",
    "PythonRuntime",
    "RuntimeRegistry",
    "get_runtime_registry",
]
