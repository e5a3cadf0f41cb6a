"""
Runtime Registry

Maps language tags to runtime factories and memoizes one initialized
runtime per language.

Usage:
    from grader.services.runtime.registry import get_runtime_registry

    runtime = await get_runtime_registry().get(CodeLanguage.JAVASCRIPT)
"""

import asyncio
import logging
from typing import Callable, Optional, Union

from grader.enums.grading import CodeLanguage
from grader.errors import UnsupportedLanguageError
from grader.services.runtime.base import LanguageRuntime

logger = logging.getLogger(__name__)

RuntimeFactory = Callable[[], LanguageRuntime]


def _python_factory() -> LanguageRuntime:
    from grader.services.runtime.python_runtime import PythonRuntime

    return PythonRuntime()


def _javascript_factory() -> LanguageRuntime:
    from grader.services.runtime.javascript_runtime import JavaScriptRuntime

    return JavaScriptRuntime()


class RuntimeRegistry:
    """Language tag to runtime lookup with lazy, one-time construction."""

    def __init__(self):
        self._factories: dict[str, RuntimeFactory] = {}
        self._instances: dict[str, LanguageRuntime] = {}
        self._lock = asyncio.Lock()

    def register(
        self, language: Union[CodeLanguage, str], factory: RuntimeFactory
    ) -> None:
        """Register (or replace) the factory for a language."""
        key = CodeLanguage(language).value
        self._factories[key] = factory
        self._instances.pop(key, None)

    def is_supported(self, language: Union[CodeLanguage, str]) -> bool:
        return str(getattr(language, "value", language)) in self._factories

    async def get(self, language: Union[CodeLanguage, str]) -> LanguageRuntime:
        """
        Get the initialized runtime for a language, creating it on first use.

        Raises:
            UnsupportedLanguageError: No factory registered for the language
        """
        key = str(getattr(language, "value", language))
        if key not in self._factories:
            raise UnsupportedLanguageError(
                f"No runtime registered for language: {key}",
                details={"language": key},
            )

        async with self._lock:
            runtime = self._instances.get(key)
            if runtime is None:
                runtime = self._factories[key]()
                await runtime.initialize()
                self._instances[key] = runtime
                logger.info(f"Runtime created for language: {key}")
        return runtime

    async def reset(self) -> None:
        """Terminate and forget every created runtime. Factories are kept."""
        instances, self._instances = self._instances, {}
        for key, runtime in instances.items():
            try:
                await runtime.terminate()
            except Exception as e:
                logger.warning(f"Failed to terminate {key} runtime: {e}")


def _default_registry() -> RuntimeRegistry:
    registry = RuntimeRegistry()
    registry.register(CodeLanguage.PYTHON, _python_factory)
    registry.register(CodeLanguage.JAVASCRIPT, _javascript_factory)
    return registry


# Singleton instance
_registry_instance: Optional[RuntimeRegistry] = None


def get_runtime_registry() -> RuntimeRegistry:
    """Get or create the runtime registry singleton."""
    global _registry_instance

    if _registry_instance is None:
        _registry_instance = _default_registry()

    return _registry_instance
