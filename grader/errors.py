"""
Grader Exceptions

Custom exception classes for the failure modes the grading engine knows
about. None of these ever reach the caller of the orchestrator: the
strategy router converts them into `infra_available=False` results, which
is the only condition that triggers a fallback strategy.

Usage:
    from grader.errors import RuntimeUnavailableError

    raise RuntimeUnavailableError("Runtime terminated", details={"language": "python"})
"""

from typing import Optional


class ServiceError(Exception):
    """
    Base exception for grader errors.

    Provides consistent error handling with:
    - Error code for categorization
    - Optional details for debugging

    Example:
        raise ServiceError("Sandbox worker did not answer", error_code="sandbox_error")
    """

    error_code: str = "service_error"

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[dict] = None,
    ):
        super().__init__(message)
        self.message = message
        if error_code:
            self.error_code = error_code
        self.details = details


class RuntimeUnavailableError(ServiceError):
    """
    Language runtime cannot serve the request.

    Raised when a runtime was terminated or its comparison engine
    could not be loaded.
    """

    error_code = "runtime_unavailable"


class UnsupportedLanguageError(ServiceError):
    """
    No runtime is registered for the requested language.
    """

    error_code = "unsupported_language"


class SandboxError(ServiceError):
    """
    Sandbox backend failed outside of the learner's code.

    Raised for transport failures (worker pipe closed, malformed reply).
    """

    error_code = "sandbox_error"
