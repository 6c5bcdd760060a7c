"""
Pipeline Errors

Exception hierarchy raised by pipeline collaborators. The orchestrator
converts every one of these into a structured QueryResponse, so callers
of the pipeline never see them directly.
"""

from typing import Any


class PipelineError(Exception):
    """
    Base exception for query pipeline errors.

    Attributes:
        stage: Pipeline stage that raised the error
        message: Error description
        recoverable: Whether a later attempt could succeed
        context: Additional context for debugging
    """

    def __init__(
        self,
        stage: str,
        message: str,
        recoverable: bool = False,
        context: dict[str, Any] | None = None,
    ):
        self.stage = stage
        self.message = message
        self.recoverable = recoverable
        self.context = context or {}
        super().__init__(f"[{stage}] {message}")

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/history records."""
        return {
            "stage": self.stage,
            "message": self.message,
            "recoverable": self.recoverable,
            "context": self.context,
            "type": self.__class__.__name__,
        }


class InputValidationError(PipelineError):
    """Bad page/page size or prompt (never recoverable)."""

    def __init__(self, message: str, context: dict[str, Any] | None = None):
        super().__init__("validate_input", message, recoverable=False, context=context)


class AIServiceError(PipelineError):
    """SQL generation service unreachable, timed out, or returned garbage."""

    def __init__(self, message: str, context: dict[str, Any] | None = None):
        super().__init__("resolve_sql", message, recoverable=True, context=context)


class SQLExecutionError(PipelineError):
    """Executing the final statement failed."""

    def __init__(
        self,
        message: str,
        recoverable: bool = False,
        context: dict[str, Any] | None = None,
    ):
        super().__init__("execute", message, recoverable=recoverable, context=context)
