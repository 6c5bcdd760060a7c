"""
nlquery Models Module

Pydantic models and exceptions shared across the pipeline.

Available Models:
    Query Models:
        - QueryRequest: Natural-language query with paging options
        - CachedGeneration: Cached SQL for a normalized prompt
        - GenerationResult: Resolved SQL (cache hit or AI call)
        - PaginationDecision: Display vs executed SQL
        - PaginationInfo: Paging metadata in responses
        - QueryResponse: Uniform success/failure envelope
        - QueryHistoryRecord: Audit record

    Errors:
        - PipelineError: Base exception
        - InputValidationError: Bad page/page size/prompt
        - AIServiceError: Generation service failures
        - SQLExecutionError: Execution failures

Usage:
    from nlquery.models import QueryRequest, QueryResponse
"""

from nlquery.models.errors import (
    AIServiceError,
    InputValidationError,
    PipelineError,
    SQLExecutionError,
)
from nlquery.models.query import (
    CachedGeneration,
    GenerationResult,
    PaginationDecision,
    PaginationInfo,
    QueryHistoryRecord,
    QueryRequest,
    QueryResponse,
    ResponseStatus,
)

__all__ = [
    # Query models
    "QueryRequest",
    "CachedGeneration",
    "GenerationResult",
    "PaginationDecision",
    "PaginationInfo",
    "QueryResponse",
    "QueryHistoryRecord",
    "ResponseStatus",
    # Errors
    "PipelineError",
    "InputValidationError",
    "AIServiceError",
    "SQLExecutionError",
]
