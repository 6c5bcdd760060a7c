"""
Query Pipeline Models

Pydantic models flowing through the prompt-to-rows pipeline: the inbound
request, the resolved SQL generation, the pagination decision, the
response envelope, and the history record written after each request.
"""

import math
from datetime import UTC, datetime
from typing import Any, Literal
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field


def _utcnow() -> datetime:
    return datetime.now(UTC)


ResponseStatus = Literal[
    "ok",
    "invalid_input",
    "ai_unavailable",
    "not_convertible",
    "execution_failed",
]


class QueryRequest(BaseModel):
    """Natural-language query with paging options."""

    prompt: str = Field(..., description="User's natural language question")
    page: int = Field(default=1, description="1-based page number")
    page_size: int = Field(default=10, description="Rows per page")
    disable_cache: bool = Field(default=False, description="Skip the response cache")
    language: str | None = Field(default=None, description="Prompt language (None = default)")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "prompt": "top 5 customers by revenue",
                "page": 1,
                "page_size": 10,
                "disable_cache": False,
                "language": "en",
            }
        }
    )


class CachedGeneration(BaseModel):
    """SQL kept in the response cache for a normalized prompt."""

    sql: str
    is_ai_generated: bool = True
    cached_at: datetime = Field(default_factory=_utcnow)

    model_config = ConfigDict(frozen=True)


class GenerationResult(BaseModel):
    """Outcome of resolving a prompt to SQL, from the cache or the AI service."""

    success: bool
    can_convert: bool
    sql: str = ""
    row_estimate: int | None = None
    suggestions: list[str] = Field(default_factory=list)
    error_reason: str | None = None
    from_cache: bool = False
    is_ai_generated: bool = True
    model: str | None = None
    tables_accessed: list[str] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True)

    @classmethod
    def from_cache_entry(cls, entry: CachedGeneration) -> "GenerationResult":
        return cls(
            success=True,
            can_convert=True,
            sql=entry.sql,
            from_cache=True,
            is_ai_generated=entry.is_ai_generated,
        )


class PaginationDecision(BaseModel):
    """Display SQL, executed SQL and how they relate."""

    original_sql: str
    executable_sql: str
    upstream_limit: int | None = None
    paginated: bool = False
    offset: int | None = None
    effective_limit: int | None = None

    model_config = ConfigDict(frozen=True)


class PaginationInfo(BaseModel):
    """Pagination metadata returned with every successful response."""

    page: int
    page_size: int
    has_more: bool
    total_rows: int
    total_pages: int

    @classmethod
    def build(cls, page: int, page_size: int, total_rows: int) -> "PaginationInfo":
        return cls(
            page=page,
            page_size=page_size,
            has_more=page * page_size < total_rows,
            total_rows=total_rows,
            total_pages=math.ceil(total_rows / page_size),
        )


class QueryResponse(BaseModel):
    """
    Uniform success/failure envelope.

    Every pipeline outcome, including validation and AI failures, is
    reported through this model instead of an exception.
    """

    success: bool
    status: ResponseStatus
    message: str
    request_id: str
    prompt: str
    sql: str = Field(default="", description="Statement shown to the user (pre-pagination)")
    paginated_sql: str = Field(default="", description="Statement actually executed")
    data: list[dict[str, Any]] = Field(default_factory=list)
    row_count: int = 0
    ai_suggestions: list[str] = Field(default_factory=list)
    pagination: PaginationInfo | None = None
    reason: str | None = Field(default=None, description="Why the prompt could not be converted")
    from_cache: bool = False
    execution_time_ms: float | None = None
    timestamp: datetime = Field(default_factory=_utcnow)


class QueryHistoryRecord(BaseModel):
    """Audit record written after each request."""

    request_id: str = Field(default_factory=lambda: str(uuid4()))
    prompt: str
    sql: str = ""
    success: bool
    execution_time_ms: float = 0.0
    row_count: int = 0
    model: str = "unknown"
    error_message: str = ""
    ai_generated: bool = False
    tables_accessed: list[str] = Field(default_factory=list)
    timestamp: datetime = Field(default_factory=_utcnow)
