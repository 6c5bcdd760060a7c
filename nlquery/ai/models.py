"""
SQL Generation Service Models

Pydantic models for the external SQL generation service's wire format.
The service answers in camelCase; snake_case keys are accepted as well.
"""

from typing import List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class GenerateSqlRequest(BaseModel):
    """Request body for ``POST /api/generate-sql``."""

    prompt: str = Field(
        ...,
        description="Natural language question",
        min_length=1
    )
    language: str = Field(
        default="en",
        description="Language of the prompt"
    )


class GenerateSqlResponse(BaseModel):
    """Response body of ``POST /api/generate-sql``."""

    success: bool = Field(
        default=False,
        description="Whether the service handled the request"
    )
    can_convert: bool = Field(
        default=False,
        validation_alias=AliasChoices("canConvert", "can_convert"),
        description="Whether the prompt could be turned into SQL"
    )
    prompt: str = Field(
        default="",
        description="Prompt echoed by the service"
    )
    sql: str = Field(
        default="",
        description="Generated SQL statement"
    )
    message: str = Field(
        default="",
        description="Human-readable status message"
    )
    error: str = Field(
        default="",
        description="Error detail when success is false"
    )
    reason: str = Field(
        default="",
        description="Why the prompt cannot be converted"
    )
    ai_generated: bool = Field(
        default=False,
        validation_alias=AliasChoices("aiGenerated", "ai_generated"),
    )
    tables_accessed: List[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("tablesAccessed", "tables_accessed"),
    )
    model: str = Field(
        default="unknown",
        description="Model that generated the SQL"
    )
    total_rows: Optional[int] = Field(
        None,
        ge=0,
        validation_alias=AliasChoices("totalRows", "total_rows"),
        description="Estimated number of rows the SQL returns"
    )
    ai_suggestions: List[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("aiSuggestions", "ai_suggestions"),
        description="Follow-up questions suggested by the service"
    )
    is_large_dataset: bool = Field(
        default=False,
        validation_alias=AliasChoices("isLargeDataset", "is_large_dataset"),
    )

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    @property
    def has_sql(self) -> bool:
        return bool(self.sql and self.sql.strip())


class SecurityConfig(BaseModel):
    """SQL safety settings reported by the service."""

    sql_validation: str = Field(
        default="",
        validation_alias=AliasChoices("sqlValidation", "sql_validation"),
    )
    allowed_tables: List[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("allowedTables", "allowed_tables"),
    )
    forbidden_operations: List[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("forbiddenOperations", "forbidden_operations"),
    )

    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class ServiceStatus(BaseModel):
    """Response body of ``GET /api/ai-status``."""

    service: str = ""
    openai_client: str = Field(
        default="",
        validation_alias=AliasChoices("openaiClient", "openai_client"),
    )
    openai_configured: bool = Field(
        default=False,
        validation_alias=AliasChoices("openaiConfigured", "openai_configured"),
    )
    security: SecurityConfig = Field(default_factory=SecurityConfig)

    model_config = ConfigDict(populate_by_name=True, extra="ignore")
