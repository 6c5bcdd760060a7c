"""Unit tests for pipeline models."""

import pytest
from pydantic import ValidationError

from nlquery.ai.models import GenerateSqlResponse
from nlquery.models import (
    AIServiceError,
    CachedGeneration,
    GenerationResult,
    InputValidationError,
    PaginationInfo,
    QueryRequest,
)


class TestQueryRequest:
    def test_defaults(self):
        request = QueryRequest(prompt="top customers")

        assert request.page == 1
        assert request.page_size == 10
        assert request.disable_cache is False
        assert request.language is None


class TestPaginationInfo:
    @pytest.mark.parametrize(
        "page, page_size, total_rows, has_more, total_pages",
        [
            (1, 10, 5, False, 1),
            (1, 10, 10, False, 1),
            (1, 10, 11, True, 2),
            (2, 10, 50, True, 5),
            (5, 10, 50, False, 5),
            (1, 10, 0, False, 0),
        ],
    )
    def test_build(self, page, page_size, total_rows, has_more, total_pages):
        info = PaginationInfo.build(page, page_size, total_rows)

        assert info.has_more is has_more
        assert info.total_pages == total_pages
        assert info.total_rows == total_rows


class TestGenerationResult:
    def test_from_cache_entry(self):
        result = GenerationResult.from_cache_entry(CachedGeneration(sql="SELECT 1"))

        assert result.from_cache is True
        assert result.can_convert is True
        assert result.sql == "SELECT 1"
        assert result.suggestions == []

    def test_frozen(self):
        result = GenerationResult(success=True, can_convert=True, sql="SELECT 1")

        with pytest.raises(ValidationError):
            result.sql = "SELECT 2"


class TestGenerateSqlResponse:
    def test_accepts_camel_and_snake_case(self):
        camel = GenerateSqlResponse.model_validate(
            {"success": True, "canConvert": True, "sql": "SELECT 1", "totalRows": 3}
        )
        snake = GenerateSqlResponse.model_validate(
            {"success": True, "can_convert": True, "sql": "SELECT 1", "total_rows": 3}
        )

        assert camel == snake
        assert camel.has_sql is True

    def test_unknown_fields_ignored(self):
        response = GenerateSqlResponse.model_validate({"success": True, "extra": 1})

        assert response.model == "unknown"
        assert response.total_rows is None


class TestErrors:
    def test_input_validation_error(self):
        error = InputValidationError("Page number must be greater than 0", context={"page": 0})

        assert error.stage == "validate_input"
        assert error.recoverable is False
        assert error.to_dict()["context"] == {"page": 0}

    def test_ai_service_error_is_recoverable(self):
        error = AIServiceError("timed out")

        assert error.recoverable is True
        assert str(error) == "[resolve_sql] timed out"
