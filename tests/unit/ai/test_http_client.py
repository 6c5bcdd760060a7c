"""
Tests for the HTTP SQL generation client.

Requests are served by httpx.MockTransport; no network access.
"""

import json

import httpx
import pytest

from nlquery.ai import HTTPAIClient
from nlquery.models import AIServiceError


def make_client(handler) -> HTTPAIClient:
    return HTTPAIClient(
        base_url="http://sql-service.test",
        timeout=5,
        transport=httpx.MockTransport(handler),
    )


class TestInit:
    """Test client initialization."""

    def test_initialization(self):
        client = HTTPAIClient(base_url="http://sql-service.test/", timeout=12)
        assert client.base_url == "http://sql-service.test"
        assert client.timeout == 12
        assert client.client_name == "http"


class TestGenerateSql:
    """Test generate_sql."""

    @pytest.mark.asyncio
    async def test_successful_generation(self):
        captured = {}

        def handler(request: httpx.Request) -> httpx.Response:
            captured["path"] = request.url.path
            captured["body"] = json.loads(request.content)
            return httpx.Response(
                200,
                json={
                    "success": True,
                    "canConvert": True,
                    "prompt": "top 5 customers",
                    "sql": "SELECT name FROM customers ORDER BY revenue DESC LIMIT 5",
                    "message": "",
                    "aiGenerated": True,
                    "tablesAccessed": ["customers"],
                    "model": "gpt-4o-mini",
                    "totalRows": 5,
                    "aiSuggestions": ["Top 10 customers?"],
                    "isLargeDataset": False,
                },
            )

        async with make_client(handler) as client:
            response = await client.generate_sql("top 5 customers", language="fr")

        assert captured["path"] == "/api/generate-sql"
        assert captured["body"] == {"prompt": "top 5 customers", "language": "fr"}
        assert response.success is True
        assert response.can_convert is True
        assert response.sql.startswith("SELECT name FROM customers")
        assert response.total_rows == 5
        assert response.tables_accessed == ["customers"]
        assert response.ai_suggestions == ["Top 10 customers?"]
        assert response.model == "gpt-4o-mini"

    @pytest.mark.asyncio
    async def test_not_convertible(self):
        def handler(request):
            return httpx.Response(
                200,
                json={
                    "success": True,
                    "canConvert": False,
                    "reason": "Prompt is not about the database",
                },
            )

        async with make_client(handler) as client:
            response = await client.generate_sql("tell me a joke")

        assert response.can_convert is False
        assert response.has_sql is False
        assert response.reason == "Prompt is not about the database"

    @pytest.mark.asyncio
    async def test_error_status_with_json_body_is_parsed(self):
        def handler(request):
            return httpx.Response(
                500,
                json={"success": False, "error": "upstream", "message": "Model overloaded"},
            )

        async with make_client(handler) as client:
            response = await client.generate_sql("top customers")

        assert response.success is False
        assert response.message == "Model overloaded"

    @pytest.mark.asyncio
    async def test_error_status_without_body_raises(self):
        def handler(request):
            return httpx.Response(503)

        async with make_client(handler) as client:
            with pytest.raises(AIServiceError, match="returned 503"):
                await client.generate_sql("top customers")

    @pytest.mark.asyncio
    async def test_non_json_body_raises(self):
        def handler(request):
            return httpx.Response(200, text="<html>gateway</html>")

        async with make_client(handler) as client:
            with pytest.raises(AIServiceError, match="Malformed"):
                await client.generate_sql("top customers")

    @pytest.mark.asyncio
    async def test_invalid_fields_raise(self):
        def handler(request):
            return httpx.Response(200, json={"success": True, "totalRows": -4})

        async with make_client(handler) as client:
            with pytest.raises(AIServiceError, match="Malformed"):
                await client.generate_sql("top customers")

    @pytest.mark.asyncio
    async def test_timeout_raises(self):
        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        async with make_client(handler) as client:
            with pytest.raises(AIServiceError, match="timed out") as exc_info:
                await client.generate_sql("top customers")

        assert exc_info.value.recoverable is True
        assert exc_info.value.stage == "resolve_sql"

    @pytest.mark.asyncio
    async def test_connection_error_raises(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        async with make_client(handler) as client:
            with pytest.raises(AIServiceError, match="unreachable"):
                await client.generate_sql("top customers")


class TestServiceEndpoints:
    """Test health, status and schema training."""

    @pytest.mark.asyncio
    async def test_check_health(self):
        def handler(request):
            assert request.url.path == "/api/health"
            return httpx.Response(200, json={"status": "healthy"})

        async with make_client(handler) as client:
            assert await client.check_health() is True

    @pytest.mark.asyncio
    async def test_check_health_unreachable(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        async with make_client(handler) as client:
            assert await client.check_health() is False

    @pytest.mark.asyncio
    async def test_get_status(self):
        def handler(request):
            assert request.url.path == "/api/ai-status"
            return httpx.Response(
                200,
                json={
                    "service": "sql-generation",
                    "openaiClient": "initialized",
                    "openaiConfigured": True,
                    "security": {
                        "sqlValidation": "enabled",
                        "allowedTables": ["customers", "orders"],
                        "forbiddenOperations": ["DROP", "DELETE"],
                    },
                },
            )

        async with make_client(handler) as client:
            status = await client.get_status()

        assert status is not None
        assert status.openai_configured is True
        assert status.security.allowed_tables == ["customers", "orders"]

    @pytest.mark.asyncio
    async def test_get_status_error_returns_none(self):
        def handler(request):
            return httpx.Response(500)

        async with make_client(handler) as client:
            assert await client.get_status() is None

    @pytest.mark.asyncio
    async def test_train_schema(self):
        captured = {}

        def handler(request):
            captured["path"] = request.url.path
            captured["body"] = json.loads(request.content)
            return httpx.Response(200, json={"success": True, "message": "trained"})

        ddl = "CREATE TABLE public.customers (\n    id integer NOT NULL\n);"
        async with make_client(handler) as client:
            assert await client.train_schema(ddl) is True

        assert captured["path"] == "/api/train-schema"
        assert captured["body"] == {"schema_ddl": ddl}

    @pytest.mark.asyncio
    async def test_train_schema_rejected(self):
        def handler(request):
            return httpx.Response(200, json={"success": False, "error": "bad ddl"})

        async with make_client(handler) as client:
            assert await client.train_schema("CREATE TABLE x ();") is False
