"""
Unit Tests for CLI

Tests the nlquery CLI commands.
"""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from click.testing import CliRunner

from nlquery.ai.models import ServiceStatus
from nlquery.cli import cli
from nlquery.models import PaginationInfo, QueryResponse


@pytest.fixture
def runner():
    return CliRunner()


def _ok_response() -> QueryResponse:
    return QueryResponse(
        success=True,
        status="ok",
        message="Query executed successfully",
        request_id="req-1",
        prompt="all orders",
        sql="SELECT id FROM orders",
        paginated_sql="SELECT id FROM orders LIMIT 2 OFFSET 0;",
        data=[{"id": 1}, {"id": 2}],
        row_count=2,
        ai_suggestions=["Orders by month?"],
        pagination=PaginationInfo.build(page=1, page_size=2, total_rows=7),
        execution_time_ms=12.0,
    )


def _mock_orchestrator(response: QueryResponse) -> MagicMock:
    orchestrator = MagicMock()
    orchestrator.run = AsyncMock(return_value=response)
    return orchestrator


class TestCLIBasics:
    """Test basic CLI functionality."""

    def test_cli_help(self, runner):
        result = runner.invoke(cli, ["--help"])
        assert result.exit_code == 0
        for command in ("ask", "fix-sql", "paginate", "health", "train-schema", "history"):
            assert command in result.output

    def test_cli_version(self, runner):
        result = runner.invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert "0.1.0" in result.output


class TestAskCommand:
    """Test the ask command."""

    def test_ask_requires_prompt(self, runner):
        result = runner.invoke(cli, ["ask"])
        assert result.exit_code != 0

    def test_ask_prints_rows_and_pagination(self, runner):
        orchestrator = _mock_orchestrator(_ok_response())

        with (
            patch(
                "nlquery.cli.create_orchestrator_from_settings",
                new=AsyncMock(return_value=orchestrator),
            ),
            patch("nlquery.cli.shutdown_orchestrator", new=AsyncMock()) as shutdown,
        ):
            result = runner.invoke(cli, ["ask", "all orders", "--page-size", "2", "--no-cache"])

        assert result.exit_code == 0, result.output
        assert "SELECT id FROM orders" in result.output
        assert "Page 1 of 4" in result.output
        assert "Orders by month?" in result.output
        request = orchestrator.run.call_args.args[0]
        assert request.page_size == 2
        assert request.disable_cache is True
        shutdown.assert_awaited_once_with(orchestrator)

    def test_ask_uses_default_page_size(self, runner):
        orchestrator = _mock_orchestrator(_ok_response())

        with (
            patch(
                "nlquery.cli.create_orchestrator_from_settings",
                new=AsyncMock(return_value=orchestrator),
            ),
            patch("nlquery.cli.shutdown_orchestrator", new=AsyncMock()),
        ):
            runner.invoke(cli, ["ask", "all orders"])

        assert orchestrator.run.call_args.args[0].page_size == 10

    def test_ask_zero_page_size_reaches_validation(self, runner):
        response = QueryResponse(
            success=False,
            status="invalid_input",
            message="Page size must be between 1 and 1000",
            request_id="req-3",
            prompt="all orders",
        )
        orchestrator = _mock_orchestrator(response)

        with (
            patch(
                "nlquery.cli.create_orchestrator_from_settings",
                new=AsyncMock(return_value=orchestrator),
            ),
            patch("nlquery.cli.shutdown_orchestrator", new=AsyncMock()),
        ):
            result = runner.invoke(cli, ["ask", "all orders", "--page-size", "0"])

        assert orchestrator.run.call_args.args[0].page_size == 0
        assert result.exit_code == 1
        assert "invalid_input" in result.output

    def test_ask_failure_exits_nonzero(self, runner):
        response = QueryResponse(
            success=False,
            status="not_convertible",
            message="AI could not generate a valid SQL query for this prompt",
            request_id="req-2",
            prompt="tell me a joke",
            reason="Not a database question",
        )
        orchestrator = _mock_orchestrator(response)

        with (
            patch(
                "nlquery.cli.create_orchestrator_from_settings",
                new=AsyncMock(return_value=orchestrator),
            ),
            patch("nlquery.cli.shutdown_orchestrator", new=AsyncMock()),
        ):
            result = runner.invoke(cli, ["ask", "tell me a joke"])

        assert result.exit_code == 1
        assert "not_convertible" in result.output
        assert "Not a database question" in result.output

    def test_ask_json_output(self, runner):
        orchestrator = _mock_orchestrator(_ok_response())

        with (
            patch(
                "nlquery.cli.create_orchestrator_from_settings",
                new=AsyncMock(return_value=orchestrator),
            ),
            patch("nlquery.cli.shutdown_orchestrator", new=AsyncMock()),
        ):
            result = runner.invoke(cli, ["ask", "all orders", "--json"])

        assert result.exit_code == 0
        assert '"request_id": "req-1"' in result.output

    def test_ask_without_database_fails(self, runner):
        result = runner.invoke(cli, ["ask", "all orders"])

        assert result.exit_code != 0
        assert "No target database configured" in result.output


class TestSqlCommands:
    """Commands that work on SQL text only."""

    def test_fix_sql(self, runner):
        result = runner.invoke(cli, ["fix-sql", "SELECT * FROM t WHERE d > 'YYYY-MM-DD'"])

        assert result.exit_code == 0
        assert "'2024-01-01'" in result.output
        assert "placeholder_date" in result.output

    def test_fix_sql_no_changes(self, runner):
        result = runner.invoke(cli, ["fix-sql", "SELECT 1"])

        assert result.exit_code == 0
        assert "No changes" in result.output

    def test_paginate(self, runner):
        result = runner.invoke(
            cli,
            ["paginate", "SELECT * FROM t LIMIT 50", "--page", "2", "--threshold", "10"],
        )

        assert result.exit_code == 0
        assert "SELECT * FROM t LIMIT 10 OFFSET 10;" in result.output
        assert "yes" in result.output

    def test_paginate_small_result(self, runner):
        result = runner.invoke(
            cli, ["paginate", "SELECT * FROM t", "--row-estimate", "3", "--threshold", "10"]
        )

        assert result.exit_code == 0
        assert "no" in result.output
        assert "OFFSET" not in result.output

    def test_paginate_rejects_bad_page(self, runner):
        result = runner.invoke(cli, ["paginate", "SELECT 1", "--page", "0"])
        assert result.exit_code != 0


class TestHealthCommand:
    """Test the health command."""

    def _client(self, healthy: bool) -> MagicMock:
        client = MagicMock()
        client.__aenter__ = AsyncMock(return_value=client)
        client.__aexit__ = AsyncMock(return_value=False)
        client.check_health = AsyncMock(return_value=healthy)
        client.get_status = AsyncMock(return_value=ServiceStatus(openai_configured=True))
        return client

    def test_health_reports_service(self, runner):
        with patch("nlquery.cli.HTTPAIClient", return_value=self._client(True)):
            result = runner.invoke(cli, ["health"])

        assert result.exit_code == 0, result.output
        assert "SQL Service" in result.output
        assert "DATABASE_URL not set" in result.output

    def test_health_unreachable_service(self, runner):
        with patch("nlquery.cli.HTTPAIClient", return_value=self._client(False)):
            result = runner.invoke(cli, ["health"])

        assert result.exit_code == 1
        assert "Unreachable" in result.output


class TestTrainSchemaCommand:
    def test_train_schema_sends_ddl(self, runner, mock_database_url):
        from nlquery.connectors.base import ColumnInfo, TableInfo

        connector = MagicMock()
        connector.__aenter__ = AsyncMock(return_value=connector)
        connector.__aexit__ = AsyncMock(return_value=False)
        connector.get_schema = AsyncMock(
            return_value=[
                TableInfo(
                    schema="public",
                    table_name="customers",
                    columns=[
                        ColumnInfo(
                            name="id", data_type="integer", is_nullable=False, is_primary_key=True
                        )
                    ],
                )
            ]
        )
        client = MagicMock()
        client.__aenter__ = AsyncMock(return_value=client)
        client.__aexit__ = AsyncMock(return_value=False)
        client.train_schema = AsyncMock(return_value=True)

        with (
            patch("nlquery.cli.build_connector", return_value=connector),
            patch("nlquery.cli.HTTPAIClient", return_value=client),
        ):
            result = runner.invoke(cli, ["train-schema"])

        assert result.exit_code == 0, result.output
        assert "1 tables" in result.output
        ddl = client.train_schema.call_args.args[0]
        assert "CREATE TABLE public.customers" in ddl
        assert "PRIMARY KEY (id)" in ddl
