"""
nlquery CLI

Command-line interface for the prompt-to-rows pipeline.

Usage:
    nlquery ask "top 5 customers by revenue"        # Run a prompt end to end
    nlquery ask "all orders" --page 2 --page-size 20
    nlquery fix-sql "SELECT * FROM t WHERE d > 'YYYY-MM-DD'"
    nlquery paginate "SELECT * FROM t LIMIT 50" --page 2
    nlquery health                                  # SQL service + database status
    nlquery train-schema                            # Send database DDL to the SQL service
    nlquery history                                 # Recent query history
"""

import asyncio
import logging
import sys

import click
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from nlquery.ai import HTTPAIClient
from nlquery.config import Settings, get_settings
from nlquery.connectors import BaseConnector, create_connector, schema_to_ddl
from nlquery.history import HistoryRecorder, PostgresHistoryStore
from nlquery.models import QueryRequest, QueryResponse
from nlquery.pipeline import QueryOrchestrator
from nlquery.sql import PaginationEngine, SqlAutoFixer

console = Console()
logger = logging.getLogger(__name__)


def configure_cli_logging(verbose: bool = False) -> None:
    """Silence library logging unless --verbose is given."""
    if verbose:
        logging.disable(logging.NOTSET)
        get_settings().logging.configure()
        return
    logging.disable(logging.CRITICAL)
    logging.basicConfig(level=logging.CRITICAL)
    for logger_name in ("nlquery", "httpx", "asyncio"):
        logging.getLogger(logger_name).setLevel(logging.CRITICAL)


# ============================================================================
# Wiring
# ============================================================================


def build_connector(settings: Settings) -> BaseConnector:
    """Create the target database connector from settings."""
    if not settings.database.url:
        console.print("[red]No target database configured.[/red]")
        console.print("[yellow]Hint: Set DATABASE_URL in .env or the environment.[/yellow]")
        raise click.ClickException("Missing target database")
    return create_connector(
        database_url=str(settings.database.url),
        pool_size=settings.database.pool_size,
        timeout=settings.database.timeout,
    )


async def create_orchestrator_from_settings(settings: Settings) -> QueryOrchestrator:
    """Connect to the database (and history store, if enabled) and build the pipeline."""
    connector = build_connector(settings)
    try:
        await connector.connect()
    except Exception as e:
        console.print(f"[red]Failed to connect to database: {e}[/red]")
        raise

    history = None
    history_url = settings.history_database_url
    if settings.history.enabled and history_url:
        store = PostgresHistoryStore(history_url)
        try:
            await store.initialize()
            history = HistoryRecorder(
                store,
                queue_size=settings.history.queue_size,
                write_timeout=settings.history.write_timeout,
            )
        except Exception as e:
            console.print(f"[yellow]Query history disabled: {e}[/yellow]")
            await store.close()

    return QueryOrchestrator.from_settings(settings, connector=connector, history=history)


async def shutdown_orchestrator(orchestrator: QueryOrchestrator) -> None:
    """Flush history and release every resource the orchestrator holds."""
    if orchestrator.history is not None:
        await orchestrator.history.stop()
        await orchestrator.history.store.close()
    if orchestrator.ai_client is not None:
        await orchestrator.ai_client.close()
    await orchestrator.connector.close()


# ============================================================================
# Output
# ============================================================================


def print_response(response: QueryResponse) -> None:
    """Render a pipeline response."""
    if not response.success:
        body = response.message
        if response.reason:
            body += f"\n\n[dim]Reason:[/dim] {response.reason}"
        console.print(
            Panel(body, title=f"[bold red]{response.status}[/bold red]", border_style="red")
        )
        _print_suggestions(response.ai_suggestions)
        return

    console.print(Panel(response.sql, title="SQL", border_style="cyan", highlight=True))
    if response.paginated_sql and response.paginated_sql != response.sql:
        console.print(f"[dim]Executed: {response.paginated_sql}[/dim]")

    if response.data:
        table = Table(show_header=True, header_style="bold cyan")
        columns = list(response.data[0].keys())
        for column in columns:
            table.add_column(column)
        for row in response.data:
            table.add_row(*[str(row.get(column, "")) for column in columns])
        console.print(table)
    else:
        console.print("[dim]No rows returned.[/dim]")

    pagination = response.pagination
    if pagination is not None:
        footer = (
            f"Page {pagination.page} of {pagination.total_pages} "
            f"({pagination.total_rows} rows total, {response.row_count} shown)"
        )
        if pagination.has_more:
            footer += f" - use --page {pagination.page + 1} for more"
        console.print(f"[dim]{footer}[/dim]")

    details = []
    if response.from_cache:
        details.append("cached SQL")
    if response.execution_time_ms is not None:
        details.append(f"{response.execution_time_ms:.0f}ms")
    if details:
        console.print(f"[dim]{' | '.join(details)}[/dim]")
    _print_suggestions(response.ai_suggestions)


def _print_suggestions(suggestions: list[str]) -> None:
    if not suggestions:
        return
    console.print("\n[bold]Suggested questions:[/bold]")
    for suggestion in suggestions:
        console.print(f"- {suggestion}")


# ============================================================================
# Commands
# ============================================================================


@click.group()
@click.version_option(version="0.1.0", prog_name="nlquery")
@click.option("--verbose", "-v", is_flag=True, help="Show application logs.")
def cli(verbose: bool):
    """nlquery - Ask your PostgreSQL database questions in plain language."""
    configure_cli_logging(verbose)


@cli.command()
@click.argument("prompt")
@click.option("--page", default=1, show_default=True, type=int, help="1-based page number.")
@click.option("--page-size", default=None, type=int, help="Rows per page.")
@click.option("--no-cache", is_flag=True, help="Bypass cached SQL for this prompt.")
@click.option("--language", default=None, help="Prompt language sent to the SQL service.")
@click.option("--json", "as_json", is_flag=True, help="Print the raw response as JSON.")
def ask(
    prompt: str,
    page: int,
    page_size: int | None,
    no_cache: bool,
    language: str | None,
    as_json: bool,
):
    """Turn a question into SQL, run it and show one page of rows."""

    async def run_query() -> QueryResponse:
        settings = get_settings()
        orchestrator = await create_orchestrator_from_settings(settings)
        try:
            request = QueryRequest(
                prompt=prompt,
                page=page,
                page_size=(
                    page_size if page_size is not None else settings.pagination.default_page_size
                ),
                disable_cache=no_cache,
                language=language,
            )
            with console.status("[cyan]Processing query...[/cyan]", spinner="dots"):
                return await orchestrator.run(request)
        finally:
            await shutdown_orchestrator(orchestrator)

    try:
        response = asyncio.run(run_query())
    except click.ClickException:
        raise
    except Exception as e:
        console.print(f"[red]Error: {e}[/red]")
        sys.exit(1)

    if as_json:
        console.print_json(response.model_dump_json())
    else:
        print_response(response)
    if not response.success:
        sys.exit(1)


@cli.command("fix-sql")
@click.argument("sql")
def fix_sql(sql: str):
    """Apply the SQL auto-fix rules and print the result."""
    result = SqlAutoFixer().fix_with_report(sql)
    console.print(Panel(result.sql, title="Fixed SQL", border_style="cyan", highlight=True))
    if result.changed:
        console.print(f"[green]Applied: {', '.join(result.applied)}[/green]")
    else:
        console.print("[dim]No changes.[/dim]")


@cli.command()
@click.argument("sql")
@click.option("--page", default=1, show_default=True, type=int)
@click.option("--page-size", default=10, show_default=True, type=int)
@click.option("--row-estimate", default=None, type=int, help="Expected total rows.")
@click.option("--threshold", default=None, type=int, help="Large-dataset threshold.")
def paginate(sql: str, page: int, page_size: int, row_estimate: int | None, threshold: int | None):
    """Show how a statement would be paginated."""
    if page < 1 or page_size < 1:
        raise click.BadParameter("--page and --page-size must be at least 1")
    if threshold is None:
        threshold = get_settings().pagination.large_dataset_threshold

    decision = PaginationEngine(threshold=threshold).paginate(
        sql, page=page, page_size=page_size, row_estimate=row_estimate
    )

    table = Table(show_header=False)
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    table.add_row("Display SQL", decision.original_sql)
    table.add_row("Executed SQL", decision.executable_sql)
    table.add_row("Paginated", "yes" if decision.paginated else "no")
    upstream = decision.upstream_limit
    table.add_row("Upstream LIMIT", str(upstream) if upstream is not None else "-")
    if decision.paginated:
        table.add_row("LIMIT / OFFSET", f"{decision.effective_limit} / {decision.offset}")
    console.print(table)


@cli.command()
def health():
    """Check the SQL generation service and the target database."""

    async def check_health() -> bool:
        settings = get_settings()
        table = Table(title="nlquery Status", show_header=True, header_style="bold cyan")
        table.add_column("Component", style="cyan")
        table.add_column("Status", style="green")
        table.add_column("Details")

        healthy = True
        async with HTTPAIClient(
            base_url=settings.ai_service.url, timeout=settings.ai_service.timeout
        ) as client:
            if await client.check_health():
                table.add_row("SQL Service", "✓", settings.ai_service.url)
            else:
                healthy = False
                table.add_row("SQL Service", "✗", f"Unreachable at {settings.ai_service.url}")

            status = await client.get_status()
            if status is not None:
                configured = "configured" if status.openai_configured else "not configured"
                table.add_row("SQL Model", "✓" if status.openai_configured else "⚠", configured)

        if settings.database.url:
            connector = build_connector(settings)
            try:
                await connector.connect()
                await connector.execute("SELECT 1")
                table.add_row("Database", "✓", "Connected")
            except Exception as e:
                healthy = False
                table.add_row("Database", "✗", f"Error: {str(e)[:50]}")
            finally:
                await connector.close()
        else:
            table.add_row("Database", "⚠", "DATABASE_URL not set")

        cache_state = (
            f"TTL {settings.cache.ttl_minutes:g} min" if settings.cache.enabled else "disabled"
        )
        table.add_row("Cache", "✓", cache_state)
        if settings.history.enabled:
            table.add_row("History", "✓", "enabled")
        else:
            table.add_row("History", "-", "disabled")

        console.print(table)
        return healthy

    if not asyncio.run(check_health()):
        sys.exit(1)


@cli.command("train-schema")
@click.option("--schema", "schema_name", default=None, help="Only send this schema.")
def train_schema(schema_name: str | None):
    """Send the target database's DDL to the SQL generation service."""

    async def run_training() -> bool:
        settings = get_settings()
        connector = build_connector(settings)
        async with connector:
            with console.status("[cyan]Reading database schema...[/cyan]", spinner="dots"):
                tables = await connector.get_schema(schema_name)
        if not tables:
            console.print("[yellow]No tables found.[/yellow]")
            return False

        ddl = schema_to_ddl(tables)
        async with HTTPAIClient(
            base_url=settings.ai_service.url, timeout=settings.ai_service.timeout
        ) as client:
            with console.status("[cyan]Training SQL service...[/cyan]", spinner="dots"):
                trained = await client.train_schema(ddl)

        if trained:
            console.print(f"[green]✓ Sent schema for {len(tables)} tables[/green]")
        else:
            console.print("[red]Schema training failed.[/red]")
        return trained

    try:
        ok = asyncio.run(run_training())
    except click.ClickException:
        raise
    except Exception as e:
        console.print(f"[red]Error: {e}[/red]")
        sys.exit(1)
    if not ok:
        sys.exit(1)


@cli.command()
@click.option("--limit", default=20, show_default=True, type=int)
def history(limit: int):
    """Show recent query history."""

    async def load_history() -> list[dict]:
        settings = get_settings()
        history_url = settings.history_database_url
        if not history_url:
            raise click.ClickException("No history database configured")
        store = PostgresHistoryStore(history_url)
        try:
            await store.initialize()
            return await store.list_recent(limit=limit)
        finally:
            await store.close()

    try:
        records = asyncio.run(load_history())
    except click.ClickException:
        raise
    except Exception as e:
        console.print(f"[red]Error: {e}[/red]")
        sys.exit(1)

    if not records:
        console.print("[dim]No history recorded yet.[/dim]")
        return

    table = Table(title="Query History", show_header=True, header_style="bold cyan")
    table.add_column("When")
    table.add_column("Prompt")
    table.add_column("Status")
    table.add_column("Rows", justify="right")
    table.add_column("Time (ms)", justify="right")
    for record in records:
        status = "[green]ok[/green]" if record["success"] else f"[red]{record['error_message']}[/red]"
        table.add_row(
            str(record["created_at"])[:19],
            record["prompt"][:60],
            status,
            str(record["row_count"]),
            f"{record['execution_time_ms']:.0f}",
        )
    console.print(table)


if __name__ == "__main__":
    cli()
