"""
Base Database Connector

Abstract base class for the database the pipeline executes SQL against.
The pipeline hands over one finished SQL string per call and gets rows
back as column-name -> value mappings.

All connectors must implement:
- connect(): Establish connection with connection pooling
- execute(): Run a single SQL statement with a timeout
- get_schema(): Introspect tables and columns (used for schema training)
- close(): Clean up connections and pools
"""

import logging
from abc import ABC, abstractmethod
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

logger = logging.getLogger(__name__)


# ============================================================================
# Data Models
# ============================================================================


class ColumnInfo(BaseModel):
    """Information about a database column."""

    name: str = Field(..., description="Column name")
    data_type: str = Field(..., description="Column data type")
    is_nullable: bool = Field(..., description="Whether column can be NULL")
    is_primary_key: bool = Field(default=False, description="Is part of primary key")


class TableInfo(BaseModel):
    """Information about a database table."""

    schema_name: str = Field(..., alias="schema", description="Schema name")
    table_name: str = Field(..., description="Table name")
    columns: list[ColumnInfo] = Field(..., description="List of columns")
    table_type: str = Field(default="TABLE", description="TABLE, VIEW, etc.")

    model_config = ConfigDict(populate_by_name=True)

    def to_ddl(self) -> str:
        """Render a CREATE TABLE statement describing this table."""
        lines = []
        for column in self.columns:
            line = f"    {column.name} {column.data_type}"
            if not column.is_nullable:
                line += " NOT NULL"
            lines.append(line)
        primary_keys = [column.name for column in self.columns if column.is_primary_key]
        if primary_keys:
            lines.append(f"    PRIMARY KEY ({', '.join(primary_keys)})")
        body = ",\n".join(lines)
        return f"CREATE TABLE {self.schema_name}.{self.table_name} (\n{body}\n);"


class QueryResult(BaseModel):
    """Result from query execution."""

    rows: list[dict[str, Any]] = Field(..., description="Query result rows")
    row_count: int = Field(..., description="Number of rows returned")
    columns: list[str] = Field(..., description="Column names")
    execution_time_ms: float = Field(..., description="Query execution time in ms")


def schema_to_ddl(tables: list[TableInfo]) -> str:
    """Join table DDL into one document for the SQL generation service."""
    return "\n\n".join(table.to_ddl() for table in tables)


class ConnectorError(Exception):
    """Base exception for connector errors."""

    pass


class ConnectionError(ConnectorError):
    """Error establishing or managing database connection."""

    pass


class QueryError(ConnectorError):
    """Error executing database query."""

    pass


class SchemaError(ConnectorError):
    """Error introspecting database schema."""

    pass


# ============================================================================
# Base Connector
# ============================================================================


class BaseConnector(ABC):
    """
    Abstract base class for database connectors.

    Usage:
        connector = PostgresConnector(host="localhost", ...)

        async with connector:
            result = await connector.execute("SELECT * FROM customers LIMIT 10 OFFSET 0;")
            print(f"Found {result.row_count} rows")
    """

    def __init__(
        self,
        host: str,
        port: int,
        database: str,
        user: str,
        password: str,
        pool_size: int = 5,
        timeout: int = 30,
        **kwargs,
    ):
        """
        Initialize connector.

        Args:
            host: Database host
            port: Database port
            database: Database name
            user: Database user
            password: Database password
            pool_size: Connection pool size (default: 5)
            timeout: Statement timeout in seconds (default: 30)
            **kwargs: Additional driver-specific parameters
        """
        self.host = host
        self.port = port
        self.database = database
        self.user = user
        self.password = password
        self.pool_size = pool_size
        self.timeout = timeout
        self.kwargs = kwargs

        self._pool = None
        self._connected = False

        logger.info(f"Initialized {self.__class__.__name__} for {user}@{host}:{port}/{database}")

    @abstractmethod
    async def connect(self) -> None:
        """
        Establish database connection and create connection pool.

        Idempotent: calling it again does not create another pool.

        Raises:
            ConnectionError: If connection fails
        """
        pass

    @abstractmethod
    async def execute(self, query: str, timeout: int | None = None) -> QueryResult:
        """
        Execute a single SQL statement.

        Args:
            query: Complete SQL statement
            timeout: Statement timeout in seconds (overrides default)

        Returns:
            QueryResult with rows, columns, and metadata

        Raises:
            QueryError: If query execution fails
            ConnectionError: If not connected
        """
        pass

    @abstractmethod
    async def get_schema(self, schema_name: str | None = None) -> list[TableInfo]:
        """
        Introspect tables and columns.

        Raises:
            SchemaError: If schema introspection fails
        """
        pass

    @abstractmethod
    async def close(self) -> None:
        """Close connection pool. Safe to call multiple times."""
        pass

    async def count_rows(self, count_query: str) -> int | None:
        """
        Run a ``SELECT COUNT(*)`` style query and return its scalar.

        Returns None when the query fails or returns nothing.
        """
        try:
            result = await self.execute(count_query)
        except ConnectorError as e:
            logger.debug(f"Row count query failed: {e}")
            return None
        if not result.rows:
            return None
        value = next(iter(result.rows[0].values()), None)
        return int(value) if value is not None else None

    @property
    def is_connected(self) -> bool:
        """Check if connector is connected."""
        return self._connected

    async def __aenter__(self):
        """Async context manager entry."""
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.close()
        return False

    def __repr__(self) -> str:
        """String representation."""
        status = "connected" if self._connected else "disconnected"
        return f"<{self.__class__.__name__} {self.user}@{self.host}:{self.port}/{self.database} ({status})>"
