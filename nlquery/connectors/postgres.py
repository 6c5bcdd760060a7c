"""
PostgreSQL Connector

Async PostgreSQL connector using asyncpg.

Features:
- Connection pooling with asyncpg
- Per-statement timeout
- Table/column introspection for schema training

Usage:
    connector = PostgresConnector(
        host="localhost",
        port=5432,
        database="shop",
        user="postgres",
        password="secret"
    )

    async with connector:
        result = await connector.execute("SELECT * FROM customers LIMIT 10 OFFSET 0;")
        tables = await connector.get_schema(schema_name="public")
"""

import logging
import time
from typing import List, Optional

import asyncpg

from nlquery.connectors.base import (
    BaseConnector,
    ColumnInfo,
    ConnectionError,
    QueryError,
    QueryResult,
    SchemaError,
    TableInfo,
)

logger = logging.getLogger(__name__)

_TABLES_QUERY = """
    SELECT table_schema, table_name, table_type
    FROM information_schema.tables
    WHERE table_schema = $1
    AND table_type IN ('BASE TABLE', 'VIEW')
    ORDER BY table_name
"""

_COLUMNS_QUERY = """
    SELECT column_name, data_type, is_nullable
    FROM information_schema.columns
    WHERE table_schema = $1 AND table_name = $2
    ORDER BY ordinal_position
"""

_PRIMARY_KEY_QUERY = """
    SELECT a.attname
    FROM pg_index i
    JOIN pg_attribute a ON a.attrelid = i.indrelid
        AND a.attnum = ANY(i.indkey)
    WHERE i.indrelid = $1::regclass
    AND i.indisprimary
"""


class PostgresConnector(BaseConnector):
    """
    PostgreSQL database connector using asyncpg.

    Statements are executed exactly as given; the pipeline has already
    applied fixing and pagination.
    """

    async def connect(self) -> None:
        """
        Create the asyncpg connection pool and verify it with a probe query.

        Raises:
            ConnectionError: If connection fails
        """
        if self._connected and self._pool:
            logger.debug("Already connected, skipping connection")
            return

        try:
            logger.info(f"Connecting to PostgreSQL at {self.host}:{self.port}/{self.database}")

            self._pool = await asyncpg.create_pool(
                host=self.host,
                port=self.port,
                database=self.database,
                user=self.user,
                password=self.password,
                min_size=1,
                max_size=self.pool_size,
                command_timeout=self.timeout,
                **self.kwargs,
            )

            async with self._pool.acquire() as conn:
                version = await conn.fetchval("SELECT version()")
                logger.info(f"Connected to PostgreSQL: {version.split(',')[0]}")

            self._connected = True

        except asyncpg.PostgresError as e:
            logger.error(f"PostgreSQL connection failed: {e}")
            raise ConnectionError(f"Failed to connect to PostgreSQL: {e}") from e
        except OSError as e:
            logger.error(f"PostgreSQL unreachable: {e}")
            raise ConnectionError(f"Connection error: {e}") from e

    async def execute(self, query: str, timeout: Optional[int] = None) -> QueryResult:
        """
        Execute a single SQL statement.

        Raises:
            QueryError: If the statement fails or times out
            ConnectionError: If not connected
        """
        if not self._connected or not self._pool:
            raise ConnectionError("Not connected to database. Call connect() first.")

        start_time = time.perf_counter()
        query_timeout = timeout or self.timeout

        try:
            async with self._pool.acquire() as conn:
                await conn.execute(f"SET statement_timeout = {query_timeout * 1000}")
                rows = await conn.fetch(query)
        except asyncpg.QueryCanceledError as e:
            logger.error(f"Query timed out after {query_timeout}s: {query[:100]}...")
            raise QueryError(f"Query timeout ({query_timeout}s)") from e
        except asyncpg.PostgresError as e:
            logger.error(f"Query failed: {e}\nQuery: {query[:200]}...")
            raise QueryError(f"Query execution failed: {e}") from e
        except (asyncpg.InterfaceError, OSError) as e:
            logger.error(f"Connection problem during query execution: {e}")
            raise QueryError(f"Query error: {e}") from e

        result_rows = [dict(row) for row in rows]
        columns = list(rows[0].keys()) if rows else []
        execution_time_ms = (time.perf_counter() - start_time) * 1000

        logger.debug(
            f"Query executed in {execution_time_ms:.2f}ms, returned {len(result_rows)} rows"
        )

        return QueryResult(
            rows=result_rows,
            row_count=len(result_rows),
            columns=columns,
            execution_time_ms=execution_time_ms,
        )

    async def get_schema(self, schema_name: Optional[str] = None) -> List[TableInfo]:
        """
        Introspect tables, columns and primary keys of one schema.

        Args:
            schema_name: Schema to introspect (default: public)

        Raises:
            SchemaError: If schema introspection fails
        """
        if not self._connected or not self._pool:
            raise ConnectionError("Not connected to database. Call connect() first.")

        schema_filter = schema_name or "public"

        try:
            async with self._pool.acquire() as conn:
                tables = await conn.fetch(_TABLES_QUERY, schema_filter)
                table_infos = []

                for table_row in tables:
                    table_schema = table_row["table_schema"]
                    table_name = table_row["table_name"]

                    columns = await conn.fetch(_COLUMNS_QUERY, table_schema, table_name)
                    pk_rows = await conn.fetch(_PRIMARY_KEY_QUERY, f"{table_schema}.{table_name}")
                    pk_columns = {row["attname"] for row in pk_rows}

                    table_infos.append(
                        TableInfo(
                            schema=table_schema,
                            table_name=table_name,
                            table_type=table_row["table_type"],
                            columns=[
                                ColumnInfo(
                                    name=col["column_name"],
                                    data_type=col["data_type"],
                                    is_nullable=col["is_nullable"] == "YES",
                                    is_primary_key=col["column_name"] in pk_columns,
                                )
                                for col in columns
                            ],
                        )
                    )

        except asyncpg.PostgresError as e:
            logger.error(f"Schema introspection failed: {e}")
            raise SchemaError(f"Failed to introspect schema: {e}") from e

        logger.info(f"Introspected schema '{schema_filter}': found {len(table_infos)} tables")
        return table_infos

    async def close(self) -> None:
        """Close connection pool. Safe to call multiple times."""
        if not self._pool:
            logger.debug("No connection pool to close")
            return

        try:
            await self._pool.close()
        except asyncpg.PostgresError as e:
            logger.error(f"Error closing connection: {e}")
            raise ConnectionError(f"Failed to close connection: {e}") from e
        finally:
            self._pool = None
            self._connected = False
        logger.info("PostgreSQL connection closed")
