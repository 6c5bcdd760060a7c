"""Storage for per-request query history records."""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from typing import Any

import asyncpg

from nlquery.connectors.factory import normalize_postgres_url
from nlquery.models import QueryHistoryRecord

_CREATE_HISTORY_TABLE = """
CREATE TABLE IF NOT EXISTS query_history (
    request_id TEXT PRIMARY KEY,
    prompt TEXT NOT NULL,
    sql TEXT NOT NULL,
    success BOOLEAN NOT NULL,
    execution_time_ms DOUBLE PRECISION NOT NULL,
    row_count INTEGER NOT NULL,
    model TEXT NOT NULL,
    error_message TEXT NOT NULL,
    ai_generated BOOLEAN NOT NULL,
    tables_accessed JSONB NOT NULL,
    created_at TIMESTAMPTZ NOT NULL
);
"""

_CREATE_HISTORY_CREATED_INDEX = """
CREATE INDEX IF NOT EXISTS query_history_created_at_idx
ON query_history (created_at DESC);
"""


class QueryHistoryStore(ABC):
    """Destination for history records written by the HistoryRecorder."""

    async def initialize(self) -> None:
        return None

    @abstractmethod
    async def save(self, record: QueryHistoryRecord) -> None:
        pass  # pragma: no cover - abstract method

    async def close(self) -> None:
        return None


class PostgresHistoryStore(QueryHistoryStore):
    """Persist query history in a PostgreSQL table."""

    def __init__(self, database_url: str) -> None:
        if not database_url:
            raise ValueError("A database URL is required for query history storage.")
        self._database_url = normalize_postgres_url(database_url)
        self._pool: asyncpg.Pool | None = None

    async def initialize(self) -> None:
        if self._pool is None:
            self._pool = await asyncpg.create_pool(dsn=self._database_url, min_size=1, max_size=3)
        await self._pool.execute(_CREATE_HISTORY_TABLE)
        await self._pool.execute(_CREATE_HISTORY_CREATED_INDEX)

    async def close(self) -> None:
        if self._pool is not None:
            await self._pool.close()
            self._pool = None

    async def save(self, record: QueryHistoryRecord) -> None:
        self._ensure_pool()
        await self._pool.execute(
            """
            INSERT INTO query_history (
                request_id,
                prompt,
                sql,
                success,
                execution_time_ms,
                row_count,
                model,
                error_message,
                ai_generated,
                tables_accessed,
                created_at
            ) VALUES (
                $1, $2, $3, $4, $5, $6, $7, $8, $9, $10::jsonb, $11
            )
            ON CONFLICT (request_id) DO NOTHING
            """,
            record.request_id,
            record.prompt,
            record.sql,
            record.success,
            record.execution_time_ms,
            record.row_count,
            record.model,
            record.error_message,
            record.ai_generated,
            json.dumps(record.tables_accessed),
            record.timestamp,
        )

    async def list_recent(self, *, limit: int = 20) -> list[dict[str, Any]]:
        self._ensure_pool()
        bounded_limit = max(1, min(limit, 200))
        rows = await self._pool.fetch(
            """
            SELECT request_id, prompt, sql, success, execution_time_ms,
                   row_count, model, error_message, created_at
            FROM query_history
            ORDER BY created_at DESC
            LIMIT $1
            """,
            bounded_limit,
        )
        return [dict(row) for row in rows]

    def _ensure_pool(self) -> None:
        if self._pool is None:
            raise RuntimeError("PostgresHistoryStore not initialized")
