"""Connector factory for database URLs."""

from __future__ import annotations

from urllib.parse import urlparse

from nlquery.connectors.base import BaseConnector
from nlquery.connectors.postgres import PostgresConnector

_POSTGRES_SCHEMES = {"postgres", "postgresql"}


def create_connector(
    *,
    database_url: str,
    pool_size: int = 5,
    timeout: int = 30,
    **kwargs,
) -> BaseConnector:
    """Create a connector instance from a connection URL."""
    parsed = _parse_url(database_url)
    if not parsed.hostname:
        raise ValueError("Invalid database URL: host is required.")

    scheme = parsed.scheme.split("+")[0].lower()
    if scheme not in _POSTGRES_SCHEMES:
        raise ValueError(f"Unsupported database URL scheme: {parsed.scheme}")

    return PostgresConnector(
        host=parsed.hostname,
        port=parsed.port or 5432,
        database=parsed.path.lstrip("/") or "postgres",
        user=parsed.username or "postgres",
        password=parsed.password or "",
        pool_size=pool_size,
        timeout=timeout,
        **kwargs,
    )


def normalize_postgres_url(database_url: str) -> str:
    """Strip SQLAlchemy-style driver suffixes asyncpg does not understand."""
    return database_url.replace("postgresql+asyncpg://", "postgresql://")


def _parse_url(database_url: str):
    return urlparse(normalize_postgres_url(database_url))
