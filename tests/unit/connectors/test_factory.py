"""Unit tests for connector factory helpers."""

import pytest

from nlquery.connectors import factory as connector_factory
from nlquery.connectors.postgres import PostgresConnector


def test_create_connector_postgres():
    connector = connector_factory.create_connector(
        database_url="postgresql://u:p@db.example.com:5433/warehouse",
        pool_size=3,
        timeout=15,
    )
    assert isinstance(connector, PostgresConnector)
    assert connector.host == "db.example.com"
    assert connector.port == 5433
    assert connector.database == "warehouse"
    assert connector.user == "u"
    assert connector.password == "p"
    assert connector.pool_size == 3
    assert connector.timeout == 15


def test_create_connector_defaults_port_and_user():
    connector = connector_factory.create_connector(database_url="postgres://db.local/app")
    assert connector.port == 5432
    assert connector.user == "postgres"
    assert connector.password == ""


def test_create_connector_accepts_driver_suffix():
    connector = connector_factory.create_connector(
        database_url="postgresql+asyncpg://u:p@localhost:5432/app",
    )
    assert isinstance(connector, PostgresConnector)
    assert connector.database == "app"


def test_normalize_postgres_url_strips_driver():
    assert (
        connector_factory.normalize_postgres_url("postgresql+asyncpg://u:p@h/db")
        == "postgresql://u:p@h/db"
    )


def test_create_connector_missing_host_raises():
    with pytest.raises(ValueError, match="host is required"):
        connector_factory.create_connector(database_url="sqlite:///tmp/test.db")


def test_create_connector_unsupported_scheme_raises():
    with pytest.raises(ValueError, match="Unsupported"):
        connector_factory.create_connector(database_url="mysql://u:p@localhost:3306/app")
