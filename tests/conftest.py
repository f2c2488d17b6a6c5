"""
Pytest configuration and fixtures for product-migration tests

Provides in-memory stand-ins for the DynamoDB resource, the S3 clients
and the relational sink, plus a PostgreSQL container for integration
tests.
"""
from typing import Any, Generator

import pytest
from botocore.exceptions import ClientError

from product_migration.core.config import load_table_layout
from product_migration.core.errors import SinkError
from product_migration.readers import TableFetcher
from product_migration.utils.concurrency import ConcurrencyLimiter

TABLE_SUFFIX = "test"


# =======================
# PYTEST CONFIGURATION
# =======================

def pytest_configure(config):
    """Configure pytest with custom markers"""
    config.addinivalue_line(
        "markers", "unit: Unit tests that don't require external services"
    )
    config.addinivalue_line(
        "markers", "integration: Integration tests that require Docker containers"
    )


# =======================
# KEY-VALUE STORE FAKES
# =======================

def client_error(code: str = "ResourceNotFoundException", operation: str = "Scan") -> ClientError:
    """Build a botocore ClientError like the store returns."""
    return ClientError({"Error": {"Code": code, "Message": f"{code} raised"}}, operation)


class FakeTable:
    """In-memory DynamoDB Table supporting paginated scan and id query."""

    def __init__(self, items: list[dict[str, Any]], page_size: int | None = None, error: Exception | None = None):
        self.items = items
        self.page_size = page_size
        self.error = error
        self.scan_calls: list[dict[str, Any]] = []
        self.query_calls: list[Any] = []

    def scan(self, **kwargs):
        self.scan_calls.append(kwargs)
        if self.error:
            raise self.error

        start = kwargs.get("ExclusiveStartKey", {}).get("offset", 0)
        end = len(self.items) if self.page_size is None else start + self.page_size
        response = {"Items": [dict(item) for item in self.items[start:end]]}
        if end < len(self.items):
            response["LastEvaluatedKey"] = {"offset": end}
        return response

    def query(self, KeyConditionExpression):
        self.query_calls.append(KeyConditionExpression)
        if self.error:
            raise self.error

        _, record_id = KeyConditionExpression.get_expression()["values"]
        return {"Items": [dict(item) for item in self.items if item.get("id") == record_id]}


class FakeDynamoDB:
    """In-memory DynamoDB service resource keyed by physical table name."""

    def __init__(self, tables: dict[str, FakeTable] | None = None):
        self.tables = tables or {}

    def Table(self, name: str) -> FakeTable:
        if name not in self.tables:
            return FakeTable([], error=client_error())
        return self.tables[name]


# =======================
# RELATIONAL SINK FAKE
# =======================

class FakeSink:
    """Records every batch; optionally reports an error or raises."""

    def __init__(self, error: SinkError | None = None, exception: Exception | None = None):
        self.error = error
        self.exception = exception
        self.calls: list[tuple[str, str, list[dict[str, Any]]]] = []

    def insert(self, table, records):
        return self._write("insert", table, records)

    def upsert(self, table, records, on_conflict="id"):
        return self._write("upsert", table, records)

    def _write(self, operation, table, records):
        self.calls.append((operation, table, records))
        if self.exception:
            raise self.exception
        return self.error


# =======================
# FIXTURES
# =======================

@pytest.fixture
def layout():
    """Built-in table layout with the test suffix"""
    return load_table_layout(None, TABLE_SUFFIX)


@pytest.fixture
def product_schema(layout):
    return layout.get("Product")


@pytest.fixture
def sticker_schema(layout):
    return layout.get("ProductSticker")


@pytest.fixture
def specification_schema(layout):
    return layout.get("ProductSpecification")


@pytest.fixture
def make_dynamodb():
    """
    Factory for a fake DynamoDB resource

    Usage:
        dynamodb = make_dynamodb({"Product": [{"id": "P1"}]}, page_size=1)
    """
    def _make(rows_by_table: dict[str, list[dict[str, Any]]], page_size: int | None = None) -> FakeDynamoDB:
        return FakeDynamoDB({
            f"{name}-{TABLE_SUFFIX}": FakeTable(rows, page_size=page_size)
            for name, rows in rows_by_table.items()
        })

    return _make


@pytest.fixture
def make_fetcher(make_dynamodb):
    """Factory for a TableFetcher over a fake DynamoDB resource"""
    def _make(rows_by_table: dict[str, list[dict[str, Any]]], page_size: int | None = None) -> TableFetcher:
        return TableFetcher(make_dynamodb(rows_by_table, page_size=page_size), ConcurrencyLimiter(4))

    return _make


@pytest.fixture
def fake_sink():
    return FakeSink()


@pytest.fixture
def make_sink():
    """Factory for a FakeSink reporting an error or raising"""
    return FakeSink


@pytest.fixture
def make_client_error():
    """Factory for botocore ClientErrors"""
    return client_error


@pytest.fixture
def failing_table():
    """Table whose scan and query raise a ClientError"""
    return FakeTable([], error=client_error("ProvisionedThroughputExceededException"))


# =======================
# DATABASE FIXTURES (Testcontainers)
# =======================

@pytest.fixture(scope="session")
def postgres_container() -> Generator[Any, None, None]:
    """
    Start PostgreSQL container for integration tests

    Yields:
        PostgresContainer instance
    """
    from testcontainers.postgres import PostgresContainer

    with PostgresContainer(
        image="postgres:16.2-alpine",
        username="test_migration",
        password="test_password",
        dbname="test_backend",
        driver=None,
    ) as postgres:
        yield postgres


@pytest.fixture
def database_uri(postgres_container) -> str:
    """Connection URI of the test database"""
    return postgres_container.get_connection_url()
