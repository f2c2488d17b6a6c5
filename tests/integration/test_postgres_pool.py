"""
Integration tests for the database connection pool

Tests the PostgreSQL connection pool functionality using testcontainers.
"""
import pytest
from psycopg import OperationalError

from product_migration.warehouse.connection import DatabaseConnectionPool


@pytest.mark.integration
def test_connection_pool_initialization(database_uri):
    """Test that connection pool initializes correctly"""
    pool = DatabaseConnectionPool(database_uri, min_size=2, max_size=5)

    pool.open()

    assert pool._pool is not None
    assert pool._pool.min_size == 2
    assert pool._pool.max_size == 5

    pool.close()
    assert pool._pool is None


@pytest.mark.integration
def test_execute_query(database_uri):
    """Test executing a query using the pool"""
    with DatabaseConnectionPool(database_uri) as pool:
        result = pool.execute_query("SELECT 42 as answer")

    assert result == [{"answer": 42}]


@pytest.mark.integration
def test_open_fails_after_retries(postgres_container):
    """Test that a wrong password fails after the configured attempts"""
    host = postgres_container.get_container_host_ip()
    port = postgres_container.get_exposed_port(5432)
    pool = DatabaseConnectionPool(
        f"postgresql://test_migration@{host}:{port}/test_backend",
        password="wrong_password",
        timeout=5,
    )

    with pytest.raises(OperationalError) as exc_info:
        pool.open(max_retries=2, retry_delay=0.1)
    assert "after 2 attempts" in str(exc_info.value)
