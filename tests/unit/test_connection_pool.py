"""
Unit tests for database connection pool settings (no server needed).
"""
import pytest

from product_migration.warehouse.connection import DatabaseConnectionPool


@pytest.mark.unit
def test_pool_requires_uri():
    """Test that a missing URI is rejected before connecting"""
    with pytest.raises(ValueError):
        DatabaseConnectionPool("")


@pytest.mark.unit
def test_password_is_added_to_conninfo():
    """Test that a separate password ends up in the connection string"""
    pool = DatabaseConnectionPool("postgresql://migrator@db.example:5432/postgres", password="s3cret")

    assert "password=s3cret" in pool.conninfo
    assert "connect_timeout=30" in pool.conninfo


@pytest.mark.unit
def test_get_connection_requires_open_pool():
    """Test that using a pool before open() fails clearly"""
    pool = DatabaseConnectionPool("postgresql://migrator@db.example:5432/postgres")

    with pytest.raises(RuntimeError):
        with pool.get_connection():
            pass
