"""
Connection pool for the relational backend (PostgreSQL via psycopg 3)

The backend is addressed by its connection URI. One pool is opened per
run, handed to the sink, and closed when the run ends; rows come back as
dictionaries.
"""
import time
from contextlib import contextmanager
from typing import Iterator

import psycopg
from psycopg import OperationalError
from psycopg.conninfo import make_conninfo
from psycopg.rows import dict_row
from psycopg_pool import ConnectionPool

from product_migration.observability.logger import get_logger

logger = get_logger(__name__)


class DatabaseConnectionPool:
    """
    Pooled psycopg connections to the relational backend

    ``open`` retries a few times because the backend may still be waking
    up; every later failure surfaces to the caller unchanged.
    """

    def __init__(
        self,
        uri: str,
        password: str | None = None,
        min_size: int = 1,
        max_size: int = 4,
        timeout: float = 30.0,
    ) -> None:
        """
        Args:
            uri: PostgreSQL connection URI (postgresql://user@host:port/db)
            password: Password, when the URI does not embed one
            min_size: Connections kept open
            max_size: Upper bound on open connections
            timeout: Seconds to wait for a connection (also the connect timeout)
        """
        if not uri:
            raise ValueError("A database URI is required; set DATABASE_URI")

        overrides = {"connect_timeout": int(timeout)}
        if password:
            overrides["password"] = password

        self.conninfo = make_conninfo(uri, **overrides)
        self.min_size = min_size
        self.max_size = max_size
        self.timeout = timeout
        self._pool: ConnectionPool | None = None

    @property
    def is_open(self) -> bool:
        return self._pool is not None

    def _new_pool(self) -> ConnectionPool:
        return ConnectionPool(
            conninfo=self.conninfo,
            min_size=self.min_size,
            max_size=self.max_size,
            timeout=self.timeout,
            kwargs={"row_factory": dict_row},
            open=False,
        )

    def open(self, max_retries: int = 3, retry_delay: float = 2.0) -> None:
        """
        Open the pool, waiting until ``min_size`` connections are up.

        Each attempt uses a fresh pool; a failed one is closed before the
        next attempt.

        Raises:
            OperationalError: If the last attempt fails
        """
        if self.is_open:
            return

        last_error: OperationalError | None = None
        for attempt in range(1, max_retries + 1):
            pool = self._new_pool()
            try:
                pool.open(wait=True, timeout=self.timeout)
            except OperationalError as e:
                pool.close()
                last_error = e
                logger.warning(
                    f"Database connection attempt {attempt}/{max_retries} failed: {e}",
                    extra={"attempt": attempt},
                )
                if attempt < max_retries:
                    time.sleep(retry_delay)
                continue

            self._pool = pool
            logger.info("Database connection pool opened", extra={"max_size": self.max_size})
            return

        raise OperationalError(
            f"Failed to connect to database after {max_retries} attempts: {last_error}"
        ) from last_error

    def close(self) -> None:
        if self._pool is not None:
            self._pool.close()
            self._pool = None

    @contextmanager
    def get_connection(self) -> Iterator[psycopg.Connection]:
        """
        Borrow a connection; it goes back to the pool on exit.

        Raises:
            RuntimeError: If the pool has not been opened
        """
        if self._pool is None:
            raise RuntimeError("Connection pool is not open. Call open() first.")

        with self._pool.connection() as conn:
            yield conn

    def execute_query(self, query, params: tuple | None = None) -> list[dict]:
        """Run a SELECT (string or psycopg.sql composable) and return all rows."""
        with self.get_connection() as conn:
            return conn.execute(query, params).fetchall()

    def execute_batch(self, command, params_list: list[tuple]) -> int:
        """
        Run ``command`` once per parameter tuple inside one transaction.

        Either every row is written or, on error, none is.

        Returns:
            Number of parameter tuples executed
        """
        with self.get_connection() as conn:
            with conn.transaction():
                with conn.cursor() as cur:
                    cur.executemany(command, params_list)
        return len(params_list)

    def __enter__(self):
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
