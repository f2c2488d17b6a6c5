"""
Batch insert and upsert into the relational backend.

A whole batch is written in one transaction; the backend either accepts
all of it or reports one error for the call. Upserts use PostgreSQL's
INSERT ... ON CONFLICT DO UPDATE keyed on the table's unique column.
"""

import json
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Iterable

import psycopg
from psycopg import sql
from psycopg.types.json import Jsonb

from product_migration.core.errors import SinkError
from product_migration.core.models import Record
from product_migration.observability.logger import get_logger
from product_migration.observability.metrics import (
    increment_counter,
    records_written_total,
    sink_failures_total,
)

from .connection import DatabaseConnectionPool

logger = get_logger(__name__)


def _json_default(value: Any) -> Any:
    """Serialize the non-JSON types DynamoDB rows carry."""
    if isinstance(value, Decimal):
        return int(value) if value == value.to_integral_value() else float(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, (set, frozenset)):
        return sorted(value, key=str)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def _dumps(value: Any) -> str:
    return json.dumps(value, default=_json_default)


def adapt_value(value: Any) -> Any:
    """
    Adapt one record value for a query parameter.

    Mappings and collections are sent as jsonb; scalars are left to
    psycopg's own adapters.
    """
    if isinstance(value, (dict, list, tuple, set, frozenset)):
        if isinstance(value, (set, frozenset)):
            value = sorted(value, key=str)
        return Jsonb(value, dumps=_dumps)
    return value


def collect_columns(records: Iterable[Record]) -> list[str]:
    """Union of the records' keys, in first-seen order."""
    columns: dict[str, None] = {}
    for record in records:
        for key in record:
            columns.setdefault(key, None)
    return list(columns)


def _table_identifier(table: str) -> sql.Identifier:
    # "schema.table" addresses a table outside the search path
    return sql.Identifier(*table.split("."))


def build_insert_statement(
    table: str,
    columns: list[str],
    on_conflict: str | None = None,
) -> sql.Composed:
    """
    Build an INSERT (or upsert) statement for the given columns.

    Args:
        table: Target table, optionally schema-qualified
        columns: Column names, in parameter order
        on_conflict: Comma-separated conflict target; None for a plain insert

    Returns:
        Composed SQL statement with one placeholder per column
    """
    query = sql.SQL("INSERT INTO {table} ({columns}) VALUES ({values})").format(
        table=_table_identifier(table),
        columns=sql.SQL(", ").join(map(sql.Identifier, columns)),
        values=sql.SQL(", ").join(sql.Placeholder() * len(columns)),
    )

    if on_conflict is None:
        return query

    conflict_columns = [column.strip() for column in on_conflict.split(",") if column.strip()]
    update_columns = [column for column in columns if column not in conflict_columns]
    conflict_target = sql.SQL(", ").join(map(sql.Identifier, conflict_columns))

    if not update_columns:
        return query + sql.SQL(" ON CONFLICT ({target}) DO NOTHING").format(target=conflict_target)

    assignments = sql.SQL(", ").join(
        sql.SQL("{column} = EXCLUDED.{column}").format(column=sql.Identifier(column))
        for column in update_columns
    )
    return query + sql.SQL(" ON CONFLICT ({target}) DO UPDATE SET {assignments}").format(
        target=conflict_target,
        assignments=assignments,
    )


class RelationalSink:
    """
    Writes assembled records to the relational backend.

    Backend errors are returned as SinkError values and logged; other
    exceptions (programming errors, a closed pool) propagate.
    """

    def __init__(self, pool: DatabaseConnectionPool):
        """
        Initialize relational sink.

        Args:
            pool: Open database connection pool
        """
        self.pool = pool

    def insert(self, table: str, records: list[Record]) -> SinkError | None:
        """
        Insert a batch of records.

        Args:
            table: Target table
            records: Records to insert

        Returns:
            None on success, SinkError if the backend rejected the batch
        """
        return self._write("insert", table, records, on_conflict=None)

    def upsert(self, table: str, records: list[Record], on_conflict: str = "id") -> SinkError | None:
        """
        Insert-or-update a batch of records.

        Args:
            table: Target table
            records: Records to upsert
            on_conflict: Unique column(s) identifying an existing row

        Returns:
            None on success, SinkError if the backend rejected the batch
        """
        return self._write("upsert", table, records, on_conflict=on_conflict)

    def _write(
        self,
        operation: str,
        table: str,
        records: list[Record],
        on_conflict: str | None,
    ) -> SinkError | None:
        if not records:
            logger.info(f"No records to {operation} into {table}")
            return None

        columns = collect_columns(records)
        statement = build_insert_statement(table, columns, on_conflict=on_conflict)
        params = [tuple(adapt_value(record.get(column)) for column in columns) for record in records]

        try:
            self.pool.execute_batch(statement, params)
        except psycopg.Error as e:
            error = SinkError(
                table=table,
                operation=operation,
                message=str(e).strip(),
                code=getattr(e, "sqlstate", None),
            )
            increment_counter(sink_failures_total, table=table, operation=operation)
            logger.error(str(error), extra={"table": table, "operation": operation, "sqlstate": error.code})
            return error

        increment_counter(records_written_total, len(records), table=table, operation=operation)
        logger.info(
            f"Successfully {operation}ed {len(records)} records into {table}",
            extra={"table": table, "operation": operation, "record_count": len(records)},
        )
        return None
