"""
Reads and reshapes rows from DynamoDB tables.

Full scans follow ``LastEvaluatedKey`` until the table is exhausted;
single-id lookups use one key-condition query. Every row has its
internal fields dropped, its keys renamed to snake_case, its opt-in
date fields parsed and its shape validated against the table's model.
"""

from typing import Any

from boto3.dynamodb.conditions import Key
from botocore.exceptions import BotoCoreError, ClientError
from pydantic import ValidationError

from product_migration.core.models import Record, TableSchema
from product_migration.core.naming import rename_keys
from product_migration.core.schema import DateCoercer
from product_migration.observability.logger import get_logger
from product_migration.observability.metrics import (
    increment_counter,
    rows_fetched_total,
    rows_rejected_total,
    source_read_failures_total,
)
from product_migration.utils.concurrency import ConcurrencyLimiter

logger = get_logger(__name__)


class TableFetcher:
    """
    Fetches renamed records from the key-value store.

    The DynamoDB resource is created once by the caller and shared by
    every fetch; calls go through the shared limiter.
    """

    def __init__(self, dynamodb: Any, limiter: ConcurrencyLimiter | None = None):
        """
        Initialize table fetcher.

        Args:
            dynamodb: boto3 DynamoDB service resource
            limiter: Limiter bounding concurrent store calls
        """
        self.dynamodb = dynamodb
        self.limiter = limiter or ConcurrencyLimiter()

    async def fetch(self, schema: TableSchema, record_id: str | None = None) -> list[Record] | None:
        """
        Fetch all rows of a table, or the rows with one id.

        Args:
            schema: Table to read
            record_id: Partition key to look up; None scans the whole table

        Returns:
            Renamed records, or None if the store call failed. A failure
            never yields partial results.
        """
        mode = "query" if record_id else "scan"
        table = self.dynamodb.Table(schema.table_name)

        try:
            if record_id:
                items = await self._query(table, record_id)
            else:
                items = await self._scan(table)
        except (ClientError, BotoCoreError) as e:
            increment_counter(source_read_failures_total, table=schema.name, mode=mode)
            logger.error(
                f"Unable to {mode} table {schema.table_name}: {e}",
                extra={"table": schema.table_name, "record_id": record_id, "error": _error_details(e)},
            )
            return None

        increment_counter(rows_fetched_total, len(items), table=schema.name, mode=mode)
        return self.parse_items(schema, items)

    async def _scan(self, table: Any) -> list[dict[str, Any]]:
        items: list[dict[str, Any]] = []
        params: dict[str, Any] = {}

        while True:
            response = await self.limiter.run(table.scan, **params)
            items.extend(response.get("Items", []))

            last_key = response.get("LastEvaluatedKey")
            if last_key is None:
                break
            params["ExclusiveStartKey"] = last_key

        return items

    async def _query(self, table: Any, record_id: str) -> list[dict[str, Any]]:
        response = await self.limiter.run(
            table.query,
            KeyConditionExpression=Key("id").eq(record_id),
        )
        return response.get("Items", [])

    def parse_items(self, schema: TableSchema, items: list[dict[str, Any]]) -> list[Record]:
        """
        Reshape raw rows into validated, renamed records.

        Rows failing validation are logged and left out.

        Args:
            schema: Table the rows came from
            items: Raw rows as returned by the store

        Returns:
            Records in store order
        """
        coercer = DateCoercer(schema.date_fields)
        drop_fields = schema.removed_fields
        records = []

        for item in items:
            kept = {key: value for key, value in item.items() if key not in drop_fields}
            record = coercer.coerce(rename_keys(kept))

            try:
                validated = schema.record_model.model_validate(record)
            except ValidationError as e:
                increment_counter(rows_rejected_total, table=schema.name)
                logger.warning(
                    f"Skipping malformed row in {schema.name}: {e}",
                    extra={"table": schema.name, "row_id": record.get("id")},
                )
                continue

            records.append(validated.to_record())

        return records


def _error_details(error: Exception) -> dict[str, Any]:
    """Code and message of a botocore error, for structured logs."""
    if isinstance(error, ClientError):
        details = error.response.get("Error", {})
        return {"code": details.get("Code"), "message": details.get("Message")}
    return {"code": type(error).__name__, "message": str(error)}
