"""
DateCoercer - parses opt-in date fields of a renamed record.

Only the fields a table schema lists are touched, so ID-like or numeric
strings that happen to parse as dates stay strings.
"""

from datetime import date, datetime
from typing import Any, Iterable

from product_migration.observability.logger import get_logger

logger = get_logger(__name__)


class DateCoercer:
    """
    Coerces ISO-8601 strings in selected fields to date/datetime values.

    - "2023-01-05" -> date(2023, 1, 5)
    - "2023-01-05T10:00:00.000Z" -> timezone-aware datetime
    - anything unparseable is left unchanged
    """

    def __init__(self, date_fields: Iterable[str]):
        """
        Initialize coercer.

        Args:
            date_fields: Renamed field names to coerce
        """
        self.date_fields = frozenset(date_fields)

    def coerce(self, record: dict[str, Any]) -> dict[str, Any]:
        """
        Return a copy of the record with its date fields parsed.

        Args:
            record: Renamed record

        Returns:
            New record; fields outside ``date_fields`` are untouched
        """
        if not self.date_fields:
            return dict(record)

        coerced = {}
        for field_name, value in record.items():
            if field_name in self.date_fields and isinstance(value, str):
                value = self._coerce_value(field_name, value)
            coerced[field_name] = value
        return coerced

    def _coerce_value(self, field_name: str, value: str) -> Any:
        text = value.strip()
        try:
            if len(text) == 10:
                return date.fromisoformat(text)
            if text.endswith(("Z", "z")):
                text = text[:-1] + "+00:00"
            return datetime.fromisoformat(text)
        except ValueError:
            logger.debug(f"Field {field_name} is not an ISO date, leaving as string: {value!r}")
            return value
