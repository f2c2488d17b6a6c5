"""
Normalizes the template JSON embedded in product sticker rows.

Each template entry has its field names converted to snake_case, its
``__typename`` dropped, and its ``specificationId`` reference replaced by
the referenced specification's key.
"""

import asyncio
from typing import Any

from product_migration.core.models import TableSchema
from product_migration.core.naming import camel_to_snake
from product_migration.observability.logger import get_logger
from product_migration.readers import TableFetcher

logger = get_logger(__name__)

TYPENAME_FIELD = "__typename"
SPECIFICATION_REFERENCE_FIELD = "specificationId"
RESOLVED_KEY_FIELD = "key"


class TemplateNormalizer:
    """
    Renames and resolves the fields of a sticker's template JSON.

    Entries and their fields are resolved concurrently; output keeps the
    input's entry and field order. Values are passed through as-is.
    """

    def __init__(self, fetcher: TableFetcher, specification_schema: TableSchema):
        """
        Initialize template normalizer.

        Args:
            fetcher: Fetcher used to look specifications up by id
            specification_schema: Table holding the specification rows
        """
        self.fetcher = fetcher
        self.specification_schema = specification_schema

    async def normalize(self, template_json: dict[str, Any] | None) -> dict[str, Any] | None:
        """
        Normalize a template JSON structure.

        Args:
            template_json: Mapping of entry name -> entry fields

        Returns:
            New mapping with the same entry names, or the input itself
            when it is empty or None
        """
        if not template_json:
            return template_json

        names = list(template_json)
        entries = await asyncio.gather(
            *(self._normalize_entry(template_json[name]) for name in names)
        )
        return dict(zip(names, entries))

    async def _normalize_entry(self, entry: Any) -> Any:
        if not isinstance(entry, dict):
            return entry

        fields = await asyncio.gather(
            *(self._normalize_field(key, value) for key, value in entry.items())
        )
        return dict(field for field in fields if field is not None)

    async def _normalize_field(self, key: Any, value: Any) -> tuple[Any, Any] | None:
        """Return the (key, value) to keep, or None to drop the field."""
        if key == TYPENAME_FIELD:
            return None

        if key == SPECIFICATION_REFERENCE_FIELD:
            spec_key = await self.resolve_specification_key(value)
            if spec_key is None:
                return None
            return RESOLVED_KEY_FIELD, spec_key

        if value is None:
            return None

        return camel_to_snake(key), value

    async def resolve_specification_key(self, specification_id: Any) -> str | None:
        """
        Look up a specification by id and return its trimmed key.

        Args:
            specification_id: Id of the specification row

        Returns:
            The trimmed key, or None when the lookup failed or found nothing
        """
        if not specification_id:
            logger.warning("Template entry has an empty specificationId, dropping it")
            return None

        try:
            items = await self.fetcher.fetch(self.specification_schema, str(specification_id))
        except Exception as e:
            logger.error(
                f"Error fetching data for specificationId: {specification_id}: {e}",
                extra={"specification_id": specification_id},
                exc_info=True,
            )
            return None

        if not items:
            logger.error(
                f"Error fetching data for specificationId: {specification_id}",
                extra={"specification_id": specification_id, "found": items is not None},
            )
            return None

        spec_key = items[0].get("key")
        if spec_key is None:
            logger.warning(
                f"Specification {specification_id} has no key, dropping reference",
                extra={"specification_id": specification_id},
            )
            return None

        return str(spec_key).strip()
