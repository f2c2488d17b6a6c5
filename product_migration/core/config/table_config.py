"""
Table layout configuration.

Loads the source tables to migrate from a YAML file and provides the
built-in Product/ProductSticker/ProductSpecification layout.
"""

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ValidationError

from product_migration.core.models import TableSchema

PRODUCT_TABLE = "Product"
STICKER_TABLE = "ProductSticker"
SPECIFICATION_TABLE = "ProductSpecification"

# Amplify stamps every row with these
DEFAULT_DATE_FIELDS = ["created_at", "updated_at"]

DEFAULT_LAYOUT = {
    "tables": {
        PRODUCT_TABLE: {"record_type": "product", "date_fields": DEFAULT_DATE_FIELDS},
        STICKER_TABLE: {"record_type": "sticker", "date_fields": DEFAULT_DATE_FIELDS},
        SPECIFICATION_TABLE: {"record_type": "specification", "date_fields": DEFAULT_DATE_FIELDS},
    }
}


class TableLayout(BaseModel):
    """
    The set of source tables known to the migration.

    Attributes:
        tables: Logical table name -> schema, in configuration order
    """

    tables: dict[str, TableSchema]

    def get(self, name: str) -> TableSchema:
        """
        Look a table up by logical name.

        Raises:
            KeyError: If the table is not configured
        """
        try:
            return self.tables[name]
        except KeyError:
            raise KeyError(
                f"Table '{name}' is not configured. Known tables: {', '.join(self.tables)}"
            ) from None

    def by_type(self, record_type: str) -> TableSchema:
        """
        First configured table with the given record type.

        Raises:
            KeyError: If no table has that record type
        """
        for schema in self.tables.values():
            if schema.record_type == record_type:
                return schema
        raise KeyError(f"No table with record_type '{record_type}' is configured")


class TableConfigLoader:
    """
    Loads the table layout from a YAML configuration file.

    Expected YAML format:
    ```yaml
    tables:
      Product:
        record_type: product
        date_fields: [created_at, updated_at]

      ProductSticker:
        record_type: sticker

      ProductSpecification:
        record_type: specification
        # physical name, when it does not follow <name>-<suffix>
        table_name: ProductSpecification-abc123-dev
        # dropped in addition to __typename, owner and stickerSize
        drop_fields: [_lastChangedAt, _version]
    ```
    """

    def __init__(self, config_path: str | Path):
        """
        Initialize the table config loader.

        Args:
            config_path: Path to the YAML configuration file
        """
        self.config_path = Path(config_path)
        if not self.config_path.exists():
            raise FileNotFoundError(f"Table configuration file not found: {config_path}")

    def load_layout(self, table_suffix: str) -> TableLayout:
        """
        Load and parse the table layout from the YAML file.

        Args:
            table_suffix: Environment suffix for physical table names

        Returns:
            TableLayout

        Raises:
            ValueError: If YAML is invalid or a table entry is malformed
        """
        with open(self.config_path) as f:
            config = yaml.safe_load(f)

        if not config or "tables" not in config:
            raise ValueError("Configuration file must contain 'tables' section")

        return build_layout(config, table_suffix)


def build_layout(config: dict[str, Any], table_suffix: str) -> TableLayout:
    """
    Build a TableLayout from a parsed configuration mapping.

    Args:
        config: Mapping with a ``tables`` section
        table_suffix: Environment suffix for physical table names

    Returns:
        TableLayout

    Raises:
        ValueError: If a table entry is malformed
    """
    tables = {}
    for name, table_def in (config.get("tables") or {}).items():
        table_def = table_def or {}
        if not isinstance(table_def, dict):
            raise ValueError(f"Definition for table '{name}' must be a mapping")

        table_def = dict(table_def)
        table_def.setdefault("table_name", f"{name}-{table_suffix}")
        try:
            tables[name] = TableSchema(name=name, **table_def)
        except ValidationError as e:
            raise ValueError(f"Invalid definition for table '{name}': {e}") from e

    if not tables:
        raise ValueError("Configuration must define at least one table")

    return TableLayout(tables=tables)


def load_table_layout(config_path: str | Path | None, table_suffix: str) -> TableLayout:
    """
    Load the table layout from ``config_path``, or the built-in layout.

    Args:
        config_path: YAML file, or None for the built-in layout
        table_suffix: Environment suffix for physical table names

    Returns:
        TableLayout
    """
    if config_path is None:
        return build_layout(DEFAULT_LAYOUT, table_suffix)
    return TableConfigLoader(config_path).load_layout(table_suffix)
