"""
Settings and table layout configuration.
"""

from .settings import MigrationSettings, load_settings
from .table_config import (
    PRODUCT_TABLE,
    SPECIFICATION_TABLE,
    STICKER_TABLE,
    TableConfigLoader,
    TableLayout,
    load_table_layout,
)

__all__ = [
    "MigrationSettings",
    "load_settings",
    "TableConfigLoader",
    "TableLayout",
    "load_table_layout",
    "PRODUCT_TABLE",
    "STICKER_TABLE",
    "SPECIFICATION_TABLE",
]
