"""
Core data models for the product migration.

All models use Pydantic for runtime validation at the store boundary.
"""

from .migration_result import MigrationResult
from .records import (
    ProductRecord,
    Record,
    SourceRecord,
    SpecificationRecord,
    StickerRecord,
)
from .table_schema import DEFAULT_DROP_FIELDS, TableSchema

__all__ = [
    "Record",
    "SourceRecord",
    "ProductRecord",
    "StickerRecord",
    "SpecificationRecord",
    "TableSchema",
    "DEFAULT_DROP_FIELDS",
    "MigrationResult",
]
