"""
TableSchema model describing how one source table is read and reshaped.
"""

from typing import Literal

from pydantic import BaseModel, Field

from .records import ProductRecord, SourceRecord, SpecificationRecord, StickerRecord

# Fields the source store adds to every row that have no column downstream
DEFAULT_DROP_FIELDS = ("__typename", "owner", "stickerSize")

RECORD_MODELS: dict[str, type[SourceRecord]] = {
    "generic": SourceRecord,
    "product": ProductRecord,
    "sticker": StickerRecord,
    "specification": SpecificationRecord,
}


class TableSchema(BaseModel):
    """
    Read/reshape settings for one key-value table.

    Attributes:
        name: Logical table name (also the relational table name)
        table_name: Physical table name in the key-value store
        record_type: Which record model validates the rows
        drop_fields: Extra source field names removed before renaming,
            on top of DEFAULT_DROP_FIELDS
        date_fields: Renamed fields whose string values are parsed as dates
    """

    name: str = Field(..., min_length=1)
    table_name: str = Field(..., min_length=1)
    record_type: Literal["generic", "product", "sticker", "specification"] = "generic"
    drop_fields: list[str] = Field(default_factory=list)
    date_fields: list[str] = Field(default_factory=list)

    class Config:
        json_schema_extra = {
            "example": {
                "name": "Product",
                "table_name": "Product-4i6eliuey5bphp7uom3vuz4bh4-dev",
                "record_type": "product",
                "drop_fields": ["_lastChangedAt", "_version"],
                "date_fields": ["created_at", "updated_at"],
            }
        }

    @property
    def record_model(self) -> type[SourceRecord]:
        """Record model class for this table's rows."""
        return RECORD_MODELS[self.record_type]

    @property
    def removed_fields(self) -> frozenset[str]:
        """Every source field dropped from this table's rows."""
        return frozenset(DEFAULT_DROP_FIELDS).union(self.drop_fields)
