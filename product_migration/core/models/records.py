"""
Record models for rows read from the key-value store (ephemeral).

Rows arrive as loosely shaped mappings. Each table has a tagged model
naming the fields the migration relies on; every other field is kept
as-is so it reaches the relational backend untouched.
"""

import json
from typing import Any

from pydantic import BaseModel, Field, field_validator

# One row after renaming, as handed between pipeline stages
Record = dict[str, Any]


class SourceRecord(BaseModel):
    """
    Base model for a renamed source row.

    Attributes:
        id: Partition key of the row
    """

    id: str = Field(..., min_length=1)

    class Config:
        extra = "allow"

    def to_record(self) -> Record:
        """Return the row as a plain mapping, extra fields included."""
        return self.model_dump()


class ProductRecord(SourceRecord):
    """
    A product row (the primary table of the join).

    After assembly the record gains ``template_json``, ``template_html``
    and ``product_specification``.
    """

    class Config:
        extra = "allow"
        json_schema_extra = {
            "example": {
                "id": "P1",
                "name": "Cordless drill",
                "created_at": "2023-01-05T10:00:00.000Z",
            }
        }


class StickerRecord(SourceRecord):
    """
    A product sticker row; at most one is used per product id.

    Attributes:
        template_html: Raw sticker HTML
        template_json: Mapping of entry name -> entry fields (camelCase)
    """

    template_html: str | None = None
    template_json: dict[str, Any] | None = None

    @field_validator("template_json", mode="before")
    @classmethod
    def parse_json_string(cls, v):
        """AWSJSON attributes may be stored as serialized strings."""
        if isinstance(v, str):
            return json.loads(v) if v.strip() else None
        return v

    class Config:
        extra = "allow"
        json_schema_extra = {
            "example": {
                "id": "P1",
                "template_html": "<div/>",
                "template_json": {
                    "a": {"__typename": "X", "specificationId": "S1", "extraField": "v"}
                },
            }
        }


class SpecificationRecord(SourceRecord):
    """
    A product specification row; many per product id.

    Attributes:
        product_id: Product this specification belongs to
        key: Specification name (may carry surrounding whitespace)
        value: Specification value (may carry surrounding whitespace)
    """

    product_id: str | None = None
    key: Any = None
    value: Any = None

    class Config:
        extra = "allow"
        json_schema_extra = {
            "example": {
                "id": "S1",
                "product_id": "P1",
                "key": " Color ",
                "value": "Red",
            }
        }
