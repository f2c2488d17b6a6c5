"""
Joins product rows with their sticker and specification rows.
"""

import asyncio
from typing import Any, Iterable

from product_migration.core.models import Record
from product_migration.observability.logger import get_logger

from .template_normalizer import TemplateNormalizer

logger = get_logger(__name__)


def find_sticker(product_id: Any, stickers: Iterable[Record]) -> Record | None:
    """
    First sticker whose id equals the product id.

    Later stickers sharing the id are ignored.
    """
    matches = [sticker for sticker in stickers if sticker.get("id") == product_id]
    if len(matches) > 1:
        logger.debug(
            f"{len(matches)} stickers share id {product_id}, using the first",
            extra={"product_id": product_id},
        )
    return matches[0] if matches else None


def build_specification_map(product_id: Any, specifications: Iterable[Record]) -> dict[str, str]:
    """
    Fold a product's specification rows into a key -> value mapping.

    Keys and values are stringified and trimmed; rows are applied in
    fetch order, so a repeated key keeps the last row's value.
    """
    mapping: dict[str, str] = {}
    for spec in specifications:
        if spec.get("product_id") != product_id:
            continue
        mapping[str(spec.get("key")).strip()] = str(spec.get("value")).strip()
    return mapping


class RecordAssembler:
    """
    Builds the product records written to the relational backend.

    Each product gains:
    - template_json: its sticker's template, normalized
    - template_html: its sticker's raw HTML (None without a sticker)
    - product_specification: its specification mapping
    """

    def __init__(self, normalizer: TemplateNormalizer):
        """
        Initialize record assembler.

        Args:
            normalizer: Normalizer for sticker template JSON
        """
        self.normalizer = normalizer

    async def assemble(
        self,
        products: list[Record],
        stickers: list[Record],
        specifications: list[Record],
    ) -> list[Record]:
        """
        Assemble every product concurrently.

        Args:
            products: Product rows
            stickers: Sticker rows
            specifications: Specification rows

        Returns:
            Assembled records in product order

        Raises:
            Exception: Any failure assembling one product aborts the batch
        """
        return list(
            await asyncio.gather(
                *(self.assemble_one(product, stickers, specifications) for product in products)
            )
        )

    async def assemble_one(
        self,
        product: Record,
        stickers: list[Record],
        specifications: list[Record],
    ) -> Record:
        """Assemble a single product record."""
        product_id = product.get("id")
        sticker = find_sticker(product_id, stickers) or {}

        return {
            **product,
            "template_json": await self.normalizer.normalize(sticker.get("template_json")),
            "template_html": sticker.get("template_html"),
            "product_specification": build_specification_map(product_id, specifications),
        }
