"""
Record transformations: template normalization and the product join.
"""

from .record_assembler import RecordAssembler, build_specification_map, find_sticker
from .template_normalizer import TemplateNormalizer

__all__ = [
    "RecordAssembler",
    "TemplateNormalizer",
    "build_specification_map",
    "find_sticker",
]
