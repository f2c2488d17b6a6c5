"""
Per-field value coercion for renamed records.
"""

from .coercion import DateCoercer

__all__ = [
    "DateCoercer",
]
