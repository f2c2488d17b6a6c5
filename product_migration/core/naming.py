"""
Field-name conversion from the source store's camelCase convention
to the relational backend's snake_case columns.
"""

import re
from typing import Any

_BOUNDARY = re.compile(r"([a-z])([A-Z])")


def camel_to_snake(name: Any) -> Any:
    """
    Convert a camelCase field name to snake_case.

    An underscore is inserted at every lowercase->uppercase boundary and
    the result is lowercased. Runs of capitals are not split further, so
    ``templateJSON`` becomes ``template_json``.

    Args:
        name: Field name

    Returns:
        The converted name, or the input unchanged when it is not a string

    Examples:
        >>> camel_to_snake("productId")
        'product_id'
        >>> camel_to_snake("templateJSON")
        'template_json'
        >>> camel_to_snake(42)
        42
    """
    if not isinstance(name, str):
        return name

    return _BOUNDARY.sub(r"\1_\2", name).lower()


def rename_keys(record: dict[str, Any]) -> dict[str, Any]:
    """Rename every key of a record, keeping values and key order."""
    return {camel_to_snake(key): value for key, value in record.items()}
