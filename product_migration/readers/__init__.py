"""
Key-value store readers.
"""

from .table_fetcher import TableFetcher

__all__ = ["TableFetcher"]
