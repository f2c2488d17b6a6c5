"""
Exception types raised by the migration pipelines.
"""

from dataclasses import dataclass


class MigrationError(Exception):
    """Base class for migration failures."""


class SourceReadError(MigrationError):
    """Raised when a table could not be read from the key-value store."""

    def __init__(self, table: str):
        self.table = table
        super().__init__(f"Unable to scan or query table {table}")


class SinkWriteError(MigrationError):
    """Raised when a batch write to the relational backend blew up."""

    def __init__(self, table: str, message: str):
        self.table = table
        self.message = message
        super().__init__(f"Error writing to {table}: {message}")


@dataclass(frozen=True)
class SinkError:
    """
    Error reported by the relational backend for a whole batch.

    Returned (not raised) by the sink so callers can decide whether a
    rejected batch ends the run.
    """

    table: str
    operation: str
    message: str
    code: str | None = None

    def __str__(self) -> str:
        code = f" [{self.code}]" if self.code else ""
        return f"{self.operation} into {self.table} failed{code}: {self.message}"
