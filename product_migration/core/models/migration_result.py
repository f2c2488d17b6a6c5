"""
MigrationResult model summarising one pipeline run (ephemeral).
"""

from datetime import datetime

from pydantic import BaseModel, Field


class MigrationResult(BaseModel):
    """
    Outcome of a migration run, reported by the pipeline and the CLI.

    Attributes:
        pipeline: Which pipeline ran ("products", "table", "blobs")
        target: Relational table or destination bucket written to
        succeeded: False when the run ended on a logged error
        records_read: Rows (or objects) read from the source
        records_written: Rows (or objects) written to the destination
        error: Message of the error that ended the run, if any
        started_at: When the run started
    """

    pipeline: str
    target: str
    succeeded: bool = True
    records_read: int = Field(0, ge=0)
    records_written: int = Field(0, ge=0)
    error: str | None = None
    started_at: datetime = Field(default_factory=datetime.utcnow)

    class Config:
        json_schema_extra = {
            "example": {
                "pipeline": "products",
                "target": "product",
                "succeeded": True,
                "records_read": 120,
                "records_written": 120,
                "error": None,
            }
        }
