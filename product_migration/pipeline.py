"""
Migration pipeline orchestration.

Product flow: fetch (Product, ProductSticker, ProductSpecification)
-> assemble -> upsert. Table flow: fetch one table -> insert. Blob flow:
list -> presign -> download -> upload.
"""

import asyncio
from typing import Callable

from product_migration.core.config import TableLayout
from product_migration.core.errors import SinkError, SinkWriteError, SourceReadError
from product_migration.core.models import MigrationResult, Record, TableSchema
from product_migration.observability.logger import get_logger, log_operation
from product_migration.observability.metrics import operation_duration_seconds, track_duration
from product_migration.readers import TableFetcher
from product_migration.storage.blob_migrator import BlobMigrator
from product_migration.transform import RecordAssembler, TemplateNormalizer
from product_migration.warehouse.upsert import RelationalSink

logger = get_logger(__name__)

SinkWrite = Callable[[str, list[Record]], SinkError | None]


class MigrationPipeline:
    """
    Runs the one-shot migrations against explicitly supplied clients.

    The product and table migrations log and swallow every error and
    report the outcome in a MigrationResult. The blob migration has no
    error handling: a failed object ends the run with its exception.
    """

    def __init__(
        self,
        fetcher: TableFetcher | None = None,
        sink: RelationalSink | None = None,
        layout: TableLayout | None = None,
        blob_migrator: BlobMigrator | None = None,
    ):
        """
        Initialize migration pipeline.

        Args:
            fetcher: Key-value store fetcher (needed by product/table runs)
            sink: Relational backend sink (needed by product/table runs)
            layout: Source table layout (needed by product/table runs)
            blob_migrator: Object copier (needed by blob runs)
        """
        self.fetcher = fetcher
        self.sink = sink
        self.layout = layout
        self.blob_migrator = blob_migrator

    @property
    def product_table(self) -> str:
        """Relational table the assembled products are upserted into."""
        return self.layout.by_type("product").name.lower()

    async def fetch_table(self, schema: TableSchema) -> list[Record]:
        """
        Fetch a whole table.

        Raises:
            SourceReadError: If the store call failed
        """
        records = await self.fetcher.fetch(schema)
        if records is None:
            raise SourceReadError(schema.table_name)
        return records

    async def assemble_products(self) -> tuple[int, list[Record]]:
        """
        Fetch the three product tables and build the merged records.

        Returns:
            Tuple of (rows read across the three tables, assembled products)
        """
        product_schema = self.layout.by_type("product")
        sticker_schema = self.layout.by_type("sticker")
        specification_schema = self.layout.by_type("specification")

        products, stickers, specifications = await asyncio.gather(
            self.fetch_table(product_schema),
            self.fetch_table(sticker_schema),
            self.fetch_table(specification_schema),
        )
        logger.info(
            f"Fetched {len(products)} products, {len(stickers)} stickers, "
            f"{len(specifications)} specifications"
        )

        assembler = RecordAssembler(TemplateNormalizer(self.fetcher, specification_schema))
        with track_duration(operation_duration_seconds, operation="assemble"):
            assembled = await assembler.assemble(products, stickers, specifications)

        return len(products) + len(stickers) + len(specifications), assembled

    def migrate_products(self) -> MigrationResult:
        """
        Migrate products with their stickers and specifications.

        Returns:
            MigrationResult; store and backend errors are logged, not raised

        Raises:
            RuntimeError: If the pipeline was built without fetcher, sink or layout
        """
        self._require_relational()
        target = self.product_table
        result = MigrationResult(pipeline="products", target=target)

        try:
            with log_operation("Product migration", logger=logger, target=target):
                with track_duration(operation_duration_seconds, operation="migrate_products"):
                    records_read, assembled = asyncio.run(self.assemble_products())
                    result.records_read = records_read
                    self._write(self.sink.upsert, target, assembled)
                    result.records_written = len(assembled)
        except Exception as e:
            result.succeeded = False
            result.error = str(e)
            logger.error(f"Unable to migrate products: {e}", extra={"target": target})

        return result

    def migrate_table(self, name: str) -> MigrationResult:
        """
        Copy one table as-is into the relational table of the same name.

        Args:
            name: Logical table name from the layout

        Returns:
            MigrationResult; store and backend errors are logged, not raised

        Raises:
            RuntimeError: If the pipeline was built without fetcher, sink or layout
        """
        self._require_relational()
        result = MigrationResult(pipeline="table", target=name)

        try:
            schema = self.layout.get(name)
            with log_operation("Table migration", logger=logger, target=name):
                with track_duration(operation_duration_seconds, operation="migrate_table"):
                    records = asyncio.run(self.fetch_table(schema))
                    result.records_read = len(records)
                    self._write(self.sink.insert, schema.name, records)
                    result.records_written = len(records)
        except Exception as e:
            result.succeeded = False
            result.error = str(e)
            logger.error(f"Unable to migrate table {name}: {e}", extra={"target": name})

        return result

    def migrate_blobs(self) -> MigrationResult:
        """
        Copy every source object to the destination store.

        Returns:
            MigrationResult for a completed run

        Raises:
            Exception: Whatever the failing download or upload raised
        """
        if self.blob_migrator is None:
            raise RuntimeError("Blob migration requires a BlobMigrator")

        migrator = self.blob_migrator
        with log_operation("Blob migration", logger=logger, target=migrator.destination_bucket):
            with track_duration(operation_duration_seconds, operation="migrate_blobs"):
                links = migrator.list_sources()
                copied = migrator.migrate(links)

        return MigrationResult(
            pipeline="blobs",
            target=migrator.destination_bucket,
            records_read=len(links),
            records_written=copied,
        )

    def _require_relational(self) -> None:
        missing = [
            name
            for name, component in (("fetcher", self.fetcher), ("sink", self.sink), ("layout", self.layout))
            if component is None
        ]
        if missing:
            raise RuntimeError(f"Relational migrations require: {', '.join(missing)}")

    def _write(self, write: SinkWrite, table: str, records: list[Record]) -> None:
        """
        Write a batch, turning backend errors and crashes into SinkWriteError.
        """
        try:
            error = write(table, records)
        except Exception as e:
            logger.error(f"Error uploading to {table}: {e}", extra={"table": table}, exc_info=True)
            raise SinkWriteError(table, str(e)) from e

        if error is not None:
            raise SinkWriteError(table, str(error))
