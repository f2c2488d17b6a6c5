"""
Command-line interface for the one-shot migrations.

Usage:
    product-migrate [products]
    product-migrate table --name Product
    product-migrate blobs
"""

import argparse
import sys

from product_migration.clients import (
    create_aws_session,
    create_database_pool,
    create_destination_s3_client,
    create_dynamodb_resource,
    create_source_s3_client,
)
from product_migration.core.config import load_settings, load_table_layout
from product_migration.core.models import MigrationResult
from product_migration.observability.logger import ROOT_LOGGER_NAME, get_logger, setup_logger
from product_migration.observability.metrics import generate_metrics
from product_migration.pipeline import MigrationPipeline
from product_migration.readers import TableFetcher
from product_migration.storage.blob_migrator import BlobMigrator
from product_migration.utils.concurrency import ConcurrencyLimiter
from product_migration.warehouse.upsert import RelationalSink

logger = get_logger(__name__)


def report(result: MigrationResult) -> int:
    """
    Log a run summary.

    Returns:
        Process exit code for the run
    """
    logger.info("=" * 60)
    logger.info(f"MIGRATION {'COMPLETE' if result.succeeded else 'FAILED'}: {result.pipeline}")
    logger.info("=" * 60)
    logger.info(f"Target: {result.target}")
    logger.info(f"Records read: {result.records_read}")
    logger.info(f"Records written: {result.records_written}")
    if result.error:
        logger.info(f"Error: {result.error}")
    logger.info("=" * 60)

    return 0 if result.succeeded else 1


def relational_command(args) -> int:
    """
    Execute the products or table migration.

    Args:
        args: Command-line arguments
    """
    settings = load_settings(args.env_file)
    layout = load_table_layout(args.config, settings.table_suffix)

    logger.info("Initializing database connection...")
    pool = create_database_pool(settings)
    pool.open()

    try:
        fetcher = TableFetcher(
            create_dynamodb_resource(settings),
            ConcurrencyLimiter(settings.max_concurrency),
        )
        pipeline = MigrationPipeline(fetcher=fetcher, sink=RelationalSink(pool), layout=layout)

        if args.command == "table":
            result = pipeline.migrate_table(args.name)
        else:
            result = pipeline.migrate_products()
    finally:
        pool.close()

    return report(result)


def blobs_command(args) -> int:
    """
    Execute the blob migration.

    Args:
        args: Command-line arguments
    """
    settings = load_settings(args.env_file)
    session = create_aws_session(settings)

    migrator = BlobMigrator(
        source_s3=create_source_s3_client(settings, session),
        destination_s3=create_destination_s3_client(settings),
        source_bucket=settings.source_bucket,
        destination_bucket=settings.dest_storage_bucket,
        source_prefix=settings.source_prefix,
        overwrite=not args.no_overwrite,
    )
    pipeline = MigrationPipeline(blob_migrator=migrator)

    return report(pipeline.migrate_blobs())


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog="product-migrate",
        description="Migrate product data and images out of the Amplify stores",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Migrate products with stickers and specifications (default)
  product-migrate products

  # Copy one table as-is
  product-migrate table --name ProductSpecification

  # Copy images to the destination store without replacing existing ones
  product-migrate blobs --no-overwrite

  # Use a custom table layout and .env file
  product-migrate --config config/tables.yaml --env-file .env.prod products
        """
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Path to table layout YAML file (default: built-in layout)"
    )
    parser.add_argument(
        "--env-file",
        default=None,
        help="Path to .env file with connection settings (default: ./.env)"
    )
    parser.add_argument(
        "--log-level",
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Log level (default: LOG_LEVEL env var or INFO)"
    )
    parser.add_argument(
        "--log-format",
        default=None,
        choices=["json", "text"],
        help="Log format (default: LOG_FORMAT env var or json)"
    )
    parser.add_argument(
        "--dump-metrics",
        action="store_true",
        help="Print Prometheus metrics after the run"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    subparsers.add_parser("products", help="Migrate products with stickers and specifications")

    table_parser = subparsers.add_parser("table", help="Copy one table into the relational backend")
    table_parser.add_argument(
        "--name",
        required=True,
        help="Logical table name from the layout"
    )

    blobs_parser = subparsers.add_parser("blobs", help="Copy images to the destination store")
    blobs_parser.add_argument(
        "--no-overwrite",
        action="store_true",
        help="Fail instead of replacing objects that already exist"
    )

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    # Runs the product migration when no command is given
    if not args.command:
        args.command = "products"

    setup_logger(ROOT_LOGGER_NAME, level=args.log_level, format_type=args.log_format)

    try:
        if args.command == "blobs":
            exit_code = blobs_command(args)
        else:
            exit_code = relational_command(args)
    except Exception as e:
        logger.error(f"Migration aborted: {e}", exc_info=True)
        exit_code = 1

    if args.dump_metrics:
        sys.stdout.write(generate_metrics().decode("utf-8"))

    return exit_code


if __name__ == "__main__":
    sys.exit(main())
