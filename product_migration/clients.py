"""
Factories for the external client handles.

Each handle is created once per run and passed into the components
that use it.
"""

from typing import Any

import boto3
from botocore.config import Config

from product_migration.core.config import MigrationSettings
from product_migration.warehouse.connection import DatabaseConnectionPool


def create_aws_session(settings: MigrationSettings) -> boto3.session.Session:
    """
    Create the boto3 session for the key-value store and source bucket.

    Args:
        settings: Runtime settings with region and credentials

    Returns:
        Boto3 session; unset values fall back to the default AWS chain
    """
    return boto3.session.Session(
        aws_access_key_id=settings.ddb_access_key,
        aws_secret_access_key=settings.ddb_secret_key,
        region_name=settings.ddb_region,
    )


def create_dynamodb_resource(settings: MigrationSettings, session: boto3.session.Session | None = None) -> Any:
    """Create the DynamoDB service resource used by the table fetcher."""
    session = session or create_aws_session(settings)
    return session.resource("dynamodb", config=Config(max_pool_connections=settings.max_concurrency))


def create_source_s3_client(settings: MigrationSettings, session: boto3.session.Session | None = None) -> Any:
    """Create the S3 client for the source bucket (listing and presigning)."""
    session = session or create_aws_session(settings)
    return session.client("s3", config=Config(signature_version="s3v4"))


def create_destination_s3_client(settings: MigrationSettings) -> Any:
    """
    Create the S3 client for the destination object store.

    Args:
        settings: Runtime settings; ``dest_storage_endpoint`` points the
            client at any S3-compatible store

    Returns:
        Boto3 S3 client
    """
    session = boto3.session.Session(
        aws_access_key_id=settings.dest_storage_access_key,
        aws_secret_access_key=settings.dest_storage_secret_key,
        region_name=settings.dest_storage_region,
    )
    return session.client(
        "s3",
        endpoint_url=settings.dest_storage_endpoint,
        config=Config(s3={"addressing_style": "path"}),
    )


def create_database_pool(settings: MigrationSettings) -> DatabaseConnectionPool:
    """
    Create (but do not open) the relational backend's connection pool.

    Raises:
        ValueError: If DATABASE_URI is not set
    """
    return DatabaseConnectionPool(
        uri=settings.database_uri,
        password=settings.database_password,
        max_size=min(settings.max_concurrency, 10),
    )
