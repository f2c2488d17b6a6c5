"""
Runtime settings for the migration, read from the environment.

A ``.env`` file is loaded first (python-dotenv) so local runs can keep
credentials out of the shell. Values are taken as given; connection
problems surface when the clients are first used.
"""

import os
from pathlib import Path

from dotenv import find_dotenv, load_dotenv
from pydantic import BaseModel, Field

DEFAULT_TABLE_SUFFIX = "4i6eliuey5bphp7uom3vuz4bh4-dev"
DEFAULT_SOURCE_BUCKET = "powertoolsfcd7fb1fd52141e8aa833e56d134581c111239-dev"
DEFAULT_DESTINATION_BUCKET = "images"


class MigrationSettings(BaseModel):
    """
    Connection settings for the three external stores.

    Attributes:
        ddb_region: AWS region of the key-value store and source bucket
        ddb_access_key: AWS access key id
        ddb_secret_key: AWS secret access key
        table_suffix: Environment suffix appended to logical table names
        source_bucket: Bucket holding the objects to migrate
        source_prefix: Key prefix stripped from destination object names
        dest_storage_endpoint: S3-compatible endpoint of the destination store
        dest_storage_region: Region of the destination store
        dest_storage_access_key: Destination store access key
        dest_storage_secret_key: Destination store secret key
        dest_storage_bucket: Destination bucket
        database_uri: PostgreSQL connection URI of the relational backend
        database_password: Password, when not embedded in the URI
        max_concurrency: Cap on concurrent outbound calls
    """

    ddb_region: str | None = None
    ddb_access_key: str | None = None
    ddb_secret_key: str | None = None
    table_suffix: str = DEFAULT_TABLE_SUFFIX

    source_bucket: str = DEFAULT_SOURCE_BUCKET
    source_prefix: str = "public/"

    dest_storage_endpoint: str | None = None
    dest_storage_region: str | None = None
    dest_storage_access_key: str | None = None
    dest_storage_secret_key: str | None = None
    dest_storage_bucket: str = DEFAULT_DESTINATION_BUCKET

    database_uri: str | None = None
    database_password: str | None = None

    max_concurrency: int = Field(16, ge=1)


# Environment variable -> settings field
ENV_VARS = {
    "DDB_REGION": "ddb_region",
    "DDB_ACCESS_KEY": "ddb_access_key",
    "DDB_SECRET_KEY": "ddb_secret_key",
    "DDB_TABLE_SUFFIX": "table_suffix",
    "S3_SOURCE_BUCKET": "source_bucket",
    "S3_SOURCE_PREFIX": "source_prefix",
    "DEST_STORAGE_ENDPOINT": "dest_storage_endpoint",
    "DEST_STORAGE_REGION": "dest_storage_region",
    "DEST_STORAGE_ACCESS_KEY": "dest_storage_access_key",
    "DEST_STORAGE_SECRET_KEY": "dest_storage_secret_key",
    "DEST_STORAGE_BUCKET": "dest_storage_bucket",
    "DATABASE_URI": "database_uri",
    "DATABASE_PASSWORD": "database_password",
    "MAX_CONCURRENCY": "max_concurrency",
}


def load_settings(env_file: str | Path | None = None) -> MigrationSettings:
    """
    Build settings from environment variables.

    Args:
        env_file: Optional .env file (defaults to ./.env when present)

    Returns:
        MigrationSettings instance
    """
    if env_file is not None:
        load_dotenv(env_file, override=True)
    else:
        load_dotenv(find_dotenv(usecwd=True))

    values = {
        field_name: os.environ[env_var]
        for env_var, field_name in ENV_VARS.items()
        if os.environ.get(env_var)
    }
    return MigrationSettings(**values)
