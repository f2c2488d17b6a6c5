"""
Copies objects from the source S3 bucket to the destination object store.

Objects are read through short-lived presigned URLs and re-uploaded one
at a time. There is no resume state: the first failed download or
upload ends the run, and re-running overwrites what was already copied.
"""

from dataclasses import dataclass
from typing import Any

import requests

from product_migration.observability.logger import get_logger
from product_migration.observability.metrics import (
    blob_bytes_total,
    blobs_migrated_total,
    increment_counter,
)

logger = get_logger(__name__)

# Keys this short are folder markers or the bare prefix itself
MIN_KEY_LENGTH = 15
SIGNED_URL_EXPIRY_SECONDS = 60 * 5
CACHE_CONTROL = "max-age=3600"
DOWNLOAD_TIMEOUT_SECONDS = 60


@dataclass(frozen=True)
class BlobLink:
    """
    A source object ready to be copied.

    Attributes:
        key: Key in the source bucket
        name: Key in the destination bucket (source prefix removed)
        url: Presigned GET URL for the source object
    """

    key: str
    name: str
    url: str


def infer_content_type(name: str) -> str:
    """
    Content type for an object, from the text after the first dot.

    Only image objects are migrated, so the extension is mapped under
    ``image/``; ``jpg`` becomes ``jpeg``.

    Raises:
        ValueError: If the name has no extension
    """
    parts = name.split(".")
    if len(parts) < 2:
        raise ValueError(f"Cannot infer content type of {name!r}: no extension")

    extension = parts[1].lower()
    if extension == "jpg":
        extension = "jpeg"
    return f"image/{extension}"


class BlobMigrator:
    """
    Sequential object copy between two S3-compatible stores.

    Both clients are boto3 S3 clients; the destination one is pointed at
    the target store's S3 endpoint.
    """

    def __init__(
        self,
        source_s3: Any,
        destination_s3: Any,
        source_bucket: str,
        destination_bucket: str,
        source_prefix: str = "public/",
        session: requests.Session | None = None,
        overwrite: bool = True,
    ):
        """
        Initialize blob migrator.

        Args:
            source_s3: boto3 S3 client for the source bucket
            destination_s3: boto3 S3 client for the destination store
            source_bucket: Bucket to list and read
            destination_bucket: Bucket to upload into
            source_prefix: Prefix removed from keys to form destination names
            session: HTTP session used for downloads
            overwrite: Replace objects that already exist at the destination
        """
        self.source_s3 = source_s3
        self.destination_s3 = destination_s3
        self.source_bucket = source_bucket
        self.destination_bucket = destination_bucket
        self.source_prefix = source_prefix
        self.session = session or requests.Session()
        self.overwrite = overwrite

    def list_sources(self) -> list[BlobLink]:
        """
        List the source bucket and presign a read URL for every object.

        Returns:
            Links for every key longer than MIN_KEY_LENGTH, in listing order
        """
        paginator = self.source_s3.get_paginator("list_objects_v2")
        keys = [
            obj["Key"]
            for page in paginator.paginate(Bucket=self.source_bucket)
            for obj in page.get("Contents", [])
            if len(obj["Key"]) > MIN_KEY_LENGTH
        ]

        links = []
        for key in keys:
            url = self.source_s3.generate_presigned_url(
                "get_object",
                Params={"Bucket": self.source_bucket, "Key": key},
                ExpiresIn=SIGNED_URL_EXPIRY_SECONDS,
            )
            links.append(BlobLink(key=key, name=key.replace(self.source_prefix, "", 1), url=url))

        logger.info(
            f"Found {len(links)} objects to migrate in {self.source_bucket}",
            extra={"bucket": self.source_bucket, "object_count": len(links)},
        )
        return links

    def migrate(self, links: list[BlobLink]) -> int:
        """
        Download and re-upload each object, one at a time.

        Args:
            links: Objects to copy

        Returns:
            Number of objects copied

        Raises:
            requests.RequestException: If a download fails
            botocore.exceptions.ClientError: If an upload fails
        """
        total = len(links)
        for count, link in enumerate(links, start=1):
            body = self.download(link)
            content_type = self.upload(link.name, body)

            increment_counter(blobs_migrated_total, content_type=content_type)
            increment_counter(blob_bytes_total, len(body))
            logger.info(
                f"{count}/{total}",
                extra={"object_name": link.name, "content_type": content_type, "size_bytes": len(body)},
            )

        return total

    def download(self, link: BlobLink) -> bytes:
        """Fetch an object's bytes through its presigned URL."""
        response = self.session.get(link.url, timeout=DOWNLOAD_TIMEOUT_SECONDS)
        response.raise_for_status()
        return response.content

    def upload(self, name: str, body: bytes) -> str:
        """
        Upload bytes to the destination bucket.

        Returns:
            The content type the object was stored with
        """
        content_type = infer_content_type(name)
        params = {
            "Bucket": self.destination_bucket,
            "Key": name,
            "Body": body,
            "CacheControl": CACHE_CONTROL,
            "ContentType": content_type,
        }
        if not self.overwrite:
            # Conditional write: fails with PreconditionFailed if the key exists
            params["IfNoneMatch"] = "*"

        self.destination_s3.put_object(**params)
        return content_type

    def run(self) -> int:
        """List the source bucket and copy every object."""
        return self.migrate(self.list_sources())
