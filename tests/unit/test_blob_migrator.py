"""
Unit tests for BlobMigrator with stand-in S3 clients and HTTP session.
"""

import pytest
import requests

from product_migration.observability.metrics import get_sample
from product_migration.storage.blob_migrator import (
    CACHE_CONTROL,
    SIGNED_URL_EXPIRY_SECONDS,
    BlobLink,
    BlobMigrator,
    infer_content_type,
)


class FakePaginator:
    def __init__(self, pages):
        self.pages = pages
        self.calls = []

    def paginate(self, **kwargs):
        self.calls.append(kwargs)
        return iter(self.pages)


class FakeSourceS3:
    """Lists fixed pages and presigns deterministic URLs."""

    def __init__(self, keys, page_size=2):
        self.paginator = FakePaginator([
            {"Contents": [{"Key": key} for key in keys[start:start + page_size]]}
            for start in range(0, len(keys), page_size)
        ] or [{}])
        self.presign_calls = []

    def get_paginator(self, operation):
        assert operation == "list_objects_v2"
        return self.paginator

    def generate_presigned_url(self, operation, Params, ExpiresIn):
        self.presign_calls.append((operation, Params, ExpiresIn))
        return f"https://source.test/{Params['Key']}?sig=1"


class FakeDestinationS3:
    def __init__(self, error=None):
        self.error = error
        self.objects = []

    def put_object(self, **kwargs):
        if self.error:
            raise self.error
        self.objects.append(kwargs)
        return {"ETag": '"etag"'}


class FakeResponse:
    def __init__(self, content=b"", status_code=200):
        self.content = content
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Error")


class FakeSession:
    def __init__(self, status_code=200):
        self.status_code = status_code
        self.urls = []

    def get(self, url, timeout=None):
        self.urls.append(url)
        return FakeResponse(content=f"bytes of {url}".encode(), status_code=self.status_code)


def make_migrator(keys, session=None, destination=None, overwrite=True):
    return BlobMigrator(
        source_s3=FakeSourceS3(keys),
        destination_s3=destination or FakeDestinationS3(),
        source_bucket="source-bucket",
        destination_bucket="images",
        source_prefix="public/",
        session=session or FakeSession(),
        overwrite=overwrite,
    )


@pytest.mark.unit
class TestInferContentType:
    """Tests for infer_content_type"""

    @pytest.mark.parametrize("name, expected", [
        ("abc123456789.jpg", "image/jpeg"),
        ("abc123456789.JPG", "image/jpeg"),
        ("abc.png", "image/png"),
        ("abc.webp", "image/webp"),
        ("archive.tar.gz", "image/tar"),
    ])
    def test_extension_after_first_dot(self, name, expected):
        assert infer_content_type(name) == expected

    def test_no_extension(self):
        with pytest.raises(ValueError):
            infer_content_type("README")


@pytest.mark.unit
class TestListSources:
    """Tests for BlobMigrator.list_sources"""

    def test_filters_short_keys_and_strips_prefix(self):
        """Test folder-like keys are skipped and names lose the prefix"""
        migrator = make_migrator(["public/", "public/a.png", "public/abc123456789.jpg", "public/x/public/y.png"])

        links = migrator.list_sources()

        assert [link.name for link in links] == ["abc123456789.jpg", "x/public/y.png"]
        assert links[0] == BlobLink(
            key="public/abc123456789.jpg",
            name="abc123456789.jpg",
            url="https://source.test/public/abc123456789.jpg?sig=1",
        )

    def test_presigns_with_expiry(self):
        migrator = make_migrator(["public/abc123456789.jpg"])

        migrator.list_sources()

        operation, params, expires = migrator.source_s3.presign_calls[0]
        assert operation == "get_object"
        assert params == {"Bucket": "source-bucket", "Key": "public/abc123456789.jpg"}
        assert expires == SIGNED_URL_EXPIRY_SECONDS == 300

    def test_reads_every_page(self):
        keys = [f"public/image-{n:04d}.png" for n in range(5)]
        migrator = make_migrator(keys)

        assert len(migrator.list_sources()) == 5
        assert migrator.source_s3.paginator.calls == [{"Bucket": "source-bucket"}]

    def test_empty_bucket(self):
        assert make_migrator([]).list_sources() == []


@pytest.mark.unit
class TestMigrate:
    """Tests for BlobMigrator.migrate and run"""

    def test_uploads_with_headers(self):
        """Test the uploaded object carries name, type and cache policy"""
        destination = FakeDestinationS3()
        migrator = make_migrator(["public/abc123456789.jpg"], destination=destination)
        before = get_sample("migration_blobs_migrated_total", content_type="image/jpeg")

        assert migrator.run() == 1

        assert destination.objects == [{
            "Bucket": "images",
            "Key": "abc123456789.jpg",
            "Body": b"bytes of https://source.test/public/abc123456789.jpg?sig=1",
            "CacheControl": CACHE_CONTROL,
            "ContentType": "image/jpeg",
        }]
        assert get_sample("migration_blobs_migrated_total", content_type="image/jpeg") == before + 1

    def test_sequential_in_listing_order(self):
        session = FakeSession()
        migrator = make_migrator(
            ["public/first-image.png", "public/second-image.png", "public/third-image.png"],
            session=session,
        )

        migrator.run()

        assert [url.split("/")[-1] for url in session.urls] == [
            "first-image.png?sig=1",
            "second-image.png?sig=1",
            "third-image.png?sig=1",
        ]

    def test_no_overwrite_sets_condition(self):
        destination = FakeDestinationS3()
        migrator = make_migrator(["public/abc123456789.jpg"], destination=destination, overwrite=False)

        migrator.run()

        assert destination.objects[0]["IfNoneMatch"] == "*"

    def test_download_failure_stops_run(self):
        destination = FakeDestinationS3()
        migrator = make_migrator(
            ["public/abc123456789.jpg", "public/def123456789.jpg"],
            session=FakeSession(status_code=403),
            destination=destination,
        )

        with pytest.raises(requests.HTTPError):
            migrator.run()
        assert destination.objects == []

    def test_upload_failure_propagates(self, make_client_error):
        destination = FakeDestinationS3(error=make_client_error("AccessDenied", "PutObject"))
        migrator = make_migrator(["public/abc123456789.jpg"], destination=destination)

        with pytest.raises(Exception) as exc_info:
            migrator.run()
        assert "AccessDenied" in str(exc_info.value)

    def test_name_without_extension_fails(self):
        migrator = make_migrator(["public/no-extension-here"])

        with pytest.raises(ValueError):
            migrator.run()
