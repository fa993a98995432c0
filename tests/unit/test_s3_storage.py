"""Tests for S3StorageService using botocore's Stubber."""

import io
from datetime import datetime, timezone

import boto3
import pytest
from botocore.response import StreamingBody
from botocore.stub import ANY, Stubber

from framestore.domain.value_objects import StorageKey
from framestore.infrastructure.exceptions import StorageNotFoundError, StorageUploadError
from framestore.infrastructure.external.storage.s3_storage import S3StorageService

BUCKET = "photos-bucket"
MODIFIED = datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)


@pytest.fixture
def s3_client():
    return boto3.client(
        "s3",
        region_name="us-east-1",
        aws_access_key_id="test",
        aws_secret_access_key="test",
    )


@pytest.fixture
def stubber(s3_client):
    with Stubber(s3_client) as stub:
        yield stub
        stub.assert_no_pending_responses()


def _service(s3_client, **kwargs) -> S3StorageService:
    return S3StorageService(bucket=BUCKET, prefix="library", client=s3_client, **kwargs)


def _head(size: int) -> dict:
    return {
        "ContentLength": size,
        "ContentType": "image/jpeg",
        "ETag": '"etag-1"',
        "LastModified": MODIFIED,
    }


class TestCreate:
    async def test_single_put_then_head(self, s3_client, stubber: Stubber) -> None:
        stubber.add_response(
            "put_object",
            {"ETag": '"etag-1"'},
            {"Bucket": BUCKET, "Key": "library/2024/a.jpg", "Body": ANY, "ContentType": "image/jpeg"},
        )
        stubber.add_response("head_object", _head(4), {"Bucket": BUCKET, "Key": "library/2024/a.jpg"})
        meta = await _service(s3_client).create(StorageKey("2024/a.jpg"), io.BytesIO(b"data"), "image/jpeg")
        assert meta.key == "2024/a.jpg"
        assert meta.size == 4
        assert meta.etag == "etag-1"
        assert meta.last_modified == MODIFIED

    async def test_multipart_above_threshold(self, s3_client, stubber: Stubber) -> None:
        key = "library/big.mov"
        stubber.add_response(
            "create_multipart_upload",
            {"UploadId": "upload-1"},
            {"Bucket": BUCKET, "Key": key, "ContentType": "video/quicktime"},
        )
        for part in (1, 2, 3):
            stubber.add_response(
                "upload_part",
                {"ETag": f'"part-{part}"'},
                {"Bucket": BUCKET, "Key": key, "UploadId": "upload-1", "PartNumber": part, "Body": ANY},
            )
        stubber.add_response(
            "complete_multipart_upload",
            {},
            {
                "Bucket": BUCKET,
                "Key": key,
                "UploadId": "upload-1",
                "MultipartUpload": {
                    "Parts": [
                        {"ETag": '"part-1"', "PartNumber": 1},
                        {"ETag": '"part-2"', "PartNumber": 2},
                        {"ETag": '"part-3"', "PartNumber": 3},
                    ]
                },
            },
        )
        stubber.add_response("head_object", _head(7), {"Bucket": BUCKET, "Key": key})
        service = _service(s3_client, multipart_threshold=4, multipart_chunk_size=3)
        meta = await service.create(StorageKey("big.mov"), io.BytesIO(b"abcdefg"), "video/quicktime")
        assert meta.size == 7

    async def test_failed_part_aborts_upload(self, s3_client, stubber: Stubber) -> None:
        key = "library/big.mov"
        stubber.add_response("create_multipart_upload", {"UploadId": "upload-1"})
        stubber.add_client_error("upload_part", service_error_code="InternalError", http_status_code=500)
        stubber.add_response(
            "abort_multipart_upload",
            {},
            {"Bucket": BUCKET, "Key": key, "UploadId": "upload-1"},
        )
        service = _service(s3_client, multipart_threshold=4, multipart_chunk_size=3)
        with pytest.raises(StorageUploadError):
            await service.create(StorageKey("big.mov"), io.BytesIO(b"abcdefg"), "video/quicktime")


class TestReadMetaDelete:
    async def test_meta_not_found(self, s3_client, stubber: Stubber) -> None:
        stubber.add_client_error("head_object", service_error_code="404", http_status_code=404)
        with pytest.raises(StorageNotFoundError):
            await _service(s3_client).meta(StorageKey("missing.jpg"))

    async def test_read_streams_body(self, s3_client, stubber: Stubber) -> None:
        stubber.add_response(
            "get_object",
            {"Body": StreamingBody(io.BytesIO(b"content"), 7)},
            {"Bucket": BUCKET, "Key": "library/a.jpg"},
        )
        data = b"".join([chunk async for chunk in _service(s3_client).read(StorageKey("a.jpg"))])
        assert data == b"content"

    async def test_read_missing_key(self, s3_client, stubber: Stubber) -> None:
        stubber.add_client_error("get_object", service_error_code="NoSuchKey", http_status_code=404)
        with pytest.raises(StorageNotFoundError):
            [chunk async for chunk in _service(s3_client).read(StorageKey("missing.jpg"))]

    async def test_delete(self, s3_client, stubber: Stubber) -> None:
        stubber.add_response("delete_object", {}, {"Bucket": BUCKET, "Key": "library/a.jpg"})
        await _service(s3_client).delete(StorageKey("a.jpg"))

    async def test_list_strips_prefix(self, s3_client, stubber: Stubber) -> None:
        stubber.add_response(
            "list_objects_v2",
            {
                "IsTruncated": False,
                "Contents": [
                    {"Key": "library/2024/a.jpg", "Size": 3, "ETag": '"e1"', "LastModified": MODIFIED},
                    {"Key": "library/2024/b.jpg", "Size": 5, "ETag": '"e2"', "LastModified": MODIFIED},
                ],
            },
            {"Bucket": BUCKET, "Prefix": "library/2024/"},
        )
        items = [meta async for meta in _service(s3_client).list("2024/")]
        assert [(m.key, m.size, m.etag) for m in items] == [
            ("2024/a.jpg", 3, "e1"),
            ("2024/b.jpg", 5, "e2"),
        ]


class TestPublicUrl:
    def test_cdn_preferred(self, s3_client) -> None:
        service = _service(s3_client, cdn_url="https://cdn.example.com/")
        assert service.public_url(StorageKey("a b.jpg")) == "https://cdn.example.com/library/a%20b.jpg"

    def test_path_style_endpoint(self, s3_client) -> None:
        service = _service(s3_client, endpoint_url="http://minio:9000", force_path_style=True)
        assert service.public_url(StorageKey("a.jpg")) == f"http://minio:9000/{BUCKET}/library/a.jpg"

    def test_virtual_host_endpoint(self, s3_client) -> None:
        service = _service(s3_client, endpoint_url="https://r2.example.com")
        assert service.public_url(StorageKey("a.jpg")) == f"https://{BUCKET}.r2.example.com/library/a.jpg"

    def test_aws_default_region_auto(self, s3_client) -> None:
        service = _service(s3_client)
        assert service.public_url(StorageKey("a.jpg")) == f"https://{BUCKET}.s3.us-east-1.amazonaws.com/library/a.jpg"
