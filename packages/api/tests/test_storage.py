# This project was developed with assistance from AI tools.
"""Tests for the object storage wrapper."""

from unittest.mock import MagicMock, patch

import pytest
from botocore.exceptions import ClientError, EndpointConnectionError

from src.core.errors import InfrastructureError
from src.services import storage as storage_module
from src.services.storage import StorageService, get_storage_service


def _client_error(code: str, operation: str = "HeadObject") -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": code}}, operation)


@pytest.fixture
def s3_client():
    client = MagicMock()
    with patch("src.services.storage.boto3.client", return_value=client):
        yield client


@pytest.fixture
def service(s3_client) -> StorageService:
    return StorageService("http://minio:9000", "key", "secret", "actor-documents")


def test_existing_bucket_is_not_recreated(s3_client, service):
    s3_client.head_bucket.assert_called_once_with(Bucket="actor-documents")
    s3_client.create_bucket.assert_not_called()


def test_missing_bucket_is_created(s3_client):
    s3_client.head_bucket.side_effect = _client_error("404", "HeadBucket")
    StorageService("http://minio:9000", "key", "secret", "actor-documents")
    s3_client.create_bucket.assert_called_once_with(Bucket="actor-documents")


@pytest.mark.parametrize(
    "filename,expected",
    [
        ("ine.pdf", "5/tenant/12/IDENTIFICATION/77-ine.pdf"),
        ("../../etc/passwd", "5/tenant/12/IDENTIFICATION/77-passwd"),
        ("C:\\Users\\ana\\ine.pdf", "5/tenant/12/IDENTIFICATION/77-ine.pdf"),
        ("folder/", "5/tenant/12/IDENTIFICATION/77-doc-77"),
    ],
)
def test_object_key_strips_path_components(filename, expected):
    assert StorageService.build_object_key(5, "tenant", 12, "IDENTIFICATION", 77, filename) == expected


@pytest.mark.asyncio
async def test_upload_url_is_bound_to_content_type(s3_client, service):
    s3_client.generate_presigned_url.return_value = "https://minio/put"
    url = await service.generate_upload_url("5/key.pdf", "application/pdf", 900)
    assert url == "https://minio/put"
    s3_client.generate_presigned_url.assert_called_once_with(
        "put_object",
        Params={"Bucket": "actor-documents", "Key": "5/key.pdf", "ContentType": "application/pdf"},
        ExpiresIn=900,
    )


@pytest.mark.asyncio
async def test_download_url_sets_attachment_name(s3_client, service):
    s3_client.generate_presigned_url.return_value = "https://minio/get"
    await service.get_download_url("5/key.pdf", expires_in=60, filename="ine.pdf")
    params = s3_client.generate_presigned_url.call_args.kwargs["Params"]
    assert params["ResponseContentDisposition"] == 'attachment; filename="ine.pdf"'


@pytest.mark.asyncio
async def test_object_exists(s3_client, service):
    assert await service.object_exists("5/key.pdf") is True


@pytest.mark.asyncio
@pytest.mark.parametrize("code", ["404", "NoSuchKey", "NotFound"])
async def test_object_missing(s3_client, service, code):
    s3_client.head_object.side_effect = _client_error(code)
    assert await service.object_exists("5/key.pdf") is False


@pytest.mark.asyncio
async def test_object_check_denied_is_infrastructure_error(s3_client, service):
    s3_client.head_object.side_effect = _client_error("AccessDenied")
    with pytest.raises(InfrastructureError):
        await service.object_exists("5/key.pdf")


@pytest.mark.asyncio
async def test_connection_failure_is_infrastructure_error(s3_client, service):
    s3_client.delete_object.side_effect = EndpointConnectionError(endpoint_url="http://minio:9000")
    with pytest.raises(InfrastructureError):
        await service.delete_object("5/key.pdf")


def test_uninitialised_service(monkeypatch):
    monkeypatch.setattr(storage_module, "_service", None)
    with pytest.raises(InfrastructureError, match="not initialised"):
        get_storage_service()
