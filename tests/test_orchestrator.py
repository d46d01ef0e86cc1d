"""Upload orchestration tests against the fake Admin API."""

from __future__ import annotations

import pytest

from shopassets.backends.files import FilesBackend
from shopassets.backends.metaobject import MetaobjectBackend
from shopassets.backends.product_image import ProductImageBackend
from shopassets.core.errors import (
    InvalidUploadError,
    PayloadTooLargeError,
    RemoteValidationError,
    TransferError,
)
from shopassets.core.models import AssetStatus, UploadRequest
from shopassets.core.orchestrator import UploadOrchestrator

PNG_BYTES = b"\x89PNG\r\n\x1a\n\x00\x00"


def _orchestrator(client, backend, logger, *, max_upload_bytes: int = 20 * 1024 * 1024) -> UploadOrchestrator:
    return UploadOrchestrator(client=client, backend=backend, logger=logger, max_upload_bytes=max_upload_bytes)


@pytest.mark.asyncio
async def test_staged_upload_runs_three_steps(client, fake_shop, storage_settings, logger):
    backend = FilesBackend(client, storage_settings, logger)

    descriptor = await _orchestrator(client, backend, logger).upload(
        UploadRequest(payload=PNG_BYTES, filename="test.png", content_type="image/png")
    )

    assert len(PNG_BYTES) == 10
    assert descriptor.size_bytes == 10
    assert descriptor.mime_type == "image/png"
    assert descriptor.display_name == "test.png"
    assert descriptor.status in {AssetStatus.PENDING, AssetStatus.READY}
    assert descriptor.id.startswith("gid://shopify/GenericFile/")
    assert fake_shop.names() == ["stagedUploadsCreate", "/", "fileCreate"]
    assert PNG_BYTES in fake_shop.transfers[0]


@pytest.mark.asyncio
async def test_missing_filename_is_rejected_before_remote_calls(client, fake_shop, storage_settings, logger):
    backend = FilesBackend(client, storage_settings, logger)

    with pytest.raises(InvalidUploadError, match="filename"):
        await _orchestrator(client, backend, logger).upload(
            UploadRequest(payload=PNG_BYTES, filename="  ", content_type="image/png")
        )

    assert fake_shop.calls == []


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "payload,content_type,match",
    [
        (b"", "image/png", "empty"),
        (PNG_BYTES, "png", "content type"),
        (PNG_BYTES, "", "content type"),
    ],
)
async def test_invalid_requests_make_no_remote_calls(
    client, fake_shop, storage_settings, logger, payload, content_type, match
):
    backend = FilesBackend(client, storage_settings, logger)

    with pytest.raises(InvalidUploadError, match=match):
        await _orchestrator(client, backend, logger).upload(
            UploadRequest(payload=payload, filename="a.png", content_type=content_type)
        )

    assert fake_shop.calls == []


@pytest.mark.asyncio
async def test_inline_ceiling_rejects_before_remote_calls(client, fake_shop, storage_settings, logger):
    backend = MetaobjectBackend(client, storage_settings, logger)

    with pytest.raises(PayloadTooLargeError) as excinfo:
        await _orchestrator(client, backend, logger).upload(
            UploadRequest(payload=b"x" * 60_000, filename="big.png", content_type="image/png")
        )

    assert excinfo.value.limit == 50_000
    assert excinfo.value.size == 60_000
    assert fake_shop.calls == []


@pytest.mark.asyncio
async def test_global_upload_limit_applies_to_staged_backends(client, fake_shop, storage_settings, logger):
    backend = FilesBackend(client, storage_settings, logger)

    with pytest.raises(PayloadTooLargeError):
        await _orchestrator(client, backend, logger, max_upload_bytes=5).upload(
            UploadRequest(payload=PNG_BYTES, filename="a.png", content_type="image/png")
        )

    assert fake_shop.calls == []


@pytest.mark.asyncio
async def test_transfer_failure_skips_registration(client, fake_shop, storage_settings, logger):
    fake_shop.transfer_status = 403
    backend = FilesBackend(client, storage_settings, logger)

    with pytest.raises(TransferError) as excinfo:
        await _orchestrator(client, backend, logger).upload(
            UploadRequest(payload=PNG_BYTES, filename="a.png", content_type="image/png")
        )

    assert excinfo.value.status_code == 403
    assert "fileCreate" not in fake_shop.names()
    assert fake_shop.files == {}


@pytest.mark.asyncio
async def test_staged_target_user_errors_propagate(client, fake_shop, storage_settings, logger):
    fake_shop.user_errors["stagedUploadsCreate"] = [{"field": ["input"], "message": "Invalid mime type"}]
    backend = FilesBackend(client, storage_settings, logger)

    with pytest.raises(RemoteValidationError, match="Invalid mime type"):
        await _orchestrator(client, backend, logger).upload(
            UploadRequest(payload=PNG_BYTES, filename="a.png", content_type="image/png")
        )

    assert fake_shop.names() == ["stagedUploadsCreate"]


@pytest.mark.asyncio
async def test_direct_backend_skips_staging(client, fake_shop, storage_settings, logger):
    backend = ProductImageBackend(client, storage_settings, logger)

    descriptor = await _orchestrator(client, backend, logger).upload(
        UploadRequest(payload=PNG_BYTES, filename="direct.png", content_type="IMAGE/PNG")
    )

    assert "stagedUploadsCreate" not in fake_shop.names()
    assert fake_shop.transfers == []
    assert descriptor.mime_type == "image/png"
    assert descriptor.size_bytes == 10
    assert descriptor.status is AssetStatus.READY
