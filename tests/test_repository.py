"""Read paths degrade, delete propagates."""

from __future__ import annotations

import pytest

from shopassets.backends.files import FilesBackend
from shopassets.backends.metaobject import MetaobjectBackend
from shopassets.core.errors import InvalidIdentifierError, RemoteValidationError
from shopassets.core.models import UploadRequest
from shopassets.core.repository import AssetRepository


@pytest.mark.asyncio
async def test_list_failure_degrades_to_empty(client, fake_shop, storage_settings, logger):
    fake_shop.graphql_status = 503
    repository = AssetRepository(backend=FilesBackend(client, storage_settings, logger), logger=logger)

    assert await repository.list() == []


@pytest.mark.asyncio
async def test_get_failure_and_absence_return_none(client, fake_shop, storage_settings, logger):
    repository = AssetRepository(backend=FilesBackend(client, storage_settings, logger), logger=logger)

    assert await repository.get("gid://shopify/GenericFile/404") is None
    fake_shop.graphql_status = 500
    assert await repository.get("404") is None


@pytest.mark.asyncio
async def test_malformed_identifier_is_rejected(client, fake_shop, storage_settings, logger):
    repository = AssetRepository(backend=FilesBackend(client, storage_settings, logger), logger=logger)

    with pytest.raises(InvalidIdentifierError):
        await repository.get("gid://shopify/Product/1")
    assert fake_shop.calls == []


@pytest.mark.asyncio
async def test_delete_propagates_remote_errors(client, storage_settings, logger):
    repository = AssetRepository(backend=FilesBackend(client, storage_settings, logger), logger=logger)

    with pytest.raises(RemoteValidationError):
        await repository.delete("12345")


@pytest.mark.asyncio
async def test_read_content_only_for_inline_backends(client, fake_shop, storage_settings, logger):
    files = AssetRepository(backend=FilesBackend(client, storage_settings, logger), logger=logger)
    assert await files.read_content("1") is None
    assert fake_shop.calls == []

    backend = MetaobjectBackend(client, storage_settings, logger)
    created = await backend.create(UploadRequest(payload=b"GIF89a", filename="a.gif", content_type="image/gif"))
    inline = AssetRepository(backend=backend, logger=logger)

    assert await inline.read_content(created.id) == (b"GIF89a", "image/gif")
    assert await inline.read_content("999999") is None
