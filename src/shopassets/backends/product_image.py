"""Product-image backend: base64 attachments through the REST Admin API."""

from __future__ import annotations

import base64
import mimetypes
from typing import Any, Dict, Optional
from urllib.parse import urlparse

from shopassets.backends.base import BackendBase, ContainerGuard
from shopassets.backends.container import ensure_storage_product
from shopassets.backends.registry import registry
from shopassets.core.errors import RemoteNotFoundError, RemoteValidationError
from shopassets.core.identifiers import RemoteId
from shopassets.core.models import AssetDescriptor, AssetStatus, UploadRequest


def _mime_from_src(src: Optional[str]) -> Optional[str]:
    if not src:
        return None
    guessed, _ = mimetypes.guess_type(urlparse(src).path)
    return guessed


def descriptor_from_image(image: Dict[str, Any], *, mime_type: Optional[str] = None) -> AssetDescriptor:
    gid = image.get("admin_graphql_api_id") or RemoteId("ProductImage", str(image["id"])).gid
    src = image.get("src")
    return AssetDescriptor(
        id=gid,
        url=src,
        display_name=image.get("alt") or "",
        mime_type=mime_type or _mime_from_src(src),
        size_bytes=None,
        created_at=image.get("created_at"),
        status=AssetStatus.READY if src else AssetStatus.PROCESSING,
    )


class ProductImageBackend(BackendBase):
    """Stores images on a draft storage product via `products/<id>/images.json`."""

    name = "product_image"
    resource_type = "ProductImage"

    def __init__(self, client, settings, logger) -> None:
        super().__init__(client, settings, logger)
        self._container = ContainerGuard(
            lambda: ensure_storage_product(self.client, self.settings.container, self.logger)
        )

    async def ensure_container(self) -> str:
        return await self._container.get()

    async def _images_path(self, image_id: Optional[str] = None) -> str:
        product = RemoteId.parse(await self.ensure_container(), "Product")
        if image_id is None:
            return f"products/{product.local_id}/images.json"
        return f"products/{product.local_id}/images/{image_id}.json"

    async def create(self, request: UploadRequest) -> AssetDescriptor:
        path = await self._images_path()
        body = await self.client.rest(
            "POST",
            path,
            json={
                "image": {
                    "attachment": base64.b64encode(request.payload).decode("ascii"),
                    "filename": request.filename,
                    "alt": request.filename,
                }
            },
        )
        image = body.get("image")
        if not image or not image.get("id"):
            raise RemoteValidationError([{"message": "no image returned"}], operation=f"POST {path}")
        return descriptor_from_image(image, mime_type=request.content_type)

    async def list(self) -> list[AssetDescriptor]:
        body = await self.client.rest("GET", await self._images_path())
        images = body.get("images") or []
        return [descriptor_from_image(image) for image in images[: self.settings.page_size] if image.get("id")]

    async def get(self, remote_id: RemoteId) -> AssetDescriptor | None:
        try:
            body = await self.client.rest("GET", await self._images_path(remote_id.local_id))
        except RemoteNotFoundError:
            return None
        image = body.get("image")
        if not image:
            return None
        return descriptor_from_image(image)

    async def delete(self, remote_id: RemoteId) -> str:
        await self.client.rest("DELETE", await self._images_path(remote_id.local_id))
        self.logger.info("Deleted product image %s.", remote_id.gid)
        return remote_id.gid


registry.register(ProductImageBackend)
