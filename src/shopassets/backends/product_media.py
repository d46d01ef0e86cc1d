"""Product-media backend: staged image upload attached to the storage product."""

from __future__ import annotations

from typing import Any, Dict

from shopassets.backends.base import BackendBase, ContainerGuard
from shopassets.backends.container import ensure_storage_product
from shopassets.backends.registry import registry
from shopassets.client import raise_for_user_errors
from shopassets.core.errors import RemoteValidationError
from shopassets.core.identifiers import RemoteId
from shopassets.core.models import (
    AssetDescriptor,
    StagedUploadTarget,
    UploadRequest,
    parse_size,
    status_from_remote,
)

_MEDIA_FIELDS = """
  id
  alt
  status
  mediaContentType
  ... on MediaImage {
    createdAt
    mimeType
    image { url }
    originalSource { fileSize }
  }
"""

PRODUCT_CREATE_MEDIA = f"""
mutation productCreateMedia($productId: ID!, $media: [CreateMediaInput!]!) {{
  productCreateMedia(productId: $productId, media: $media) {{
    media {{{_MEDIA_FIELDS}}}
    mediaUserErrors {{ field message }}
  }}
}}
"""

PRODUCT_MEDIA_QUERY = f"""
query productMedia($productId: ID!, $first: Int!) {{
  product(id: $productId) {{
    media(first: $first) {{
      edges {{ node {{{_MEDIA_FIELDS}}} }}
    }}
  }}
}}
"""

MEDIA_NODE_QUERY = f"""
query media($id: ID!) {{
  node(id: $id) {{
    ... on MediaImage {{{_MEDIA_FIELDS}}}
  }}
}}
"""

PRODUCT_DELETE_MEDIA = """
mutation productDeleteMedia($productId: ID!, $mediaIds: [ID!]!) {
  productDeleteMedia(productId: $productId, mediaIds: $mediaIds) {
    deletedMediaIds
    mediaUserErrors { field message }
  }
}
"""


def descriptor_from_media(node: Dict[str, Any]) -> AssetDescriptor:
    image = node.get("image") or {}
    source = node.get("originalSource") or {}
    return AssetDescriptor(
        id=node["id"],
        url=image.get("url"),
        display_name=node.get("alt") or "",
        mime_type=node.get("mimeType"),
        size_bytes=parse_size(source.get("fileSize")),
        created_at=node.get("createdAt"),
        status=status_from_remote(node.get("status")),
    )


class ProductMediaBackend(BackendBase):
    """Stores images as media of a draft storage product."""

    name = "product_media"
    resource_type = "MediaImage"
    staged_resource = "IMAGE"

    def __init__(self, client, settings, logger) -> None:
        super().__init__(client, settings, logger)
        self._container = ContainerGuard(
            lambda: ensure_storage_product(self.client, self.settings.container, self.logger)
        )

    async def ensure_container(self) -> str:
        return await self._container.get()

    async def register(self, target: StagedUploadTarget, request: UploadRequest) -> AssetDescriptor:
        product_id = await self.ensure_container()
        data = await self.client.graphql(
            PRODUCT_CREATE_MEDIA,
            {
                "productId": product_id,
                "media": [
                    {
                        "originalSource": target.resource_url,
                        "alt": request.filename,
                        "mediaContentType": "IMAGE",
                    }
                ],
            },
        )
        payload = data.get("productCreateMedia") or {}
        raise_for_user_errors(payload, "productCreateMedia", key="mediaUserErrors")
        media = payload.get("media") or []
        if not media:
            raise RemoteValidationError([{"message": "no media returned"}], operation="productCreateMedia")
        return descriptor_from_media(media[0])

    async def list(self) -> list[AssetDescriptor]:
        product_id = await self.ensure_container()
        data = await self.client.graphql(
            PRODUCT_MEDIA_QUERY, {"productId": product_id, "first": self.settings.page_size}
        )
        product = data.get("product") or {}
        edges = (product.get("media") or {}).get("edges") or []
        nodes = [edge.get("node") or {} for edge in edges]
        return [
            descriptor_from_media(node)
            for node in nodes
            if node.get("id") and node.get("mediaContentType") == "IMAGE"
        ]

    async def get(self, remote_id: RemoteId) -> AssetDescriptor | None:
        data = await self.client.graphql(MEDIA_NODE_QUERY, {"id": remote_id.gid})
        node = data.get("node")
        if not node or not node.get("id"):
            return None
        return descriptor_from_media(node)

    async def delete(self, remote_id: RemoteId) -> str:
        product_id = await self.ensure_container()
        data = await self.client.graphql(
            PRODUCT_DELETE_MEDIA, {"productId": product_id, "mediaIds": [remote_id.gid]}
        )
        payload = data.get("productDeleteMedia") or {}
        raise_for_user_errors(payload, "productDeleteMedia", key="mediaUserErrors")
        if remote_id.gid not in (payload.get("deletedMediaIds") or []):
            raise RemoteValidationError(
                [{"message": f"Media {remote_id.gid} was not deleted"}], operation="productDeleteMedia"
            )
        self.logger.info("Deleted media %s from %s.", remote_id.gid, product_id)
        return remote_id.gid


registry.register(ProductMediaBackend)
