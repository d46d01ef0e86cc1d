"""Metaobject backend: images inlined as base64 data URIs in metaobject fields."""

from __future__ import annotations

import base64
import binascii
from typing import Any, Dict, Optional

from shopassets.backends.base import BackendBase, ContainerGuard
from shopassets.backends.registry import registry
from shopassets.client import raise_for_user_errors
from shopassets.core.errors import PayloadTooLargeError, RemoteValidationError
from shopassets.core.identifiers import RemoteId
from shopassets.core.models import AssetDescriptor, AssetStatus, UploadRequest, parse_size

_METAOBJECT_FIELDS = """
  id
  type
  handle
  updatedAt
  fields { key value }
"""

DEFINITION_BY_TYPE_QUERY = """
query definition($type: String!) {
  metaobjectDefinitionByType(type: $type) { id type }
}
"""

DEFINITION_CREATE = """
mutation metaobjectDefinitionCreate($definition: MetaobjectDefinitionCreateInput!) {
  metaobjectDefinitionCreate(definition: $definition) {
    metaobjectDefinition { id type }
    userErrors { field message }
  }
}
"""

METAOBJECT_CREATE = f"""
mutation metaobjectCreate($metaobject: MetaobjectCreateInput!) {{
  metaobjectCreate(metaobject: $metaobject) {{
    metaobject {{{_METAOBJECT_FIELDS}}}
    userErrors {{ field message }}
  }}
}}
"""

METAOBJECTS_QUERY = f"""
query metaobjects($type: String!, $first: Int!) {{
  metaobjects(type: $type, first: $first) {{
    edges {{ node {{{_METAOBJECT_FIELDS}}} }}
  }}
}}
"""

METAOBJECT_NODE_QUERY = f"""
query metaobject($id: ID!) {{
  node(id: $id) {{
    ... on Metaobject {{{_METAOBJECT_FIELDS}}}
  }}
}}
"""

METAOBJECT_DELETE = """
mutation metaobjectDelete($id: ID!) {
  metaobjectDelete(id: $id) {
    deletedId
    userErrors { field message }
  }
}
"""

FIELD_DEFINITIONS = [
    {"key": "filename", "name": "Filename", "type": "single_line_text_field"},
    {"key": "content_type", "name": "Content type", "type": "single_line_text_field"},
    {"key": "size", "name": "Size (bytes)", "type": "number_integer"},
    {"key": "data", "name": "Data URI", "type": "multi_line_text_field"},
]


def encode_data_uri(payload: bytes, content_type: str) -> str:
    return f"data:{content_type};base64,{base64.b64encode(payload).decode('ascii')}"


def decode_data_uri(value: str) -> Optional[tuple[bytes, str]]:
    """Split a base64 `data:` URI into bytes and content type; None when malformed."""
    if not value or not value.startswith("data:") or "," not in value:
        return None
    header, encoded = value[5:].split(",", 1)
    if not header.endswith(";base64"):
        return None
    content_type = header[: -len(";base64")] or "application/octet-stream"
    try:
        return base64.b64decode(encoded, validate=True), content_type
    except (binascii.Error, ValueError):
        return None


def _fields(node: Dict[str, Any]) -> Dict[str, Any]:
    return {item.get("key"): item.get("value") for item in node.get("fields") or []}


class MetaobjectBackend(BackendBase):
    """Stores small images inline in metaobjects of a dedicated type."""

    name = "metaobject"
    resource_type = "Metaobject"
    serves_content = True

    def __init__(self, client, settings, logger) -> None:
        super().__init__(client, settings, logger)
        self._container = ContainerGuard(self._ensure_definition)

    @property
    def max_payload_bytes(self) -> int:
        return self.settings.inline_max_bytes

    @property
    def metaobject_type(self) -> str:
        return self.settings.metaobject_type

    async def ensure_container(self) -> str:
        return await self._container.get()

    async def _ensure_definition(self) -> str:
        data = await self.client.graphql(DEFINITION_BY_TYPE_QUERY, {"type": self.metaobject_type})
        definition = data.get("metaobjectDefinitionByType")
        if definition and definition.get("id"):
            return definition["id"]

        data = await self.client.graphql(
            DEFINITION_CREATE,
            {
                "definition": {
                    "name": "Image asset",
                    "type": self.metaobject_type,
                    "fieldDefinitions": FIELD_DEFINITIONS,
                }
            },
        )
        payload = data.get("metaobjectDefinitionCreate") or {}
        raise_for_user_errors(payload, "metaobjectDefinitionCreate")
        definition = payload.get("metaobjectDefinition") or {}
        if not definition.get("id"):
            raise RemoteValidationError(
                [{"message": "no definition returned"}], operation="metaobjectDefinitionCreate"
            )
        self.logger.info("Created metaobject definition '%s'.", self.metaobject_type)
        return definition["id"]

    def _descriptor(self, node: Dict[str, Any]) -> AssetDescriptor:
        fields = _fields(node)
        local_id = RemoteId.parse(node["id"], self.resource_type).local_id
        return AssetDescriptor(
            id=node["id"],
            url=f"/api/images/{local_id}/content" if fields.get("data") else None,
            display_name=fields.get("filename") or node.get("handle") or "",
            mime_type=fields.get("content_type"),
            size_bytes=parse_size(fields.get("size")),
            created_at=node.get("updatedAt"),
            status=AssetStatus.READY,
        )

    async def create(self, request: UploadRequest) -> AssetDescriptor:
        if request.size > self.max_payload_bytes:
            raise PayloadTooLargeError(request.size, self.max_payload_bytes)
        await self.ensure_container()
        data = await self.client.graphql(
            METAOBJECT_CREATE,
            {
                "metaobject": {
                    "type": self.metaobject_type,
                    "fields": [
                        {"key": "filename", "value": request.filename},
                        {"key": "content_type", "value": request.content_type},
                        {"key": "size", "value": str(request.size)},
                        {"key": "data", "value": encode_data_uri(request.payload, request.content_type)},
                    ],
                }
            },
        )
        payload = data.get("metaobjectCreate") or {}
        raise_for_user_errors(payload, "metaobjectCreate")
        node = payload.get("metaobject") or {}
        if not node.get("id"):
            raise RemoteValidationError([{"message": "no metaobject returned"}], operation="metaobjectCreate")
        return self._descriptor(node)

    async def _node(self, remote_id: RemoteId) -> Optional[Dict[str, Any]]:
        data = await self.client.graphql(METAOBJECT_NODE_QUERY, {"id": remote_id.gid})
        node = data.get("node")
        if not node or not node.get("id") or node.get("type") != self.metaobject_type:
            return None
        return node

    async def list(self) -> list[AssetDescriptor]:
        data = await self.client.graphql(
            METAOBJECTS_QUERY, {"type": self.metaobject_type, "first": self.settings.page_size}
        )
        edges = (data.get("metaobjects") or {}).get("edges") or []
        nodes = [edge.get("node") or {} for edge in edges]
        return [
            self._descriptor(node)
            for node in nodes
            if node.get("id") and node.get("type") == self.metaobject_type
        ]

    async def get(self, remote_id: RemoteId) -> AssetDescriptor | None:
        node = await self._node(remote_id)
        return self._descriptor(node) if node else None

    async def read_content(self, remote_id: RemoteId) -> tuple[bytes, str] | None:
        node = await self._node(remote_id)
        if not node:
            return None
        return decode_data_uri(_fields(node).get("data") or "")

    async def delete(self, remote_id: RemoteId) -> str:
        data = await self.client.graphql(METAOBJECT_DELETE, {"id": remote_id.gid})
        payload = data.get("metaobjectDelete") or {}
        raise_for_user_errors(payload, "metaobjectDelete")
        deleted = payload.get("deletedId")
        if deleted != remote_id.gid:
            raise RemoteValidationError(
                [{"message": f"Metaobject {remote_id.gid} was not deleted"}], operation="metaobjectDelete"
            )
        self.logger.info("Deleted metaobject %s.", remote_id.gid)
        return remote_id.gid


registry.register(MetaobjectBackend)
