"""Generic-file backend: staged CDN upload registered through `fileCreate`."""

from __future__ import annotations

from typing import Any, Dict

from shopassets.backends.base import BackendBase
from shopassets.backends.registry import registry
from shopassets.client import raise_for_user_errors
from shopassets.core.errors import RemoteValidationError
from shopassets.core.identifiers import GID_PREFIX, RemoteId
from shopassets.core.models import (
    AssetDescriptor,
    StagedUploadTarget,
    UploadRequest,
    parse_size,
    status_from_remote,
)

_FILE_FIELDS = """
  id
  alt
  createdAt
  fileStatus
  ... on GenericFile {
    url
    mimeType
    originalFileSize
  }
"""

FILE_CREATE = f"""
mutation fileCreate($files: [FileCreateInput!]!) {{
  fileCreate(files: $files) {{
    files {{{_FILE_FIELDS}}}
    userErrors {{ field message }}
  }}
}}
"""

FILES_QUERY = f"""
query files($first: Int!, $query: String) {{
  files(first: $first, query: $query) {{
    edges {{ node {{{_FILE_FIELDS}}} }}
  }}
}}
"""

FILE_NODE_QUERY = """
query file($id: ID!) {
  node(id: $id) {
    ... on GenericFile {
      id
      alt
      createdAt
      fileStatus
      url
      mimeType
      originalFileSize
    }
  }
}
"""

FILE_DELETE = """
mutation fileDelete($fileIds: [ID!]!) {
  fileDelete(fileIds: $fileIds) {
    deletedFileIds
    userErrors { field message }
  }
}
"""


def descriptor_from_file(node: Dict[str, Any]) -> AssetDescriptor:
    return AssetDescriptor(
        id=node["id"],
        url=node.get("url"),
        display_name=node.get("alt") or "",
        mime_type=node.get("mimeType"),
        size_bytes=parse_size(node.get("originalFileSize")),
        created_at=node.get("createdAt"),
        status=status_from_remote(node.get("fileStatus")),
    )


class FilesBackend(BackendBase):
    """Stores images as GenericFile records in the shop's Files section."""

    name = "files"
    resource_type = "GenericFile"
    staged_resource = "FILE"
    list_filter = "media_type:GENERIC_FILE"

    async def register(self, target: StagedUploadTarget, request: UploadRequest) -> AssetDescriptor:
        data = await self.client.graphql(
            FILE_CREATE,
            {
                "files": [
                    {
                        "alt": request.filename,
                        "contentType": "FILE",
                        "originalSource": target.resource_url,
                    }
                ]
            },
        )
        payload = data.get("fileCreate") or {}
        raise_for_user_errors(payload, "fileCreate")
        files = payload.get("files") or []
        if not files:
            raise RemoteValidationError([{"message": "no file returned"}], operation="fileCreate")
        return descriptor_from_file(files[0])

    async def list(self) -> list[AssetDescriptor]:
        data = await self.client.graphql(
            FILES_QUERY, {"first": self.settings.page_size, "query": self.list_filter}
        )
        edges = (data.get("files") or {}).get("edges") or []
        nodes = [edge.get("node") or {} for edge in edges]
        prefix = f"{GID_PREFIX}{self.resource_type}/"
        return [descriptor_from_file(node) for node in nodes if str(node.get("id", "")).startswith(prefix)]

    async def get(self, remote_id: RemoteId) -> AssetDescriptor | None:
        data = await self.client.graphql(FILE_NODE_QUERY, {"id": remote_id.gid})
        node = data.get("node")
        if not node or not node.get("id"):
            return None
        return descriptor_from_file(node)

    async def delete(self, remote_id: RemoteId) -> str:
        data = await self.client.graphql(FILE_DELETE, {"fileIds": [remote_id.gid]})
        payload = data.get("fileDelete") or {}
        raise_for_user_errors(payload, "fileDelete")
        deleted = payload.get("deletedFileIds") or []
        if remote_id.gid not in deleted:
            raise RemoteValidationError(
                [{"message": f"File {remote_id.gid} was not deleted"}], operation="fileDelete"
            )
        self.logger.info("Deleted file %s.", remote_id.gid)
        return remote_id.gid


registry.register(FilesBackend)
