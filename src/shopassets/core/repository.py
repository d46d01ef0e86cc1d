"""Read/delete facade over the configured storage backend."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from shopassets.core.errors import RemoteApiError, TransferError
from shopassets.core.models import AssetDescriptor

if TYPE_CHECKING:
    from shopassets.backends.base import AssetBackend


@dataclass(slots=True)
class AssetRepository:
    """List, fetch and delete assets.

    Reads degrade gracefully: remote failures become an empty list or None so
    the dashboard keeps rendering. Deletes propagate every error.
    """

    backend: AssetBackend
    logger: logging.Logger

    async def list(self) -> list[AssetDescriptor]:
        try:
            return await self.backend.list()
        except (RemoteApiError, TransferError) as exc:
            self.logger.warning("Listing %s assets failed: %s", self.backend.name, exc)
            return []

    async def get(self, identifier: str) -> AssetDescriptor | None:
        remote_id = self.backend.parse_id(identifier)
        try:
            return await self.backend.get(remote_id)
        except RemoteApiError as exc:
            self.logger.warning("Fetching %s failed: %s", remote_id.gid, exc)
            return None

    async def read_content(self, identifier: str) -> tuple[bytes, str] | None:
        if not self.backend.serves_content:
            return None
        remote_id = self.backend.parse_id(identifier)
        try:
            return await self.backend.read_content(remote_id)
        except RemoteApiError as exc:
            self.logger.warning("Reading content of %s failed: %s", remote_id.gid, exc)
            return None

    async def delete(self, identifier: str) -> str:
        remote_id = self.backend.parse_id(identifier)
        return await self.backend.delete(remote_id)


__all__ = ["AssetRepository"]
