"""Base definitions for Shopassets storage backends."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import ClassVar, Protocol

from shopassets.client import ShopifyClient
from shopassets.config.loader import StorageSettings
from shopassets.core.identifiers import RemoteId
from shopassets.core.models import AssetDescriptor, StagedUploadTarget, UploadRequest


class AssetBackend(Protocol):
    """Interface every storage variant implements.

    Staged variants set `staged_resource` and implement `register`; direct
    variants leave it `None` and implement `create`.
    """

    name: ClassVar[str]
    resource_type: ClassVar[str]
    staged_resource: ClassVar[str | None]
    serves_content: ClassVar[bool]

    @property
    def max_payload_bytes(self) -> int | None:
        """Payload ceiling of the backing field, or None."""

    def parse_id(self, value: str) -> RemoteId:
        """Normalize a bare or qualified id for this backend's resource type."""

    async def ensure_container(self) -> str | None:
        """Locate or create the remote record that holds this variant's assets."""

    async def register(self, target: StagedUploadTarget, request: UploadRequest) -> AssetDescriptor:
        """Finalize a staged upload into a remote asset."""

    async def create(self, request: UploadRequest) -> AssetDescriptor:
        """Create a remote asset in a single call."""

    async def list(self) -> list[AssetDescriptor]:
        """Return up to one page of managed assets."""

    async def get(self, remote_id: RemoteId) -> AssetDescriptor | None:
        """Return the asset for `remote_id`, or None when it does not exist."""

    async def delete(self, remote_id: RemoteId) -> str:
        """Delete the asset and return the confirmed-deleted id."""

    async def read_content(self, remote_id: RemoteId) -> tuple[bytes, str] | None:
        """Return stored bytes and content type for inline variants."""


class ContainerGuard:
    """Single-flight cache around a container lookup-or-create coroutine."""

    def __init__(self, resolver: Callable[[], Awaitable[str]]) -> None:
        self._resolver = resolver
        self._lock = asyncio.Lock()
        self._value: str | None = None

    @property
    def value(self) -> str | None:
        return self._value

    async def get(self) -> str:
        if self._value is not None:
            return self._value
        async with self._lock:
            if self._value is None:
                self._value = await self._resolver()
            return self._value


class BackendBase:
    """Shared plumbing for the built-in backends."""

    name: ClassVar[str] = ""
    resource_type: ClassVar[str] = ""
    staged_resource: ClassVar[str | None] = None
    serves_content: ClassVar[bool] = False

    def __init__(self, client: ShopifyClient, settings: StorageSettings, logger: logging.Logger) -> None:
        self.client = client
        self.settings = settings
        self.logger = logger

    @classmethod
    def from_settings(
        cls, client: ShopifyClient, settings: StorageSettings, logger: logging.Logger
    ) -> BackendBase:
        return cls(client, settings, logger)

    @property
    def max_payload_bytes(self) -> int | None:
        """Ceiling imposed by the backing field, if tighter than the upload limit."""
        return None

    def parse_id(self, value: str) -> RemoteId:
        return RemoteId.parse(value, self.resource_type)

    async def ensure_container(self) -> str | None:
        return None

    async def register(self, target: StagedUploadTarget, request: UploadRequest) -> AssetDescriptor:
        raise NotImplementedError(f"Backend '{self.name}' does not accept staged uploads")

    async def create(self, request: UploadRequest) -> AssetDescriptor:
        raise NotImplementedError(f"Backend '{self.name}' does not accept direct uploads")

    async def read_content(self, remote_id: RemoteId) -> tuple[bytes, str] | None:
        return None


__all__ = ["AssetBackend", "BackendBase", "ContainerGuard"]
