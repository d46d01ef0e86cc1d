"""Upload orchestration for Shopassets."""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import TYPE_CHECKING, Any, Dict

from shopassets.client import ShopifyClient, raise_for_user_errors
from shopassets.core.errors import InvalidUploadError, PayloadTooLargeError, RemoteValidationError
from shopassets.core.models import AssetDescriptor, StagedUploadTarget, UploadRequest

if TYPE_CHECKING:
    from shopassets.backends.base import AssetBackend

STAGED_UPLOADS_CREATE = """
mutation stagedUploadsCreate($input: [StagedUploadInput!]!) {
  stagedUploadsCreate(input: $input) {
    stagedTargets {
      url
      resourceUrl
      parameters { name value }
    }
    userErrors { field message }
  }
}
"""


def target_from_payload(payload: Dict[str, Any]) -> StagedUploadTarget:
    """Build a staged target, keeping parameters in the order they were issued."""
    return StagedUploadTarget(
        transfer_url=payload["url"],
        resource_url=payload["resourceUrl"],
        parameters=[(param["name"], param["value"]) for param in payload.get("parameters") or []],
    )


@dataclass(slots=True)
class UploadOrchestrator:
    """Turn raw bytes into exactly one new remote asset.

    Staged backends run acquire-target, transfer, register in sequence; direct
    backends receive the validated request in one call. Nothing is retried and
    a target abandoned after a failed transfer or registration is not cleaned up.
    """

    client: ShopifyClient
    backend: AssetBackend
    logger: logging.Logger
    max_upload_bytes: int

    def validate(self, request: UploadRequest) -> UploadRequest:
        """Reject bad input before any remote call is made."""

        filename = (request.filename or "").strip()
        if not filename:
            raise InvalidUploadError("A filename is required.")
        content_type = (request.content_type or "").strip().lower()
        if "/" not in content_type:
            raise InvalidUploadError(f"Invalid content type: {request.content_type!r}")
        if request.size == 0:
            raise InvalidUploadError("The uploaded file is empty.")

        limit = self.max_upload_bytes
        backend_limit = self.backend.max_payload_bytes
        if backend_limit is not None:
            limit = min(limit, backend_limit)
        if request.size > limit:
            raise PayloadTooLargeError(request.size, limit)

        return replace(request, filename=filename, content_type=content_type)

    async def upload(self, request: UploadRequest) -> AssetDescriptor:
        request = self.validate(request)

        if self.backend.staged_resource is None:
            self.logger.info(
                "Creating %s asset '%s' (%s bytes) in one call.",
                self.backend.name,
                request.filename,
                request.size,
            )
            descriptor = await self.backend.create(request)
        else:
            target = await self.acquire_target(request)
            await self.client.transfer(
                target,
                payload=request.payload,
                filename=request.filename,
                content_type=request.content_type,
            )
            self.logger.info("Transferred '%s' to staged target.", request.filename)
            descriptor = await self.backend.register(target, request)

        descriptor = self._complete(descriptor, request)
        self.logger.info(
            "Uploaded '%s' as %s (status=%s).",
            request.filename,
            descriptor.id,
            descriptor.status.value,
        )
        return descriptor

    async def acquire_target(self, request: UploadRequest) -> StagedUploadTarget:
        data = await self.client.graphql(
            STAGED_UPLOADS_CREATE,
            {
                "input": [
                    {
                        "filename": request.filename,
                        "mimeType": request.content_type,
                        "resource": self.backend.staged_resource,
                        "fileSize": str(request.size),
                        "httpMethod": "POST",
                    }
                ]
            },
        )
        payload = data.get("stagedUploadsCreate") or {}
        try:
            raise_for_user_errors(payload, "stagedUploadsCreate")
        except RemoteValidationError as exc:
            self.logger.warning("Staged upload for '%s' rejected: %s", request.filename, exc)
            raise
        targets = payload.get("stagedTargets") or []
        if not targets:
            raise RemoteValidationError([{"message": "no staged target returned"}], operation="stagedUploadsCreate")
        return target_from_payload(targets[0])

    @staticmethod
    def _complete(descriptor: AssetDescriptor, request: UploadRequest) -> AssetDescriptor:
        """Fill fields the remote response may not report yet."""

        return replace(
            descriptor,
            display_name=descriptor.display_name or request.filename,
            mime_type=descriptor.mime_type or request.content_type,
            size_bytes=descriptor.size_bytes if descriptor.size_bytes is not None else request.size,
        )


__all__ = ["STAGED_UPLOADS_CREATE", "UploadOrchestrator", "target_from_payload"]
