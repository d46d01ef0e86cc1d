"""Normalized asset views and transient upload types."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class AssetStatus(str, Enum):
    """Processing state reported by the remote platform."""

    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    READY = "READY"
    FAILED = "FAILED"


_REMOTE_STATUS_MAP: dict[str, AssetStatus] = {
    "UPLOADED": AssetStatus.PENDING,
    "PENDING": AssetStatus.PENDING,
    "PROCESSING": AssetStatus.PROCESSING,
    "READY": AssetStatus.READY,
    "FAILED": AssetStatus.FAILED,
}


def status_from_remote(value: str | None, *, default: AssetStatus = AssetStatus.PENDING) -> AssetStatus:
    """Map a remote file/media status string onto `AssetStatus`."""
    if not value:
        return default
    return _REMOTE_STATUS_MAP.get(value.strip().upper(), default)


@dataclass(slots=True)
class AssetDescriptor:
    """View of a remotely stored image. Never persisted locally."""

    id: str
    display_name: str
    status: AssetStatus
    url: str | None = None
    mime_type: str | None = None
    size_bytes: int | None = None
    created_at: str | None = None

    def as_json(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "url": self.url,
            "displayName": self.display_name,
            "mimeType": self.mime_type,
            "sizeBytes": self.size_bytes,
            "createdAt": self.created_at,
            "status": self.status.value,
        }


@dataclass(slots=True)
class StagedUploadTarget:
    """One-time upload destination issued by the remote platform."""

    transfer_url: str
    resource_url: str
    parameters: list[tuple[str, str]] = field(default_factory=list)


@dataclass(slots=True)
class UploadRequest:
    """Raw bytes plus the metadata declared by the uploader."""

    payload: bytes
    filename: str
    content_type: str

    @property
    def size(self) -> int:
        return len(self.payload)


def parse_size(value: Any) -> int | None:
    """Coerce a remote size field (often a string) into an int."""
    if value is None or value == "":
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


__all__ = [
    "AssetDescriptor",
    "AssetStatus",
    "StagedUploadTarget",
    "UploadRequest",
    "parse_size",
    "status_from_remote",
]
