"""Error taxonomy shared by the client, backends and HTTP surface."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any


class ShopAssetsError(Exception):
    """Base class for every error raised by Shopassets."""


class ConfigurationError(ShopAssetsError):
    """Raised when required settings (credentials, backend name) are missing or invalid."""


class InvalidUploadError(ShopAssetsError, ValueError):
    """Raised when an upload request fails local validation."""


class InvalidIdentifierError(ShopAssetsError, ValueError):
    """Raised when an asset identifier cannot be normalized into a remote id."""


class PayloadTooLargeError(ShopAssetsError):
    """Raised when a payload exceeds the ceiling of the field that would hold it."""

    def __init__(self, size: int, limit: int) -> None:
        super().__init__(f"Payload of {size} bytes exceeds the {limit} byte limit")
        self.size = size
        self.limit = limit


class RemoteApiError(ShopAssetsError):
    """Raised when the remote platform fails a call or reports top-level errors."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class RemoteNotFoundError(RemoteApiError):
    """Raised when a REST resource does not exist."""


class RemoteValidationError(RemoteApiError):
    """Raised when a mutation reports field-level user errors."""

    def __init__(
        self,
        errors: Iterable[Mapping[str, Any]],
        *,
        operation: str | None = None,
        status_code: int | None = None,
    ) -> None:
        self.errors = [dict(error) for error in errors]
        messages = [str(error.get("message") or error) for error in self.errors]
        message = "; ".join(messages) or "Remote validation failed"
        if operation:
            message = f"{operation}: {message}"
        super().__init__(message, status_code=status_code)
        self.operation = operation


class TransferError(ShopAssetsError):
    """Raised when the byte transfer to a staged target is rejected."""

    def __init__(self, status_code: int, body: str) -> None:
        super().__init__(f"Staged upload transfer failed with HTTP {status_code}: {body}")
        self.status_code = status_code
        self.body = body


__all__ = [
    "ConfigurationError",
    "InvalidIdentifierError",
    "InvalidUploadError",
    "PayloadTooLargeError",
    "RemoteApiError",
    "RemoteNotFoundError",
    "RemoteValidationError",
    "ShopAssetsError",
    "TransferError",
]
