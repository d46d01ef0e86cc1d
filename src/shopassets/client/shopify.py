"""HTTP client for the Shopify Admin API and staged upload targets."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

import httpx

from shopassets.core.errors import (
    RemoteApiError,
    RemoteNotFoundError,
    RemoteValidationError,
    TransferError,
)
from shopassets.core.models import StagedUploadTarget

DEFAULT_API_VERSION = "2024-10"
_ACCESS_TOKEN_HEADER = "X-Shopify-Access-Token"
_MAX_BODY_IN_ERROR = 2000


def raise_for_user_errors(payload: Dict[str, Any], operation: str, key: str = "userErrors") -> None:
    """Raise `RemoteValidationError` when a mutation payload carries user errors."""
    errors = payload.get(key) or []
    if errors:
        raise RemoteValidationError(errors, operation=operation)


def _rest_errors(body: Any) -> list[dict[str, Any]]:
    """Flatten the REST `errors` member (string, list or field mapping) into user errors."""
    errors = body.get("errors") if isinstance(body, dict) else None
    if errors is None:
        return []
    if isinstance(errors, str):
        return [{"field": None, "message": errors}]
    if isinstance(errors, list):
        return [{"field": None, "message": str(item)} for item in errors]
    if isinstance(errors, dict):
        flattened: list[dict[str, Any]] = []
        for field_name, messages in errors.items():
            if not isinstance(messages, list):
                messages = [messages]
            for message in messages:
                flattened.append({"field": [field_name], "message": f"{field_name} {message}"})
        return flattened
    return [{"field": None, "message": str(errors)}]


@dataclass(slots=True)
class ShopifyClient:
    """Authenticated Admin API client.

    A fresh `httpx.AsyncClient` is opened per call so the client holds no
    connection state between requests. `transport` exists for tests.
    """

    shop_domain: str
    access_token: str
    logger: logging.Logger
    api_version: str = DEFAULT_API_VERSION
    timeout: Optional[float] = None
    transport: Optional[httpx.AsyncBaseTransport] = None

    @property
    def admin_base_url(self) -> str:
        domain = self.shop_domain.strip().rstrip("/")
        if "://" not in domain:
            domain = f"https://{domain}"
        return f"{domain}/admin/api/{self.api_version}"

    @property
    def graphql_url(self) -> str:
        return f"{self.admin_base_url}/graphql.json"

    def _client(self, *, authenticated: bool = True) -> httpx.AsyncClient:
        kwargs: Dict[str, Any] = {}
        if self.timeout is not None:
            kwargs["timeout"] = self.timeout
        if self.transport is not None:
            kwargs["transport"] = self.transport
        if authenticated:
            kwargs["headers"] = {
                _ACCESS_TOKEN_HEADER: self.access_token,
                "Accept": "application/json",
            }
        return httpx.AsyncClient(**kwargs)

    async def graphql(self, query: str, variables: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Run a GraphQL document and return its `data` member."""
        body: Dict[str, Any] = {"query": query}
        if variables:
            body["variables"] = variables
        try:
            async with self._client() as client:
                response = await client.post(self.graphql_url, json=body)
        except httpx.HTTPError as exc:
            raise RemoteApiError(f"GraphQL request failed: {exc}") from exc

        if response.status_code >= 400:
            raise RemoteApiError(
                f"GraphQL request returned HTTP {response.status_code}: {response.text[:_MAX_BODY_IN_ERROR]}",
                status_code=response.status_code,
            )
        try:
            document = response.json()
        except ValueError as exc:
            raise RemoteApiError("GraphQL response was not valid JSON", status_code=response.status_code) from exc

        errors = document.get("errors") if isinstance(document, dict) else None
        if errors:
            messages = "; ".join(
                str(error.get("message", error)) if isinstance(error, dict) else str(error)
                for error in (errors if isinstance(errors, list) else [errors])
            )
            raise RemoteApiError(f"GraphQL errors: {messages}", status_code=response.status_code)

        data = document.get("data") if isinstance(document, dict) else None
        if not isinstance(data, dict):
            raise RemoteApiError("GraphQL response did not contain data", status_code=response.status_code)
        return data

    async def rest(
        self,
        method: str,
        path: str,
        *,
        json: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """Call a REST Admin endpoint relative to the versioned admin base URL."""
        url = f"{self.admin_base_url}/{path.lstrip('/')}"
        try:
            async with self._client() as client:
                response = await client.request(method, url, json=json, params=params)
        except httpx.HTTPError as exc:
            raise RemoteApiError(f"{method} {path} failed: {exc}") from exc

        try:
            body = response.json() if response.content else {}
        except ValueError:
            body = {}

        if response.status_code == 404:
            raise RemoteNotFoundError(f"{method} {path} returned HTTP 404", status_code=404)
        if response.status_code == 422:
            raise RemoteValidationError(
                _rest_errors(body) or [{"message": response.text[:_MAX_BODY_IN_ERROR]}],
                operation=f"{method} {path}",
                status_code=422,
            )
        if response.status_code >= 400:
            raise RemoteApiError(
                f"{method} {path} returned HTTP {response.status_code}: {response.text[:_MAX_BODY_IN_ERROR]}",
                status_code=response.status_code,
            )
        return body if isinstance(body, dict) else {}

    async def transfer(
        self,
        target: StagedUploadTarget,
        *,
        payload: bytes,
        filename: str,
        content_type: str,
    ) -> None:
        """POST the payload to a staged target.

        Target parameters precede the file part, in the order they were issued.
        """
        fields = {name: value for name, value in target.parameters}
        files = {"file": (filename, payload, content_type)}
        try:
            async with self._client(authenticated=False) as client:
                response = await client.post(target.transfer_url, data=fields, files=files)
        except httpx.HTTPError as exc:
            raise RemoteApiError(f"Staged upload transfer failed: {exc}") from exc

        if not 200 <= response.status_code < 300:
            raise TransferError(response.status_code, response.text[:_MAX_BODY_IN_ERROR])
        self.logger.debug(
            "Transferred %s bytes for %s (HTTP %s).", len(payload), filename, response.status_code
        )


__all__ = ["DEFAULT_API_VERSION", "ShopifyClient", "raise_for_user_errors"]
