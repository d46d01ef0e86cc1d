"""Wire the client, backend, repository and orchestrator from configuration."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Optional

import httpx

from shopassets.backends import BackendBase
from shopassets.backends.registry import load_default_backends, registry
from shopassets.client import ShopifyClient
from shopassets.config import Config
from shopassets.core.errors import ConfigurationError, ShopAssetsError
from shopassets.core.orchestrator import UploadOrchestrator
from shopassets.core.repository import AssetRepository


@dataclass(slots=True)
class AssetServices:
    """Everything one configured storage variant needs to serve requests."""

    client: ShopifyClient
    backend: BackendBase
    repository: AssetRepository
    orchestrator: UploadOrchestrator


def build_services(
    config: Config,
    logger: logging.Logger,
    *,
    environ: Optional[Mapping[str, str]] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> AssetServices:
    """Build services for the configured backend.

    Raises ConfigurationError when credentials are missing or the backend name
    is unknown.
    """

    credentials = config.credentials(environ)
    load_default_backends()
    client = ShopifyClient(
        shop_domain=credentials.shop_domain,
        access_token=credentials.access_token,
        logger=logger,
        api_version=config.shop.api_version,
        timeout=config.shop.timeout_seconds,
        transport=transport,
    )
    backend = registry.build(config.storage.backend, client, config.storage, logger)
    logger.debug(
        "Built '%s' backend for %s (API %s).",
        backend.name,
        credentials.shop_domain,
        config.shop.api_version,
    )
    return AssetServices(
        client=client,
        backend=backend,
        repository=AssetRepository(backend=backend, logger=logger),
        orchestrator=UploadOrchestrator(
            client=client,
            backend=backend,
            logger=logger,
            max_upload_bytes=config.storage.max_upload_bytes,
        ),
    )


class ServiceProvider:
    """Lazily builds services once, on first use.

    Missing credentials surface on the first request that needs them rather
    than at process start.
    """

    def __init__(
        self,
        config: Config,
        logger: logging.Logger,
        *,
        environ: Optional[Mapping[str, str]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.config = config
        self.logger = logger
        self._environ = environ
        self._transport = transport
        self._services: AssetServices | None = None
        self._lock = asyncio.Lock()

    @property
    def backend_name(self) -> str:
        return self.config.storage.backend

    async def get(self) -> AssetServices:
        if self._services is not None:
            return self._services
        async with self._lock:
            if self._services is None:
                self._services = build_services(
                    self.config, self.logger, environ=self._environ, transport=self._transport
                )
            return self._services

    async def warm_up(self) -> bool:
        """Build services and ensure the container at startup when configured."""

        try:
            self.config.credentials(self._environ)
        except ConfigurationError as exc:
            self.logger.warning("Storage not configured at startup: %s", exc)
            return False
        try:
            services = await self.get()
            await services.backend.ensure_container()
        except ShopAssetsError as exc:
            self.logger.warning(
                "Storage warm-up failed: %s: %s", exc.__class__.__name__, exc
            )
            return False
        self.logger.info("Storage backend '%s' ready.", services.backend.name)
        return True


__all__ = ["AssetServices", "ServiceProvider", "build_services"]
