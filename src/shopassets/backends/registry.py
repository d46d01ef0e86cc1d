"""Backend registry for Shopassets."""

from __future__ import annotations

import logging
from importlib import import_module
from importlib.metadata import entry_points
from typing import TYPE_CHECKING

from shopassets.core.errors import ConfigurationError

if TYPE_CHECKING:
    from shopassets.backends.base import BackendBase
    from shopassets.client import ShopifyClient
    from shopassets.config.loader import StorageSettings

logger = logging.getLogger(__name__)

ENTRY_POINT_GROUP = "shopassets.backends"

_BUILTIN_MODULES = (
    "shopassets.backends.files",
    "shopassets.backends.metaobject",
    "shopassets.backends.product_media",
    "shopassets.backends.product_image",
)


class BackendRegistry:
    """Registry of storage backend classes keyed by configuration name."""

    def __init__(self) -> None:
        self._backends: dict[str, type[BackendBase]] = {}

    def register(self, backend: type[BackendBase]) -> None:
        name = getattr(backend, "name", "")
        if not name:
            raise ValueError(f"Backend {backend!r} does not declare a name.")
        self._backends.setdefault(name, backend)

    def clear(self) -> None:
        self._backends.clear()

    def names(self) -> list[str]:
        return sorted(self._backends)

    def get(self, name: str) -> type[BackendBase]:
        try:
            return self._backends[name]
        except KeyError as exc:
            available = ", ".join(self.names()) or "none"
            raise ConfigurationError(
                f"Unknown storage backend '{name}' (available: {available})"
            ) from exc

    def build(
        self,
        name: str,
        client: ShopifyClient,
        settings: StorageSettings,
        backend_logger: logging.Logger,
    ) -> BackendBase:
        return self.get(name).from_settings(client, settings, backend_logger)

    def load_entrypoints(self) -> None:
        """Register backends published by other distributions under `shopassets.backends`."""

        for entry_point in entry_points(group=ENTRY_POINT_GROUP):
            try:
                backend = entry_point.load()
            except Exception as exc:  # pylint: disable=broad-except
                logger.warning("Failed to load backend entry point %s: %s", entry_point.name, exc)
                continue

            try:
                self.register(backend)
            except ValueError as exc:
                logger.warning("Failed to register backend %s: %s", entry_point.name, exc)


registry = BackendRegistry()


def load_default_backends() -> None:
    """Import built-in backends so they self-register."""

    for module in _BUILTIN_MODULES:
        import_module(module)
