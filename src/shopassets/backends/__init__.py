"""Storage backends for Shopassets."""

from .base import AssetBackend, BackendBase, ContainerGuard

__all__ = ["AssetBackend", "BackendBase", "ContainerGuard"]
