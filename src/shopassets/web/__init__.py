"""HTTP surface for Shopassets."""

from .app import create_app

__all__ = ["create_app"]
