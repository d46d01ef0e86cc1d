"""Remote API client for Shopassets."""

from .shopify import DEFAULT_API_VERSION, ShopifyClient, raise_for_user_errors

__all__ = ["DEFAULT_API_VERSION", "ShopifyClient", "raise_for_user_errors"]
