"""Sentinel storage product shared by the product-backed variants."""

from __future__ import annotations

import logging

from shopassets.client import ShopifyClient, raise_for_user_errors
from shopassets.config.loader import ContainerSettings
from shopassets.core.errors import RemoteValidationError

PRODUCT_BY_TAG_QUERY = """
query storageProduct($query: String!) {
  products(first: 1, query: $query) {
    edges { node { id title tags } }
  }
}
"""

PRODUCT_CREATE = """
mutation productCreate($product: ProductCreateInput!) {
  productCreate(product: $product) {
    product { id title tags }
    userErrors { field message }
  }
}
"""


async def ensure_storage_product(
    client: ShopifyClient, settings: ContainerSettings, logger: logging.Logger
) -> str:
    """Return the id of the tagged storage product, creating it if absent.

    Two processes racing through this on first use can each create a product;
    nothing reconciles the duplicates afterwards.
    """

    data = await client.graphql(PRODUCT_BY_TAG_QUERY, {"query": f"tag:'{settings.tag}'"})
    edges = (data.get("products") or {}).get("edges") or []
    for edge in edges:
        node = edge.get("node") or {}
        if node.get("id") and settings.tag in (node.get("tags") or []):
            logger.debug("Using storage product %s.", node["id"])
            return node["id"]

    data = await client.graphql(
        PRODUCT_CREATE,
        {"product": {"title": settings.title, "tags": [settings.tag], "status": "DRAFT"}},
    )
    payload = data.get("productCreate") or {}
    raise_for_user_errors(payload, "productCreate")
    product = payload.get("product") or {}
    if not product.get("id"):
        raise RemoteValidationError([{"message": "no product returned"}], operation="productCreate")
    logger.info("Created storage product %s tagged '%s'.", product["id"], settings.tag)
    return product["id"]


__all__ = ["ensure_storage_product"]
