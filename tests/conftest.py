"""Shared fixtures: an in-memory stand-in for the Shopify Admin API."""

from __future__ import annotations

import itertools
import json
import logging
import re
from typing import Any

import httpx
import pytest

from shopassets.client import ShopifyClient
from shopassets.config.loader import StorageSettings

SHOP_DOMAIN = "test-shop.myshopify.com"
API_VERSION = "2024-10"
STAGED_HOST = "shopify-staged-uploads.storage.googleapis.com"
CDN = "https://cdn.shopify.com/s/files/1/0001"

STAGED_PARAMETERS = [
    ("Content-Type", "image/png"),
    ("success_action_status", "201"),
    ("acl", "private"),
    ("key", "tmp/upload/test.png"),
    ("policy", "cG9saWN5"),
]

_OPERATION = re.compile(r"^\s*(?:query|mutation)\s+(\w+)")
_IMAGES = re.compile(r"/products/(\d+)/images(?:/(\d+))?\.json$")


def _gid(kind: str, local_id: int | str) -> str:
    return f"gid://shopify/{kind}/{local_id}"


class FakeShopify:
    """Minimal GraphQL, REST and staged-upload behaviour keyed by operation name.

    Every request is recorded in `calls` as `(kind, name)` so tests can assert
    which remote round-trips happened and in what order.
    """

    def __init__(self) -> None:
        self._ids = itertools.count(1001)
        self.calls: list[tuple[str, str]] = []
        self.transfers: list[bytes] = []
        self.files: dict[str, dict[str, Any]] = {}
        self.products: list[dict[str, Any]] = []
        self.media: dict[str, dict[str, Any]] = {}
        self.definitions: dict[str, str] = {}
        self.metaobjects: dict[str, dict[str, Any]] = {}
        self.images: dict[str, dict[str, Any]] = {}
        self.transfer_status = 201
        self.graphql_status = 200
        self.user_errors: dict[str, list[dict[str, Any]]] = {}
        self.foreign_nodes: dict[str, dict[str, Any]] = {}

    # recording helpers

    def names(self, kind: str | None = None) -> list[str]:
        return [name for call_kind, name in self.calls if kind is None or call_kind == kind]

    def _next_id(self) -> int:
        return next(self._ids)

    # transport

    def handler(self, request: httpx.Request) -> httpx.Response:
        if request.url.host == STAGED_HOST:
            return self._transfer(request)
        if request.url.path.endswith("/graphql.json"):
            assert request.headers["X-Shopify-Access-Token"] == "shpat_test"
            return self._graphql(request)
        match = _IMAGES.search(request.url.path)
        if match:
            return self._rest_images(request, match.group(1), match.group(2))
        return httpx.Response(404, json={"errors": "Not Found"})

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def _transfer(self, request: httpx.Request) -> httpx.Response:
        body = request.read()
        self.calls.append(("transfer", request.url.path))
        self.transfers.append(body)
        assert "X-Shopify-Access-Token" not in request.headers
        positions = [body.index(f'name="{name}"'.encode()) for name, _ in STAGED_PARAMETERS]
        file_position = body.index(b'name="file"')
        assert positions == sorted(positions), "target parameters out of order"
        assert positions[-1] < file_position, "file part must follow the target parameters"
        if self.transfer_status >= 300:
            return httpx.Response(self.transfer_status, text="<Error>AccessDenied</Error>")
        return httpx.Response(self.transfer_status, text="<PostResponse/>")

    def _graphql(self, request: httpx.Request) -> httpx.Response:
        document = json.loads(request.content)
        name = _OPERATION.match(document["query"]).group(1)
        self.calls.append(("graphql", name))
        if self.graphql_status >= 400:
            return httpx.Response(self.graphql_status, text="upstream unavailable")
        variables = document.get("variables") or {}
        data = getattr(self, f"_op_{name}")(variables)
        return httpx.Response(200, json={"data": data})

    def _errors(self, name: str) -> list[dict[str, Any]]:
        return self.user_errors.get(name, [])

    # staged uploads

    def _op_stagedUploadsCreate(self, variables):
        item = variables["input"][0]
        assert item["httpMethod"] == "POST"
        assert isinstance(item["fileSize"], str)
        if self._errors("stagedUploadsCreate"):
            return {"stagedUploadsCreate": {"stagedTargets": [], "userErrors": self._errors("stagedUploadsCreate")}}
        resource_url = f"https://{STAGED_HOST}/tmp/upload/{item['filename']}"
        return {
            "stagedUploadsCreate": {
                "stagedTargets": [
                    {
                        "url": f"https://{STAGED_HOST}/",
                        "resourceUrl": resource_url,
                        "parameters": [{"name": n, "value": v} for n, v in STAGED_PARAMETERS],
                    }
                ],
                "userErrors": [],
            }
        }

    # files

    def _op_fileCreate(self, variables):
        if self._errors("fileCreate"):
            return {"fileCreate": {"files": [], "userErrors": self._errors("fileCreate")}}
        created = []
        for item in variables["files"]:
            gid = _gid("GenericFile", self._next_id())
            node = {
                "id": gid,
                "alt": item["alt"],
                "createdAt": "2024-05-01T12:00:00Z",
                "fileStatus": "UPLOADED",
                "url": None,
                "mimeType": None,
                "originalFileSize": None,
            }
            self.files[gid] = node
            created.append(node)
        return {"fileCreate": {"files": created, "userErrors": []}}

    def _op_files(self, variables):
        assert variables["query"] == "media_type:GENERIC_FILE"
        nodes = list(self.files.values())[: variables["first"]]
        return {"files": {"edges": [{"node": node} for node in nodes]}}

    def _op_file(self, variables):
        return {"node": self.files.get(variables["id"])}

    def _op_fileDelete(self, variables):
        deleted = [gid for gid in variables["fileIds"] if self.files.pop(gid, None) is not None]
        errors = [] if deleted else [{"field": ["fileIds"], "message": "File does not exist"}]
        return {"fileDelete": {"deletedFileIds": deleted or None, "userErrors": errors}}

    # storage product

    def _op_storageProduct(self, variables):
        tag = variables["query"].split("'")[1]
        edges = [{"node": product} for product in self.products if tag in product["tags"]]
        return {"products": {"edges": edges[:1]}}

    def _op_productCreate(self, variables):
        product_input = variables["product"]
        assert product_input["status"] == "DRAFT"
        product = {
            "id": _gid("Product", self._next_id()),
            "title": product_input["title"],
            "tags": list(product_input["tags"]),
        }
        self.products.append(product)
        return {"productCreate": {"product": product, "userErrors": []}}

    # product media

    def _op_productCreateMedia(self, variables):
        if self._errors("productCreateMedia"):
            return {"productCreateMedia": {"media": [], "mediaUserErrors": self._errors("productCreateMedia")}}
        created = []
        for item in variables["media"]:
            node = {
                "id": _gid("MediaImage", self._next_id()),
                "alt": item["alt"],
                "status": "UPLOADED",
                "mediaContentType": "IMAGE",
                "createdAt": "2024-05-01T12:00:00Z",
                "mimeType": None,
                "image": None,
                "originalSource": None,
                "productId": variables["productId"],
            }
            self.media[node["id"]] = node
            created.append(node)
        return {"productCreateMedia": {"media": created, "mediaUserErrors": []}}

    def _op_productMedia(self, variables):
        nodes = [node for node in self.media.values() if node["productId"] == variables["productId"]]
        return {"product": {"media": {"edges": [{"node": node} for node in nodes]}}}

    def _op_media(self, variables):
        return {"node": self.media.get(variables["id"]) or self.foreign_nodes.get(variables["id"])}

    def _op_productDeleteMedia(self, variables):
        deleted = [gid for gid in variables["mediaIds"] if self.media.pop(gid, None) is not None]
        errors = [] if deleted else [{"field": ["mediaIds"], "message": "Media does not exist"}]
        return {"productDeleteMedia": {"deletedMediaIds": deleted or None, "mediaUserErrors": errors}}

    # metaobjects

    def _op_definition(self, variables):
        definition_id = self.definitions.get(variables["type"])
        return {
            "metaobjectDefinitionByType": (
                {"id": definition_id, "type": variables["type"]} if definition_id else None
            )
        }

    def _op_metaobjectDefinitionCreate(self, variables):
        definition = variables["definition"]
        definition_id = _gid("MetaobjectDefinition", self._next_id())
        self.definitions[definition["type"]] = definition_id
        return {
            "metaobjectDefinitionCreate": {
                "metaobjectDefinition": {"id": definition_id, "type": definition["type"]},
                "userErrors": [],
            }
        }

    def _op_metaobjectCreate(self, variables):
        metaobject = variables["metaobject"]
        assert metaobject["type"] in self.definitions
        node = {
            "id": _gid("Metaobject", self._next_id()),
            "type": metaobject["type"],
            "handle": f"{metaobject['type']}-{len(self.metaobjects) + 1}",
            "updatedAt": "2024-05-01T12:00:00Z",
            "fields": [dict(field) for field in metaobject["fields"]],
        }
        self.metaobjects[node["id"]] = node
        return {"metaobjectCreate": {"metaobject": node, "userErrors": []}}

    def _op_metaobjects(self, variables):
        nodes = [node for node in self.metaobjects.values() if node["type"] == variables["type"]]
        return {"metaobjects": {"edges": [{"node": node} for node in nodes[: variables["first"]]]}}

    def _op_metaobject(self, variables):
        return {"node": self.metaobjects.get(variables["id"])}

    def _op_metaobjectDelete(self, variables):
        if self.metaobjects.pop(variables["id"], None) is None:
            return {
                "metaobjectDelete": {
                    "deletedId": None,
                    "userErrors": [{"field": ["id"], "message": "Record not found"}],
                }
            }
        return {"metaobjectDelete": {"deletedId": variables["id"], "userErrors": []}}

    # REST product images

    def _rest_images(self, request: httpx.Request, product_id: str, image_id: str | None) -> httpx.Response:
        self.calls.append(("rest", f"{request.method} {request.url.path}"))
        if not any(product["id"] == _gid("Product", product_id) for product in self.products):
            return httpx.Response(404, json={"errors": "Not Found"})
        if image_id is None and request.method == "GET":
            images = [image for image in self.images.values() if image["product_id"] == int(product_id)]
            return httpx.Response(200, json={"images": images})
        if image_id is None and request.method == "POST":
            payload = json.loads(request.content)["image"]
            if not payload.get("attachment"):
                return httpx.Response(422, json={"errors": {"attachment": ["can't be blank"]}})
            local_id = self._next_id()
            image = {
                "id": local_id,
                "product_id": int(product_id),
                "alt": payload.get("alt"),
                "src": f"{CDN}/products/{payload['filename']}?v=1",
                "created_at": "2024-05-01T12:00:00-04:00",
                "admin_graphql_api_id": _gid("ProductImage", local_id),
            }
            self.images[str(local_id)] = image
            return httpx.Response(200, json={"image": image})
        if image_id not in self.images:
            return httpx.Response(404, json={"errors": "Not Found"})
        if request.method == "DELETE":
            del self.images[image_id]
            return httpx.Response(200, json={})
        return httpx.Response(200, json={"image": self.images[image_id]})


@pytest.fixture
def fake_shop() -> FakeShopify:
    return FakeShopify()


@pytest.fixture
def logger() -> logging.Logger:
    return logging.getLogger("shopassets.tests")


@pytest.fixture
def client(fake_shop, logger) -> ShopifyClient:
    return ShopifyClient(
        shop_domain=SHOP_DOMAIN,
        access_token="shpat_test",
        logger=logger,
        api_version=API_VERSION,
        transport=fake_shop.transport(),
    )


@pytest.fixture
def storage_settings() -> StorageSettings:
    return StorageSettings()


@pytest.fixture
def shop_environ() -> dict[str, str]:
    return {"SHOPIFY_SHOP_DOMAIN": SHOP_DOMAIN, "SHOPIFY_ACCESS_TOKEN": "shpat_test"}
