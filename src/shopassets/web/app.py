"""FastAPI application exposing the asset API and upload dashboard."""

from __future__ import annotations

import logging
import mimetypes
import time
import traceback
from collections.abc import Mapping
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

import httpx
from fastapi import APIRouter, FastAPI, File, Request, UploadFile
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse, Response

from shopassets import get_version
from shopassets.config import Config
from shopassets.core.errors import (
    InvalidIdentifierError,
    InvalidUploadError,
    RemoteNotFoundError,
    ShopAssetsError,
)
from shopassets.core.models import UploadRequest
from shopassets.services import AssetServices, ServiceProvider
from shopassets.web.dashboard import render_dashboard, render_error

STORAGE_LABEL = "shopify"

api_router = APIRouter(prefix="/api", tags=["Images"])
dashboard_router = APIRouter(prefix="/dashboard", tags=["Dashboard"])
operations_router = APIRouter(tags=["Operations"])


def _provider(request: Request) -> ServiceProvider:
    return request.app.state.services


def _logger(request: Request) -> logging.Logger:
    return request.app.state.logger


async def _services(request: Request) -> AssetServices:
    return await _provider(request).get()


def _upload_filename(original: str) -> str:
    """Prefix the client filename with a millisecond timestamp."""
    return f"{int(time.time() * 1000)}-{original}"


def _content_type(upload: UploadFile) -> str:
    if upload.content_type and upload.content_type != "application/octet-stream":
        return upload.content_type
    guessed, _ = mimetypes.guess_type(upload.filename or "")
    return guessed or upload.content_type or "application/octet-stream"


@operations_router.get("/")
async def index() -> RedirectResponse:
    return RedirectResponse("/dashboard", status_code=302)


@operations_router.get("/health")
async def health(request: Request) -> JSONResponse:
    return JSONResponse(
        {
            "status": "ok",
            "storage": STORAGE_LABEL,
            "backend": _provider(request).backend_name,
            "version": get_version(),
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
    )


@api_router.get("/images")
async def list_images(request: Request) -> JSONResponse:
    try:
        services = await _services(request)
        images = await services.repository.list()
    except ShopAssetsError as exc:
        _logger(request).error("API error: %s", exc)
        return JSONResponse({"success": False, "error": str(exc)}, status_code=500)
    return JSONResponse(
        {
            "success": True,
            "count": len(images),
            "images": [image.as_json() for image in images],
            "storage": STORAGE_LABEL,
        }
    )


@api_router.get("/images/{image_id:path}/content")
async def get_image_content(request: Request, image_id: str) -> Response:
    try:
        services = await _services(request)
        content = await services.repository.read_content(image_id)
    except InvalidIdentifierError as exc:
        return JSONResponse({"error": str(exc)}, status_code=400)
    except ShopAssetsError as exc:
        _logger(request).error("Image content error: %s", exc)
        return JSONResponse({"error": str(exc)}, status_code=500)
    if content is None:
        return JSONResponse({"error": "Image not found"}, status_code=404)
    payload, content_type = content
    return Response(content=payload, media_type=content_type)


@api_router.get("/images/{image_id:path}")
async def get_image(request: Request, image_id: str) -> Response:
    try:
        services = await _services(request)
        image = await services.repository.get(image_id)
    except InvalidIdentifierError as exc:
        return JSONResponse({"error": str(exc)}, status_code=400)
    except ShopAssetsError as exc:
        _logger(request).error("Image fetch error: %s", exc)
        return JSONResponse({"error": str(exc)}, status_code=500)
    if image is None or not image.url:
        return JSONResponse({"error": "Image not found"}, status_code=404)
    return RedirectResponse(image.url, status_code=302)


@api_router.delete("/images/{image_id:path}")
async def delete_image(request: Request, image_id: str) -> JSONResponse:
    try:
        services = await _services(request)
        deleted = await services.repository.delete(image_id)
    except InvalidIdentifierError as exc:
        return JSONResponse({"success": False, "error": str(exc)}, status_code=400)
    except RemoteNotFoundError as exc:
        return JSONResponse({"success": False, "error": str(exc)}, status_code=404)
    except ShopAssetsError as exc:
        _logger(request).error("Delete error for %s: %s", image_id, exc)
        return JSONResponse({"success": False, "error": str(exc)}, status_code=500)
    return JSONResponse({"success": True, "deletedId": deleted})


@dashboard_router.get("")
async def dashboard(request: Request) -> HTMLResponse:
    try:
        services = await _services(request)
        images = await services.repository.list()
    except ShopAssetsError as exc:
        _logger(request).error("Dashboard error: %s", exc)
        return HTMLResponse(
            render_error("Dashboard unavailable", f"Error loading dashboard: {exc}"),
            status_code=500,
        )
    return HTMLResponse(render_dashboard(images, backend=services.backend.name))


@dashboard_router.post("/upload")
async def upload(request: Request, image: Optional[UploadFile] = File(None)) -> Response:
    if image is None or not image.filename:
        return HTMLResponse(render_error("Upload failed", "No file uploaded"), status_code=400)

    logger = _logger(request)
    try:
        payload = await image.read()
        services = await _services(request)
        descriptor = await services.orchestrator.upload(
            UploadRequest(
                payload=payload,
                filename=_upload_filename(image.filename),
                content_type=_content_type(image),
            )
        )
    except InvalidUploadError as exc:
        return HTMLResponse(render_error("Upload failed", str(exc)), status_code=400)
    except Exception as exc:  # noqa: BLE001
        logger.exception("Upload error: %s", exc)
        return HTMLResponse(
            render_error("Upload failed", f"Upload failed: {exc}", detail=traceback.format_exc()),
            status_code=500,
        )
    finally:
        await image.close()

    logger.info("File uploaded to Shopify: %s", descriptor.id)
    return RedirectResponse("/dashboard", status_code=302)


def create_app(
    config: Config,
    logger: Optional[logging.Logger] = None,
    *,
    environ: Optional[Mapping[str, str]] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
    warm_up: bool = True,
) -> FastAPI:
    """Create the web application for `config`.

    Credentials are resolved lazily; a missing credential becomes a 500 on the
    first request that needs the remote platform.
    """

    app_logger = logger or logging.getLogger("shopassets.web")
    provider = ServiceProvider(config, app_logger, environ=environ, transport=transport)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if warm_up:
            await provider.warm_up()
        yield

    app = FastAPI(title="Shopassets", version=get_version(), lifespan=lifespan)
    app.state.services = provider
    app.state.logger = app_logger
    app.include_router(operations_router)
    app.include_router(api_router)
    app.include_router(dashboard_router)
    return app


__all__ = ["create_app"]
