"""Command line interface for Shopassets."""

from __future__ import annotations

import asyncio
import json
import logging
import mimetypes
import pathlib
from typing import Optional

import typer
import yaml
from dotenv import load_dotenv
from rich.console import Console
from rich.table import Table

from shopassets import get_version
from shopassets.backends.registry import load_default_backends, registry as backend_registry
from shopassets.config import Config, load_config
from shopassets.core.errors import ConfigurationError, ShopAssetsError
from shopassets.core.models import AssetDescriptor, UploadRequest
from shopassets.logging import configure_logging
from shopassets.services import AssetServices, build_services


def _load_environment(env_file: Optional[pathlib.Path]) -> None:
    """Load environment variables from .env files."""

    if env_file is not None:
        load_dotenv(dotenv_path=env_file, override=True)
    else:
        load_dotenv(override=False)


def _prepare_logging(
    config: Config,
    override_path: Optional[pathlib.Path],
    override_level: Optional[str],
    *,
    mirror_to_console: bool = False,
) -> logging.Logger:
    """Configure logging based on configuration and overrides."""

    return configure_logging(
        log_path=override_path or config.logging.path,
        level=(override_level or config.logging.level).upper(),
        mirror_to_console=mirror_to_console,
        include_server_loggers=True,
    )


def _services(ctx: typer.Context) -> AssetServices:
    config: Config = ctx.obj["config"]
    logger: logging.Logger = ctx.obj["logger"]
    try:
        return build_services(config, logger)
    except ConfigurationError as exc:
        typer.echo(f"Configuration error: {exc}", err=True)
        raise typer.Exit(code=2) from exc


def _fail(exc: Exception) -> typer.Exit:
    typer.echo(f"Error: {exc}", err=True)
    return typer.Exit(code=1)


def _descriptor_table(images: list[AssetDescriptor]) -> Table:
    table = Table(title=f"Images ({len(images)})")
    table.add_column("ID", overflow="fold")
    table.add_column("Name")
    table.add_column("Type")
    table.add_column("Size", justify="right")
    table.add_column("Status")
    table.add_column("Created")
    for image in images:
        table.add_row(
            image.id,
            image.display_name or "-",
            image.mime_type or "-",
            str(image.size_bytes) if image.size_bytes is not None else "-",
            image.status.value,
            image.created_at or "-",
        )
    return table


app = typer.Typer(
    name="shopassets",
    help="Store and retrieve images through the Shopify Admin API.",
    no_args_is_help=True,
    add_completion=False,
)

config_app = typer.Typer(help="Configuration utilities.", no_args_is_help=True)
app.add_typer(config_app, name="config")


def _version_callback(value: bool) -> None:
    """Print the package version and exit when requested."""

    if value:
        typer.echo(get_version())
        raise typer.Exit()


@app.callback()
def main(  # pragma: no cover - exercised via CLI invocation
    ctx: typer.Context,
    config: Optional[pathlib.Path] = typer.Option(
        None,
        "--config",
        metavar="PATH",
        help="Path to YAML configuration file (used exclusively).",
    ),
    env_file: Optional[pathlib.Path] = typer.Option(
        None,
        "--env-file",
        metavar="PATH",
        help="Load environment variables from .env-style file before execution.",
    ),
    log_level: Optional[str] = typer.Option(
        None,
        "--log-level",
        metavar="LEVEL",
        help="Override the configured log level (debug, info, warn, error).",
    ),
    log_path: Optional[pathlib.Path] = typer.Option(
        None,
        "--log-path",
        metavar="PATH",
        help="Override the base directory or file for log output.",
    ),
    backend: Optional[str] = typer.Option(
        None,
        "--backend",
        metavar="NAME",
        help="Select the storage backend (files, metaobject, product_media, product_image).",
    ),
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show Shopassets version and exit.",
    ),
) -> None:
    """CLI root; loads configuration, logging, and shared context."""

    ctx.ensure_object(dict)

    _load_environment(env_file)

    try:
        config_obj = load_config(config)
    except (FileNotFoundError, ValueError) as exc:
        raise typer.BadParameter(str(exc), param_hint="--config") from exc

    load_default_backends()
    backend_registry.load_entrypoints()
    if backend:
        config_obj = config_obj.with_backend(backend)
    try:
        backend_registry.get(config_obj.storage.backend)
    except ConfigurationError as exc:
        raise typer.BadParameter(str(exc), param_hint="--backend") from exc

    logger = _prepare_logging(
        config_obj, log_path, log_level, mirror_to_console=ctx.invoked_subcommand == "serve"
    )

    ctx.obj.update(
        {
            "config": config_obj,
            "config_path": config,
            "logger": logger,
        }
    )


@config_app.command("show")
def config_show(
    ctx: typer.Context,
    format: str = typer.Option(
        "yaml",
        "--format",
        help="Output format (yaml or json).",
    ),
    paths: bool = typer.Option(
        False,
        "--paths",
        help="List the configuration files that were merged.",
    ),
) -> None:
    """Show the effective configuration for this invocation (token redacted)."""

    config: Config = ctx.obj["config"]

    normalized_format = format.strip().lower()
    if normalized_format not in {"yaml", "json"}:
        raise typer.BadParameter("Format must be 'yaml' or 'json'.", param_hint="--format")

    if paths and config.loaded_from:
        typer.echo("Loaded configuration from:", err=True)
        for entry in config.loaded_from:
            typer.echo(f"- {entry}", err=True)

    data = dict(config.model_dump())
    if normalized_format == "json":
        typer.echo(json.dumps(data, indent=2))
    else:
        typer.echo(yaml.safe_dump(data, sort_keys=False))


@app.command()
def serve(
    ctx: typer.Context,
    host: Optional[str] = typer.Option(None, "--host", help="Bind address (default from config)."),
    port: Optional[int] = typer.Option(None, "--port", help="Bind port (default from config)."),
) -> None:  # pragma: no cover - runs a server
    """Serve the JSON API and upload dashboard."""

    import uvicorn

    from shopassets.web import create_app

    config: Config = ctx.obj["config"]
    logger: logging.Logger = ctx.obj["logger"]

    bind_host = host or config.server.host
    bind_port = port or config.server.port
    logger.info(
        "Serving on http://%s:%s using '%s' Shopify storage.",
        bind_host,
        bind_port,
        config.storage.backend,
    )
    uvicorn.run(
        create_app(config, logger),
        host=bind_host,
        port=bind_port,
        log_config=None,
    )


@app.command("list")
def list_images(
    ctx: typer.Context,
    as_json: bool = typer.Option(False, "--json", help="Print descriptors as JSON."),
) -> None:
    """List stored images."""

    services = _services(ctx)
    images = asyncio.run(services.repository.list())
    if as_json:
        typer.echo(json.dumps([image.as_json() for image in images], indent=2))
        return
    Console().print(_descriptor_table(images))


@app.command()
def get(ctx: typer.Context, image_id: str = typer.Argument(..., metavar="ID")) -> None:
    """Show one image by bare or fully-qualified id."""

    services = _services(ctx)
    try:
        image = asyncio.run(services.repository.get(image_id))
    except ShopAssetsError as exc:
        raise _fail(exc) from exc
    if image is None:
        typer.echo(f"Image {image_id} not found.", err=True)
        raise typer.Exit(code=1)
    typer.echo(json.dumps(image.as_json(), indent=2))


@app.command()
def upload(
    ctx: typer.Context,
    path: pathlib.Path = typer.Argument(..., exists=True, dir_okay=False, readable=True),
    content_type: Optional[str] = typer.Option(
        None, "--content-type", help="MIME type (guessed from the file name by default)."
    ),
    name: Optional[str] = typer.Option(None, "--name", help="Filename to store (default: file name)."),
) -> None:
    """Upload an image file."""

    services = _services(ctx)
    resolved_type = content_type or mimetypes.guess_type(path.name)[0] or "application/octet-stream"
    request = UploadRequest(
        payload=path.read_bytes(),
        filename=name or path.name,
        content_type=resolved_type,
    )
    try:
        descriptor = asyncio.run(services.orchestrator.upload(request))
    except ShopAssetsError as exc:
        raise _fail(exc) from exc
    typer.echo(json.dumps(descriptor.as_json(), indent=2))


@app.command()
def delete(ctx: typer.Context, image_id: str = typer.Argument(..., metavar="ID")) -> None:
    """Delete an image by bare or fully-qualified id."""

    services = _services(ctx)
    try:
        deleted = asyncio.run(services.repository.delete(image_id))
    except ShopAssetsError as exc:
        raise _fail(exc) from exc
    typer.echo(f"Deleted {deleted}")


@app.command("ensure-container")
def ensure_container(ctx: typer.Context) -> None:
    """Locate or create the remote container the selected backend needs."""

    services = _services(ctx)
    try:
        container = asyncio.run(services.backend.ensure_container())
    except ShopAssetsError as exc:
        raise _fail(exc) from exc
    if container is None:
        typer.echo(f"Backend '{services.backend.name}' needs no container.")
    else:
        typer.echo(container)


@app.command()
def version() -> None:
    """Print the Shopassets version."""

    typer.echo(get_version())
