"""Configuration loading for Shopassets."""

from __future__ import annotations

import os
import sys
from collections.abc import Mapping
from dataclasses import dataclass, field
from importlib import resources
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from shopassets.core.errors import ConfigurationError

DEFAULT_CONFIG_PATH = Path("config/default.yaml")
LOCAL_CONFIG_PATH = Path("config/local.yaml")

ENV_SHOP_DOMAIN = "SHOPIFY_SHOP_DOMAIN"
ENV_ACCESS_TOKEN = "SHOPIFY_ACCESS_TOKEN"
ENV_BACKEND = "SHOPASSETS_BACKEND"
ENV_PORT = "PORT"


class LoggingSettings(BaseModel):
    """Logging configuration."""

    model_config = ConfigDict(extra="forbid")

    path: Path | None = None
    level: str = Field(default="info")

    @field_validator("level", mode="before")
    @classmethod
    def _normalize_level(cls, value: str) -> str:
        if not isinstance(value, str):
            raise TypeError("Logging level must be a string.")
        normalized = value.strip().lower()
        if normalized not in {"debug", "info", "warn", "warning", "error", "critical"}:
            raise ValueError(f"Unsupported logging level: {value!r}")
        return normalized


class ShopSettings(BaseModel):
    """Remote shop connection settings."""

    model_config = ConfigDict(extra="forbid")

    domain: str | None = None
    access_token: str | None = Field(default=None, repr=False)
    api_version: str = Field(default="2024-10")
    timeout_seconds: float | None = Field(default=None, gt=0.0)

    @field_validator("domain", "access_token", mode="before")
    @classmethod
    def _blank_to_none(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value.strip() if isinstance(value, str) else value


class ContainerSettings(BaseModel):
    """Sentinel product used by variants without a top-level listing."""

    model_config = ConfigDict(extra="forbid")

    title: str = "Image Storage"
    tag: str = "shopassets-storage"


class StorageSettings(BaseModel):
    """Storage backend selection and limits."""

    model_config = ConfigDict(extra="forbid")

    backend: str = Field(default="files")
    page_size: int = Field(default=250, ge=1, le=250)
    max_upload_bytes: int = Field(default=20 * 1024 * 1024, ge=1)
    inline_max_bytes: int = Field(default=50_000, ge=1)
    metaobject_type: str = Field(default="image_asset")
    container: ContainerSettings = Field(default_factory=ContainerSettings)

    @field_validator("backend", mode="before")
    @classmethod
    def _normalize_backend(cls, value: Any) -> str:
        if not isinstance(value, str) or not value.strip():
            raise TypeError("Storage backend must be a non-empty string.")
        return value.strip().lower().replace("-", "_")


class ServerSettings(BaseModel):
    """HTTP server binding."""

    model_config = ConfigDict(extra="forbid")

    host: str = "127.0.0.1"
    port: int = Field(default=3000, ge=1, le=65535)


class ConfigModel(BaseModel):
    """Root configuration model."""

    model_config = ConfigDict(extra="forbid")

    version: int = 1
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    shop: ShopSettings = Field(default_factory=ShopSettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)
    server: ServerSettings = Field(default_factory=ServerSettings)


@dataclass(frozen=True, slots=True)
class Credentials:
    """Resolved shop identifier and access credential."""

    shop_domain: str
    access_token: str = field(repr=False)


@dataclass(slots=True)
class Config:
    """Validated configuration with convenience helpers."""

    model: ConfigModel
    raw: Mapping[str, Any] = field(repr=False)
    loaded_from: tuple[str, ...] = field(default_factory=tuple, repr=False)

    @property
    def logging(self) -> LoggingSettings:
        """Return logging settings."""

        return self.model.logging

    @property
    def shop(self) -> ShopSettings:
        """Return shop connection settings."""

        return self.model.shop

    @property
    def storage(self) -> StorageSettings:
        """Return storage configuration."""

        return self.model.storage

    @property
    def server(self) -> ServerSettings:
        """Return server binding."""

        return self.model.server

    def credentials(self, environ: Mapping[str, str] | None = None) -> Credentials:
        """Resolve credentials, preferring the environment over the config file.

        Raises ConfigurationError when either value is missing.
        """

        env = os.environ if environ is None else environ
        domain = (env.get(ENV_SHOP_DOMAIN) or "").strip() or self.shop.domain
        token = (env.get(ENV_ACCESS_TOKEN) or "").strip() or self.shop.access_token
        missing = []
        if not domain:
            missing.append(ENV_SHOP_DOMAIN)
        if not token:
            missing.append(ENV_ACCESS_TOKEN)
        if missing:
            raise ConfigurationError(f"Missing Shopify credentials: {', '.join(missing)}")
        return Credentials(shop_domain=domain, access_token=token)

    def with_backend(self, backend: str) -> Config:
        """Return a copy selecting a different storage backend."""

        storage = self.model.storage.model_copy(update={"backend": backend.strip().lower()})
        model = self.model.model_copy(update={"storage": storage})
        return Config(model=model, raw=self.raw, loaded_from=self.loaded_from)

    def model_dump(self) -> Mapping[str, Any]:
        """Expose the parsed configuration as a mapping, credentials redacted."""

        data = self.model.model_dump(mode="json")
        if data["shop"].get("access_token"):
            data["shop"]["access_token"] = "***"
        return data


def load_config(path: Path | None = None, environ: Mapping[str, str] | None = None) -> Config:
    """Load configuration from defaults/local overrides, or from an explicit config document."""

    merged: dict[str, Any] = {}
    loaded_from: list[str] = []

    if path is not None:
        override_path = _resolve_path(path)
        if override_path is None or not override_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {path}")
        merged = _merge_dicts(merged, _read_yaml(override_path))
        loaded_from.append(str(override_path))
    else:
        default_candidate = _resolve_path(DEFAULT_CONFIG_PATH)
        packaged_default = _resolve_packaged_path(DEFAULT_CONFIG_PATH)
        if default_candidate and default_candidate.exists():
            merged = _merge_dicts(merged, _read_yaml(default_candidate))
            loaded_from.append(str(default_candidate))
        elif packaged_default and packaged_default.exists():
            merged = _merge_dicts(merged, _read_yaml(packaged_default))
            loaded_from.append(str(packaged_default))
        else:
            packaged_payload = _read_packaged_yaml("shopassets.config", "default.yaml")
            if packaged_payload is not None:
                merged = _merge_dicts(merged, packaged_payload)
                loaded_from.append("shopassets.config:default.yaml")

        local_candidate = _resolve_path(LOCAL_CONFIG_PATH)
        if local_candidate and local_candidate.exists():
            merged = _merge_dicts(merged, _read_yaml(local_candidate))
            loaded_from.append(str(local_candidate))

    if not merged:
        raise FileNotFoundError("No configuration data could be loaded.")

    merged = _apply_environment(merged, os.environ if environ is None else environ)

    try:
        model = ConfigModel.model_validate(merged)
    except ValidationError as exc:
        raise ValueError(f"Invalid configuration: {exc}") from exc

    return Config(model=model, raw=merged, loaded_from=tuple(loaded_from))


def _apply_environment(data: dict[str, Any], environ: Mapping[str, str]) -> dict[str, Any]:
    """Overlay the backend and port environment overrides."""

    overrides: dict[str, Any] = {}
    backend = (environ.get(ENV_BACKEND) or "").strip()
    if backend:
        overrides["storage"] = {"backend": backend}
    port = (environ.get(ENV_PORT) or "").strip()
    if port:
        overrides["server"] = {"port": port}
    if not overrides:
        return data
    return _merge_dicts(data, overrides)


def _resolve_path(path: Path) -> Path | None:
    """Resolve configuration paths relative to the current working directory."""

    if path is None:
        return None
    return path if path.is_absolute() else Path.cwd() / path


def _resolve_packaged_path(path: Path) -> Path | None:
    """Resolve paths embedded in packaged binaries (e.g., PyInstaller)."""

    base = getattr(sys, "_MEIPASS", None)
    if not base:
        return None
    return Path(base) / path


def _read_yaml(path: Path) -> dict[str, Any]:
    """Read a YAML file into a dictionary."""

    content = path.read_text(encoding="utf-8")
    data = yaml.safe_load(content) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Configuration file {path} must define a mapping at the top level.")
    return data


def _read_packaged_yaml(package: str, name: str) -> dict[str, Any] | None:
    """Read YAML embedded in a Python package via importlib.resources."""

    try:
        content = resources.files(package).joinpath(name).read_text(encoding="utf-8")
    except FileNotFoundError:
        return None
    data = yaml.safe_load(content) or {}
    if not isinstance(data, dict):
        raise ValueError(
            f"Packaged configuration {package}:{name} must define a mapping at the top level."
        )
    return data


def _merge_dicts(base: Mapping[str, Any], override: Mapping[str, Any]) -> dict[str, Any]:
    """Deep-merge two dictionaries, with override values taking precedence."""

    result: dict[str, Any] = dict(base)
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _merge_dicts(result[key], value)
        else:
            result[key] = value
    return result
