"""Configuration utilities for Shopassets."""

from .loader import Config, Credentials, StorageSettings, load_config

__all__ = ["Config", "Credentials", "StorageSettings", "load_config"]
