"""Logging helpers for Shopassets."""

from .setup import LOGGER_NAME, configure_logging, log_file_of

__all__ = ["LOGGER_NAME", "configure_logging", "log_file_of"]
