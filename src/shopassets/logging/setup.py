"""Logging setup helpers."""

from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

LOGGER_NAME = "shopassets"
LOG_FILENAME = f"{LOGGER_NAME}.log"
LOG_FORMAT = "%(asctime)s %(process)08x %(levelname).1s %(name)s %(message)s"
MAX_BYTES = 2 * 1024 * 1024
BACKUP_COUNT = 5

# Server loggers that share the package handlers when the web app is served.
SERVER_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access")


def configure_logging(
    log_path: Path | None = None,
    level: str = "INFO",
    mirror_to_console: bool = True,
    *,
    write_file: bool = True,
    include_server_loggers: bool = False,
) -> logging.Logger:
    """Configure the Shopassets logger.

    `write_file=False` keeps output on the console only. With
    `include_server_loggers` the uvicorn loggers are routed through the same
    handlers so request logs land in the Shopassets log file.
    """

    logger = logging.getLogger(LOGGER_NAME)
    _reset(logger)

    numeric_level = _normalize_level(level)
    logger.setLevel(numeric_level)

    formatter = logging.Formatter(LOG_FORMAT)
    handlers: list[logging.Handler] = []

    if write_file:
        file_path = _resolve_log_path(log_path)
        file_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            file_path,
            maxBytes=MAX_BYTES,
            backupCount=BACKUP_COUNT,
            encoding="utf-8",
        )
        handlers.append(file_handler)

    if mirror_to_console or not handlers:
        handlers.append(logging.StreamHandler())

    for handler in handlers:
        handler.setLevel(numeric_level)
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    if include_server_loggers:
        for name in SERVER_LOGGERS:
            server_logger = logging.getLogger(name)
            _reset(server_logger)
            server_logger.setLevel(numeric_level)
            for handler in handlers:
                server_logger.addHandler(handler)

    return logger


def log_file_of(logger: logging.Logger) -> Path | None:
    """Return the file a configured logger writes to, if any."""

    for handler in logger.handlers:
        filename = getattr(handler, "baseFilename", None)
        if filename:
            return Path(filename)
    return None


def _reset(logger: logging.Logger) -> None:
    for handler in list(logger.handlers):
        handler.close()
        logger.removeHandler(handler)
    logger.propagate = False


def _normalize_level(level: str) -> int:
    """Convert log level strings to logging constants."""

    candidate = level.strip().upper()
    if candidate == "WARN":
        candidate = "WARNING"
    numeric = getattr(logging, candidate, None)
    if not isinstance(numeric, int):
        raise ValueError(f"Unsupported log level: {level!r}")
    return numeric


def _resolve_log_path(log_path: Path | None) -> Path:
    """Resolve the effective log file path."""

    if log_path is None:
        return Path.cwd() / LOG_FILENAME

    candidate = log_path if log_path.is_absolute() else Path.cwd() / log_path
    if candidate.is_dir() or candidate.suffix == "":
        return candidate / LOG_FILENAME
    return candidate
