"""Logging setup for the Penwright engine and its CLI.

Everything goes to a rotating file under ``~/.penwright/logs`` (or
``PENWRIGHT_LOG_DIR``). The console only shows warnings and errors, on
stderr, because stdout carries the streamed assistant reply.
"""

from __future__ import annotations

import logging
import logging.handlers
import os
import sys
from pathlib import Path
from typing import TextIO

__all__ = ["FILE_FORMAT", "CONSOLE_FORMAT", "setup_logging", "configure_logging"]

FILE_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
CONSOLE_FORMAT = "penwright: %(levelname)s: %(message)s"
LOG_DIR_ENV = "PENWRIGHT_LOG_DIR"

_DEFAULT_LOG_DIR = Path.home() / ".penwright" / "logs"
_LOG_FILENAME = "penwright.log"
_NOISY_LOGGERS: tuple[str, ...] = ("asyncio", "httpx", "httpcore", "openai")
_state: dict[str, Path | None] = {"log_path": None}


def setup_logging(
    level: int = logging.INFO,
    *,
    log_dir: Path | str | None = None,
    console: bool = True,
    stream: TextIO | None = None,
    max_bytes: int = 1_000_000,
    backup_count: int = 3,
    force: bool = False,
) -> Path | None:
    """Install the file and console handlers on the root logger.

    Returns the log file path, or ``None`` when the log directory cannot be
    created; logging then continues on the console alone. Repeated calls keep
    the first configuration unless ``force`` is set.
    """

    if _state["log_path"] is not None and not force:
        return _state["log_path"]

    handlers: list[logging.Handler] = []
    log_path = _log_file(log_dir)
    file_error: OSError | None = None
    try:
        handlers.append(_file_handler(log_path, level, max_bytes=max_bytes, backup_count=backup_count))
    except OSError as exc:
        file_error = exc
        log_path = None

    if console or file_error is not None:
        handlers.append(_console_handler(stream or sys.stderr, level))

    logging.basicConfig(level=level, handlers=handlers, force=True)
    logging.captureWarnings(True)
    _quiet_transport_loggers(level)

    if file_error is not None:
        logging.getLogger(__name__).warning("File logging disabled: %s", file_error)
    _state["log_path"] = log_path
    return log_path


def configure_logging(debug: bool = False, *, force: bool = False) -> Path | None:
    """Configure logging for the CLI from the ``debug_logging`` setting."""

    level = logging.DEBUG if debug else logging.INFO
    path = setup_logging(level, force=force)
    logging.getLogger(__name__).debug("Logging configured (level=%s, path=%s)", logging.getLevelName(level), path)
    return path


def _log_file(log_dir: Path | str | None) -> Path:
    directory = Path(log_dir or os.environ.get(LOG_DIR_ENV) or _DEFAULT_LOG_DIR).expanduser()
    return directory / _LOG_FILENAME


def _file_handler(path: Path, level: int, *, max_bytes: int, backup_count: int) -> logging.Handler:
    path.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.handlers.RotatingFileHandler(
        path, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8"
    )
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt=FILE_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    return handler


def _console_handler(stream: TextIO, level: int) -> logging.Handler:
    handler = logging.StreamHandler(stream)
    handler.setLevel(max(level, logging.WARNING))
    handler.setFormatter(logging.Formatter(fmt=CONSOLE_FORMAT))
    return handler


def _quiet_transport_loggers(root_level: int) -> None:
    quiet_level = max(root_level, logging.WARNING)
    for logger_name in _NOISY_LOGGERS:
        logging.getLogger(logger_name).setLevel(quiet_level)
