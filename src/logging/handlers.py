# src/logging/handlers.py — v2
"""Size-based rotating file handler for pager logs."""

from __future__ import annotations

import re
from logging.handlers import RotatingFileHandler
from pathlib import Path

_UNITS = {"": 1, "B": 1, "KB": 1024, "MB": 1024**2, "GB": 1024**3}


def parse_size(size: str | int) -> int:
    """Parse '10MB', '512kb', '2048' or an int into a byte count."""
    if isinstance(size, int):
        if size < 0:
            raise ValueError(f"Size must be >= 0, got {size}")
        return size
    match = re.fullmatch(r"\s*(\d+)\s*([KMG]?B)?\s*", size, re.IGNORECASE)
    if not match:
        raise ValueError(f"Invalid size format: {size!r}. Use e.g. '10MB'.")
    unit = (match.group(2) or "").upper()
    return int(match.group(1)) * _UNITS[unit]


def create_rotating_handler(
    log_file: str | Path,
    rotation: str | int = "10MB",
    retention: int = 30,
) -> RotatingFileHandler:
    """Create a rotating file handler, creating parent directories.

    The file is opened lazily on first emit.
    """
    path = Path(log_file).expanduser()
    path.parent.mkdir(parents=True, exist_ok=True)
    return RotatingFileHandler(
        filename=str(path),
        maxBytes=parse_size(rotation),
        backupCount=retention,
        encoding="utf-8",
        delay=True,
    )
