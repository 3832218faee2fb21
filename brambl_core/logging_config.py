"""
Logging configuration for Brambl key-store tools.

Key-store modules attach context to their records through ``extra``:

    logger.info("Keystore exported", extra={"public_key_id": pk, "keyfile": path})

Both formatters carry those fields: the JSON formatter as top-level keys,
the human formatter as a ``[key=value ...]`` suffix.  Passwords, derived
keys and private keys are never passed to a logger.

Usage:
    from brambl_core.logging_config import setup_logging
    setup_logging(level="DEBUG", fmt="json", log_file="brambl.log")
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

from brambl_core.config import LoggingConfig

# LogRecord attributes set via ``extra=`` by the key-store modules
CONTEXT_FIELDS = ("public_key_id", "keyfile", "cipher")

LEVEL_COLOURS = {
    logging.DEBUG: "\033[36m",
    logging.INFO: "\033[32m",
    logging.WARNING: "\033[33m",
    logging.ERROR: "\033[31m",
    logging.CRITICAL: "\033[1;31m",
}
_RESET = "\033[0m"


def record_context(record: logging.LogRecord) -> dict[str, Any]:
    """Key-store context fields present on *record*."""
    return {
        name: getattr(record, name)
        for name in CONTEXT_FIELDS
        if getattr(record, name, None) is not None
    }


class _JSONFormatter(logging.Formatter):
    """One JSON object per record, context fields at the top level."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc)
            .isoformat(timespec="milliseconds"),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        entry.update(record_context(record))
        if record.exc_info and record.exc_info[1]:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


class _HumanFormatter(logging.Formatter):
    """Single-line format, coloured when writing to a terminal."""

    def __init__(self, colour: bool = True):
        super().__init__()
        self.colour = colour

    def format(self, record: logging.LogRecord) -> str:
        ts = datetime.fromtimestamp(record.created).strftime("%H:%M:%S")
        level = f"[{record.levelname:<7}]"
        if self.colour:
            level = f"{LEVEL_COLOURS.get(record.levelno, '')}{level}{_RESET}"
        line = f"{ts} {level} {record.name}: {record.getMessage()}"

        context = record_context(record)
        if context:
            line += " [" + " ".join(f"{k}={v}" for k, v in context.items()) + "]"
        if record.exc_info and record.exc_info[1]:
            line += "\n" + self.formatException(record.exc_info)
        return line


def setup_logging(
    level: str = "INFO",
    fmt: str = "human",
    log_file: Optional[str] = None,
) -> None:
    """
    Configure the root logger.

    Parameters
    ----------
    level : str
        One of DEBUG, INFO, WARNING, ERROR, CRITICAL; anything else means INFO.
    fmt : str
        ``"human"`` or ``"json"`` for the stderr handler.
    log_file : str, optional
        Also append JSON records to this file, creating parent directories.
    """
    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    root.handlers.clear()

    console = logging.StreamHandler(sys.stderr)
    if fmt == "json":
        console.setFormatter(_JSONFormatter())
    else:
        console.setFormatter(_HumanFormatter(colour=sys.stderr.isatty()))
    root.addHandler(console)

    if log_file:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(path, encoding="utf-8")
        file_handler.setFormatter(_JSONFormatter())
        root.addHandler(file_handler)


def setup_logging_from_config(cfg: LoggingConfig) -> None:
    """Apply the ``[logging]`` section of a loaded configuration."""
    setup_logging(level=cfg.level, fmt=cfg.format, log_file=cfg.file)
