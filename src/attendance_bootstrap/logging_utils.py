"""Logging for bootstrap runs.

Operator-facing progress goes to stderr through rich so stdout stays reserved
for the milestone lines. When a log file is configured every record is also
appended as one JSON object, including the ``event`` and ``data`` extras the
gateway and sequencer attach to transaction records.
"""

from __future__ import annotations

import json
import logging
from logging import Logger
from pathlib import Path
from typing import Any, Dict, Optional

from rich.console import Console
from rich.logging import RichHandler

LOGGER_NAME = "attendance_bootstrap"


def configure_logging(log_file: Optional[str] = None, *, level: str | int = logging.INFO) -> Logger:
    """Install the stderr handler and, if ``log_file`` is given, the JSON-lines file handler.

    Calling it again replaces the handlers, so repeated runs in one process
    do not duplicate output.
    """

    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.INFO)

    console = Console(stderr=True)
    handler = RichHandler(console=console, show_time=False, show_path=False)
    handler.setFormatter(logging.Formatter("%(message)s"))

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)
    for stale in list(logger.handlers):
        logger.removeHandler(stale)
        stale.close()
    logger.addHandler(handler)

    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(StructuredJsonFormatter())
        logger.addHandler(file_handler)

    logger.debug("Structured logging initialised", extra={"event": "logging_ready"})
    return logger


class StructuredJsonFormatter(logging.Formatter):
    """One JSON object per record: level, message, logger, time, plus ``event``/``data`` when present."""

    def format(self, record: logging.LogRecord) -> str:
        base: Dict[str, Any] = {
            "level": record.levelname,
            "message": record.getMessage(),
            "logger": record.name,
            "time": self.formatTime(record, "%Y-%m-%dT%H:%M:%S%z"),
        }
        if record.exc_info:
            base["exc_info"] = self.formatException(record.exc_info)
        if hasattr(record, "event"):
            base["event"] = getattr(record, "event")
        if hasattr(record, "data"):
            base["data"] = getattr(record, "data")
        return json.dumps(base, default=str)


__all__ = ["LOGGER_NAME", "StructuredJsonFormatter", "configure_logging"]
