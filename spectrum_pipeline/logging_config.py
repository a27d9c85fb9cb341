"""
Logging setup for applications embedding the spectrum pipeline.

Library modules only create ``logging.getLogger(__name__)`` loggers; call
``configure_logging()`` once from an entry point to attach a handler.
"""

from __future__ import annotations

import json
import logging
import os
import sys
from datetime import datetime, timezone
from typing import Any, Optional, Union

# Pipeline fields passed through ``extra=`` that end up in JSON records
PIPELINE_FIELDS = ("bin_count", "fft_size", "source_mode", "frames_dropped", "frame_errors")

PRODUCTION_ENVS = ("production", "prod", "staging")

HUMAN_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
HUMAN_DATEFMT = "%Y-%m-%d %H:%M:%S"


class JSONFormatter(logging.Formatter):
    """One JSON object per record, for log shippers."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "thread": record.threadName,
            "message": record.getMessage(),
        }

        for key in PIPELINE_FIELDS:
            if hasattr(record, key):
                entry[key] = getattr(record, key)

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str)


def _resolve_level(level: Optional[Union[int, str]]) -> int:
    if level is None:
        level = os.environ.get("SPECTRUM_LOG_LEVEL", "INFO")
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(level.upper())
    return resolved if isinstance(resolved, int) else logging.INFO


def configure_logging(level: Optional[Union[int, str]] = None, stream=None) -> None:
    """Install a single root handler.

    ``SPECTRUM_ENV`` in production/prod/staging selects ``JSONFormatter``;
    anything else gets a human-readable line format. The level comes from
    ``level`` or ``SPECTRUM_LOG_LEVEL`` (default INFO). Output goes to stderr
    so it does not interleave with the terminal spectrograph on stdout.
    """
    env = os.environ.get("SPECTRUM_ENV", "development").lower()
    resolved = _resolve_level(level)

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setLevel(resolved)
    if env in PRODUCTION_ENVS:
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(fmt=HUMAN_FORMAT, datefmt=HUMAN_DATEFMT))

    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(resolved)
    root.addHandler(handler)
