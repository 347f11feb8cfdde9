"""Structured JSON logging for relready.

One JSON object per line in .relready/relready.log, rotated at 5MB with
three backups. Records may carry ``tool``, ``args_data``, ``duration_ms``
and ``error`` extras; they are copied into the line when present.
"""

from __future__ import annotations

import json
import logging
import os
import threading
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

LOG_FILENAME = "relready.log"
ROTATE_AT_BYTES = 5 * 1024 * 1024
KEEP_BACKUPS = 3

# record attribute -> JSON key
_EXTRAS = {"tool": "tool", "args_data": "args", "duration_ms": "duration_ms", "error": "error"}

_lock = threading.Lock()


class _JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        line: dict[str, Any] = {
            "ts": self.formatTime(record, datefmt="%Y-%m-%dT%H:%M:%S"),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        line.update({key: getattr(record, attr) for attr, key in _EXTRAS.items() if hasattr(record, attr)})
        exc = record.exc_info[1] if record.exc_info else None
        if exc is not None:
            line["exception"] = str(exc)
        return json.dumps(line, default=str)


def _file_handlers(logger: logging.Logger) -> list[RotatingFileHandler]:
    return [h for h in logger.handlers if isinstance(h, RotatingFileHandler)]


def setup_logging(relready_dir: Path, *, level: int = logging.INFO) -> logging.Logger:
    """Route the ``relready`` logger tree into ``<relready_dir>/relready.log``.

    Calling again with the same directory is a no-op. Calling with another
    directory closes the old file handler before attaching the new one.
    """
    root = logging.getLogger("relready")
    log_path = relready_dir / LOG_FILENAME
    wanted = os.path.abspath(str(log_path))

    with _lock:
        existing = _file_handlers(root)
        if any(h.baseFilename == wanted for h in existing):
            return root
        for stale in existing:
            root.removeHandler(stale)
            stale.close()

        handler = RotatingFileHandler(str(log_path), maxBytes=ROTATE_AT_BYTES, backupCount=KEEP_BACKUPS)
        handler.setFormatter(_JsonFormatter())
        root.addHandler(handler)
        root.setLevel(level)
    return root
