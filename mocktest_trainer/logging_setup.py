"""Logging bootstrap for the trainer shell."""

from __future__ import annotations

import json
import logging
import os
import sys
from collections.abc import Mapping
from datetime import datetime, timezone

LOG_LEVEL_ENV = "MOCKTEST_LOG_LEVEL"
LOG_FORMAT_ENV = "MOCKTEST_LOG_FORMAT"

_BASE_LOG_RECORD_FIELDS = set(
    logging.LogRecord(
        name="",
        level=0,
        pathname="",
        lineno=0,
        msg="",
        args=(),
        exc_info=None,
    ).__dict__.keys()
)


class _JsonFormatter(logging.Formatter):
    """Emit compact JSON log lines; ``extra=`` fields are carried through."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "ts": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key, value in record.__dict__.items():
            if key in _BASE_LOG_RECORD_FIELDS or key in payload or key.startswith("_"):
                continue
            if value is not None:
                payload[key] = value
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)


def configure_logging(environ: Mapping[str, str] | None = None) -> None:
    """Configure the root logger once; later calls are no-ops."""

    root = logging.getLogger()
    if getattr(root, "_mocktest_logging_configured", False):
        return

    env = os.environ if environ is None else environ
    level_name = env.get(LOG_LEVEL_ENV, "INFO").upper()
    level = getattr(logging, level_name, logging.INFO)
    fmt = env.get(LOG_FORMAT_ENV, "text").lower().strip()

    handler = logging.StreamHandler(sys.stdout)
    if fmt == "json":
        handler.setFormatter(_JsonFormatter())
    else:
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s"))

    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)
    root._mocktest_logging_configured = True  # type: ignore[attr-defined]
