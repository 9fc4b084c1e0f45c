"""Structured JSON logging support for idemcache."""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone

from idemcache.config.settings import get_settings


class JSONFormatter(logging.Formatter):
    """Format log records as single-line JSON for production log aggregators."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "thread": record.threadName,
            "message": record.getMessage(),
        }
        if record.exc_info and record.exc_info[0]:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False)


def configure_logging(level: str | None = None, fmt: str | None = None) -> None:
    """Configure the ``idemcache`` logger.

    Falls back to IDEMCACHE_LOG_LEVEL and IDEMCACHE_LOG_FORMAT (``text`` or
    ``json``) when arguments are omitted.
    """
    settings = get_settings()
    log_format = (fmt or settings.log_format).lower()
    log_level = (level or settings.log_level).upper()

    logger = logging.getLogger("idemcache")
    logger.setLevel(log_level)

    handler = logging.StreamHandler()
    if log_format == "json":
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(
            logging.Formatter(
                "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )
    logger.handlers = [handler]
