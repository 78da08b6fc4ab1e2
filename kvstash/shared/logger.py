"""Structured JSON logging for kvstash components."""

import json
import logging
from datetime import datetime, timezone


class JsonFormatter(logging.Formatter):
    """Formats log records as single-line JSON objects."""

    def format(self, record):
        entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "component": record.name.replace("kvstash.", ""),
            "level": record.levelname,
            "message": record.getMessage(),
        }
        if hasattr(record, "cache_data"):
            entry["data"] = record.cache_data
        return json.dumps(entry)


def get_cache_logger(
    name: str,
    log_file: str | None = None,
    level: int = logging.INFO,
) -> logging.Logger:
    """Return a named logger that emits structured JSON.

    Args:
        name: Short component name (e.g. "cache", "metadata").
        log_file: Optional path; writes JSON lines to this file instead of stderr.
        level: Logging level, defaults to INFO.

    Returns:
        A ``logging.Logger`` instance named ``kvstash.<name>``.
    """
    logger = logging.getLogger(f"kvstash.{name}")
    logger.setLevel(level)

    if not logger.handlers:
        if log_file:
            handler = logging.FileHandler(log_file)
        else:
            handler = logging.StreamHandler()
        handler.setFormatter(JsonFormatter())
        logger.addHandler(handler)

    return logger
