"""Structured JSON logging with correlation ID support."""

import json
import logging
import os
import sys
from typing import Any

from clinicflow.infra.time import utc_now

from .correlation import get_correlation_id

DEFAULT_LOG_LEVEL = "INFO"


class JsonFormatter(logging.Formatter):
    """One JSON object per line; correlation ID and extra_fields inlined."""

    def format(self, record: logging.LogRecord) -> str:
        log_obj: dict[str, Any] = {
            "timestamp": utc_now().isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        correlation_id = get_correlation_id()
        if correlation_id:
            log_obj["correlationId"] = correlation_id

        if record.exc_info:
            log_obj["exception"] = self.formatException(record.exc_info)

        extra_fields = getattr(record, "extra_fields", None)
        if extra_fields:
            log_obj.update(extra_fields)

        return json.dumps(log_obj, default=str, ensure_ascii=False)


def _level_from_env() -> int:
    name = os.environ.get("LOG_LEVEL", DEFAULT_LOG_LEVEL).upper()
    level = logging.getLevelName(name)
    return level if isinstance(level, int) else logging.INFO


def get_logger(name: str) -> logging.Logger:
    """Get a logger configured for JSON output on stdout."""
    logger = logging.getLogger(name)

    # Only configure once per logger name
    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(JsonFormatter())
        logger.addHandler(handler)
        logger.setLevel(_level_from_env())
        logger.propagate = False

    return logger
