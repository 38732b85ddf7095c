"""Logging setup for tapsql.

Records go to stderr so that batch mode can keep stdout for data.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Optional

from tapsql.core.config import config

LOGGER_NAME = "tapsql"

TEXT_FORMAT = "%(asctime)s %(filename)s:%(lineno)d %(levelname)s %(message)s"


class JSONFormatter(logging.Formatter):
    """Render each record as a single JSON object."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "time": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "location": f"{record.filename}:{record.lineno}",
            "message": record.getMessage(),
        }
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload)


def configure_logging(level: Optional[str] = None, fmt: Optional[str] = None) -> logging.Logger:
    """Install a single stderr handler on the ``tapsql`` logger.

    Calling it again replaces the previous handler, so the CLI and the
    server can both call it without duplicating output.

    Args:
        level: Log level name, defaults to ``config.log_level``
        fmt: ``"text"`` or ``"json"``, defaults to ``config.log_format``

    Returns:
        The configured package logger
    """
    logger = logging.getLogger(LOGGER_NAME)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)
    if (fmt or config.log_format) == "json":
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(TEXT_FORMAT))

    logger.addHandler(handler)
    logger.setLevel((level or config.log_level).upper())
    logger.propagate = False
    return logger
