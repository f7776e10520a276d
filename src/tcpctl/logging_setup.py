"""
=============================================================================
LOGGING SETUP
=============================================================================

Every module logs through a namespaced logger:

    logger = logging.getLogger(__name__)      # e.g. "tcpctl.core.connector"

so the whole package can be tuned in one place:

    logging.getLogger("tcpctl").setLevel(logging.DEBUG)

Log records go to stderr. They never share a channel with result data,
which lives in result slots.

=============================================================================
TWO FORMATS
=============================================================================

text (for humans):
    2026-01-14 10:30:00 [DEBUG] tcpctl.core.connector: connect: connected to 127.0.0.1:9000 (fd 5)

json (for log aggregators):
    {"timestamp": "2026-01-14T10:30:00+00:00", "level": "DEBUG",
     "logger": "tcpctl.core.connector", "message": "connect: ..."}

=============================================================================
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Optional, TextIO

from .config import EngineConfig


TEXT_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class JSONFormatter(logging.Formatter):
    """One JSON object per record."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry)


def configure_logging(config: EngineConfig, stream: Optional[TextIO] = None) -> logging.Logger:
    """
    Configure the "tcpctl" logger hierarchy from ``config``.

    Only the package logger gets a handler, so embedding applications keep
    control over the root logger. Calling this twice replaces the handler
    instead of stacking a second one.

    Returns:
        The configured "tcpctl" logger.
    """
    level = getattr(logging, config.log_level.upper(), logging.WARNING)

    handler = logging.StreamHandler(stream if stream is not None else sys.stderr)
    if config.log_format == "json":
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(TEXT_FORMAT, datefmt=DATE_FORMAT))

    package_logger = logging.getLogger("tcpctl")
    for existing in list(package_logger.handlers):
        package_logger.removeHandler(existing)
    package_logger.addHandler(handler)
    package_logger.setLevel(level)
    package_logger.propagate = False

    return package_logger
