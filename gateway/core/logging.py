"""
Logging configuration for the gateway process.

Configured once at startup. Config resolution warnings, the fatal URL message
and the resolved-configuration summary go through the handler set up here.
Fields passed via ``extra=`` (capability flags, service metadata) are
appended to each line as ``key=value`` pairs.
"""

from __future__ import annotations

import logging
import sys
from typing import Optional

from gateway.core.settings import ApplicationSettings, get_application_settings

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Attributes every LogRecord carries; anything else came from ``extra=``.
_RECORD_ATTRIBUTES = frozenset(vars(logging.LogRecord("", 0, "", 0, "", None, None))) | {"message", "asctime"}


class ContextFormatter(logging.Formatter):
    """Standard format plus any ``extra`` fields, sorted by name."""

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        context = {k: v for k, v in vars(record).items() if k not in _RECORD_ATTRIBUTES}
        if not context:
            return line
        pairs = " ".join(f"{k}={v}" for k, v in sorted(context.items()))
        return f"{line} [{pairs}]"


def setup_logging(debug: Optional[bool] = None, settings: Optional[ApplicationSettings] = None) -> None:
    """Install a stdout handler with ``ContextFormatter`` on the root logger.

    ``debug`` overrides ``settings.debug`` when given; settings are read from
    the environment when omitted.
    """
    settings = settings or get_application_settings()
    log_level = logging.DEBUG if (debug if debug is not None else settings.debug) else logging.INFO

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(ContextFormatter(LOG_FORMAT))
    logging.basicConfig(level=log_level, handlers=[handler], force=True)

    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)

    logging.getLogger(__name__).info(
        "Logging configured",
        extra={
            "environment": settings.environment,
            "debug": settings.debug,
            "version": settings.version,
        },
    )
