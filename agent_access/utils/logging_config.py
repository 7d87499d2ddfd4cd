"""Centralized logging configuration.

Applications embedding the access control core call setup_logging() once at
startup. Permission and security decisions can additionally be written to a
dedicated audit file.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ..core.config import Settings

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Loggers whose records also go to the audit file
AUDIT_LOGGERS = (
    "agent_access.permissions",
    "agent_access.security",
)


def setup_logging(
    name: str = "agent_access",
    level: str | None = None,
    log_file: Path | None = None,
    audit_log_file: Path | None = None,
    settings: Settings | None = None,
) -> logging.Logger:
    """Configure logging with consistent format.

    Args:
        name: Logger name to return
        level: Log level (defaults to AGENT_ACCESS_LOG_LEVEL, then LOG_LEVEL,
            then the configured settings)
        log_file: Optional file path for all logging output
        audit_log_file: Optional file receiving only permission and
            security records
        settings: Settings supplying the fallback level (defaults to the
            environment-loaded ones)

    Returns:
        Configured logger instance
    """
    if settings is None:
        # core imports utils, so the settings module loads late
        from ..core.config import settings

    level = level or os.getenv("AGENT_ACCESS_LOG_LEVEL") or os.getenv("LOG_LEVEL")
    level = level or settings.log_level

    handlers: list[logging.Handler] = [logging.StreamHandler()]

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format=LOG_FORMAT,
        handlers=handlers,
        force=True,
    )

    if audit_log_file:
        audit_log_file.parent.mkdir(parents=True, exist_ok=True)
        audit_handler = logging.FileHandler(audit_log_file)
        audit_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        for logger_name in AUDIT_LOGGERS:
            audit_logger = logging.getLogger(logger_name)
            # Replace a handler left over from an earlier call
            for handler in list(audit_logger.handlers):
                if isinstance(handler, logging.FileHandler):
                    audit_logger.removeHandler(handler)
                    handler.close()
            audit_logger.addHandler(audit_handler)

    return logging.getLogger(name)
