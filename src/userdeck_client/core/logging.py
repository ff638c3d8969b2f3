"""
Centralized logging configuration for userdeck-client.

This module provides a consistent logging setup across all components
with support for TRACE level logging. Nothing is configured on import;
applications call setup_logging() when they want output.
"""

import logging
import os
import sys
from typing import Optional

# Define TRACE level (below DEBUG)
TRACE_LEVEL = 5

LOGGER_NAMESPACE = "userdeck_client"


def add_trace_level():
    """Add TRACE level to logging module."""
    logging.addLevelName(TRACE_LEVEL, "TRACE")

    def trace(self, message, *args, **kwargs):
        if self.isEnabledFor(TRACE_LEVEL):
            self._log(TRACE_LEVEL, message, args, **kwargs)

    logging.Logger.trace = trace

# Add TRACE level on module import
add_trace_level()


def resolve_level(level: Optional[str] = None, debug: bool = False) -> int:
    """Turn a level name into a numeric logging level.

    Args:
        level: Log level string (TRACE, DEBUG, INFO, WARNING, ERROR, CRITICAL)
        debug: If True, returns TRACE regardless of other settings

    Returns:
        Numeric log level (INFO for unknown names)
    """
    if debug:
        return TRACE_LEVEL

    name = (level or os.getenv("LOG_LEVEL", "INFO")).upper()
    if name == "TRACE":
        return TRACE_LEVEL
    value = getattr(logging, name, logging.INFO)
    return value if isinstance(value, int) else logging.INFO


def setup_logging(level: Optional[str] = None, debug: bool = False, config=None) -> None:
    """
    Configure logging for an application using the client.

    Args:
        level: Log level string (TRACE, DEBUG, INFO, WARNING, ERROR, CRITICAL)
        debug: If True, sets level to TRACE regardless of other settings
        config: Config whose log_level is used when no level is given
    """
    if level is None and config is not None:
        level = config.log_level
    log_level = resolve_level(level, debug)

    # Configure root logger
    logging.basicConfig(
        level=log_level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S',
        handlers=[
            logging.StreamHandler(sys.stderr)
        ]
    )

    # Set level for all userdeck_client loggers
    logging.getLogger(LOGGER_NAMESPACE).setLevel(log_level)

    # Transport libraries are noisy below WARNING
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance for the given module name.

    Args:
        name: Name of the module/component

    Returns:
        Configured logger instance
    """
    return logging.getLogger(f"{LOGGER_NAMESPACE}.{name}")


def mask_secret(value: Optional[str]) -> str:
    """Describe a secret for log output without revealing it."""
    if not value:
        return "<none>"
    return f"<{len(value)} chars>"
