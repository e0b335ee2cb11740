"""
Logging setup for processes embedding the SDK.

The SDK itself only creates module loggers; the host process calls
setup_logging() once at startup.
"""

from __future__ import annotations

import logging

import json_log_formatter

from .config import ClientConfig

TEXT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(config: ClientConfig) -> None:
    """Configure root logging based on configuration.

    Args:
        config: Client configuration (log_level, log_format)
    """
    level = getattr(logging, config.log_level.upper(), logging.INFO)

    if config.log_format == "json":
        formatter: logging.Formatter = json_log_formatter.JSONFormatter()
    else:
        formatter = logging.Formatter(TEXT_FORMAT)

    handler = logging.StreamHandler()
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers = [handler]

    # Reduce noise from libraries
    logging.getLogger("aiohttp.access").setLevel(logging.WARNING)
    logging.getLogger("aiohttp.client").setLevel(logging.WARNING)
