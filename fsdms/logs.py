"""
Logging setup for applications embedding fsdms.

The library itself only creates module loggers; call setup_logging() once at
startup to route them somewhere.
"""

from __future__ import annotations

import logging

import json_log_formatter

from .config import DmsConfig


def setup_logging(config: DmsConfig) -> None:
    """Configure logging based on configuration.

    Args:
        config: DMS configuration
    """
    level = getattr(logging, config.observability.log_level.upper(), logging.INFO)

    if config.observability.log_format == "json":
        formatter = json_log_formatter.JSONFormatter()
    else:
        formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    handler = logging.StreamHandler()
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers = [handler]
