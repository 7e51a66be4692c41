"""Logging infrastructure for statcube.

This module provides structured logging with JSON output and build
context tracking.
"""

from statcube.logging.filters import ContextFilter
from statcube.logging.logger import CustomJsonFormatter, get_logger, setup_logging

__all__ = [
    "get_logger",
    "setup_logging",
    "CustomJsonFormatter",
    "ContextFilter",
]
