"""Logging filters for context injection.

This module provides filters that inject context variables into log records,
so every line emitted during a cube build can be correlated with the build,
dataset and revision it belongs to.
"""

from __future__ import annotations

import logging
from contextvars import ContextVar
from typing import Any, Dict, Optional

from statcube.__version__ import __version__

build_id_var: ContextVar[Optional[str]] = ContextVar("build_id", default=None)
dataset_id_var: ContextVar[Optional[str]] = ContextVar("dataset_id", default=None)
revision_id_var: ContextVar[Optional[str]] = ContextVar("revision_id", default=None)

_static_environment: Optional[str] = None
_static_extra: Dict[str, Any] = {}


class ContextFilter(logging.Filter):
    """Logging filter that adds context variables to log records."""

    def filter(self, record: logging.LogRecord) -> bool:
        """Add context variables to the log record.

        Args:
            record: Log record to enhance

        Returns:
            Always True (doesn't filter out any records)
        """
        setattr(record, "build_id", build_id_var.get())
        setattr(record, "dataset_id", dataset_id_var.get())
        setattr(record, "revision_id", revision_id_var.get())
        setattr(record, "sdk_name", "statcube")
        setattr(record, "statcube_version", __version__)

        if _static_environment is not None:
            setattr(record, "environment", _static_environment)
        for key, value in _static_extra.items():
            if not hasattr(record, key):
                setattr(record, key, value)

        return True


def set_logging_context(
    environment: Optional[str] = None,
    extra: Optional[Dict[str, Any]] = None,
) -> None:
    """Set static fields attached to every record (deployment environment, region)."""
    global _static_environment, _static_extra
    _static_environment = environment
    _static_extra = dict(extra or {})


def set_build_context(
    build_id: Optional[str] = None,
    dataset_id: Optional[str] = None,
    revision_id: Optional[str] = None,
) -> None:
    """Set build context variables."""
    if build_id is not None:
        build_id_var.set(build_id)
    if dataset_id is not None:
        dataset_id_var.set(dataset_id)
    if revision_id is not None:
        revision_id_var.set(revision_id)


def clear_build_context() -> None:
    """Clear all build context variables."""
    build_id_var.set(None)
    dataset_id_var.set(None)
    revision_id_var.set(None)
