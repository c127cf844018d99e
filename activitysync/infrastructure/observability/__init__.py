"""Observability and logging facades."""

from .logging import (
    ContextualFormatter,
    ProgressLog,
    configure_logging,
    current_log_context,
    get_logger,
    log_context,
    log_exception,
    logged,
)

__all__ = [
    "ContextualFormatter",
    "ProgressLog",
    "configure_logging",
    "current_log_context",
    "get_logger",
    "log_context",
    "log_exception",
    "logged",
]
