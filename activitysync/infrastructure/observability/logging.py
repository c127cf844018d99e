"""Logging utilities for activitysync.

This module provides centralised logging configuration and helpers for
structured, contextual logging throughout the project, plus the
:class:`ProgressLog` used to report sync progress to the user.
"""

from __future__ import annotations

import functools
import logging
import sys
from collections.abc import Awaitable, Callable
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, field
from typing import Any, Iterator, TypeVar

from activitysync.domain.paths import compile_template


# ---------------------------------------------------------------------------
# Context variables for structured logging
# ---------------------------------------------------------------------------

_log_context: ContextVar[dict[str, Any]] = ContextVar(
    "log_context", default={})


class ContextualFormatter(logging.Formatter):
    """Formatter that appends context fields to log messages."""

    def format(self, record: logging.LogRecord) -> str:
        ctx = _log_context.get()
        message = super().format(record)
        if ctx:
            ctx_str = " ".join(f"{k}={v}" for k, v in ctx.items())
            message = f"{message} [{ctx_str}]"
        return message


@contextmanager
def log_context(**fields: Any) -> Iterator[None]:
    """Temporarily add context fields to all log messages.

    Usage::

        with log_context(descriptor="details"):
            log.info("Fetching details")  # message includes context

    Fields are merged with any existing context and restored on exit. Tasks
    created inside the block inherit the context.
    """
    current = _log_context.get()
    merged = {**current, **fields}
    token = _log_context.set(merged)
    try:
        yield
    finally:
        _log_context.reset(token)


def current_log_context() -> dict[str, Any]:
    return dict(_log_context.get())


# ---------------------------------------------------------------------------
# Logging configuration
# ---------------------------------------------------------------------------

_configured = False

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(
    level: int = logging.INFO,
    third_party_level: int = logging.WARNING,
) -> None:
    """Configure application-wide logging.

    Call this once at startup (CLI main) to set up consistent logging across
    the application.

    Args:
        level: Log level for application loggers (default INFO).
        third_party_level: Log level for third-party libraries (default WARNING).
    """
    global _configured
    if _configured:
        return
    _configured = True

    root = logging.getLogger()
    root.setLevel(level)

    # Remove any existing handlers to avoid duplicates
    for handler in root.handlers[:]:
        root.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(ContextualFormatter(LOG_FORMAT))
    root.addHandler(handler)

    # Quieten noisy third-party loggers
    for name in ("asyncio", "playwright"):
        logging.getLogger(name).setLevel(third_party_level)


def get_logger(name: str) -> logging.Logger:
    """Return a logger for the given name.

    If configure_logging() has not been called, a basic fallback configuration
    is applied to ensure the logger is usable.

    Args:
        name: Name of the logger (typically __name__).

    Returns:
        A logging.Logger instance.
    """
    logger = logging.getLogger(name)
    # Fallback if configure_logging was not called
    if not _configured and not logger.handlers and not logging.getLogger().handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(ContextualFormatter(LOG_FORMAT))
        logger.addHandler(handler)
        logger.setLevel(logging.INFO)
    return logger


# ---------------------------------------------------------------------------
# Progress reporting
# ---------------------------------------------------------------------------


@dataclass
class ProgressLog:
    """User-facing progress messages with a switch to silence them.

    One instance is created per run and handed to every component that reports
    progress. Errors are always emitted; ``silent`` only mutes informational
    messages.
    """

    logger: logging.Logger = field(
        default_factory=lambda: get_logger("activitysync"))
    silent: bool = False

    def set_silent(self, silent: bool) -> None:
        self.silent = silent

    def info(self, message: str, *args: Any) -> None:
        if not self.silent:
            self.logger.info(message, *args)

    def error(self, message: str, *args: Any) -> None:
        self.logger.error(message, *args)


T = TypeVar("T")


def logged(
    begin: str | None = None,
    end: str | None = None,
    error: str | None = None,
) -> Callable[[Callable[..., Awaitable[T]]], Callable[..., Awaitable[T]]]:
    """Report the start, end and failure of an async method.

    Each message is a template evaluated against ``{"args": ..., "result": ...,
    "error": ...}`` where ``args`` excludes ``self``, e.g.
    ``@logged("Reading {args[0]}...", "{args[0]} read.")``. Messages go to the
    owner's ``_log`` (:class:`ProgressLog`).
    """
    begin_template = compile_template(begin) if begin is not None else None
    end_template = compile_template(end) if end is not None else None
    error_template = compile_template(error) if error is not None else None

    def decorator(fn: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        @functools.wraps(fn)
        async def wrapper(self: Any, *args: Any, **kwargs: Any) -> T:
            log: ProgressLog = self._log
            data: dict[str, Any] = {"args": args}
            try:
                if begin_template is not None:
                    log.info(begin_template(data))
                result = await fn(self, *args, **kwargs)
                if end_template is not None:
                    log.info(end_template({**data, "result": result}))
                return result
            except Exception as exc:
                if error_template is not None:
                    log.error(error_template({**data, "error": str(exc)}))
                raise

        return wrapper

    return decorator


# ---------------------------------------------------------------------------
# Convenience helpers
# ---------------------------------------------------------------------------


def log_exception(
    logger: logging.Logger,
    message: str,
    exc: BaseException,
    **context: Any,
) -> None:
    """Log an exception with context fields.

    Args:
        logger: Logger instance.
        message: Human-readable message describing the error.
        exc: The exception that was raised.
        **context: Additional context fields to include.
    """
    with log_context(**context):
        logger.exception(f"{message}: {exc}")
