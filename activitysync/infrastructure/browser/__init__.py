"""Playwright adapter for the remote activity service."""

from .session import AuthenticationError, BrowserSession, HINT_HEADER, QUEUED_HEADER

__all__ = ["AuthenticationError", "BrowserSession", "HINT_HEADER", "QUEUED_HEADER"]
