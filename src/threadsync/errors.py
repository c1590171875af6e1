from __future__ import annotations

from typing import Optional


class ThreadSyncError(Exception):
    pass


class ConfigurationError(ThreadSyncError):
    pass


class SessionExpiredError(ThreadSyncError):
    pass


class FetchError(ThreadSyncError):
    pass


class ParseError(ThreadSyncError):
    pass


class EmptyThreadError(ThreadSyncError):
    pass


class GatewayError(ThreadSyncError):
    def __init__(self, operation: str, message: str, status_code: Optional[int] = None) -> None:
        self.operation = operation
        self.message = message
        self.status_code = status_code
        super().__init__(f"Pipedrive API error ({operation}): {message}")
