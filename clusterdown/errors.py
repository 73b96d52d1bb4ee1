"""
Exception types raised and recorded during teardown.
"""

from typing import Optional


class TeardownError(Exception):
    """Base class for all teardown errors."""


class APIError(TeardownError):
    """A call against the oVirt engine failed."""

    def __init__(self, message: str, status_code: Optional[int] = None, retryable: bool = False):
        super().__init__(message)
        self.status_code = status_code
        self.retryable = retryable


class NotFoundError(APIError):
    """The addressed resource does not exist (already removed)."""

    def __init__(self, message: str):
        super().__init__(message, status_code=404, retryable=False)


class ConnectionSetupError(TeardownError):
    """The engine connection could not be established."""


class DiscoveryError(TeardownError):
    """Listing resources of one kind failed."""


class TeardownTimeoutError(TeardownError):
    """A resource did not reach its target state in time."""


class DeleteError(TeardownError):
    """A stop or remove call failed."""
