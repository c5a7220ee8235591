"""
TODOSYNC - Error Taxonomy
=========================
Errors raised while talking to the remote todo service or validating input.
"""

from typing import Optional


class TodoSyncError(Exception):
    """Base class for all todosync errors"""


class ValidationError(TodoSyncError, ValueError):
    """Malformed todo id, empty body or unknown filter.

    Raised before any remote call is attempted.
    """


class RemoteFailure(TodoSyncError):
    """The remote call rejected, timed out, or the network was unavailable"""

    def __init__(self, operation: str, reason: str, status_code: Optional[int] = None):
        self.operation = operation
        self.reason = reason
        self.status_code = status_code
        super().__init__(f"{operation} failed: {reason}")


class StaleView(TodoSyncError):
    """The cached todo snapshot does not yet reflect a completed mutation"""
