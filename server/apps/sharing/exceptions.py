"""Exceptions for sharing app.

Every engine operation fails with exactly one of these. Only
``StoreFailureError`` is worth retrying on the caller side.
"""

from typing import ClassVar


class SharingError(Exception):
    """Base class for group, membership and file errors."""

    retryable: ClassVar[bool] = False


class NotFoundError(SharingError):
    """Raised when a user, group, membership or file does not exist."""


class ConflictError(SharingError):
    """Raised when an operation violates a uniqueness or state invariant.

    Duplicate group names, duplicate memberships and any mutation of an
    inactive group end up here.
    """


class PermissionDeniedError(SharingError):
    """Raised when the caller lacks authority over the group or file."""


class StoreFailureError(SharingError):
    """Raised when the database or the blob area fails underneath us.

    The message is safe to show to a client; the underlying cause is
    chained via ``__cause__`` and logged for operators only.
    """

    retryable: ClassVar[bool] = True

    def __init__(self, message: str = 'Internal storage failure') -> None:
        """Initialize StoreFailureError.

        Args:
            message: Client-safe description of the failure.
        """
        super().__init__(message)
