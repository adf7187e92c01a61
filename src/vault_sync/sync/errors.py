"""Exception types raised by sync collaborators.

The engine maps each of these onto a ``SyncErrorKind`` so callers can tell
an abort before reconciliation from an abort mid-transfer without matching
on messages.
"""

from __future__ import annotations


class SyncError(Exception):
    """Base class for all sync failures."""


class AuthenticationError(SyncError):
    """The remote store rejected or lacks credentials."""


class ListingError(SyncError):
    """A complete snapshot of one side could not be obtained."""


class TransferError(SyncError):
    """A single upload, download, delete or rename failed.

    Args:
        operation: Name of the failed operation (``upload``, ...).
        path: Path the operation was acting on.
        message: Underlying failure description.
    """

    def __init__(self, operation: str, path: str, message: str) -> None:
        self.operation = operation
        self.path = path
        super().__init__(f"{operation} failed for {path}: {message}")
