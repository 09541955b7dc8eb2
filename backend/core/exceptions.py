"""Exceptions raised by the browsing engine."""
from typing import Optional


class RowStoreError(Exception):
    """A row store operation failed. `code` carries a SQLSTATE-style code when known."""

    def __init__(self, message: str, code: Optional[str] = None, retryable: bool = False):
        super().__init__(message)
        self.message = message
        self.code = code
        self.retryable = retryable


class MissingIdentityError(ValueError):
    """The row has no `id` field, so it cannot be edited or deleted."""


class EditInProgressError(RuntimeError):
    """Another edit is still waiting for the row store to confirm it."""


class NoTableSelectedError(RuntimeError):
    pass
