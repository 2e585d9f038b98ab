"""
Error types shared by the stores, builders and HTTP layer.
"""

from __future__ import annotations


class PatrolError(Exception):
    """Base class for all errors raised by this package."""


class RemoteStoreError(PatrolError):
    """A remote call failed (network error, timeout, rate limit, 5xx)."""


class NotFound(PatrolError):
    """The requested document or record does not exist."""


class InvalidInput(PatrolError):
    """The caller supplied a value that cannot be accepted."""


class PermissionDenied(PatrolError):
    """The reviewer is not allowed to perform the requested action."""
