"""
Exceptions raised by the markup core.
"""


class MarkupError(Exception):
    """Base class for all markup engine errors."""


class InvalidAnnotationError(MarkupError, ValueError):
    """An annotation record is malformed or violates a store invariant."""


class PermissionDeniedError(MarkupError):
    """The current user's permissions forbid the requested command."""


class PersistenceError(MarkupError):
    """A persistence endpoint failed to store or load a snapshot."""
