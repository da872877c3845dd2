"""Exception taxonomy.

Expected conditions (unknown names, unparseable text) surface as typed
``Outcome`` values from the executor; these exceptions are what the
store and the AI collaborators raise underneath.
"""

from __future__ import annotations


class SilkwebError(Exception):
    """Base class for all silkweb errors."""


class ValidationError(SilkwebError, ValueError):
    """A required field is empty or a value is out of range."""


class NotFoundError(SilkwebError, LookupError):
    """An id or name fragment does not resolve to a connection."""

    def __init__(self, key: str, *, kind: str = "connection"):
        super().__init__(f"{kind} not found: {key!r}")
        self.key = key
        self.kind = kind


class ExternalServiceError(SilkwebError):
    """The AI text-completion backend failed or timed out."""

    def __init__(self, provider: str, message: str):
        super().__init__(f"{provider}: {message}")
        self.provider = provider
