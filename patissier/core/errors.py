"""
Error taxonomy for the progress engine.

- NotFoundError: a module or path id is absent from the supplied catalog
- InvalidInputError: malformed import payload or catalog file
- PersistenceUnavailableError: the storage backend failed; callers degrade
  to empty state instead of surfacing it
"""

from __future__ import annotations


class PatissierError(Exception):
    """Base class for all engine errors."""


class NotFoundError(PatissierError):
    """Raised when a referenced module or path does not exist in the catalog."""

    def __init__(self, kind: str, item_id: str, scope: str | None = None):
        self.kind = kind
        self.item_id = item_id
        self.scope = scope
        message = f"{kind.capitalize()} {item_id} not found"
        if scope:
            message += f" in {scope}"
        super().__init__(message)


class InvalidInputError(PatissierError):
    """Raised when a payload cannot be parsed or validated."""


class PersistenceUnavailableError(PatissierError):
    """Raised by storage backends when the underlying store cannot be used."""
