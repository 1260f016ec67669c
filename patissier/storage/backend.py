"""
Persistence collaborator contract.

The engine reads and writes named JSON blobs. Backends are assumed
synchronous; they raise PersistenceUnavailableError when the store cannot
be reached and InvalidInputError when a stored blob is corrupt.
"""

from __future__ import annotations

import copy
from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class StorageBackend(Protocol):
    """Named JSON blob storage."""

    def load(self, key: str) -> Any | None:
        """Return the stored JSON value, or None when absent."""
        ...

    def save(self, key: str, data: Any) -> None:
        """Replace the stored JSON value."""
        ...

    def delete(self, key: str) -> None:
        """Remove the stored value if present."""
        ...


class MemoryBackend:
    """
    In-process backend used by tests and embedding hosts.

    Values are deep-copied on the way in and out so callers never share
    mutable state with the store.
    """

    def __init__(self, initial: dict[str, Any] | None = None):
        self._blobs: dict[str, Any] = copy.deepcopy(initial) if initial else {}

    def load(self, key: str) -> Any | None:
        if key not in self._blobs:
            return None
        return copy.deepcopy(self._blobs[key])

    def save(self, key: str, data: Any) -> None:
        self._blobs[key] = copy.deepcopy(data)

    def delete(self, key: str) -> None:
        self._blobs.pop(key, None)

    def keys(self) -> list[str]:
        return sorted(self._blobs)
