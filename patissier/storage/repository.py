"""
State repository: validated load/save of engine collections.

Wraps a StorageBackend so that components never see persistence failures:
an unreachable store or a corrupt blob reads as the empty default and is
logged; a failed write is logged and reported as False. Nothing is retried.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, TypeVar

from loguru import logger
from pydantic import TypeAdapter, ValidationError

from config import Settings, get_settings
from patissier.core.errors import InvalidInputError, PersistenceUnavailableError
from patissier.storage.backend import StorageBackend

T = TypeVar("T")


class StateRepository:
    """Namespaced, validated access to one storage backend."""

    def __init__(self, backend: StorageBackend, settings: Settings | None = None):
        self.backend = backend
        self.settings = settings or get_settings()

    def key(self, name: str) -> str:
        return self.settings.storage_key(name)

    def load(self, name: str, adapter: TypeAdapter[T], default: Callable[[], T]) -> T:
        """
        Load and validate a collection.

        Args:
            name: Collection name (namespaced with the configured prefix)
            adapter: Pydantic adapter describing the collection shape
            default: Factory for the empty collection

        Returns:
            The stored collection, or ``default()`` when absent, unreadable or invalid
        """
        key = self.key(name)
        try:
            raw = self.backend.load(key)
        except PersistenceUnavailableError as e:
            logger.warning(f"Storage unavailable for {key}, using empty state: {e}")
            return default()
        except InvalidInputError as e:
            logger.error(f"Corrupt data in {key}, using empty state: {e}")
            return default()

        if raw is None:
            return default()

        try:
            return adapter.validate_python(raw)
        except ValidationError as e:
            logger.error(f"Invalid data in {key}, using empty state: {e.error_count()} errors")
            return default()

    def save(self, name: str, data: Any) -> bool:
        """
        Persist a JSON-compatible collection.

        Returns:
            True when written, False when the backend was unavailable
        """
        key = self.key(name)
        try:
            self.backend.save(key, data)
        except PersistenceUnavailableError as e:
            logger.error(f"Error saving {key}: {e}")
            return False
        return True

    def delete(self, name: str) -> None:
        key = self.key(name)
        try:
            self.backend.delete(key)
        except PersistenceUnavailableError as e:
            logger.error(f"Error deleting {key}: {e}")
