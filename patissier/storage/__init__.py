"""Storage: persistence collaborator contract and backends."""

from patissier.storage.backend import MemoryBackend, StorageBackend
from patissier.storage.repository import StateRepository
from patissier.storage.sql_backend import SqlBackend

__all__ = [
    "MemoryBackend",
    "SqlBackend",
    "StateRepository",
    "StorageBackend",
]
