"""
SQLAlchemy-backed storage for engine state.

Default location: ~/.patissier/state.db (SQLite). Any SQLAlchemy URL works;
the schema is a single key/value table created on first use.
"""

from __future__ import annotations

import json
from collections.abc import Generator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

from loguru import logger
from sqlalchemy import Engine, create_engine
from sqlalchemy.engine import make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from patissier.core.errors import InvalidInputError, PersistenceUnavailableError
from patissier.storage.models import Base, StateBlob


class SqlBackend:
    """Key/value blob storage in a relational database."""

    def __init__(self, database_url: str | None = None, engine: Engine | None = None):
        if engine is None:
            if database_url is None:
                raise ValueError("SqlBackend needs a database_url or an engine")
            try:
                _ensure_sqlite_directory(database_url)
            except OSError as e:
                raise PersistenceUnavailableError(f"Cannot create database directory: {e}") from e
            engine = create_engine(database_url, pool_pre_ping=True)

        self.engine = engine
        self._session_factory = sessionmaker(bind=engine, autocommit=False, autoflush=False)

        try:
            Base.metadata.create_all(bind=self.engine)
        except SQLAlchemyError as e:
            raise PersistenceUnavailableError(f"Cannot initialize state table: {e}") from e

        logger.info(f"SqlBackend initialized at {self.engine.url.render_as_string(hide_password=True)}")

    @contextmanager
    def session_scope(self) -> Generator[Session, None, None]:
        """Provide a transactional scope around a series of operations."""
        session = self._session_factory()
        try:
            yield session
            session.commit()
        except Exception:  # Intentionally broad - rollback on any error before re-raising
            session.rollback()
            raise
        finally:
            session.close()

    def load(self, key: str) -> Any | None:
        try:
            with self.session_scope() as session:
                blob = session.get(StateBlob, key)
                payload = blob.payload if blob is not None else None
        except SQLAlchemyError as e:
            raise PersistenceUnavailableError(f"Cannot read {key}: {e}") from e

        if payload is None:
            return None
        try:
            return json.loads(payload)
        except json.JSONDecodeError as e:
            raise InvalidInputError(f"Stored blob {key} is not valid JSON") from e

    def save(self, key: str, data: Any) -> None:
        payload = json.dumps(data)
        try:
            with self.session_scope() as session:
                blob = session.get(StateBlob, key)
                if blob is None:
                    session.add(StateBlob(key=key, payload=payload))
                else:
                    blob.payload = payload
        except SQLAlchemyError as e:
            raise PersistenceUnavailableError(f"Cannot write {key}: {e}") from e

    def delete(self, key: str) -> None:
        try:
            with self.session_scope() as session:
                blob = session.get(StateBlob, key)
                if blob is not None:
                    session.delete(blob)
        except SQLAlchemyError as e:
            raise PersistenceUnavailableError(f"Cannot delete {key}: {e}") from e

    def close(self) -> None:
        """Dispose of the connection pool."""
        self.engine.dispose()


def _ensure_sqlite_directory(database_url: str) -> None:
    url = make_url(database_url)
    if url.get_backend_name() == "sqlite" and url.database and url.database != ":memory:":
        Path(url.database).expanduser().parent.mkdir(parents=True, exist_ok=True)
