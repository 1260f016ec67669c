"""
SQLAlchemy model for the key/value state table.

One row per persisted collection (progress, unlocks, events, achievements,
badges, bookmarks). The payload is the JSON text of the whole collection.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, String, Text, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    pass


class StateBlob(Base):
    """A named JSON blob."""

    __tablename__ = "state_blobs"

    key: Mapped[str] = mapped_column(String(200), primary_key=True)
    payload: Mapped[str] = mapped_column(Text, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    def __repr__(self) -> str:
        return f"<StateBlob key={self.key!r}>"
