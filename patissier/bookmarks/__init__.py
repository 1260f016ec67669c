"""Bookmarks: saved learning paths and resume points."""

from patissier.bookmarks.store import (
    Bookmark,
    BookmarkFilters,
    BookmarkPriority,
    BookmarkStats,
    BookmarkStore,
    ResumePoint,
)

__all__ = [
    "Bookmark",
    "BookmarkFilters",
    "BookmarkPriority",
    "BookmarkStats",
    "BookmarkStore",
    "ResumePoint",
]
