"""
Bookmark store: saved learning paths with notes, priority and resume points.

A bookmark keeps a copy of the catalog path it was created from so it can
be listed and filtered without the catalog at hand. Its progress mirrors
the path's completion percentage at the last refresh.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from statistics import mean

from loguru import logger
from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError
from pydantic.alias_generators import to_camel

from patissier.catalog.models import LearningPath, SkillLevel
from patissier.core.clock import Clock, UtcDatetime, utc_now
from patissier.progress.store import ProgressStore
from patissier.storage.repository import StateRepository


class BookmarkPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class BookmarkModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        coerce_numbers_to_str=True,
        frozen=True,
    )


class Bookmark(BookmarkModel):
    path_id: str
    path: LearningPath
    bookmarked_at: UtcDatetime
    last_accessed_at: UtcDatetime
    progress: float = 0
    current_module_id: str | None = None
    notes: str | None = None
    tags: list[str] = Field(default_factory=list)
    is_favorite: bool = False
    priority: BookmarkPriority = BookmarkPriority.MEDIUM
    estimated_completion_date: UtcDatetime | None = None
    actual_completion_date: UtcDatetime | None = None


class ResumePoint(BookmarkModel):
    """Where the learner left off inside a path."""

    path_id: str
    module_id: str
    position: float = 0
    last_accessed_at: UtcDatetime
    path_title: str = ""
    module_title: str = ""


@dataclass
class BookmarkFilters:
    search: str | None = None
    priority: BookmarkPriority | None = None
    is_favorite: bool | None = None
    min_progress: float | None = None
    max_progress: float | None = None
    tags: list[str] = field(default_factory=list)
    level: SkillLevel | None = None
    difficulty: SkillLevel | None = None

    def matches(self, bookmark: Bookmark) -> bool:
        if self.search:
            needle = self.search.lower()
            haystack = [bookmark.path.title, bookmark.notes or "", *bookmark.tags]
            if not any(needle in text.lower() for text in haystack):
                return False
        if self.priority and bookmark.priority != self.priority:
            return False
        if self.is_favorite is not None and bookmark.is_favorite != self.is_favorite:
            return False
        if self.min_progress is not None and bookmark.progress < self.min_progress:
            return False
        if self.max_progress is not None and bookmark.progress > self.max_progress:
            return False
        if self.tags and not set(self.tags).intersection(bookmark.tags):
            return False
        if self.level and bookmark.path.level != self.level:
            return False
        if self.difficulty and bookmark.path.difficulty != self.difficulty:
            return False
        return True


@dataclass
class BookmarkStats:
    total_bookmarks: int = 0
    favorite_bookmarks: int = 0
    completed_bookmarks: int = 0
    in_progress_bookmarks: int = 0
    average_progress: float = 0
    most_bookmarked_category: str | None = None
    recent_bookmarks: list[Bookmark] = field(default_factory=list)
    upcoming_deadlines: list[Bookmark] = field(default_factory=list)


_BOOKMARKS_ADAPTER = TypeAdapter(list[Bookmark])
_RESUME_ADAPTER = TypeAdapter(list[ResumePoint])


class BookmarkStore:
    """Persisted bookmarks and resume points for one learner."""

    BOOKMARKS = "path-bookmarks"
    RESUME = "resume-data"

    def __init__(self, repository: StateRepository, progress: ProgressStore, clock: Clock = utc_now):
        self._repository = repository
        self._progress = progress
        self._clock = clock
        self._bookmarks: dict[str, Bookmark] = {
            b.path_id: b for b in repository.load(self.BOOKMARKS, _BOOKMARKS_ADAPTER, list)
        }
        self._resume: dict[str, ResumePoint] = {
            r.path_id: r for r in repository.load(self.RESUME, _RESUME_ADAPTER, list)
        }

    # ========================================
    # Bookmarks
    # ========================================

    def bookmark_path(
        self,
        path: LearningPath,
        notes: str | None = None,
        tags: list[str] | None = None,
        priority: BookmarkPriority | None = None,
        estimated_completion_date: datetime | None = None,
    ) -> Bookmark:
        """
        Bookmark a path, or refresh an existing bookmark.

        Options left as None keep the existing bookmark's values.
        """
        now = self._clock()
        existing = self._bookmarks.get(path.id)

        if existing:
            bookmark = existing.model_copy(
                update={
                    "path": path,
                    "last_accessed_at": now,
                    "progress": self._path_percentage(path.id),
                    "notes": notes if notes is not None else existing.notes,
                    "tags": tags if tags is not None else existing.tags,
                    "priority": priority or existing.priority,
                    "estimated_completion_date": (
                        estimated_completion_date or existing.estimated_completion_date
                    ),
                }
            )
        else:
            bookmark = Bookmark(
                path_id=path.id,
                path=path,
                bookmarked_at=now,
                last_accessed_at=now,
                progress=self._path_percentage(path.id),
                notes=notes,
                tags=tags or [],
                priority=priority or BookmarkPriority.MEDIUM,
                estimated_completion_date=estimated_completion_date,
            )
            logger.info(f"Bookmarked path {path.id}")

        self._put(bookmark)
        return bookmark

    def remove_bookmark(self, path_id: str) -> bool:
        if self._bookmarks.pop(path_id, None) is None:
            return False
        self._save_bookmarks()
        return True

    def toggle_favorite(self, path_id: str) -> bool:
        """Flip the favorite flag. Returns False when the path is not bookmarked."""
        return self._change(path_id, lambda b: {"is_favorite": not b.is_favorite})

    def update_notes(self, path_id: str, notes: str) -> bool:
        return self._change(path_id, lambda b: {"notes": notes})

    def update_tags(self, path_id: str, tags: list[str]) -> bool:
        return self._change(path_id, lambda b: {"tags": list(tags)})

    def update_priority(self, path_id: str, priority: BookmarkPriority) -> bool:
        return self._change(path_id, lambda b: {"priority": priority})

    def get_bookmark(self, path_id: str) -> Bookmark | None:
        return self._bookmarks.get(path_id)

    def is_bookmarked(self, path_id: str) -> bool:
        return path_id in self._bookmarks

    def get_bookmarks(self, filters: BookmarkFilters | None = None) -> list[Bookmark]:
        """Bookmarks in creation order, optionally filtered."""
        bookmarks = list(self._bookmarks.values())
        if filters is None:
            return bookmarks
        return [b for b in bookmarks if filters.matches(b)]

    def refresh_progress(self, path_id: str) -> Bookmark | None:
        """Copy the path's current completion onto its bookmark."""
        bookmark = self._bookmarks.get(path_id)
        if bookmark is None:
            return None

        now = self._clock()
        progress = self._path_percentage(path_id)
        update = {"progress": progress, "last_accessed_at": now}
        if progress >= 100 and bookmark.actual_completion_date is None:
            update["actual_completion_date"] = now
        bookmark = bookmark.model_copy(update=update)
        self._put(bookmark)
        return bookmark

    # ========================================
    # Resume points
    # ========================================

    def set_resume_point(
        self, path: LearningPath, module_id: str, position: float = 0
    ) -> ResumePoint:
        """
        Remember where the learner stopped in a path.

        Raises:
            NotFoundError: If the module is not part of the path
        """
        module = path.find_module(module_id)
        now = self._clock()

        if path.id in self._bookmarks:
            self._change(path.id, lambda b: {"current_module_id": module_id, "last_accessed_at": now})

        point = ResumePoint(
            path_id=path.id,
            module_id=module_id,
            position=position,
            last_accessed_at=now,
            path_title=path.title,
            module_title=module.title,
        )
        self._resume[path.id] = point
        self._save_resume()
        return point

    def get_resume_point(self, path_id: str) -> ResumePoint | None:
        return self._resume.get(path_id)

    def clear_resume_point(self, path_id: str) -> bool:
        if self._resume.pop(path_id, None) is None:
            return False
        self._save_resume()
        return True

    # ========================================
    # Stats / Export / Import
    # ========================================

    def get_bookmark_stats(self) -> BookmarkStats:
        bookmarks = list(self._bookmarks.values())
        if not bookmarks:
            return BookmarkStats()

        categories = Counter(
            category for b in bookmarks if (category := b.path.resolved_category())
        )
        deadlines = [
            b for b in bookmarks if b.estimated_completion_date is not None and b.progress < 100
        ]
        return BookmarkStats(
            total_bookmarks=len(bookmarks),
            favorite_bookmarks=sum(1 for b in bookmarks if b.is_favorite),
            completed_bookmarks=sum(1 for b in bookmarks if b.progress >= 100),
            in_progress_bookmarks=sum(1 for b in bookmarks if 0 < b.progress < 100),
            average_progress=mean(b.progress for b in bookmarks),
            most_bookmarked_category=categories.most_common(1)[0][0] if categories else None,
            recent_bookmarks=sorted(bookmarks, key=lambda b: b.last_accessed_at, reverse=True)[:5],
            upcoming_deadlines=sorted(deadlines, key=lambda b: b.estimated_completion_date)[:5],
        )

    def clear_all(self) -> None:
        self._bookmarks = {}
        self._resume = {}
        self._save_bookmarks()
        self._save_resume()
        logger.info("Bookmarks cleared")

    def export_state(self) -> str:
        return _BOOKMARKS_ADAPTER.dump_json(
            list(self._bookmarks.values()), by_alias=True, indent=2
        ).decode()

    def import_state(self, data: str) -> bool:
        """
        Replace all bookmarks with an exported list.

        Returns:
            False, leaving bookmarks untouched, when the document is invalid
        """
        try:
            bookmarks = _BOOKMARKS_ADAPTER.validate_json(data)
        except ValidationError as e:
            logger.error(f"Error importing bookmarks: {e.error_count()} validation errors")
            return False

        self._bookmarks = {b.path_id: b for b in bookmarks}
        self._save_bookmarks()
        logger.info(f"Imported {len(bookmarks)} bookmarks")
        return True

    # ========================================
    # Internals
    # ========================================

    def _path_percentage(self, path_id: str) -> float:
        record = self._progress.get_path_progress(path_id)
        return record.completion_percentage if record else 0

    def _change(self, path_id: str, changes) -> bool:
        bookmark = self._bookmarks.get(path_id)
        if bookmark is None:
            return False
        self._put(bookmark.model_copy(update=changes(bookmark)))
        return True

    def _put(self, bookmark: Bookmark) -> None:
        self._bookmarks[bookmark.path_id] = bookmark
        self._save_bookmarks()

    def _save_bookmarks(self) -> None:
        self._repository.save(
            self.BOOKMARKS,
            _BOOKMARKS_ADAPTER.dump_python(
                list(self._bookmarks.values()), mode="json", by_alias=True
            ),
        )

    def _save_resume(self) -> None:
        self._repository.save(
            self.RESUME,
            _RESUME_ADAPTER.dump_python(list(self._resume.values()), mode="json", by_alias=True),
        )
