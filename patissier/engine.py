"""
Learning engine: one learner's progress, unlocks, history and achievements.

Wires every component over a single storage backend and runs the
completion workflow:

    progress update -> event recorded -> unlocks re-evaluated
        -> stats recomputed -> achievements checked

Components are plain attributes so hosts can call them directly.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from functools import partial

from loguru import logger

from config import Settings, get_settings
from patissier.achievements.evaluator import AchievementEvaluator
from patissier.bookmarks.store import BookmarkStore
from patissier.catalog.models import LearningPath, find_path
from patissier.completion.aggregator import CompletionAggregator
from patissier.completion.events import CompletionEvent, CompletionEventLog, EventType
from patissier.core.clock import Clock, utc_now
from patissier.core.errors import PersistenceUnavailableError
from patissier.prerequisites.ledger import UnlockLedger
from patissier.prerequisites.resolver import PrerequisiteResolver
from patissier.progress.models import ModuleProgress, PathProgress, ProgressStatus
from patissier.progress.store import ProgressStore
from patissier.recommendations.scorer import RecommendationScorer
from patissier.storage.backend import MemoryBackend, StorageBackend
from patissier.storage.repository import StateRepository
from patissier.storage.sql_backend import SqlBackend

MODULE_UNLOCKED_MESSAGE = "Module unlocked! You can now access the next learning module."
PATH_UNLOCKED_MESSAGE = "New learning path unlocked! Explore new challenges and techniques."

EXPORT_VERSION = 1


@dataclass
class UnlockResult:
    """What a completion changed, ready for display."""

    newly_unlocked_module_ids: list[str] = field(default_factory=list)
    newly_unlocked_path_ids: list[str] = field(default_factory=list)
    achievements: list[str] = field(default_factory=list)
    notifications: list[str] = field(default_factory=list)


class LearningEngine:
    """Host facade owning one instance of every component."""

    def __init__(
        self,
        storage: StorageBackend,
        settings: Settings | None = None,
        clock: Clock | None = None,
    ):
        self.settings = settings or get_settings()
        self.clock = clock or utc_now
        self.storage = storage
        self.repository = StateRepository(storage, self.settings)

        self.progress = ProgressStore(self.repository, self.clock)
        self.resolver = PrerequisiteResolver(
            self.progress, UnlockLedger(self.repository), self.settings
        )
        self.events = CompletionEventLog(self.repository)
        self.aggregator = CompletionAggregator(self.progress, self.events, self.clock)
        self.recommendations = RecommendationScorer(
            self.progress, self.aggregator, self.repository, self.settings, self.clock
        )
        self.achievements = AchievementEvaluator(
            self.progress, self.aggregator, self.repository, clock=self.clock
        )
        self.bookmarks = BookmarkStore(self.repository, self.progress, self.clock)

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> LearningEngine:
        """Build an engine on the backend named in settings."""
        settings = settings or get_settings()
        storage: StorageBackend = MemoryBackend()
        if settings.storage_backend == "sql":
            try:
                storage = SqlBackend(settings.database_url)
            except PersistenceUnavailableError as e:
                logger.warning(f"Database unavailable, keeping state in memory only: {e}")
        logger.debug(f"Using {settings.storage_backend} storage")
        return cls(storage, settings)

    # ========================================
    # Learner actions
    # ========================================

    def handle_module_completion(
        self,
        module_id: str,
        path_id: str,
        paths: list[LearningPath],
        score: float | None = None,
        time_spent: float | None = None,
    ) -> UnlockResult:
        """
        Complete a module and propagate the consequences.

        Args:
            module_id: Completed module
            path_id: Path containing the module
            paths: Full catalog
            score: Score achieved (defaults to 100)
            time_spent: Minutes spent in this session, added to the module

        Returns:
            UnlockResult with newly unlocked items, achievements and notifications

        Raises:
            NotFoundError: If the path or module is not in the catalog
        """
        path = find_path(paths, path_id)
        path.find_module(module_id)

        previous_path = self.progress.get_path_progress(path.id)
        path_was_complete = previous_path is not None and previous_path.is_completed

        self.events.record(
            CompletionEvent(
                type=EventType.MODULE_COMPLETED,
                module_id=module_id,
                path_id=path.id,
                timestamp=self.clock(),
                score=score,
                time_spent=time_spent,
            )
        )

        updates: dict = {"completion_percentage": 100, "score": 100 if score is None else score}
        if time_spent:
            existing = self.progress.get_module_progress(module_id)
            spent = existing.time_spent_minutes if existing else 0
            updates["time_spent_minutes"] = spent + time_spent
        self.progress.update_module_progress(module_id, path, **updates)

        result = UnlockResult()
        result.newly_unlocked_module_ids = [
            r.module_id
            for r in self.resolver.auto_unlock_modules(path, paths)
            if r.newly_unlocked
        ]

        path_record = self.progress.get_path_progress(path.id)
        if path_record is not None and path_record.is_completed:
            if not path_was_complete:
                self.events.record(
                    CompletionEvent(
                        type=EventType.PATH_COMPLETED,
                        path_id=path.id,
                        timestamp=self.clock(),
                        score=path_record.score,
                        time_spent=path_record.time_spent_minutes,
                    )
                )
                logger.info(f"Path {path.id} completed")
            result.newly_unlocked_path_ids = [
                r.path_id for r in self.resolver.auto_unlock_paths(paths) if r.newly_unlocked
            ]

        if self.bookmarks.is_bookmarked(path.id):
            self.bookmarks.refresh_progress(path.id)

        unlocked = self.achievements.check_achievements(paths)
        earned = self.achievements.check_badges(paths)
        result.achievements = [a.title for a in unlocked] + [b.title for b in earned]

        result.notifications = (
            [MODULE_UNLOCKED_MESSAGE] * len(result.newly_unlocked_module_ids)
            + [PATH_UNLOCKED_MESSAGE] * len(result.newly_unlocked_path_ids)
            + [f"Achievement unlocked: {name}" for name in result.achievements]
        )
        return result

    def handle_module_start(
        self, module_id: str, path_id: str, paths: list[LearningPath]
    ) -> ModuleProgress:
        """
        Record that a module was opened.

        An untouched module becomes IN_PROGRESS at 0%.

        Raises:
            NotFoundError: If the path or module is not in the catalog
        """
        path = find_path(paths, path_id)
        path.find_module(module_id)
        now = self.clock()

        self.events.record(
            CompletionEvent(
                type=EventType.MODULE_STARTED, module_id=module_id, path_id=path.id, timestamp=now
            )
        )

        existing = self.progress.get_module_progress(module_id)
        if existing is None or existing.status == ProgressStatus.NOT_STARTED:
            return self.progress.update_module_progress(
                module_id, path, status=ProgressStatus.IN_PROGRESS, started_at=now
            )
        return self.progress.update_module_progress(module_id, path)

    def handle_path_start(self, path_id: str, paths: list[LearningPath]) -> PathProgress:
        """
        Record that a path was opened and make sure it has a progress record.

        Raises:
            NotFoundError: If the path is not in the catalog
        """
        path = find_path(paths, path_id)
        self.events.record(
            CompletionEvent(type=EventType.PATH_STARTED, path_id=path.id, timestamp=self.clock())
        )
        return self.progress.recompute_path_progress(path)

    # ========================================
    # Export / Import / Reset
    # ========================================

    def export_state(self) -> str:
        """Progress, bookmarks and events as one JSON document."""
        bundle = {
            "version": EXPORT_VERSION,
            "exportedAt": self.clock().isoformat(),
            "progress": json.loads(self.progress.export_state()),
            "bookmarks": json.loads(self.bookmarks.export_state()),
            "events": json.loads(self.events.export_state())["events"],
        }
        return json.dumps(bundle, indent=2)

    def import_state(self, data: str, paths: list[LearningPath] | None = None) -> bool:
        """
        Replace progress, bookmarks and events from an exported bundle.

        Either every part is imported or nothing changes.

        Args:
            data: JSON produced by export_state()
            paths: Catalog used to rebuild imported path records

        Returns:
            True on success, False when the bundle is invalid
        """
        try:
            bundle = json.loads(data)
        except json.JSONDecodeError as e:
            logger.error(f"Error importing bundle: {e}")
            return False

        if not isinstance(bundle, dict) or not {"progress", "bookmarks", "events"} <= bundle.keys():
            logger.error("Error importing bundle: progress, bookmarks and events are required")
            return False

        parts = [
            (partial(self.progress.import_state, paths=paths), self.progress.export_state),
            (self.bookmarks.import_state, self.bookmarks.export_state),
            (self.events.import_state, self.events.export_state),
        ]
        documents = [
            json.dumps(bundle["progress"]),
            json.dumps(bundle["bookmarks"]),
            json.dumps({"events": bundle["events"]}),
        ]
        backups = [export() for _, export in parts]

        for index, ((load, _), document) in enumerate(zip(parts, documents)):
            if not load(document):
                for (restore, _), backup in zip(parts[:index], backups):
                    restore(backup)
                return False
        return True

    def reset_all(self) -> None:
        """Erase everything this learner has: progress, unlocks, history, achievements, bookmarks."""
        self.progress.reset_progress()
        self.resolver.reset_unlocks()
        self.events.clear()
        self.achievements.reset_all()
        self.bookmarks.clear_all()
        self.recommendations.clear_history()
        logger.info("All learner state reset")
