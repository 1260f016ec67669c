"""
Progress Store.

Holds per-module and per-path progress records and derives path progress
from module progress. Path records are always recomputed from scratch, so
they can never drift from the module records regardless of update order.

Every write replaces the affected records wholesale and persists the whole
snapshot through the state repository.
"""

from __future__ import annotations

import json
from datetime import datetime
from statistics import mean
from typing import Any

from loguru import logger
from pydantic import TypeAdapter, ValidationError

from patissier.catalog.models import LearningPath
from patissier.core.clock import Clock, ensure_utc, utc_now
from patissier.core.streaks import calculate_current_streak, calculate_longest_streak
from patissier.progress.models import (
    ModuleProgress,
    PathProgress,
    ProgressSnapshot,
    ProgressStats,
    ProgressStatus,
)
from patissier.storage.repository import StateRepository

_SNAPSHOT_ADAPTER = TypeAdapter(ProgressSnapshot)
_SNAPSHOT_KEYS = {"moduleProgress", "pathProgress"}

_UPDATABLE_FIELDS = frozenset(ModuleProgress.model_fields) - {"module_id", "path_id"}


class ProgressStore:
    """Materialized progress view for one learner."""

    COLLECTION = "progress"

    def __init__(self, repository: StateRepository, clock: Clock = utc_now):
        self._repository = repository
        self._clock = clock
        self._snapshot = repository.load(self.COLLECTION, _SNAPSHOT_ADAPTER, ProgressSnapshot)

    # ========================================
    # Reads
    # ========================================

    def get_module_progress(self, module_id: str) -> ModuleProgress | None:
        return self._snapshot.module_progress.get(module_id)

    def get_path_progress(self, path_id: str) -> PathProgress | None:
        return self._snapshot.path_progress.get(path_id)

    def get_all_progress(self) -> ProgressSnapshot:
        return self._snapshot

    def module_records(self, path_id: str | None = None) -> list[ModuleProgress]:
        """Module records, optionally restricted to one path."""
        records = self._snapshot.module_progress.values()
        if path_id is None:
            return list(records)
        return [record for record in records if record.path_id == path_id]

    def path_records(self) -> list[PathProgress]:
        return list(self._snapshot.path_progress.values())

    # ========================================
    # Module updates
    # ========================================

    def update_module_progress(
        self, module_id: str, path: LearningPath, **updates: Any
    ) -> ModuleProgress:
        """
        Merge updates into a module record and recompute its path.

        A completion percentage of 100 or more forces COMPLETED, anything
        between 0 and 100 forces IN_PROGRESS, and 0 or less demotes a
        completed record. Values are not clamped.

        Args:
            module_id: Module being updated
            path: Catalog path owning the module
            **updates: ModuleProgress fields to overwrite

        Returns:
            The new module record
        """
        unknown = set(updates) - _UPDATABLE_FIELDS
        if unknown:
            raise TypeError(f"Unknown module progress fields: {', '.join(sorted(unknown))}")

        now = ensure_utc(self._clock())
        existing = self._snapshot.module_progress.get(module_id)
        data = existing.model_dump() if existing else {}
        data.update(updates)
        data.update(module_id=module_id, path_id=path.id, last_accessed_at=now)

        record = _apply_status_rules(ModuleProgress.model_validate(data), now)

        module_progress = {**self._snapshot.module_progress, module_id: record}
        self._snapshot = self._snapshot.model_copy(update={"module_progress": module_progress})
        self._replace_path(self._derive_path_progress(path))
        self._persist()

        logger.debug(
            f"Module {module_id} in {path.id}: {record.status.value} "
            f"({record.completion_percentage}%)"
        )
        return record

    def mark_module_complete(
        self, module_id: str, path: LearningPath, score: float | None = None
    ) -> ModuleProgress:
        """Complete a module; the score defaults to 100."""
        return self.update_module_progress(
            module_id,
            path,
            completion_percentage=100,
            score=100 if score is None else score,
        )

    def mark_module_incomplete(self, module_id: str, path: LearningPath) -> ModuleProgress:
        return self.update_module_progress(module_id, path, completion_percentage=0)

    def record_attempt(
        self, module_id: str, path: LearningPath, time_spent: float = 0
    ) -> ModuleProgress:
        """Count one more attempt on a module and add the time spent on it."""
        existing = self._snapshot.module_progress.get(module_id)
        attempts = existing.attempts if existing else 0
        minutes = existing.time_spent_minutes if existing else 0
        return self.update_module_progress(
            module_id,
            path,
            attempts=attempts + 1,
            time_spent_minutes=minutes + time_spent,
        )

    # ========================================
    # Path records
    # ========================================

    def recompute_path_progress(self, path: LearningPath) -> PathProgress:
        """
        Rebuild a path record from its module records.

        Two calls without module changes in between return equal records.
        """
        record = self._derive_path_progress(path)
        if record != self._snapshot.path_progress.get(path.id):
            self._replace_path(record)
            self._persist()
        return record

    def annotate_path(
        self,
        path_id: str,
        notes: str | None = None,
        rating: float | None = None,
        review: str | None = None,
    ) -> PathProgress:
        """Store learner notes, rating or review on a path record."""
        existing = self._snapshot.path_progress.get(path_id) or PathProgress(path_id=path_id)
        changes = {
            key: value
            for key, value in {"notes": notes, "rating": rating, "review": review}.items()
            if value is not None
        }
        record = existing.model_copy(update=changes)
        self._replace_path(record)
        self._persist()
        return record

    # ========================================
    # Statistics
    # ========================================

    def get_progress_stats(self, paths: list[LearningPath]) -> ProgressStats:
        """
        Summarize progress across a catalog.

        Paths without a record count as not started.
        """
        stats = ProgressStats(total_paths=len(paths))

        for path in paths:
            record = self._snapshot.path_progress.get(path.id)
            status = record.status if record else ProgressStatus.NOT_STARTED
            breakdown = stats.level_progress[path.level]
            breakdown.total += 1

            if status == ProgressStatus.COMPLETED:
                stats.completed_paths += 1
                breakdown.completed += 1
            elif status == ProgressStatus.IN_PROGRESS:
                stats.in_progress_paths += 1
                breakdown.in_progress += 1
            else:
                stats.not_started_paths += 1
                breakdown.not_started += 1

        records = list(self._snapshot.module_progress.values())
        stats.total_modules = sum(len(path.modules) for path in paths)
        stats.completed_modules = sum(1 for r in records if r.status == ProgressStatus.COMPLETED)
        stats.in_progress_modules = sum(
            1 for r in records if r.status == ProgressStatus.IN_PROGRESS
        )
        stats.not_started_modules = max(
            stats.total_modules - stats.completed_modules - stats.in_progress_modules, 0
        )
        stats.total_time_spent = sum(r.time_spent_minutes for r in records)

        scores = [r.score for r in records if r.score is not None]
        stats.average_score = round(mean(scores), 2) if scores else 0

        accessed = [
            r.last_accessed_at for r in self._snapshot.path_progress.values() if r.last_accessed_at
        ]
        today = self._clock().date()
        stats.current_streak = calculate_current_streak(accessed, today)
        stats.longest_streak = calculate_longest_streak(accessed, today)
        return stats

    # ========================================
    # Reset / Export / Import
    # ========================================

    def reset_progress(self) -> None:
        self._snapshot = ProgressSnapshot()
        self._repository.delete(self.COLLECTION)
        logger.info("Progress reset")

    def export_state(self) -> str:
        return self._snapshot.model_dump_json(by_alias=True, indent=2)

    def import_state(self, data: str, paths: list[LearningPath] | None = None) -> bool:
        """
        Replace all progress with an exported document.

        The document must be an object with ``moduleProgress`` and
        ``pathProgress``. Module records are normalized with the same status
        rules as live updates. Path records of catalog paths are rebuilt
        from the module records, keeping their notes, rating and review;
        path records outside the catalog must agree with the module records.

        Args:
            data: JSON produced by export_state()
            paths: Catalog used to rebuild path records

        Returns:
            False, leaving current progress untouched, when the document is invalid
        """
        try:
            payload = json.loads(data)
        except json.JSONDecodeError as e:
            logger.error(f"Error importing progress: {e}")
            return False

        if not isinstance(payload, dict) or not _SNAPSHOT_KEYS <= payload.keys():
            logger.error("Error importing progress: moduleProgress and pathProgress are required")
            return False

        try:
            snapshot = ProgressSnapshot.model_validate(payload)
        except ValidationError as e:
            logger.error(f"Error importing progress: {e.error_count()} validation errors")
            return False

        module_progress = {
            module_id: _apply_status_rules(record, record.last_accessed_at)
            for module_id, record in snapshot.module_progress.items()
        }
        snapshot = snapshot.model_copy(update={"module_progress": module_progress})

        catalog = {path.id: path for path in paths or []}
        for record in snapshot.path_progress.values():
            if record.path_id not in catalog and not _agrees_with_modules(record, snapshot):
                logger.error(
                    f"Error importing progress: path {record.path_id} "
                    "disagrees with its module records"
                )
                return False

        self._snapshot = snapshot
        for path in catalog.values():
            if path.id in snapshot.path_progress or self.module_records(path.id):
                self._replace_path(self._derive_path_progress(path))
        self._persist()

        snapshot = self._snapshot
        logger.info(
            f"Imported progress for {len(snapshot.module_progress)} modules "
            f"and {len(snapshot.path_progress)} paths"
        )
        return True

    # ========================================
    # Internals
    # ========================================

    def _derive_path_progress(self, path: LearningPath) -> PathProgress:
        previous = self._snapshot.path_progress.get(path.id)
        # Records of modules no longer in the catalog path are ignored
        module_ids = set(path.module_ids)
        records = [r for r in self.module_records(path.id) if r.module_id in module_ids]

        completed_ids = sorted(r.module_id for r in records if r.status == ProgressStatus.COMPLETED)
        if path.modules:
            percentage = round(100 * len(completed_ids) / len(path.modules), 2)
        else:
            percentage = 100.0

        in_progress = [r for r in records if r.status == ProgressStatus.IN_PROGRESS]
        if percentage >= 100:
            status = ProgressStatus.COMPLETED
        elif percentage > 0 or in_progress:
            status = ProgressStatus.IN_PROGRESS
        else:
            status = ProgressStatus.NOT_STARTED

        if in_progress:
            latest = max(in_progress, key=lambda r: (r.last_accessed_at, r.module_id))
            current_module_id = latest.module_id
        elif previous and previous.current_module_id in module_ids:
            current_module_id = previous.current_module_id
        else:
            current_module_id = None

        scores = [r.score for r in records if r.score is not None]
        started = [r.started_at for r in records if r.started_at]
        finished = [r.completed_at for r in records if r.completed_at]
        accessed = [r.last_accessed_at for r in records]

        return PathProgress(
            path_id=path.id,
            status=status,
            completion_percentage=percentage,
            completed_module_ids=completed_ids,
            current_module_id=current_module_id,
            time_spent_minutes=sum(r.time_spent_minutes for r in records),
            score=round(mean(scores), 2) if scores else 0,
            started_at=min(started) if started else None,
            completed_at=max(finished) if status == ProgressStatus.COMPLETED and finished else None,
            last_accessed_at=max(accessed) if accessed else None,
            notes=previous.notes if previous else None,
            rating=previous.rating if previous else None,
            review=previous.review if previous else None,
        )

    def _replace_path(self, record: PathProgress) -> None:
        path_progress = {**self._snapshot.path_progress, record.path_id: record}
        self._snapshot = self._snapshot.model_copy(update={"path_progress": path_progress})

    def _persist(self) -> None:
        self._repository.save(self.COLLECTION, self._snapshot.model_dump(mode="json", by_alias=True))


def _apply_status_rules(record: ModuleProgress, now: datetime) -> ModuleProgress:
    """Force status and timestamps to agree with the completion percentage."""
    changes: dict[str, Any] = {}
    percentage = record.completion_percentage

    if percentage >= 100:
        changes["status"] = ProgressStatus.COMPLETED
        if record.completed_at is None:
            changes["completed_at"] = now
    elif percentage > 0:
        changes["status"] = ProgressStatus.IN_PROGRESS
        if record.started_at is None:
            changes["started_at"] = now
    elif record.status == ProgressStatus.COMPLETED:
        changes["status"] = (
            ProgressStatus.IN_PROGRESS if record.started_at else ProgressStatus.NOT_STARTED
        )

    if changes.get("status", record.status) != ProgressStatus.COMPLETED:
        changes["completed_at"] = None

    return record.model_copy(update=changes)


def _agrees_with_modules(record: PathProgress, snapshot: ProgressSnapshot) -> bool:
    """Check a path record that cannot be rebuilt without its catalog path."""
    completed = {
        module.module_id
        for module in snapshot.module_progress.values()
        if module.status == ProgressStatus.COMPLETED
    }
    if not set(record.completed_module_ids) <= completed:
        return False
    return (record.status == ProgressStatus.COMPLETED) == (record.completion_percentage >= 100)
