"""
Prerequisite Resolver.

Decides whether a module or path may move from locked to unlocked.

Gating is direct: a module is checked against its own prerequisite list
only, never a transitive closure. A chain A -> B -> C therefore needs C
explicitly completed before B can unlock, and B before A.

On top of the prerequisite lists, policy conditions apply by module kind:
- Advanced modules need a recorded score of at least the configured threshold
- Long modules need a share of their estimate already spent across the path
- Quiz modules need a prior attempt

Paths are gated on path-level prerequisites only.
"""

from __future__ import annotations

import math

from loguru import logger

from config import Settings, get_settings
from patissier.catalog.models import LearningModule, LearningPath, ModuleType, SkillLevel, find_path
from patissier.prerequisites.ledger import UnlockLedger
from patissier.prerequisites.models import (
    ConditionType,
    ModuleUnlockResult,
    PathUnlockResult,
    PrerequisiteCheck,
    UnlockCondition,
    UnlockProgress,
)
from patissier.progress.models import ProgressStatus
from patissier.progress.store import ProgressStore


class PrerequisiteResolver:
    """Evaluates unlock eligibility against the progress store and records unlocks."""

    def __init__(
        self,
        progress: ProgressStore,
        ledger: UnlockLedger,
        settings: Settings | None = None,
    ):
        self.progress = progress
        self.ledger = ledger
        self.settings = settings or get_settings()

    # ========================================
    # Checks
    # ========================================

    def check_module_prerequisites(
        self,
        module_id: str,
        path: LearningPath,
        paths: list[LearningPath] | None = None,
    ) -> PrerequisiteCheck:
        """
        Evaluate whether a module can be unlocked.

        Args:
            module_id: Module to check
            path: Catalog path containing the module
            paths: Full catalog, used to recognise prerequisite paths without modules

        Returns:
            PrerequisiteCheck snapshot

        Raises:
            NotFoundError: If the module is not part of the path
        """
        module = path.find_module(module_id)
        check = PrerequisiteCheck(is_unlocked=self.ledger.has_module(module.id))

        for prereq_id in module.prerequisites:
            record = self.progress.get_module_progress(prereq_id)
            is_completed = record is not None and record.status == ProgressStatus.COMPLETED
            self._sort_prerequisite(check, prereq_id, is_completed)
            check.unlock_conditions.append(
                UnlockCondition(
                    type=ConditionType.MODULE_COMPLETION,
                    description=f"Complete module: {_module_title(path, prereq_id)}",
                    is_met=is_completed,
                    module_id=prereq_id,
                )
            )

        self._add_path_conditions(check, path, paths)
        check.unlock_conditions.extend(self._policy_conditions(module, path))
        check.dependent_module_ids = [
            other.id for other in path.modules if module.id in other.prerequisites
        ]
        return check

    def check_path_prerequisites(self, path_id: str, paths: list[LearningPath]) -> PrerequisiteCheck:
        """
        Evaluate whether a path can be unlocked.

        A path flagged ``is_unlocked`` in the catalog counts as unlocked.

        Raises:
            NotFoundError: If the path is not in the catalog
        """
        path = find_path(paths, path_id)
        check = PrerequisiteCheck(is_unlocked=self._path_is_unlocked(path))
        self._add_path_conditions(check, path, paths)
        return check

    def get_module_unlock_progress(self, module_id: str, path: LearningPath) -> UnlockProgress:
        return UnlockProgress.from_check(self.check_module_prerequisites(module_id, path))

    def get_path_unlock_progress(self, path_id: str, paths: list[LearningPath]) -> UnlockProgress:
        return UnlockProgress.from_check(self.check_path_prerequisites(path_id, paths))

    # ========================================
    # Unlocking
    # ========================================

    def unlock_module(
        self,
        module_id: str,
        path: LearningPath,
        paths: list[LearningPath] | None = None,
    ) -> ModuleUnlockResult:
        """
        Unlock a module if its prerequisites are met.

        Unlocking is idempotent: a second call with identical state reports
        ``newly_unlocked=False``.

        Raises:
            NotFoundError: If the module is not part of the path
        """
        check = self.check_module_prerequisites(module_id, path, paths)
        was_unlocked = check.is_unlocked
        newly_unlocked = check.can_unlock and self.ledger.add_module(module_id)

        if not newly_unlocked and not was_unlocked:
            logger.debug(
                f"Module {module_id} stays locked: missing {check.missing_prerequisite_ids}, "
                f"{len(check.unmet_conditions)} unmet conditions"
            )

        return ModuleUnlockResult(
            module_id=module_id,
            was_unlocked=was_unlocked,
            newly_unlocked=newly_unlocked,
            prerequisites=check,
            next_unlockable_module_ids=self.get_next_unlockable_modules(path, paths),
        )

    def unlock_path(self, path_id: str, paths: list[LearningPath]) -> PathUnlockResult:
        """
        Unlock a path if its prerequisite paths are complete.

        Raises:
            NotFoundError: If the path is not in the catalog
        """
        check = self.check_path_prerequisites(path_id, paths)
        was_unlocked = check.is_unlocked
        newly_unlocked = check.can_unlock and self.ledger.add_path(path_id)

        return PathUnlockResult(
            path_id=path_id,
            was_unlocked=was_unlocked,
            newly_unlocked=newly_unlocked,
            prerequisites=check,
            next_unlockable_path_ids=self.get_next_unlockable_paths(paths),
        )

    def get_next_unlockable_modules(
        self, path: LearningPath, paths: list[LearningPath] | None = None
    ) -> list[str]:
        """Modules of the path that are still locked but could be unlocked now."""
        return [
            module.id
            for module in path.modules
            if not self.ledger.has_module(module.id)
            and self.check_module_prerequisites(module.id, path, paths).can_unlock
        ]

    def get_next_unlockable_paths(self, paths: list[LearningPath]) -> list[str]:
        return [
            path.id
            for path in paths
            if not self._path_is_unlocked(path)
            and self.check_path_prerequisites(path.id, paths).can_unlock
        ]

    def auto_unlock_modules(
        self, path: LearningPath, paths: list[LearningPath] | None = None
    ) -> list[ModuleUnlockResult]:
        """Unlock every module of the path whose prerequisites are now met."""
        results = [
            self.unlock_module(module_id, path, paths)
            for module_id in self.get_next_unlockable_modules(path, paths)
        ]
        if results:
            logger.info(f"Auto-unlocked {len(results)} modules in path {path.id}")
        return results

    def auto_unlock_paths(self, paths: list[LearningPath]) -> list[PathUnlockResult]:
        results = [
            self.unlock_path(path_id, paths) for path_id in self.get_next_unlockable_paths(paths)
        ]
        if results:
            logger.info(f"Auto-unlocked {len(results)} paths")
        return results

    # ========================================
    # Ledger reads
    # ========================================

    def is_module_unlocked(self, module_id: str) -> bool:
        return self.ledger.has_module(module_id)

    def is_path_unlocked(self, path_id: str, paths: list[LearningPath]) -> bool:
        """
        Raises:
            NotFoundError: If the path is not in the catalog
        """
        return self._path_is_unlocked(find_path(paths, path_id))

    def reset_unlocks(self) -> None:
        self.ledger.reset()

    # ========================================
    # Internals
    # ========================================

    def _path_is_unlocked(self, path: LearningPath) -> bool:
        return path.is_unlocked or self.ledger.has_path(path.id)

    def _is_path_complete(self, path_id: str, paths: list[LearningPath] | None) -> bool:
        record = self.progress.get_path_progress(path_id)
        if record is not None:
            return record.completion_percentage >= 100
        # A path without modules is complete by convention, even untouched.
        for path in paths or []:
            if path.id == path_id:
                return not path.modules
        return False

    def _add_path_conditions(
        self,
        check: PrerequisiteCheck,
        path: LearningPath,
        paths: list[LearningPath] | None,
    ) -> None:
        for prereq_path_id in path.prerequisites:
            is_completed = self._is_path_complete(prereq_path_id, paths)
            self._sort_prerequisite(check, prereq_path_id, is_completed)
            check.unlock_conditions.append(
                UnlockCondition(
                    type=ConditionType.PATH_COMPLETION,
                    description="Complete prerequisite path",
                    is_met=is_completed,
                    path_id=prereq_path_id,
                )
            )

    def _policy_conditions(self, module: LearningModule, path: LearningPath) -> list[UnlockCondition]:
        settings = self.settings
        record = self.progress.get_module_progress(module.id)
        conditions: list[UnlockCondition] = []

        if module.difficulty == SkillLevel.ADVANCED:
            score = record.score if record and record.score is not None else 0
            threshold = settings.advanced_score_threshold
            conditions.append(
                UnlockCondition(
                    type=ConditionType.SCORE_THRESHOLD,
                    description=f"Achieve {threshold:g}% or higher score on previous modules",
                    is_met=score >= threshold,
                    required_value=threshold,
                    current_value=score,
                )
            )

        if module.estimated_minutes > settings.long_module_minutes:
            spent = sum(r.time_spent_minutes for r in self.progress.module_records(path.id))
            required = math.floor(module.estimated_minutes * settings.long_module_time_ratio)
            conditions.append(
                UnlockCondition(
                    type=ConditionType.TIME_SPENT,
                    description=f"Spend at least {required} minutes on previous modules",
                    is_met=spent >= required,
                    required_value=required,
                    current_value=spent,
                )
            )

        if module.type == ModuleType.QUIZ:
            attempts = record.attempts if record else 0
            required_attempts = settings.quiz_min_attempts
            conditions.append(
                UnlockCondition(
                    type=ConditionType.ATTEMPTS,
                    description="Complete at least one quiz attempt",
                    is_met=attempts >= required_attempts,
                    required_value=required_attempts,
                    current_value=attempts,
                )
            )

        return conditions

    @staticmethod
    def _sort_prerequisite(check: PrerequisiteCheck, item_id: str, is_completed: bool) -> None:
        if is_completed:
            check.completed_prerequisite_ids.append(item_id)
        else:
            check.missing_prerequisite_ids.append(item_id)


def _module_title(path: LearningPath, module_id: str) -> str:
    for module in path.modules:
        if module.id == module_id:
            return module.title or module_id
    return module_id
