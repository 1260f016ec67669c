"""
Prerequisite evaluation results.

None of these are persisted: every check snapshots the progress state at
evaluation time, so an UnlockCondition's ``is_met`` is not live.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class ConditionType(str, Enum):
    MODULE_COMPLETION = "module_completion"
    PATH_COMPLETION = "path_completion"
    SCORE_THRESHOLD = "score_threshold"
    TIME_SPENT = "time_spent"
    ATTEMPTS = "attempts"
    CUSTOM = "custom"


@dataclass(frozen=True)
class UnlockCondition:
    """One gate an item must pass before it can be unlocked."""

    type: ConditionType
    description: str
    is_met: bool
    required_value: float | None = None
    current_value: float | None = None
    module_id: str | None = None
    path_id: str | None = None


@dataclass
class PrerequisiteCheck:
    """
    Unlock eligibility of a module or path.

    ``dependent_module_ids`` lists the modules of the same path that name
    the checked module as a prerequisite (always empty for paths).
    """

    is_unlocked: bool
    missing_prerequisite_ids: list[str] = field(default_factory=list)
    completed_prerequisite_ids: list[str] = field(default_factory=list)
    unlock_conditions: list[UnlockCondition] = field(default_factory=list)
    dependent_module_ids: list[str] = field(default_factory=list)

    @property
    def can_unlock(self) -> bool:
        return (
            not self.missing_prerequisite_ids
            and all(condition.is_met for condition in self.unlock_conditions)
            and not self.is_unlocked
        )

    @property
    def unmet_conditions(self) -> list[UnlockCondition]:
        return [condition for condition in self.unlock_conditions if not condition.is_met]


@dataclass
class ModuleUnlockResult:
    module_id: str
    was_unlocked: bool
    newly_unlocked: bool
    prerequisites: PrerequisiteCheck
    next_unlockable_module_ids: list[str] = field(default_factory=list)


@dataclass
class PathUnlockResult:
    path_id: str
    was_unlocked: bool
    newly_unlocked: bool
    prerequisites: PrerequisiteCheck
    next_unlockable_path_ids: list[str] = field(default_factory=list)


@dataclass
class UnlockProgress:
    """Share of unlock conditions already met; 100 when there are none."""

    progress: float
    total: int
    completed: int
    remaining: int

    @classmethod
    def from_check(cls, check: PrerequisiteCheck) -> UnlockProgress:
        total = len(check.unlock_conditions)
        completed = sum(1 for condition in check.unlock_conditions if condition.is_met)
        progress = completed / total * 100 if total else 100.0
        return cls(progress=progress, total=total, completed=completed, remaining=total - completed)
