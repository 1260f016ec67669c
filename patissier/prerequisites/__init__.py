"""Prerequisite Resolver: direct-dependency unlock gating and the unlock ledger."""

from patissier.prerequisites.ledger import UnlockLedger
from patissier.prerequisites.models import (
    ConditionType,
    ModuleUnlockResult,
    PathUnlockResult,
    PrerequisiteCheck,
    UnlockCondition,
    UnlockProgress,
)
from patissier.prerequisites.resolver import PrerequisiteResolver

__all__ = [
    "ConditionType",
    "ModuleUnlockResult",
    "PathUnlockResult",
    "PrerequisiteCheck",
    "PrerequisiteResolver",
    "UnlockCondition",
    "UnlockLedger",
    "UnlockProgress",
]
