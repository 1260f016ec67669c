"""Catalog: read-only learning paths and modules supplied by the caller."""

from patissier.catalog.loader import load_catalog, parse_catalog
from patissier.catalog.models import (
    CATEGORY_KEYWORDS,
    LearningModule,
    LearningPath,
    ModuleType,
    SkillLevel,
    find_path,
)

__all__ = [
    "CATEGORY_KEYWORDS",
    "LearningModule",
    "LearningPath",
    "ModuleType",
    "SkillLevel",
    "find_path",
    "load_catalog",
    "parse_catalog",
]
