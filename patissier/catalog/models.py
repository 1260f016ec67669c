"""
Catalog models: learning paths and the modules inside them.

The catalog is owned by the caller and passed into every resolver, scorer
and aggregator call. Field aliases accept the camelCase JSON the content
API serves (``estimatedMinutes``, ``totalStudents`` ...).
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from patissier.core.errors import NotFoundError


class SkillLevel(str, Enum):
    """Path level and module/path difficulty share the same three tiers."""

    BEGINNER = "Beginner"
    INTERMEDIATE = "Intermediate"
    ADVANCED = "Advanced"

    @property
    def rank(self) -> int:
        return _LEVEL_ORDER.index(self)


_LEVEL_ORDER = [SkillLevel.BEGINNER, SkillLevel.INTERMEDIATE, SkillLevel.ADVANCED]


class ModuleType(str, Enum):
    TECHNIQUE = "technique"
    QUIZ = "quiz"
    READING = "reading"
    ASSIGNMENT = "assignment"
    VIDEO = "video"
    PRACTICE = "practice"
    PROJECT = "project"


# Title keywords used when a path carries no explicit category.
CATEGORY_KEYWORDS: dict[str, tuple[str, ...]] = {
    "Cakes & Desserts": ("cake", "dessert"),
    "Bread & Viennoiserie": ("bread", "viennoiserie"),
    "Chocolate & Confectionery": ("chocolate", "confectionery"),
    "Fundamentals": ("basic", "fundamental"),
    "Advanced Techniques": ("advanced", "master"),
}


class CatalogModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        coerce_numbers_to_str=True,
        frozen=True,
        extra="ignore",
    )


class LearningModule(CatalogModel):
    """Smallest unit of content with its own progress and prerequisites."""

    id: str
    path_id: str | None = None
    title: str = ""
    type: ModuleType = ModuleType.TECHNIQUE
    difficulty: SkillLevel = SkillLevel.BEGINNER
    estimated_minutes: int = 0
    order: int = 0
    prerequisites: list[str] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)


class LearningPath(CatalogModel):
    """A curated sequence of modules representing one learning journey."""

    id: str
    title: str = ""
    level: SkillLevel = SkillLevel.BEGINNER
    difficulty: SkillLevel = SkillLevel.BEGINNER
    duration: str = ""
    estimated_hours: float = 0
    tags: list[str] = Field(default_factory=list)
    modules: list[LearningModule] = Field(default_factory=list)
    prerequisites: list[str] = Field(default_factory=list)
    category: str | None = None
    is_unlocked: bool = False
    is_featured: bool = False
    total_students: int = 0
    average_rating: float = 0

    @property
    def module_ids(self) -> list[str]:
        return [module.id for module in self.modules]

    def find_module(self, module_id: str) -> LearningModule:
        """
        Look up a module of this path.

        Raises:
            NotFoundError: If the module is not part of the path
        """
        for module in self.modules:
            if module.id == module_id:
                return module
        raise NotFoundError("module", module_id, scope=f"path {self.id}")

    def resolved_category(self) -> str | None:
        """Explicit category, else the first category whose keyword appears in the title."""
        if self.category:
            return self.category
        title = self.title.lower()
        for category, keywords in CATEGORY_KEYWORDS.items():
            if any(keyword in title for keyword in keywords):
                return category
        return None


def find_path(paths: list[LearningPath], path_id: str) -> LearningPath:
    """
    Look up a path in a catalog.

    Raises:
        NotFoundError: If no path has this id
    """
    for path in paths:
        if path.id == path_id:
            return path
    raise NotFoundError("path", path_id)
