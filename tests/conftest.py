"""
Pytest Configuration and Fixtures.

This file configures pytest and provides shared fixtures for all tests.
"""
import sys
from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from config import Settings  # noqa: E402
from patissier.catalog.models import LearningPath  # noqa: E402
from patissier.engine import LearningEngine  # noqa: E402
from patissier.progress.store import ProgressStore  # noqa: E402
from patissier.storage.backend import MemoryBackend  # noqa: E402
from patissier.storage.repository import StateRepository  # noqa: E402


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests (full engine wiring)")
    config.addinivalue_line("markers", "smoke: Smoke tests for CLI commands")
    config.addinivalue_line("markers", "slow: Slow tests")


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their location."""
    for item in items:
        # Mark based on test file location
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
        elif "integration" in str(item.fspath):
            item.add_marker(pytest.mark.integration)
        elif "smoke" in str(item.fspath):
            item.add_marker(pytest.mark.smoke)


class FixedClock:
    """Clock that only moves when told to."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


@pytest.fixture(scope="session")
def project_root():
    """Return the project root directory."""
    return PROJECT_ROOT


@pytest.fixture
def settings():
    """Settings isolated from the environment and any .env file."""
    return Settings(_env_file=None, storage_backend="memory", database_url="sqlite://")


@pytest.fixture
def clock():
    return FixedClock(datetime(2026, 3, 10, 12, 0, tzinfo=UTC))


@pytest.fixture
def backend():
    return MemoryBackend()


@pytest.fixture
def repository(backend, settings):
    return StateRepository(backend, settings)


@pytest.fixture
def progress_store(repository, clock):
    return ProgressStore(repository, clock)


@pytest.fixture
def catalog_data():
    """A three-path catalog in the camelCase shape the content API serves."""
    return [
        {
            "id": "p1",
            "title": "Basic Pastry Fundamentals",
            "level": "Beginner",
            "difficulty": "Beginner",
            "duration": "1-2 weeks",
            "estimatedHours": 4,
            "tags": ["basics", "dough"],
            "isUnlocked": True,
            "isFeatured": True,
            "totalStudents": 1500,
            "averageRating": 4.6,
            "modules": [
                {"id": "m1", "title": "Mise en place", "estimatedMinutes": 30},
                {"id": "m2", "title": "Shortcrust", "estimatedMinutes": 45, "prerequisites": ["m1"]},
            ],
        },
        {
            "id": "p2",
            "title": "Chocolate Cake Mastery",
            "level": "Intermediate",
            "difficulty": "Intermediate",
            "duration": "3-4 weeks",
            "estimatedHours": 10,
            "tags": ["chocolate", "cake"],
            "prerequisites": ["p1"],
            "totalStudents": 800,
            "averageRating": 4.2,
            "modules": [
                {
                    "id": "m3",
                    "title": "Tempering",
                    "difficulty": "Advanced",
                    "estimatedMinutes": 40,
                },
                {
                    "id": "m4",
                    "title": "Ganache quiz",
                    "type": "quiz",
                    "estimatedMinutes": 15,
                    "prerequisites": ["m3"],
                },
            ],
        },
        {
            "id": "p3",
            "title": "Artisan Bread",
            "level": "Advanced",
            "difficulty": "Advanced",
            "duration": "6 weeks",
            "estimatedHours": 20,
            "tags": ["bread", "dough"],
            "prerequisites": ["p2"],
            "totalStudents": 300,
            "averageRating": 4.8,
            "modules": [
                {"id": "m5", "title": "Levain", "estimatedMinutes": 120},
                {"id": "m6", "title": "Shaping", "estimatedMinutes": 50},
            ],
        },
    ]


@pytest.fixture
def paths(catalog_data):
    return [LearningPath.model_validate(path) for path in catalog_data]


@pytest.fixture
def path_by_id(paths):
    return {path.id: path for path in paths}


@pytest.fixture
def engine(settings, clock):
    return LearningEngine(MemoryBackend(), settings, clock)
