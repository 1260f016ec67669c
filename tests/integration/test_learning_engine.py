"""
Integration tests for the learning engine.

Drives complete learner journeys through the engine facade and checks that
progress, unlocks, history, achievements and bookmarks stay consistent.
"""

import json

import pytest

from config import Settings
from patissier.completion.events import EventType
from patissier.core.errors import NotFoundError
from patissier.engine import MODULE_UNLOCKED_MESSAGE, PATH_UNLOCKED_MESSAGE, LearningEngine
from patissier.progress.models import ProgressStatus
from patissier.storage.backend import MemoryBackend
from patissier.storage.sql_backend import SqlBackend


class TestModuleCompletion:
    """handle_module_completion propagates to every component."""

    def test_first_module(self, engine, paths):
        result = engine.handle_module_completion("m1", "p1", paths, score=90, time_spent=20)

        assert result.newly_unlocked_module_ids == ["m1", "m2"]
        assert result.newly_unlocked_path_ids == []
        assert result.achievements == ["Module Completer", "Progress Tracker"]
        assert result.notifications == [
            MODULE_UNLOCKED_MESSAGE,
            MODULE_UNLOCKED_MESSAGE,
            "Achievement unlocked: Module Completer",
            "Achievement unlocked: Progress Tracker",
        ]
        record = engine.progress.get_module_progress("m1")
        assert record.score == 90
        assert record.time_spent_minutes == 20
        assert engine.progress.get_path_progress("p1").completion_percentage == 50

    def test_finishing_a_path_unlocks_the_next_one(self, engine, paths):
        engine.handle_module_completion("m1", "p1", paths, time_spent=20)

        result = engine.handle_module_completion("m2", "p1", paths, time_spent=25)

        assert result.newly_unlocked_module_ids == []
        assert result.newly_unlocked_path_ids == ["p2"]
        assert PATH_UNLOCKED_MESSAGE in result.notifications
        assert result.achievements[:3] == ["First Steps", "Beginner Baker", "Early Bird"]
        assert engine.resolver.is_path_unlocked("p2", paths) is True
        assert engine.resolver.is_path_unlocked("p3", paths) is False

        event_types = [event.type for event in engine.events.events()]
        assert event_types == [
            EventType.MODULE_COMPLETED,
            EventType.MODULE_COMPLETED,
            EventType.PATH_COMPLETED,
        ]

    def test_recompleting_does_not_repeat_path_event(self, engine, paths):
        engine.handle_module_completion("m1", "p1", paths)
        engine.handle_module_completion("m2", "p1", paths)

        result = engine.handle_module_completion("m2", "p1", paths)

        assert result.newly_unlocked_path_ids == []
        assert result.achievements == []
        path_events = [e for e in engine.events.events() if e.type == EventType.PATH_COMPLETED]
        assert len(path_events) == 1

    def test_time_accumulates_across_sessions(self, engine, paths):
        engine.handle_module_completion("m1", "p1", paths, time_spent=10)
        engine.handle_module_completion("m1", "p1", paths, time_spent=15)

        assert engine.progress.get_module_progress("m1").time_spent_minutes == 25

    def test_event_log_and_progress_agree(self, engine, paths):
        engine.handle_module_completion("m1", "p1", paths)
        engine.handle_module_completion("m2", "p1", paths)
        engine.handle_module_start("m3", "p2", paths)

        assert engine.aggregator.find_divergence() == []

    def test_bookmark_progress_is_refreshed(self, engine, paths, path_by_id):
        engine.bookmarks.bookmark_path(path_by_id["p1"])

        engine.handle_module_completion("m1", "p1", paths)

        assert engine.bookmarks.get_bookmark("p1").progress == 50

    def test_unknown_module_changes_nothing(self, engine, paths):
        with pytest.raises(NotFoundError):
            engine.handle_module_completion("m9", "p1", paths)
        with pytest.raises(NotFoundError):
            engine.handle_module_completion("m1", "p9", paths)

        assert len(engine.events) == 0
        assert engine.progress.get_all_progress().module_progress == {}


class TestStarts:
    def test_module_start_marks_in_progress(self, engine, paths, clock):
        record = engine.handle_module_start("m3", "p2", paths)

        assert record.status == ProgressStatus.IN_PROGRESS
        assert record.started_at == clock.now
        path_record = engine.progress.get_path_progress("p2")
        assert path_record.status == ProgressStatus.IN_PROGRESS
        assert path_record.current_module_id == "m3"

    def test_module_start_keeps_completed_modules(self, engine, paths):
        engine.handle_module_completion("m1", "p1", paths)

        record = engine.handle_module_start("m1", "p1", paths)

        assert record.status == ProgressStatus.COMPLETED

    def test_path_start_creates_a_record(self, engine, paths):
        record = engine.handle_path_start("p3", paths)

        assert record.status == ProgressStatus.NOT_STARTED
        assert engine.events.events()[0].type == EventType.PATH_STARTED


class TestExportImport:
    def test_round_trip_after_reset(self, engine, paths, path_by_id):
        engine.handle_module_completion("m1", "p1", paths, score=80)
        engine.bookmarks.bookmark_path(path_by_id["p1"], notes="butter")
        bundle = engine.export_state()

        engine.reset_all()
        assert engine.progress.get_module_progress("m1") is None

        assert engine.import_state(bundle) is True
        assert engine.progress.get_module_progress("m1").score == 80
        assert engine.bookmarks.get_bookmark("p1").notes == "butter"
        assert len(engine.events) == 1

    def test_bundle_shape(self, engine, paths):
        engine.handle_module_completion("m1", "p1", paths)

        bundle = json.loads(engine.export_state())

        assert bundle["version"] == 1
        assert set(bundle) == {"version", "exportedAt", "progress", "bookmarks", "events"}
        assert "m1" in bundle["progress"]["moduleProgress"]

    @pytest.mark.parametrize("payload", ["{broken", "[]", '{"progress": {}}'])
    def test_malformed_bundle_is_rejected(self, engine, paths, payload):
        engine.handle_module_completion("m1", "p1", paths)
        before = engine.progress.export_state()

        assert engine.import_state(payload) is False
        assert engine.progress.export_state() == before

    def test_failed_part_rolls_back_earlier_parts(self, engine, paths):
        engine.handle_module_completion("m1", "p1", paths)
        before = engine.progress.export_state()
        bundle = json.loads(engine.export_state())
        bundle["progress"] = {"moduleProgress": {}, "pathProgress": {}}
        bundle["bookmarks"] = "not a list"

        assert engine.import_state(json.dumps(bundle)) is False
        assert engine.progress.export_state() == before

    def test_empty_progress_part_is_rejected(self, engine, paths):
        engine.handle_module_completion("m1", "p1", paths)
        bundle = json.loads(engine.export_state())
        bundle["progress"] = {}

        assert engine.import_state(json.dumps(bundle)) is False
        assert engine.progress.get_module_progress("m1") is not None

    def test_catalog_rebuilds_imported_path_records(self, engine, paths):
        engine.handle_module_completion("m1", "p1", paths)
        bundle = json.loads(engine.export_state())
        bundle["progress"]["pathProgress"]["p1"]["completionPercentage"] = 100
        bundle["progress"]["pathProgress"]["p1"]["status"] = "completed"
        bundle["progress"]["pathProgress"]["p1"]["completedModuleIds"] = ["m1", "m2"]

        assert engine.import_state(json.dumps(bundle)) is False
        assert engine.import_state(json.dumps(bundle), paths) is True
        assert engine.progress.get_path_progress("p1").completion_percentage == 50


class TestReset:
    def test_reset_clears_every_component(self, engine, paths, path_by_id):
        engine.handle_module_completion("m1", "p1", paths)
        engine.handle_module_completion("m2", "p1", paths)
        engine.bookmarks.bookmark_path(path_by_id["p2"])

        engine.reset_all()

        assert engine.progress.path_records() == []
        assert engine.resolver.is_module_unlocked("m1") is False
        assert engine.resolver.is_path_unlocked("p2", paths) is False
        assert len(engine.events) == 0
        assert engine.achievements.total_points() == 0
        assert engine.bookmarks.get_bookmarks() == []


class TestEngineConstruction:
    def test_state_survives_a_new_engine_on_the_same_database(self, tmp_path, settings, clock, paths):
        url = f"sqlite:///{tmp_path / 'state.db'}"
        first = LearningEngine(SqlBackend(url), settings, clock)
        first.handle_module_completion("m1", "p1", paths)
        first.handle_module_completion("m2", "p1", paths)

        second = LearningEngine(SqlBackend(url), settings, clock)

        assert second.progress.get_path_progress("p1").is_completed
        assert second.resolver.is_path_unlocked("p2", paths) is True
        assert second.achievements.total_points() == 85

    def test_from_settings_memory(self):
        engine = LearningEngine.from_settings(Settings(_env_file=None, storage_backend="memory"))
        assert isinstance(engine.storage, MemoryBackend)

    def test_from_settings_falls_back_when_database_is_unreachable(self, tmp_path):
        blocker = tmp_path / "file"
        blocker.write_text("")
        settings = Settings(
            _env_file=None,
            storage_backend="sql",
            database_url=f"sqlite:///{blocker / 'state.db'}",
        )

        engine = LearningEngine.from_settings(settings)

        assert isinstance(engine.storage, MemoryBackend)
