"""
Tests for bookmarks and resume points.
"""

from datetime import timedelta

import pytest

from patissier.bookmarks.store import BookmarkFilters, BookmarkPriority, BookmarkStore
from patissier.catalog.models import SkillLevel
from patissier.core.errors import NotFoundError


@pytest.fixture
def bookmarks(repository, progress_store, clock):
    return BookmarkStore(repository, progress_store, clock)


class TestBookmarks:
    def test_bookmark_copies_path_and_progress(self, bookmarks, progress_store, path_by_id):
        p1 = path_by_id["p1"]
        progress_store.mark_module_complete("m1", p1)

        bookmark = bookmarks.bookmark_path(p1, notes="weekend project", tags=["dough"])

        assert bookmark.path.title == "Basic Pastry Fundamentals"
        assert bookmark.progress == 50
        assert bookmark.priority == BookmarkPriority.MEDIUM
        assert bookmarks.is_bookmarked("p1")

    def test_rebookmarking_keeps_existing_options(self, bookmarks, path_by_id, clock):
        p1 = path_by_id["p1"]
        first = bookmarks.bookmark_path(p1, notes="keep me", priority=BookmarkPriority.HIGH)
        clock.advance(days=1)

        second = bookmarks.bookmark_path(p1)

        assert second.notes == "keep me"
        assert second.priority == BookmarkPriority.HIGH
        assert second.bookmarked_at == first.bookmarked_at
        assert second.last_accessed_at == clock.now

    def test_updates_report_missing_bookmarks(self, bookmarks, path_by_id):
        assert bookmarks.toggle_favorite("p1") is False

        bookmarks.bookmark_path(path_by_id["p1"])

        assert bookmarks.toggle_favorite("p1") is True
        assert bookmarks.update_notes("p1", "laminate twice") is True
        assert bookmarks.update_tags("p1", ["butter"]) is True
        assert bookmarks.update_priority("p1", BookmarkPriority.LOW) is True
        bookmark = bookmarks.get_bookmark("p1")
        assert bookmark.is_favorite is True
        assert bookmark.notes == "laminate twice"
        assert bookmark.tags == ["butter"]
        assert bookmark.priority == BookmarkPriority.LOW

    def test_remove(self, bookmarks, path_by_id):
        bookmarks.bookmark_path(path_by_id["p1"])

        assert bookmarks.remove_bookmark("p1") is True
        assert bookmarks.remove_bookmark("p1") is False

    def test_refresh_sets_completion_date_once(self, bookmarks, progress_store, path_by_id, clock):
        p1 = path_by_id["p1"]
        bookmarks.bookmark_path(p1)
        for module in p1.modules:
            progress_store.mark_module_complete(module.id, p1)

        refreshed = bookmarks.refresh_progress("p1")
        completed_on = clock.now
        clock.advance(days=2)
        again = bookmarks.refresh_progress("p1")

        assert refreshed.progress == 100
        assert again.actual_completion_date == completed_on
        assert bookmarks.refresh_progress("p3") is None

    def test_bookmarks_persist(self, bookmarks, repository, progress_store, path_by_id, clock):
        bookmarks.bookmark_path(path_by_id["p2"], tags=["chocolate"])

        reloaded = BookmarkStore(repository, progress_store, clock)

        assert reloaded.get_bookmark("p2").path.level == SkillLevel.INTERMEDIATE


class TestBookmarkFilters:
    @pytest.fixture
    def filled(self, bookmarks, path_by_id):
        bookmarks.bookmark_path(path_by_id["p1"], notes="flaky crust", priority=BookmarkPriority.HIGH)
        bookmarks.bookmark_path(path_by_id["p2"], tags=["gift"])
        bookmarks.bookmark_path(path_by_id["p3"])
        bookmarks.toggle_favorite("p3")
        return bookmarks

    def test_search_covers_title_notes_and_tags(self, filled):
        assert [b.path_id for b in filled.get_bookmarks(BookmarkFilters(search="CRUST"))] == ["p1"]
        assert [b.path_id for b in filled.get_bookmarks(BookmarkFilters(search="gift"))] == ["p2"]
        assert [b.path_id for b in filled.get_bookmarks(BookmarkFilters(search="bread"))] == ["p3"]

    def test_structured_filters(self, filled):
        high = filled.get_bookmarks(BookmarkFilters(priority=BookmarkPriority.HIGH))
        favorites = filled.get_bookmarks(BookmarkFilters(is_favorite=True))
        advanced = filled.get_bookmarks(BookmarkFilters(level=SkillLevel.ADVANCED))

        assert [b.path_id for b in high] == ["p1"]
        assert [b.path_id for b in favorites] == ["p3"]
        assert [b.path_id for b in advanced] == ["p3"]

    def test_no_filters_returns_all_in_creation_order(self, filled):
        assert [b.path_id for b in filled.get_bookmarks()] == ["p1", "p2", "p3"]


class TestResumePoints:
    def test_resume_point_updates_bookmark(self, bookmarks, path_by_id):
        p1 = path_by_id["p1"]
        bookmarks.bookmark_path(p1)

        point = bookmarks.set_resume_point(p1, "m2", position=120)

        assert point.module_title == "Shortcrust"
        assert point.position == 120
        assert bookmarks.get_resume_point("p1") == point
        assert bookmarks.get_bookmark("p1").current_module_id == "m2"

    def test_unknown_module_raises(self, bookmarks, path_by_id):
        with pytest.raises(NotFoundError):
            bookmarks.set_resume_point(path_by_id["p1"], "m9")

    def test_clear(self, bookmarks, path_by_id):
        bookmarks.set_resume_point(path_by_id["p1"], "m1")

        assert bookmarks.clear_resume_point("p1") is True
        assert bookmarks.clear_resume_point("p1") is False
        assert bookmarks.get_resume_point("p1") is None


class TestBookmarkStats:
    def test_empty(self, bookmarks):
        assert bookmarks.get_bookmark_stats().total_bookmarks == 0

    def test_stats(self, bookmarks, progress_store, path_by_id, clock):
        p1, p2 = path_by_id["p1"], path_by_id["p2"]
        progress_store.mark_module_complete("m1", p1)
        bookmarks.bookmark_path(p1, estimated_completion_date=clock.now + timedelta(days=7))
        bookmarks.bookmark_path(p2)
        bookmarks.toggle_favorite("p2")

        stats = bookmarks.get_bookmark_stats()

        assert stats.total_bookmarks == 2
        assert stats.favorite_bookmarks == 1
        assert stats.in_progress_bookmarks == 1
        assert stats.average_progress == 25
        assert [b.path_id for b in stats.upcoming_deadlines] == ["p1"]


class TestExportImport:
    def test_round_trip(self, bookmarks, repository, progress_store, path_by_id, clock):
        bookmarks.bookmark_path(path_by_id["p1"], notes="again")
        exported = bookmarks.export_state()
        bookmarks.clear_all()

        assert bookmarks.import_state(exported) is True
        assert bookmarks.get_bookmark("p1").notes == "again"

    def test_invalid_import_keeps_bookmarks(self, bookmarks, path_by_id):
        bookmarks.bookmark_path(path_by_id["p1"])

        assert bookmarks.import_state("not json") is False
        assert bookmarks.import_state('[{"pathId": "p1"}]') is False
        assert bookmarks.is_bookmarked("p1")
