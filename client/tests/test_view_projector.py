"""
NoteSync Tests - View Projector
================================

What we test:
    ✅ Search is a case-insensitive substring over the type's text fields
    ✅ Tag filter matches any tag containing any term
    ✅ Favorites-only keeps the original relative order
    ✅ Sort keys, timestamp fallbacks and direction
    ✅ Bookmarks keep server order
"""

from datetime import datetime, timezone

import pytest

from notesync.schemas.resource import Bookmark, Note
from notesync.schemas.view import ViewCriteria
from notesync.services.view_projector import ViewProjector, view_projector


def note(id, **fields):
    return Note.model_validate({"_id": id, "content": fields.pop("content", "body"), **fields})


def ids(items):
    return [item.id for item in items]


class TestFiltering:

    def setup_method(self):
        self.projector = ViewProjector()
        self.notes = [
            note("1", title="Groceries", content="Milk and EGGS", tags=["home"], isFavorite=True),
            note("2", title="Standup", content="status", tags=["Work", "daily"]),
            note("3", title="Ideas", content="side project", tags=["work-ideas"], isFavorite=True),
            note("4", title=None, content="untitled thoughts", tags=[]),
            note("5", title="Trip", content="pack eggs", tags=["travel"], isFavorite=True),
        ]

    def test_empty_criteria_matches_everything(self):
        assert ids(self.projector.filter_resources(self.notes, ViewCriteria())) == [
            "1", "2", "3", "4", "5"
        ]

    def test_search_title_and_content_case_insensitive(self):
        found = self.projector.filter_resources(self.notes, ViewCriteria(search="eGGs"))
        assert ids(found) == ["1", "5"]

    def test_search_with_missing_title(self):
        found = self.projector.filter_resources(self.notes, ViewCriteria(search="untitled"))
        assert ids(found) == ["4"]

    def test_tag_filter_substring_any_term(self):
        found = self.projector.filter_resources(self.notes, ViewCriteria(tags="WORK, trav"))
        assert ids(found) == ["2", "3", "5"]

    def test_blank_tag_terms_are_ignored(self):
        found = self.projector.filter_resources(self.notes, ViewCriteria(tags=" , "))
        assert len(found) == 5

    def test_favorites_only_keeps_relative_order(self):
        found = self.projector.filter_resources(self.notes, ViewCriteria(favorites_only=True))
        assert ids(found) == ["1", "3", "5"]

    def test_criteria_are_combined(self):
        criteria = ViewCriteria(search="e", tags="work", favorites_only=True)
        assert ids(self.projector.filter_resources(self.notes, criteria)) == ["3"]

    def test_bookmark_search_fields(self):
        bookmarks = [
            Bookmark.model_validate({"_id": "a", "url": "https://python.org", "title": "Py"}),
            Bookmark.model_validate(
                {"_id": "b", "url": "https://example.com", "description": "Python docs"}
            ),
            Bookmark.model_validate({"_id": "c", "url": "https://rust-lang.org"}),
        ]

        found = self.projector.project_bookmarks(bookmarks, ViewCriteria(search="python"))

        assert ids(found) == ["a", "b"]

    def test_favorite_count(self):
        assert self.projector.favorite_count(self.notes) == 3


class TestSorting:

    def setup_method(self):
        self.projector = ViewProjector()

    def test_title_ascending_is_case_insensitive(self):
        notes = [note("1", title="B"), note("2", title="a"), note("3", title="C")]

        result = self.projector.project_notes(notes, ViewCriteria(sort_by="title", sort_order="asc"))

        assert [n.title for n in result] == ["a", "B", "C"]

    def test_title_descending(self):
        notes = [note("1", title="B"), note("2", title="a"), note("3", title="C")]

        result = self.projector.sort_notes(notes, "title", "desc")

        assert [n.title for n in result] == ["C", "B", "a"]

    def test_updated_falls_back_to_created(self):
        notes = [
            note("old", updatedAt="2024-01-01T00:00:00Z"),
            note("new", createdAt="2024-03-01T00:00:00Z"),
            note("mid", updatedAt="2024-02-01T00:00:00Z", createdAt="2023-01-01T00:00:00Z"),
        ]

        assert ids(self.projector.sort_notes(notes, "updated", "desc")) == ["new", "mid", "old"]

    def test_created_falls_back_to_object_id_time(self):
        early = datetime(2023, 1, 1, tzinfo=timezone.utc)
        late = datetime(2024, 1, 1, tzinfo=timezone.utc)
        early_id = f"{int(early.timestamp()):08x}" + "0" * 16
        late_id = f"{int(late.timestamp()):08x}" + "0" * 16
        notes = [
            note(early_id),
            note("plain-id"),
            note("explicit", createdAt="2023-06-01T00:00:00Z"),
            note(late_id),
        ]

        result = self.projector.sort_notes(notes, "created", "asc")

        assert ids(result) == ["plain-id", early_id, "explicit", late_id]

    def test_favorite_sort(self):
        notes = [note("1"), note("2", isFavorite=True), note("3")]

        assert ids(self.projector.sort_notes(notes, "favorite", "desc"))[0] == "2"
        assert ids(self.projector.sort_notes(notes, "favorite", "asc"))[-1] == "2"

    def test_equal_keys_keep_order(self):
        notes = [note(str(i), title="same") for i in range(4)]

        assert ids(self.projector.sort_notes(notes, "title", "desc")) == ["0", "1", "2", "3"]

    def test_unknown_sort_key(self):
        with pytest.raises(ValueError):
            self.projector.sort_notes([], "size")

    def test_default_view_is_newest_first(self):
        notes = [
            note("a", updatedAt="2024-01-01T00:00:00Z"),
            note("b", updatedAt="2024-05-01T00:00:00Z"),
        ]

        assert ids(view_projector.project_notes(notes)) == ["b", "a"]

    def test_bookmarks_keep_server_order(self):
        bookmarks = [
            Bookmark.model_validate({"_id": "z", "url": "https://z.example", "title": "Z"}),
            Bookmark.model_validate({"_id": "a", "url": "https://a.example", "title": "A"}),
        ]

        assert ids(view_projector.project_bookmarks(bookmarks)) == ["z", "a"]
