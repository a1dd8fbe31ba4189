"""
Tests for the key-value settings store and Bible reader data.

Run with: pytest tests/test_bookmarks.py -v
"""

import json

import pytest

from letterspace.bookmarks import BOOKMARKS_KEY, LAST_READ_KEY, BibleReaderData
from letterspace.settings import KeyValueStore


@pytest.fixture
def settings_path(tmp_path):
    return tmp_path / "settings.json"


@pytest.fixture
def store(settings_path):
    return KeyValueStore(settings_path)


class TestKeyValueStore:
    """Tests for the JSON settings file."""

    def test_set_persists(self, store, settings_path):
        store.set("greeting", {"text": "hi"})

        assert json.loads(settings_path.read_text())["greeting"] == {"text": "hi"}
        assert KeyValueStore(settings_path).get("greeting") == {"text": "hi"}

    def test_get_default(self, store):
        assert store.get("missing", 7) == 7
        assert "missing" not in store

    def test_get_int_tolerates_garbage(self, store):
        store.set("count", "many")
        assert store.get_int("count") == 0

    def test_increment(self, store):
        assert store.increment("count", 5) == 5
        assert store.increment("count") == 6

    def test_remove(self, store, settings_path):
        store.set("a", 1)
        store.remove("a")
        store.remove("never-set")

        assert "a" not in KeyValueStore(settings_path)

    def test_corrupt_file_ignored(self, settings_path):
        settings_path.write_text("[1, 2")
        assert KeyValueStore(settings_path).keys() == []

    def test_non_object_ignored(self, settings_path):
        settings_path.write_text("[1, 2]")
        assert KeyValueStore(settings_path).keys() == []


class TestBibleBookmarks:
    """Tests for Bible bookmarks."""

    def test_add_and_reload(self, store, settings_path):
        reader = BibleReaderData(store)
        bookmark = reader.add_bookmark("John", 3, "ESV", verse=16, notes="For God so loved")

        reloaded = BibleReaderData(KeyValueStore(settings_path))
        assert [b.id for b in reloaded.bookmarks] == [bookmark.id]
        assert reloaded.bookmarks[0].reference == "John 3:16 (ESV)"
        assert reloaded.bookmarks[0].notes == "For God so loved"

    def test_defaults(self, store):
        bookmark = BibleReaderData(store).add_bookmark("Psalms", 23, "KJV")
        assert bookmark.verse == 1
        assert bookmark.notes == ""

    def test_remove_by_index(self, store):
        reader = BibleReaderData(store)
        first = reader.add_bookmark("Genesis", 1, "KJV")
        second = reader.add_bookmark("Exodus", 20, "KJV")

        assert reader.remove_bookmark(0) == first
        assert reader.bookmarks == [second]

    def test_remove_out_of_range_is_noop(self, store):
        reader = BibleReaderData(store)
        reader.add_bookmark("Genesis", 1, "KJV")

        assert reader.remove_bookmark(5) is None
        assert reader.remove_bookmark(-1) is None
        assert len(reader.bookmarks) == 1

    def test_remove_by_id(self, store):
        reader = BibleReaderData(store)
        bookmark = reader.add_bookmark("Ruth", 1, "NIV")

        assert reader.remove_bookmark_by_id(bookmark.id)
        assert not reader.remove_bookmark_by_id(bookmark.id)
        assert reader.bookmarks == []

    def test_corrupt_bookmarks_discarded(self, store):
        store.set(BOOKMARKS_KEY, [{"book": "Job"}])
        assert BibleReaderData(store).bookmarks == []


class TestLastRead:
    """Tests for the last-read position."""

    def test_defaults(self, store):
        reader = BibleReaderData(store)
        assert (reader.last_read_book, reader.last_read_chapter, reader.last_read_translation) == (
            "Genesis", 1, "KJV",
        )

    def test_save_and_reload(self, store, settings_path):
        BibleReaderData(store).save_last_read("Mark", 4, "NASB")

        reader = BibleReaderData(KeyValueStore(settings_path))
        assert (reader.last_read_book, reader.last_read_chapter, reader.last_read_translation) == (
            "Mark", 4, "NASB",
        )

    def test_partial_data_falls_back(self, store):
        store.set(LAST_READ_KEY, {"book": "Acts", "chapter": "two"})

        reader = BibleReaderData(store)
        assert reader.last_read_book == "Acts"
        assert reader.last_read_chapter == 1
        assert reader.last_read_translation == "KJV"
