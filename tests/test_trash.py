"""
Tests for the recently-deleted trash.

These tests verify:
- Items deleted 30 or more days ago are purged and never returned
- Restored documents become visible again
- Permanent deletion removes the file

Run with: pytest tests/test_trash.py -v
"""

import json
import os
import time
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from letterspace.models import Document, DocumentElement, ElementType
from letterspace.storage import DocumentNotFoundError, DocumentStore
from letterspace.trash import DeletedDocument, TrashManager

DAY = 24 * 60 * 60


@pytest.fixture
def store(tmp_path):
    return DocumentStore(tmp_path)


@pytest.fixture
def trash(store):
    return TrashManager(store, max_workers=4)


def trash_document(store: DocumentStore, title: str, days_ago: float = 0) -> Document:
    doc = Document(title=title, elements=[DocumentElement(type=ElementType.TEXT_BLOCK, content=title)])
    store.save(doc)
    store.move_to_trash([doc.id])
    if days_ago:
        stamp = time.time() - days_ago * DAY
        os.utime(store.trash_path_for(doc.id), (stamp, stamp))
    return doc


class TestDeletedDocument:
    """Tests for day arithmetic."""

    def test_days_since_deleted(self):
        now = datetime(2024, 6, 30, tzinfo=timezone.utc)
        item = DeletedDocument(Document(), deleted_at=now - timedelta(days=10, hours=5))

        assert item.days_since_deleted(now) == 10
        assert item.days_remaining(now) == 20

    def test_future_deletion_clamped(self):
        now = datetime(2024, 6, 30, tzinfo=timezone.utc)
        item = DeletedDocument(Document(), deleted_at=now + timedelta(hours=1))

        assert item.days_since_deleted(now) == 0


class TestLoadDeleted:
    """Tests for loading the trash."""

    def test_empty_trash(self, trash, store):
        """Loading creates the trash directory and returns nothing."""
        assert trash.load_deleted() == []
        assert store.trash_dir.is_dir()

    def test_recent_items_returned(self, trash, store):
        doc = trash_document(store, "Recent", days_ago=3)

        items = trash.load_deleted()
        assert [i.document.id for i in items] == [doc.id]
        assert items[0].days_since_deleted() == 3

    def test_expired_items_purged(self, trash, store):
        """Items deleted 30 or more days ago are removed from disk."""
        keep = trash_document(store, "Keep", days_ago=29)
        expired = trash_document(store, "Expired", days_ago=30.5)
        ancient = trash_document(store, "Ancient", days_ago=400)

        items = trash.load_deleted()

        assert [i.document.id for i in items] == [keep.id]
        assert not store.trash_path_for(expired.id).exists()
        assert not store.trash_path_for(ancient.id).exists()

    def test_sorted_most_recent_first(self, trash, store):
        older = trash_document(store, "Older", days_ago=5)
        newer = trash_document(store, "Newer", days_ago=1)
        middle = trash_document(store, "Middle", days_ago=2)

        ids = [i.document.id for i in trash.load_deleted()]
        assert ids == [newer.id, middle.id, older.id]

    def test_corrupt_file_skipped_and_kept(self, trash, store):
        """Undecodable files are not returned and not deleted."""
        store.ensure_dirs()
        broken = store.trash_dir / "BROKEN.canvas"
        broken.write_text("not json")
        doc = trash_document(store, "Fine", days_ago=1)

        items = trash.load_deleted()

        assert [i.document.id for i in items] == [doc.id]
        assert broken.exists()

    def test_bad_date_and_encoding_skipped(self, trash, store):
        """Files with unparseable dates or invalid UTF-8 are logged and left in place."""
        store.ensure_dirs()
        payload = Document(title="Bad date").to_dict()
        payload["createdAt"] = "not-a-date"
        bad_date = store.trash_dir / "BAD.canvas"
        bad_date.write_text(json.dumps(payload))
        binary = store.trash_dir / "BINARY.canvas"
        binary.write_bytes(b"\xff\xfe")

        assert trash.load_deleted() == []
        assert bad_date.exists()
        assert binary.exists()

    def test_custom_retention(self, store):
        trash_document(store, "Week old", days_ago=8)
        assert TrashManager(store, max_days=7).load_deleted() == []


class TestRestoreAndDelete:
    """Tests for restoring and permanently deleting."""

    def test_restore_makes_visible(self, trash, store):
        doc = trash_document(store, "Come Back", days_ago=2)

        path = trash.restore(doc.id)

        assert path == store.path_for(doc.id)
        assert [d.id for d in store.list_documents()] == [doc.id]
        assert trash.load_deleted() == []

    def test_restore_missing(self, trash):
        with pytest.raises(DocumentNotFoundError):
            trash.restore("MISSING")

    def test_restore_many_reports_successes(self, trash, store):
        doc = trash_document(store, "One")
        assert trash.restore_many([doc.id, "MISSING"]) == [doc.id]

    def test_delete_permanently(self, trash, store):
        doc = trash_document(store, "Gone")

        trash.delete_permanently(doc.id)

        assert not store.trash_path_for(doc.id).exists()
        assert not store.exists(doc.id)
        with pytest.raises(DocumentNotFoundError):
            trash.restore(doc.id)

    def test_delete_many(self, trash, store):
        first = trash_document(store, "First")
        second = trash_document(store, "Second")

        assert trash.delete_many([first.id, second.id, "MISSING"]) == [first.id, second.id]
        assert trash.load_deleted() == []

    def test_empty(self, trash, store):
        trash_document(store, "A")
        trash_document(store, "B")

        assert trash.empty() == 2
        assert trash.trashed_paths() == []

    def test_empty_continues_after_failure(self, trash, store, monkeypatch):
        """A file that cannot be removed does not stop the rest."""
        stuck = trash_document(store, "Stuck")
        trash_document(store, "Loose")
        stuck_path = store.trash_path_for(stuck.id)
        real_unlink = Path.unlink

        def unlink(self, *args, **kwargs):
            if self == stuck_path:
                raise PermissionError("read-only")
            return real_unlink(self, *args, **kwargs)

        monkeypatch.setattr(Path, "unlink", unlink)

        assert trash.empty() == 1
        assert trash.trashed_paths() == [stuck_path]
