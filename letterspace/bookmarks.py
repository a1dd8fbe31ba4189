"""
Bible reader bookmarks and last-read position.

Bookmarks are stored as a JSON-encoded list under ``bible_reader_bookmarks``
and the last-read position as a small dict under ``bible_reader_last_read``
in the key-value settings store.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from letterspace.models import decode_date, encode_date, new_uuid, utcnow
from letterspace.settings import KeyValueStore

logger = logging.getLogger("letterspace-bookmarks")

BOOKMARKS_KEY = "bible_reader_bookmarks"
LAST_READ_KEY = "bible_reader_last_read"

DEFAULT_BOOK = "Genesis"
DEFAULT_CHAPTER = 1
DEFAULT_TRANSLATION = "KJV"


@dataclass
class BibleBookmark:
    book: str
    chapter: int
    translation: str
    verse: int = 1
    notes: str = ""
    date_added: datetime = field(default_factory=utcnow)
    id: str = field(default_factory=new_uuid)

    @property
    def reference(self) -> str:
        return f"{self.book} {self.chapter}:{self.verse} ({self.translation})"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "book": self.book,
            "chapter": self.chapter,
            "verse": self.verse,
            "translation": self.translation,
            "dateAdded": encode_date(self.date_added),
            "notes": self.notes,
        }

    @classmethod
    def from_dict(cls, d: dict) -> BibleBookmark:
        return cls(
            id=d["id"],
            book=d["book"],
            chapter=int(d["chapter"]),
            verse=int(d.get("verse", 1)),
            translation=d["translation"],
            date_added=decode_date(d["dateAdded"]),
            notes=d.get("notes", ""),
        )


class BibleReaderData:
    """Bookmarks and reading position of the Bible reader.

    State is loaded from the settings store on construction and written
    back after every change.
    """

    def __init__(self, store: Optional[KeyValueStore] = None):
        self.store = store or KeyValueStore()
        self.bookmarks: list[BibleBookmark] = []
        self.last_read_book = DEFAULT_BOOK
        self.last_read_chapter = DEFAULT_CHAPTER
        self.last_read_translation = DEFAULT_TRANSLATION
        self._load_bookmarks()
        self._load_last_read()

    def add_bookmark(
        self,
        book: str,
        chapter: int,
        translation: str,
        verse: int = 1,
        notes: str = "",
    ) -> BibleBookmark:
        bookmark = BibleBookmark(book=book, chapter=chapter, verse=verse, translation=translation, notes=notes)
        self.bookmarks.append(bookmark)
        self._save_bookmarks()
        return bookmark

    def remove_bookmark(self, index: int) -> Optional[BibleBookmark]:
        """Remove the bookmark at ``index``; out-of-range indexes are ignored."""
        if not 0 <= index < len(self.bookmarks):
            return None
        removed = self.bookmarks.pop(index)
        self._save_bookmarks()
        return removed

    def remove_bookmark_by_id(self, bookmark_id: str) -> bool:
        for index, bookmark in enumerate(self.bookmarks):
            if bookmark.id == bookmark_id:
                self.remove_bookmark(index)
                return True
        return False

    def save_last_read(self, book: str, chapter: int, translation: str) -> None:
        self.last_read_book = book
        self.last_read_chapter = chapter
        self.last_read_translation = translation
        self.store.set(LAST_READ_KEY, {"book": book, "chapter": chapter, "translation": translation})

    def _load_last_read(self) -> None:
        data = self.store.get(LAST_READ_KEY)
        if not isinstance(data, dict):
            return
        self.last_read_book = data.get("book") or DEFAULT_BOOK
        chapter = data.get("chapter")
        self.last_read_chapter = chapter if isinstance(chapter, int) else DEFAULT_CHAPTER
        self.last_read_translation = data.get("translation") or DEFAULT_TRANSLATION

    def _save_bookmarks(self) -> None:
        self.store.set(BOOKMARKS_KEY, [b.to_dict() for b in self.bookmarks])

    def _load_bookmarks(self) -> None:
        data = self.store.get(BOOKMARKS_KEY)
        if data is None:
            return
        try:
            self.bookmarks = [BibleBookmark.from_dict(d) for d in data]
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"Discarding unreadable bookmarks: {e}")
            self.bookmarks = []
