"""
Recently deleted documents.

Soft-deleted documents sit in ``<app dir>/.trash`` for a retention window
(30 days by default). The deletion date of an item is the modification
time of its file, stamped when it was moved into the trash.

Loading the trash:
1. Decode every ``.canvas`` file in parallel
2. Permanently remove items deleted ``max_days`` or more days ago
3. Return the rest, most recently deleted first

Files that cannot be decoded are logged and left where they are.
"""

from __future__ import annotations

import logging
import shutil
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, Optional

from letterspace.config import DOCUMENT_EXTENSION, MAX_DAYS_IN_TRASH
from letterspace.models import Document, DocumentDecodeError, utcnow
from letterspace.storage import DocumentNotFoundError, DocumentStore, read_document

logger = logging.getLogger("letterspace-trash")


@dataclass
class DeletedDocument:
    """A document in the trash together with its deletion date."""
    document: Document
    deleted_at: datetime
    path: Optional[Path] = None

    def days_since_deleted(self, now: Optional[datetime] = None) -> int:
        """Whole days elapsed since deletion."""
        now = now or utcnow()
        return max(0, (now - self.deleted_at).days)

    def days_remaining(self, now: Optional[datetime] = None, max_days: int = MAX_DAYS_IN_TRASH) -> int:
        return max(0, max_days - self.days_since_deleted(now))


def _file_mtime(path: Path) -> datetime:
    return datetime.fromtimestamp(path.stat().st_mtime, tz=timezone.utc)


class TrashManager:
    """Load, restore and purge soft-deleted documents.

    Usage:
        trash = TrashManager(DocumentStore())
        for item in trash.load_deleted():
            print(item.document.title, item.days_remaining())
        trash.restore(doc_id)
    """

    def __init__(
        self,
        store: DocumentStore,
        max_days: int = MAX_DAYS_IN_TRASH,
        max_workers: Optional[int] = None,
    ):
        self.store = store
        self.max_days = max_days
        self.max_workers = max_workers

    @property
    def trash_dir(self) -> Path:
        return self.store.trash_dir

    def trashed_paths(self) -> list[Path]:
        if not self.trash_dir.is_dir():
            return []
        return sorted(p for p in self.trash_dir.glob(f"*{DOCUMENT_EXTENSION}") if p.is_file())

    def _load_one(self, path: Path, now: datetime) -> tuple[Optional[DeletedDocument], Optional[Path]]:
        """Decode a single trash file.

        Returns (item, None) for a live item, (None, path) for an expired
        one and (None, None) when the file could not be read.
        """
        try:
            document = read_document(path)
            deleted = DeletedDocument(document=document, deleted_at=_file_mtime(path), path=path)
        except (OSError, DocumentDecodeError) as e:
            logger.warning(f"Error loading deleted document at {path}: {e}")
            return None, None
        if deleted.days_since_deleted(now) >= self.max_days:
            return None, path
        return deleted, None

    def load_deleted(self, now: Optional[datetime] = None) -> list[DeletedDocument]:
        """Load the trash, purging expired items.

        Items with ``days_since_deleted >= max_days`` are removed from disk
        and never returned.
        """
        now = now or utcnow()
        try:
            self.store.ensure_dirs()
        except OSError as e:
            logger.error(f"Error creating trash directory: {e}")
            return []

        paths = self.trashed_paths()
        loaded: list[DeletedDocument] = []
        expired: list[Path] = []
        if paths:
            with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
                for item, stale in executor.map(lambda p: self._load_one(p, now), paths):
                    if item is not None:
                        loaded.append(item)
                    if stale is not None:
                        expired.append(stale)

        for path in expired:
            try:
                path.unlink()
                logger.info(f"Auto-deleted expired trash item {path.name}")
            except OSError as e:
                logger.error(f"Error auto-deleting old document {path.name}: {e}")

        loaded.sort(key=lambda d: d.deleted_at, reverse=True)
        return loaded

    def restore(self, doc_id: str) -> Path:
        """Move a document out of the trash. An existing live copy is replaced."""
        source = self.store.trash_path_for(doc_id)
        if not source.is_file():
            raise DocumentNotFoundError(doc_id, self.trash_dir)
        destination = self.store.path_for(doc_id)
        shutil.move(str(source), str(destination))
        logger.info(f"Restored document {doc_id}")
        return destination

    def restore_many(self, doc_ids: Iterable[str]) -> list[str]:
        restored = []
        for doc_id in doc_ids:
            try:
                self.restore(doc_id)
                restored.append(doc_id)
            except (OSError, DocumentNotFoundError) as e:
                logger.error(f"Error restoring document {doc_id}: {e}")
        return restored

    def delete_permanently(self, doc_id: str) -> None:
        path = self.store.trash_path_for(doc_id)
        if not path.is_file():
            raise DocumentNotFoundError(doc_id, self.trash_dir)
        path.unlink()
        logger.info(f"Permanently deleted document {doc_id}")

    def delete_many(self, doc_ids: Iterable[str]) -> list[str]:
        deleted = []
        for doc_id in doc_ids:
            try:
                self.delete_permanently(doc_id)
                deleted.append(doc_id)
            except (OSError, DocumentNotFoundError) as e:
                logger.error(f"Error permanently deleting document {doc_id}: {e}")
        return deleted

    def empty(self) -> int:
        """Permanently delete everything in the trash. Returns the count removed."""
        count = 0
        for path in self.trashed_paths():
            try:
                path.unlink()
                count += 1
            except OSError as e:
                logger.error(f"Error permanently deleting {path.name}: {e}")
        logger.info(f"Emptied trash ({count} documents)")
        return count
