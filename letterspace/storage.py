"""
Local document storage.

Documents are persisted one JSON file per document inside the application
directory:

    <app dir>/<id>.canvas          live documents
    <app dir>/Images/               images referenced by image elements
    <app dir>/.trash/<id>.canvas   soft-deleted documents

Soft delete moves the file into ``.trash`` and stamps its modification
time; that timestamp is the deletion date used by the trash retention
logic (see letterspace.trash).

There is no locking: concurrent writers race and the last writer wins.
"""

from __future__ import annotations

import logging
import os
import shutil
import tempfile
from pathlib import Path
from typing import Iterable, Optional

from letterspace.config import (
    DOCUMENT_EXTENSION,
    IMAGES_DIRNAME,
    TRASH_DIRNAME,
    get_app_dir,
)
from letterspace.models import Document, DocumentDecodeError, DocumentVariation

logger = logging.getLogger("letterspace-storage")


class DocumentStoreError(Exception):
    """Base class for document storage failures."""


class DocumentSaveError(DocumentStoreError):
    """Raised when a document cannot be written to disk."""


class DocumentNotFoundError(DocumentStoreError):
    """Raised when a document file does not exist."""

    def __init__(self, doc_id: str, location: Optional[Path] = None):
        self.doc_id = doc_id
        self.location = location
        where = f" in {location}" if location else ""
        super().__init__(f"Document {doc_id} not found{where}")


def atomic_write_bytes(path: Path, data: bytes) -> None:
    """Write ``data`` to ``path`` via a temporary file and rename."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


def read_document(path: Path) -> Document:
    """Decode a ``.canvas`` file. Raises DocumentDecodeError on bad content."""
    try:
        return Document.from_json(path.read_bytes())
    except DocumentDecodeError:
        raise
    except (TypeError, AttributeError, ValueError, KeyError, OverflowError) as e:
        raise DocumentDecodeError(f"Malformed document {path.name}: {e}") from e


class DocumentStore:
    """File-backed document store.

    Usage:
        store = DocumentStore()            # ~/Documents/Letterspace Canvas
        doc = Document(title="Sunday")
        store.save(doc)
        store.move_to_trash([doc.id])
    """

    def __init__(self, root: Optional[Path] = None):
        self.root = get_app_dir(root)

    @property
    def trash_dir(self) -> Path:
        return self.root / TRASH_DIRNAME

    @property
    def images_dir(self) -> Path:
        return self.root / IMAGES_DIRNAME

    def ensure_dirs(self) -> None:
        self.root.mkdir(parents=True, exist_ok=True)
        self.trash_dir.mkdir(parents=True, exist_ok=True)

    def path_for(self, doc_id: str) -> Path:
        return self.root / f"{doc_id}{DOCUMENT_EXTENSION}"

    def trash_path_for(self, doc_id: str) -> Path:
        return self.trash_dir / f"{doc_id}{DOCUMENT_EXTENSION}"

    def exists(self, doc_id: str) -> bool:
        return self.path_for(doc_id).is_file()

    # ------------------------------------------------------------------
    # Read / write
    # ------------------------------------------------------------------

    def save(self, document: Document) -> Path:
        """Write the document, updating its modification date."""
        path = self.path_for(document.id)
        document.touch()
        try:
            data = document.to_json().encode("utf-8")
            atomic_write_bytes(path, data)
        except (OSError, TypeError, ValueError) as e:
            raise DocumentSaveError(f"Could not save document {document.id}: {e}") from e
        logger.debug(f"Saved document {document.id} ({len(data)} bytes) to {path}")
        return path

    def load(self, doc_id: str) -> Document:
        path = self.path_for(doc_id)
        if not path.is_file():
            raise DocumentNotFoundError(doc_id, self.root)
        return read_document(path)

    def iter_document_paths(self) -> Iterable[Path]:
        if not self.root.is_dir():
            return []
        return sorted(p for p in self.root.glob(f"*{DOCUMENT_EXTENSION}") if p.is_file())

    def list_documents(self) -> list[Document]:
        """All live documents, most recently modified first.

        Files that fail to decode are logged and skipped.
        """
        documents = []
        for path in self.iter_document_paths():
            try:
                documents.append(read_document(path))
            except (OSError, DocumentDecodeError) as e:
                logger.warning(f"Skipping unreadable document {path.name}: {e}")
        documents.sort(key=lambda d: d.modified_at, reverse=True)
        return documents

    def find(self, query: str) -> list[Document]:
        """Documents whose id starts with, or title contains, ``query``."""
        needle = query.lower()
        return [
            d for d in self.list_documents()
            if d.id.lower().startswith(needle) or needle in d.title.lower()
        ]

    # ------------------------------------------------------------------
    # Variations
    # ------------------------------------------------------------------

    def save_variation(self, parent: Document, variation_doc: Document, name: str) -> DocumentVariation:
        """Link ``variation_doc`` to ``parent`` and persist both."""
        variation = parent.add_variation(variation_doc, name)
        self.save(parent)
        self.save(variation_doc)
        return variation

    # ------------------------------------------------------------------
    # Soft delete
    # ------------------------------------------------------------------

    def move_to_trash(self, doc_ids: Iterable[str]) -> tuple[int, int]:
        """Move documents into the trash directory.

        Returns:
            Tuple of (succeeded, failed) counts
        """
        self.ensure_dirs()
        succeeded = failed = 0
        for doc_id in doc_ids:
            source = self.path_for(doc_id)
            destination = self.trash_path_for(doc_id)
            if not source.is_file():
                logger.error(f"Cannot trash {doc_id}: source file does not exist at {source}")
                failed += 1
                continue
            try:
                shutil.move(str(source), str(destination))
                # The modification time records when the document was deleted
                os.utime(destination, None)
                succeeded += 1
                logger.info(f"Moved document {doc_id} to trash")
            except OSError as e:
                logger.error(f"Error moving {doc_id} to trash: {e}")
                failed += 1
        return succeeded, failed

    # ------------------------------------------------------------------
    # Images
    # ------------------------------------------------------------------

    def save_image(self, name: str, data: bytes) -> Path:
        path = self.images_dir / Path(name).name
        atomic_write_bytes(path, data)
        return path

    def image_path(self, name: str) -> Optional[Path]:
        path = self.images_dir / Path(name).name
        return path if path.is_file() else None
