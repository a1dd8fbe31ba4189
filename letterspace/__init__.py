"""
Letterspace: documents, trash and translation for Letterspace Canvas

A library and command-line tool for composing, storing, soft-deleting,
bookmarking and translating Letterspace Canvas documents (``.canvas``
JSON files).

Core pieces:
1. Document model wire-compatible with the desktop app
2. Recently-deleted trash with a 30-day retention window
3. Progressive, chunked AI translation into document variations
"""

__version__ = "0.1.0"

from letterspace.models import Document, DocumentElement, ElementType
from letterspace.pipeline import TranslationLanguage, TranslationPipeline
from letterspace.storage import DocumentStore
from letterspace.trash import TrashManager

__all__ = [
    "Document",
    "DocumentElement",
    "ElementType",
    "DocumentStore",
    "TrashManager",
    "TranslationLanguage",
    "TranslationPipeline",
]
