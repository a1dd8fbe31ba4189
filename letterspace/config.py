"""
Project-wide configuration and directory structure.

This module defines the paths and constants used throughout Letterspace.
Documents live in a single application directory, one ``.canvas`` JSON
file per document, with images and soft-deleted documents in
subdirectories next to them.

Module Contents:
    APP_NAME: Application name, also the name of the documents folder
    DOCUMENT_EXTENSION: File extension of serialized documents
    TRASH_DIRNAME: Subdirectory holding soft-deleted documents
    IMAGES_DIRNAME: Subdirectory holding document images
    MAX_DAYS_IN_TRASH: Retention window before trash items are purged
    get_app_dir: Resolve the application documents directory
    get_settings_path: Resolve the key-value settings file

Environment overrides:
    LETTERSPACE_HOME: Application documents directory
    LETTERSPACE_SETTINGS: Key-value settings file

Example:
    >>> from letterspace.config import get_app_dir, TRASH_DIRNAME
    >>> print(get_app_dir() / TRASH_DIRNAME)
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

# Application name for display and the documents folder
APP_NAME = "Letterspace Canvas"

# One JSON file per document
DOCUMENT_EXTENSION = ".canvas"

# Layout inside the application directory
TRASH_DIRNAME = ".trash"
IMAGES_DIRNAME = "Images"
SETTINGS_FILENAME = ".settings.json"

# Trash retention
MAX_DAYS_IN_TRASH = 30

# Translation chunking
SINGLE_CHUNK_LIMIT = 1000
CHUNK_SIZE = 800
MIN_PARAGRAPH_CHUNKS = 3
MAX_PARAGRAPH_CHUNKS = 20
MIN_CONTENT_RATIO = 0.95

# Default generation budget per request
DEFAULT_MAX_TOKENS = 800


def get_documents_dir() -> Path:
    """Platform documents directory (``~/Documents``)."""
    return Path.home() / "Documents"


def get_app_dir(root: Optional[Path] = None) -> Path:
    """Resolve the application documents directory.

    Priority: explicit ``root`` argument, then ``LETTERSPACE_HOME``,
    then ``~/Documents/Letterspace Canvas``.
    """
    if root is not None:
        return Path(root)
    if env_home := os.getenv("LETTERSPACE_HOME"):
        return Path(env_home).expanduser()
    return get_documents_dir() / APP_NAME


def get_settings_path(app_dir: Optional[Path] = None) -> Path:
    """Resolve the key-value settings file."""
    if env_settings := os.getenv("LETTERSPACE_SETTINGS"):
        return Path(env_settings).expanduser()
    return get_app_dir(app_dir) / SETTINGS_FILENAME
