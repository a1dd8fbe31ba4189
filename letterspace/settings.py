"""
Key-value settings storage.

A small persistent dictionary of string keys to JSON values, used the
way the desktop app uses UserDefaults: Bible bookmarks, the last-read
position and token usage counters are stored here under fixed keys.

The whole store is a single JSON file, rewritten atomically on every
change.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Optional

from letterspace.config import get_settings_path
from letterspace.storage import atomic_write_bytes

logger = logging.getLogger("letterspace-settings")


class KeyValueStore:
    """JSON-file backed key-value store.

    Usage:
        store = KeyValueStore(Path("settings.json"))
        store.set("bible_reader_last_read", {"book": "John", "chapter": 3})
        store.get("bible_reader_last_read")
    """

    def __init__(self, path: Optional[Path] = None):
        self.path = Path(path) if path is not None else get_settings_path()
        self._data: dict[str, Any] = self._load()

    def _load(self) -> dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Ignoring unreadable settings file {self.path}: {e}")
            return {}
        if not isinstance(data, dict):
            logger.warning(f"Ignoring settings file {self.path}: not a JSON object")
            return {}
        return data

    def _save(self) -> None:
        payload = json.dumps(self._data, indent=2, ensure_ascii=False)
        atomic_write_bytes(self.path, payload.encode("utf-8"))

    def get(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)

    def get_int(self, key: str, default: int = 0) -> int:
        value = self._data.get(key, default)
        try:
            return int(value)
        except (TypeError, ValueError):
            return default

    def set(self, key: str, value: Any) -> None:
        self._data[key] = value
        self._save()

    def increment(self, key: str, amount: int = 1) -> int:
        value = self.get_int(key) + amount
        self.set(key, value)
        return value

    def remove(self, key: str) -> None:
        if key in self._data:
            del self._data[key]
            self._save()

    def __contains__(self, key: str) -> bool:
        return key in self._data

    def keys(self) -> list[str]:
        return list(self._data)
