# =============================================================================
# sector_core/offline/local_storage.py
# Durable key/value store for client-side state
# =============================================================================
"""
LocalStorage - a small JSON file holding string values by key.

Mirrors the browser localStorage contract the queue relies on: values are
strings, a missing key reads as None, and removing the last key leaves an
empty object on disk. Single process, last writer wins.
"""

from __future__ import annotations
import json
import os
from pathlib import Path
from typing import Dict, Optional
import logging

logger = logging.getLogger(__name__)


class LocalStorage:
    """
    JSON-file backed string store.

    Usage:
        storage = LocalStorage(Path("local_data/local_storage.json"))
        storage.set_item("pendingOperations", "[]")
        raw = storage.get_item("pendingOperations")
    """

    def __init__(self, path: Path):
        self.path = Path(path)
        self._items: Dict[str, str] = {}
        self._load()

    def _load(self) -> None:
        """Load the store from disk; an unreadable file yields an empty store."""
        if not self.path.exists():
            self._items = {}
            return

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (json.JSONDecodeError, OSError) as e:
            logger.warning(f"Error loading local storage {self.path}: {e}")
            self._items = {}
            return

        if not isinstance(data, dict):
            logger.warning(f"Ignoring malformed local storage {self.path}")
            self._items = {}
            return

        self._items = {str(k): str(v) for k, v in data.items()}

    def _save(self) -> None:
        """Write atomically: temp file then rename."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(self._items, f, ensure_ascii=False, indent=2)
        os.replace(tmp_path, self.path)

    def get_item(self, key: str) -> Optional[str]:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._items[key] = value
        self._save()

    def remove_item(self, key: str) -> None:
        if key in self._items:
            del self._items[key]
            self._save()

    def keys(self):
        return list(self._items.keys())

    def __contains__(self, key: str) -> bool:
        return key in self._items
