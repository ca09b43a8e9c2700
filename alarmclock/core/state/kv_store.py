"""
Key/value storage backends implementing `KeyValueStore`.

- `InMemoryKeyValueStore`: plain dict, used by tests and ephemeral runs
- `JsonFileKeyValueStore`: one JSON file holding several namespaces, written
  atomically (temp file + ``os.replace``) on every ``set``
"""

from __future__ import annotations

import json
import logging
import os
import threading
from pathlib import Path
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


class InMemoryKeyValueStore:
    """Dict-backed store. Not durable."""

    def __init__(self, initial: Optional[Dict[str, str]] = None) -> None:
        self.data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self.data.get(key)

    def set(self, key: str, value: str) -> None:
        self.data[key] = value


class JsonFileKeyValueStore:
    """
    Namespaced key/value store persisted to a JSON file.

    The file layout is ``{"<namespace>": {"<key>": "<value>", ...}, ...}`` so
    several components can share one file without key clashes.

    Parameters
    ----------
    path
        JSON file location. Parent directories are created on first write.
    namespace
        Top-level section owned by this store.

    Notes
    -----
    A missing or unreadable file is treated as empty (logged). Writes go to a
    sibling ``.tmp`` file first and are renamed over the target.
    """

    def __init__(self, path: Path, namespace: str = "alarms") -> None:
        self.path = Path(path)
        self.namespace = namespace
        self._lock = threading.Lock()
        self._cache: Optional[Dict[str, Any]] = None

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            value = self._section().get(key)
        return None if value is None else str(value)

    def set(self, key: str, value: str) -> None:
        with self._lock:
            self._section()[key] = value
            self._write()

    def _section(self) -> Dict[str, Any]:
        if self._cache is None:
            self._cache = self._read()
        section = self._cache.get(self.namespace)
        if not isinstance(section, dict):
            section = {}
            self._cache[self.namespace] = section
        return section

    def _read(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            with self.path.open("r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as exc:
            logger.error("Failed to read key/value file %s: %s", self.path, exc)
            return {}
        if not isinstance(data, dict):
            logger.error("Key/value file %s has no JSON object at the root, ignoring", self.path)
            return {}
        return data

    def _write(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_name(self.path.name + ".tmp")
        with tmp.open("w", encoding="utf-8") as f:
            json.dump(self._cache, f, indent=2, ensure_ascii=False)
        os.replace(tmp, self.path)
