"""
Device-local cache adapters (tier 1 of the session sync).
"""

import json
import logging
import os
from pathlib import Path

from quizflow.domain.session.ports import LocalCache

logger = logging.getLogger(__name__)


class MemoryLocalCache(LocalCache):
    """Process-local cache; lost on exit."""

    def __init__(self, initial: dict[str, str] | None = None):
        self.data: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> str | None:
        return self.data.get(key)

    def set(self, key: str, value: str) -> None:
        self.data[key] = value

    def remove(self, key: str) -> None:
        self.data.pop(key, None)


class JsonFileCache(LocalCache):
    """
    Flat key/value cache persisted as one JSON object on disk.

    Reads are served from memory. Every write rewrites the file through a
    temporary sibling and an atomic rename. A missing or corrupt file starts
    an empty cache; a failed write keeps the in-memory value.
    """

    def __init__(self, path: Path):
        self.path = Path(path)
        self._data: dict[str, str] | None = None

    def get(self, key: str) -> str | None:
        return self._load().get(key)

    def set(self, key: str, value: str) -> None:
        self._load()[key] = value
        self._persist()

    def remove(self, key: str) -> None:
        data = self._load()
        if key in data:
            del data[key]
            self._persist()

    def _load(self) -> dict[str, str]:
        if self._data is not None:
            return self._data

        self._data = {}
        if not self.path.exists():
            return self._data

        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.warning(f"Ignoring unreadable cache file {self.path}: {e}")
            return self._data

        if isinstance(raw, dict):
            self._data = {str(k): v for k, v in raw.items() if isinstance(v, str)}
        return self._data

    def _persist(self) -> None:
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp.write_text(json.dumps(self._data, ensure_ascii=False), encoding="utf-8")
            os.replace(tmp, self.path)
        except OSError as e:
            logger.warning(f"Failed to write cache file {self.path}: {e}")
