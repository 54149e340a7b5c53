"""String key/value stores backing the local cache.

``InMemoryStore`` is the default and what tests use; ``JsonFileStore`` keeps
entries across restarts in a single JSON document.
"""

from __future__ import annotations

import errno
import json
import logging
import os
import tempfile
import threading
from pathlib import Path
from typing import Optional, Protocol

from forest_impact.errors import CacheError, QuotaExceededError

logger = logging.getLogger(__name__)

_QUOTA_ERRNOS = {errno.ENOSPC, getattr(errno, "EDQUOT", errno.ENOSPC)}


class KeyValueStore(Protocol):
    def get_item(self, key: str) -> Optional[str]: ...

    def set_item(self, key: str, value: str) -> None: ...

    def remove_item(self, key: str) -> None: ...

    def keys(self) -> list[str]: ...


class InMemoryStore:
    """Dict-backed store with an optional size quota (characters of key + value)."""

    def __init__(self, quota: int | None = None):
        self._items: dict[str, str] = {}
        self.quota = quota

    def _size(self) -> int:
        return sum(len(k) + len(v) for k, v in self._items.items())

    def get_item(self, key: str) -> Optional[str]:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        if self.quota is not None:
            current = self._size() - (len(key) + len(self._items[key]) if key in self._items else 0)
            if current + len(key) + len(value) > self.quota:
                raise QuotaExceededError(f"Store quota of {self.quota} exceeded")
        self._items[key] = value

    def remove_item(self, key: str) -> None:
        self._items.pop(key, None)

    def keys(self) -> list[str]:
        return list(self._items)


class JsonFileStore:
    """All entries in one JSON object on disk, rewritten on every change.

    Writes go to a temporary file in the same directory and are moved into
    place, so readers never see a half-written document.
    """

    def __init__(self, path: str | Path):
        self.path = Path(path)
        self._items: dict[str, str] = {}
        self._lock = threading.Lock()
        if self.path.exists():
            try:
                items = json.loads(self.path.read_text(encoding="utf-8"))
            except (OSError, ValueError) as e:
                logger.warning("Ignoring unreadable cache file %s: %s", self.path, e)
                return
            if isinstance(items, dict) and all(isinstance(v, str) for v in items.values()):
                self._items = items
            else:
                logger.warning("Ignoring unreadable cache file %s: not a string map", self.path)

    def _flush(self) -> None:
        tmp_name = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp"
            )
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(self._items, f)
            os.replace(tmp_name, self.path)
        except OSError as e:
            if tmp_name is not None and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            if e.errno in _QUOTA_ERRNOS:
                raise QuotaExceededError(str(e)) from e
            raise CacheError(str(e)) from e

    def get_item(self, key: str) -> Optional[str]:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        with self._lock:
            previous = self._items.get(key)
            self._items[key] = value
            try:
                self._flush()
            except CacheError:
                if previous is None:
                    self._items.pop(key, None)
                else:
                    self._items[key] = previous
                raise

    def remove_item(self, key: str) -> None:
        with self._lock:
            if self._items.pop(key, None) is not None:
                self._flush()

    def keys(self) -> list[str]:
        with self._lock:
            return list(self._items)
