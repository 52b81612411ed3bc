"""
Storage backends for persisted view-model state.

Any object with ``get(key) -> Optional[str]``, ``set(key, value)`` and
``delete(key)`` can back persistence. Two implementations ship here:

- ``MemoryStorage``: dict-backed, lives as long as the process
- ``JsonFileStorage``: one JSON document on disk, survives restarts

Usage:
    storage = JsonFileStorage("state.json")
    storage.set("VIEW_MODEL.Count.alice", '{"count": 3}')
    storage.get("VIEW_MODEL.Count.alice")  # '{"count": 3}'
"""

import json
import os
import threading
from pathlib import Path
from typing import Dict, Iterator, Mapping, Optional, Protocol, Union

from cachetools import LRUCache


class Storage(Protocol):
    """Synchronous string key-value backend."""

    def get(self, key: str) -> Optional[str]: ...

    def set(self, key: str, value: str) -> None: ...

    def delete(self, key: str) -> None: ...


def _check_value(value: str) -> None:
    if not isinstance(value, str):
        raise TypeError(
            f"Storage values must be strings, got {type(value).__name__}"
        )


class MemoryStorage:
    """In-process key-value storage."""

    def __init__(self, initial: Optional[Mapping[str, str]] = None):
        self._items: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._items.get(key)

    def set(self, key: str, value: str) -> None:
        _check_value(value)
        self._items[key] = value

    def delete(self, key: str) -> None:
        self._items.pop(key, None)

    def clear(self) -> None:
        self._items.clear()

    def keys(self) -> Iterator[str]:
        return iter(list(self._items))

    def __contains__(self, key: object) -> bool:
        return key in self._items

    def __len__(self) -> int:
        return len(self._items)

    def __repr__(self) -> str:
        return f"MemoryStorage(keys={len(self._items)})"


class JsonFileStorage:
    """
    Key-value storage kept in a single JSON file.

    Every write rewrites the document through a temporary file and an atomic
    replace. Recently read values are served from an LRU cache, which writes
    and deletes keep current.

    Features:
    - Survives process restarts
    - Thread-safe operations
    - LRU caching for frequently read keys
    """

    def __init__(self, path: Union[str, os.PathLike], cache_size: int = 128):
        """
        Initialize the storage.

        Args:
            path: Location of the JSON document; created on first write
            cache_size: Size of the LRU cache for recently read values
        """
        self._path = Path(path)
        self._lock = threading.RLock()
        self._cache: LRUCache = LRUCache(maxsize=cache_size)

    @property
    def path(self) -> Path:
        return self._path

    def _load(self) -> Dict[str, str]:
        if not self._path.exists():
            return {}
        document = json.loads(self._path.read_text(encoding="utf-8"))
        if not isinstance(document, dict):
            raise ValueError(f"{self._path} does not contain a JSON object")
        return document

    def _write(self, items: Dict[str, str]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        temporary = self._path.with_name(self._path.name + ".tmp")
        document = json.dumps(items, indent=2, sort_keys=True)
        temporary.write_text(document, encoding="utf-8")
        os.replace(temporary, self._path)

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            if key in self._cache:
                return self._cache[key]
            value = self._load().get(key)
            if value is not None:
                self._cache[key] = value
            return value

    def set(self, key: str, value: str) -> None:
        _check_value(value)
        with self._lock:
            items = self._load()
            items[key] = value
            self._write(items)
            self._cache[key] = value

    def delete(self, key: str) -> None:
        with self._lock:
            items = self._load()
            if items.pop(key, None) is not None:
                self._write(items)
            self._cache.pop(key, None)

    def keys(self) -> Iterator[str]:
        with self._lock:
            return iter(list(self._load()))

    def __repr__(self) -> str:
        return f"JsonFileStorage({str(self._path)!r})"
