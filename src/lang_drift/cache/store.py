"""Content-addressed JSON file store with atomic writes."""

from __future__ import annotations

import hashlib
import json
import os
import tempfile
from pathlib import Path
from typing import Protocol


class CacheStorageError(Exception):
    """Raised when a cache entry cannot be read, written or removed."""

    def __init__(self, operation: str, category: str, key: str, detail: str) -> None:
        super().__init__(
            f"cache {operation} failed for category={category!r} key={key!r}: {detail}"
        )
        self.operation = operation
        self.category = category
        self.key = key


class CacheStore(Protocol):
    """Pluggable key/value storage partitioned by category."""

    def read(self, category: str, key: str) -> tuple[bool, object]: ...

    def write(self, category: str, key: str, value: object) -> None: ...

    def delete(self, category: str, key: str) -> None: ...

    def exists(self, category: str, key: str) -> bool: ...


def key_hash(key: str) -> str:
    """Return the fixed-length digest used as the on-disk file name."""
    return hashlib.sha1(key.encode("utf-8")).hexdigest()


class JsonFileStore:
    """Stores each entry as <root>/<category>/<sha1(key)>.json."""

    def __init__(self, root: Path) -> None:
        self._root = root

    @property
    def root(self) -> Path:
        """Return the cache root directory."""
        return self._root

    def key_path(self, category: str, key: str) -> Path:
        """Return the file path holding (category, key)."""
        return self._root / category / f"{key_hash(key)}.json"

    def read(self, category: str, key: str) -> tuple[bool, object]:
        """Return (found, value) for an entry."""
        path = self.key_path(category, key)
        try:
            with path.open("r", encoding="utf-8") as handle:
                payload = json.load(handle)
        except FileNotFoundError:
            return False, None
        except (OSError, json.JSONDecodeError) as error:
            raise CacheStorageError("read", category, key, str(error)) from error
        return True, payload

    def write(self, category: str, key: str, value: object) -> None:
        """Atomically replace the entry with value."""
        path = self.key_path(category, key)
        try:
            encoded = json.dumps(value, indent=2, sort_keys=True)
        except (TypeError, ValueError) as error:
            raise CacheStorageError("serialize", category, key, str(error)) from error
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            self._atomic_write_text(path, encoded + "\n")
        except OSError as error:
            raise CacheStorageError("write", category, key, str(error)) from error

    def delete(self, category: str, key: str) -> None:
        """Remove the entry; missing entries are ignored."""
        path = self.key_path(category, key)
        try:
            path.unlink(missing_ok=True)
        except OSError as error:
            raise CacheStorageError("delete", category, key, str(error)) from error

    def exists(self, category: str, key: str) -> bool:
        """Return True when an entry is stored."""
        return self.key_path(category, key).is_file()

    @staticmethod
    def _atomic_write_text(path: Path, text: str) -> None:
        fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f"{path.name}.", suffix=".tmp")
        tmp = Path(tmp_name)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(text)
            tmp.replace(path)
        except BaseException:
            tmp.unlink(missing_ok=True)
            raise
