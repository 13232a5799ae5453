"""
Key-value storage backends.

The history store only needs get/set/delete by string key. ``JsonFileStore``
keeps one file per key in a data directory and writes atomically through a
temporary file; ``MemoryStore`` keeps values in a dict.
"""

import logging
import os
import re
from pathlib import Path
from tempfile import NamedTemporaryFile
from typing import Protocol

LOGGER = logging.getLogger(__name__)

_KEY_RE = re.compile(r"^[A-Za-z0-9_.-]+$")


class StorageFailure(Exception):
    """Raised when the underlying store cannot be read or written."""

    pass


class KeyValueStore(Protocol):
    """Durable string store used by HistoryStore."""

    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...

    def delete(self, key: str) -> None: ...


class MemoryStore:
    """In-process store, used for tests and embedding."""

    def __init__(self, initial: dict[str, str] | None = None):
        self.data: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> str | None:
        return self.data.get(key)

    def set(self, key: str, value: str) -> None:
        self.data[key] = value

    def delete(self, key: str) -> None:
        self.data.pop(key, None)


class JsonFileStore:
    """
    Store each key as ``<data_dir>/<key>.json``.

    Values are opaque strings to this class; the name only reflects that the
    history store writes JSON. Writes go to a temporary file in the same
    directory and are moved into place, so a crash never leaves a half
    written value behind.
    """

    def __init__(self, data_dir: str | Path):
        """
        Initialize the file store.

        Args:
            data_dir: Directory holding one file per key
        """
        self.data_dir = Path(data_dir)

    def _path(self, key: str) -> Path:
        if not _KEY_RE.match(key):
            raise ValueError(f"Invalid storage key: {key!r}")
        return self.data_dir / f"{key}.json"

    def exists(self) -> bool:
        """Check if the data directory exists."""
        return self.data_dir.is_dir()

    def init(self) -> None:
        """Create the data directory if needed."""
        try:
            self.data_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageFailure(f"Cannot create data directory {self.data_dir}: {e}") from e

    def get(self, key: str) -> str | None:
        path = self._path(key)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as e:
            raise StorageFailure(f"Cannot read {path}: {e}") from e

    def set(self, key: str, value: str) -> None:
        path = self._path(key)
        try:
            self.data_dir.mkdir(parents=True, exist_ok=True)
            with NamedTemporaryFile(
                "w", dir=self.data_dir, delete=False, encoding="utf-8", suffix=".tmp"
            ) as tmp:
                tmp.write(value)
                temp_path = Path(tmp.name)
            os.replace(temp_path, path)
        except OSError as e:
            LOGGER.warning("write of %s failed: %s", path, e)
            raise StorageFailure(f"Cannot write {path}: {e}") from e

    def delete(self, key: str) -> None:
        path = self._path(key)
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            raise StorageFailure(f"Cannot delete {path}: {e}") from e
