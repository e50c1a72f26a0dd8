"""Key-value persistence backends.

The planner stores serialized blobs under a handful of fixed keys. Backends
only move strings around; encoding is done by the schedule store.
"""

import errno
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional, Union

from loguru import logger

from periodplanner.domain.errors import StorageFailure, StorageFailureKind


class StorageKey:
    """Keys used by the schedule store."""

    ACTIVITIES = "activities"
    CONFIG = "config"
    SAVED_SCHEDULES = "saved-schedules"
    UNAVAILABILITY = "unavailability"
    SCHEDULE = "schedule"
    START_DATE = "start-date"


class KeyValueStore(ABC):
    """Abstract persistence backend."""

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        """Return the stored value, or None if the key is missing.

        Raises:
            StorageFailure: If the value exists but cannot be read.
        """
        pass

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        """Store a value.

        Raises:
            StorageFailure: If the write could not be completed.
        """
        pass


class InMemoryStore(KeyValueStore):
    """Dict-backed store with an optional total size quota.

    Args:
        quota_bytes: Maximum combined UTF-8 size of all values, or None.
    """

    def __init__(self, quota_bytes: Optional[int] = None):
        self.quota_bytes = quota_bytes
        self._data: dict[str, str] = {}

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        if self.quota_bytes is not None:
            used = sum(len(v.encode("utf-8")) for k, v in self._data.items() if k != key)
            if used + len(value.encode("utf-8")) > self.quota_bytes:
                raise StorageFailure(key, StorageFailureKind.QUOTA_EXCEEDED)
        self._data[key] = value

    def keys(self) -> list[str]:
        return list(self._data)


class JsonDirectoryStore(KeyValueStore):
    """Stores each key as a ``<key>.json`` file in a directory."""

    def __init__(self, directory: Union[str, Path]):
        self.directory = Path(directory)

    def _path(self, key: str) -> Path:
        return self.directory / f"{key}.json"

    def get(self, key: str) -> Optional[str]:
        path = self._path(key)
        if not path.exists():
            return None
        try:
            return path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            logger.debug("Read failed", key=key, path=str(path))
            raise StorageFailure(key, StorageFailureKind.UNREADABLE, detail=str(e)) from e

    def set(self, key: str, value: str) -> None:
        path = self._path(key)
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            tmp_path = path.with_suffix(".json.tmp")
            tmp_path.write_text(value, encoding="utf-8")
            tmp_path.replace(path)
        except OSError as e:
            kind = (
                StorageFailureKind.QUOTA_EXCEEDED
                if e.errno in (errno.ENOSPC, errno.EDQUOT)
                else StorageFailureKind.OTHER
            )
            logger.debug("Write failed", key=key, path=str(path), errno=e.errno)
            raise StorageFailure(key, kind, detail=str(e)) from e
