"""Durable snapshot of the last successful fetch.

The snapshot is two string-keyed entries: the serialized dataset and the
ISO-8601 time it was saved. A store is anything with ``get``/``set``/
``delete``; ``FileCacheStore`` keeps one file per key on disk and
``MemoryCacheStore`` is used in tests and when no directory is usable.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from datetime import UTC, datetime
from pathlib import Path
from typing import ClassVar, Protocol, runtime_checkable

from pydantic import BaseModel, ValidationError

from makeready.exceptions import CachePersistError

logger = logging.getLogger(__name__)

DATA_KEY = "makeready_data_cache"
TIMESTAMP_KEY = "makeready_data_cache_time"


@runtime_checkable
class CacheStore(Protocol):
    """String key/value storage for the snapshot entries."""

    def get(self, key: str) -> str | None:
        """Return the stored value, or None if absent."""
        ...

    def set(self, key: str, value: str) -> None:
        """Store a value, raising CachePersistError on failure."""
        ...

    def delete(self, key: str) -> None:
        """Remove a value if present."""
        ...


class MemoryCacheStore:
    """Process-local store.

    Entries live in a class-level dict so separate instances share state
    within one process, unless ``shared=False``.
    """

    _memory: ClassVar[dict[str, str]] = {}

    def __init__(self, shared: bool = True) -> None:
        self._entries = self._memory if shared else {}

    def get(self, key: str) -> str | None:
        return self._entries.get(key)

    def set(self, key: str, value: str) -> None:
        self._entries[key] = value

    def delete(self, key: str) -> None:
        self._entries.pop(key, None)


class FileCacheStore:
    """Store each key as a file under a directory.

    Writes go to a temporary file that is renamed over the target, so a
    reader never sees a partially written entry.
    """

    def __init__(self, directory: Path | str) -> None:
        self.directory = Path(directory).expanduser()

    def _path(self, key: str) -> Path:
        return self.directory / f"{key}.json"

    def get(self, key: str) -> str | None:
        path = self._path(key)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except (OSError, ValueError) as e:
            logger.warning(f"Could not read cache entry {path}: {e}")
            return None

    def set(self, key: str, value: str) -> None:
        path = self._path(key)
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=self.directory, prefix=f".{key}.", suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    f.write(value)
                Path(tmp_name).replace(path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as e:
            raise CachePersistError(f"Failed to write cache entry {path}: {e}") from e

    def delete(self, key: str) -> None:
        self._path(key).unlink(missing_ok=True)


class CachedSnapshot(BaseModel):
    """Last successfully fetched dataset and when it was saved.

    Stored as two entries so the timestamp can be read back byte-for-byte.
    """

    data: list[dict]
    timestamp: str

    @property
    def saved_at(self) -> datetime | None:
        """Parsed timestamp, or None if it is not valid ISO-8601."""
        try:
            return datetime.fromisoformat(self.timestamp)
        except ValueError:
            return None

    def display_time(self) -> str:
        """Timestamp in local time for messages, or the raw string if unparseable."""
        saved_at = self.saved_at
        if saved_at is None:
            return self.timestamp
        return saved_at.astimezone().strftime("%b %d, %Y %H:%M")


def save_snapshot(
    store: CacheStore, data: list[dict], now: datetime | None = None
) -> CachedSnapshot:
    """Persist a dataset and the current time as the new snapshot.

    Raises:
        CachePersistError: If the store cannot write either entry
    """
    timestamp = (now or datetime.now(UTC)).isoformat()
    try:
        payload = json.dumps(data, default=str)
    except (TypeError, ValueError) as e:
        raise CachePersistError(f"Dataset is not serializable: {e}") from e

    store.set(DATA_KEY, payload)
    # Timestamp goes last; without it the new data must not pair with an old time
    try:
        store.set(TIMESTAMP_KEY, timestamp)
    except Exception:
        store.delete(DATA_KEY)
        raise
    logger.debug(f"Cached {len(data)} records at {timestamp}")
    return CachedSnapshot(data=data, timestamp=timestamp)


def load_snapshot(store: CacheStore) -> CachedSnapshot | None:
    """Read the last snapshot, or None if it is missing or unreadable."""
    raw = store.get(DATA_KEY)
    timestamp = store.get(TIMESTAMP_KEY)
    if raw is None or timestamp is None:
        return None

    try:
        data = json.loads(raw)
    except ValueError:
        logger.warning("Cached dataset is not valid JSON, ignoring it")
        return None

    try:
        return CachedSnapshot.model_validate({"data": data, "timestamp": timestamp})
    except ValidationError as e:
        logger.warning(f"Cached dataset has unexpected shape, ignoring it: {e}")
        return None


def clear_snapshot(store: CacheStore) -> None:
    """Remove both snapshot entries."""
    store.delete(DATA_KEY)
    store.delete(TIMESTAMP_KEY)
