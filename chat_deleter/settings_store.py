"""
Settings Store - durable key/value persistence for configuration,
statistics and the set of already resolved messages
"""

import shelve
import logging
from pathlib import Path
from typing import Any, Dict, FrozenSet, Optional, Protocol, Set

from chat_deleter.config import DEFAULT_INTERVAL_MS, clamp_interval
from chat_deleter.models import DeletionStats


logger = logging.getLogger(__name__)

JSON_CONTENT_KEY = "chatDeleterJsonContent"
INTERVAL_KEY = "chatDeleterInterval"
DELETION_PROGRESS_KEY = "chatDeleterDeletionProgress"
DELETION_STATS_KEY = "chatDeleterDeletionStats"
SKIPPED_MESSAGES_KEY = "chatDeleterSkippedMessages"

DATA_KEYS = (
    JSON_CONTENT_KEY,
    DELETION_PROGRESS_KEY,
    DELETION_STATS_KEY,
    SKIPPED_MESSAGES_KEY,
)


class KeyValueStore(Protocol):
    """Contract of the durable store"""

    def get(self, key: str, default: Any = None) -> Any: ...

    def set(self, key: str, value: Any) -> None: ...

    def delete(self, key: str) -> None: ...


class MemoryStore:
    """In-process store, used by tests and dry runs"""

    def __init__(self, initial: Optional[Dict[str, Any]] = None):
        self.data: Dict[str, Any] = dict(initial or {})
        self.writes = 0

    def get(self, key: str, default: Any = None) -> Any:
        return self.data.get(key, default)

    def set(self, key: str, value: Any) -> None:
        self.writes += 1
        self.data[key] = value

    def delete(self, key: str) -> None:
        self.data.pop(key, None)


class ShelveStore:
    """Store backed by a shelve database file"""

    def __init__(self, path: str):
        self.path = path
        Path(path).parent.mkdir(parents=True, exist_ok=True)

    def get(self, key: str, default: Any = None) -> Any:
        with shelve.open(self.path) as db:
            return db.get(key, default)

    def set(self, key: str, value: Any) -> None:
        with shelve.open(self.path) as db:
            db[key] = value

    def delete(self, key: str) -> None:
        with shelve.open(self.path) as db:
            if key in db:
                del db[key]


class AppSettingsStore:
    """Typed access to the durable store with batched writes for run state.

    Stats and the deleted/skipped sets are cached in memory once loaded.
    Mutations mark the store dirty and reach the backend on ``flush()``,
    which is safe to call any number of times.
    """

    def __init__(self, backend: KeyValueStore):
        self.backend = backend
        self._stats: Optional[DeletionStats] = None
        self._deleted: Optional[Set[str]] = None
        self._skipped: Optional[Set[str]] = None
        self._dirty = False

    # === Configuration ===

    def get_json_content(self) -> str:
        return self.backend.get(JSON_CONTENT_KEY, "") or ""

    def set_json_content(self, content: str) -> None:
        self.backend.set(JSON_CONTENT_KEY, content)

    def get_interval(self) -> int:
        return clamp_interval(self.backend.get(INTERVAL_KEY, DEFAULT_INTERVAL_MS))

    def set_interval(self, interval: Any) -> int:
        """Store the clamped interval, returns the value actually stored"""
        value = clamp_interval(interval)
        self.backend.set(INTERVAL_KEY, value)
        return value

    # === Statistics ===

    def _load_stats(self) -> DeletionStats:
        if self._stats is None:
            self._stats = DeletionStats.from_dict(self.backend.get(DELETION_STATS_KEY))
        return self._stats

    def get_deletion_stats(self) -> DeletionStats:
        stats = self._load_stats()
        return DeletionStats(stats.total_deleted, dict(stats.deleted_by_channel_type))

    def update_deletion_stats(self, channel_type: str) -> None:
        self._load_stats().record(channel_type)
        self._dirty = True

    # === Deleted / skipped messages ===

    def _load_deleted(self) -> Set[str]:
        if self._deleted is None:
            self._deleted = set(self.backend.get(DELETION_PROGRESS_KEY, {}).get('messageIds', []))
        return self._deleted

    def _load_skipped(self) -> Set[str]:
        if self._skipped is None:
            self._skipped = set(self.backend.get(SKIPPED_MESSAGES_KEY, {}).get('messageIds', []))
        return self._skipped

    def get_deleted_messages(self) -> FrozenSet[str]:
        return frozenset(self._load_deleted())

    def get_skipped_messages(self) -> FrozenSet[str]:
        return frozenset(self._load_skipped())

    def get_resolved_messages(self) -> FrozenSet[str]:
        """Ids that must never be submitted again"""
        return frozenset(self._load_deleted() | self._load_skipped())

    def is_message_deleted(self, message_id: str) -> bool:
        return message_id in self._load_deleted()

    def mark_message_as_deleted(self, message_id: str) -> None:
        deleted = self._load_deleted()
        if message_id not in deleted:
            deleted.add(message_id)
            self._dirty = True

    def mark_message_as_skipped(self, message_id: str) -> None:
        skipped = self._load_skipped()
        if message_id not in skipped:
            skipped.add(message_id)
            self._dirty = True

    # === Persistence ===

    @property
    def dirty(self) -> bool:
        return self._dirty

    def flush(self) -> bool:
        """Write pending run state, returns whether anything was written"""
        if not self._dirty:
            return False

        if self._stats is not None:
            self.backend.set(DELETION_STATS_KEY, self._stats.to_dict())
        if self._deleted is not None:
            self.backend.set(DELETION_PROGRESS_KEY, {'messageIds': sorted(self._deleted)})
        if self._skipped is not None:
            self.backend.set(SKIPPED_MESSAGES_KEY, {'messageIds': sorted(self._skipped)})

        self._dirty = False
        logger.debug("Flushed deletion progress to the settings store")
        return True

    def clear_all_data(self) -> None:
        """Forget stats, the stored payload and every resolved message"""
        for key in DATA_KEYS:
            self.backend.delete(key)
        self._stats = None
        self._deleted = None
        self._skipped = None
        self._dirty = False
        logger.info("All stored deletion data cleared")
