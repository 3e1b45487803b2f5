"""Local key-value blob storage.

The engine only needs get/set/remove by string key with JSON-serializable
values. ``KeyValueStore`` implementations move raw strings and raise
``StorageError`` on failure; ``SafeStorage`` does the JSON round-trip and turns
failures into logged defaults so a corrupt or unavailable store never breaks a
read.
"""
from __future__ import annotations

import json
import logging
import threading
from typing import Any, Dict, Optional, Protocol

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from secassess.exceptions import StorageError
from secassess.models.storage_entry import StorageEntry
from secassess.utils.datetime import utc_now

logger = logging.getLogger("secassess.storage")

# Keys of the persisted blobs
ACTIVE_DRAFT_KEY = "assessment-draft"
COMPLETED_REPORTS_KEY = "reports-completed"
SAVED_DRAFTS_KEY = "reports-drafts"


class KeyValueStore(Protocol):
    def get_item(self, key: str) -> Optional[str]: ...

    def set_item(self, key: str, value: str) -> None: ...

    def remove_item(self, key: str) -> None: ...


class MemoryKeyValueStore:
    """Process-local store, used for tests and ephemeral sessions."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._items: Dict[str, str] = dict(initial or {})
        self._lock = threading.Lock()

    def get_item(self, key: str) -> Optional[str]:
        with self._lock:
            return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        with self._lock:
            self._items[key] = value

    def remove_item(self, key: str) -> None:
        with self._lock:
            self._items.pop(key, None)

    def keys(self):
        with self._lock:
            return sorted(self._items)


class SqlKeyValueStore:
    """Key-value store backed by the ``storage_entries`` table."""

    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    def _session(self) -> Session:
        return self._session_factory()

    def get_item(self, key: str) -> Optional[str]:
        db = self._session()
        try:
            entry = db.get(StorageEntry, key)
            return entry.value if entry else None
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to read key {key!r}", [str(e)]) from e
        finally:
            db.close()

    def set_item(self, key: str, value: str) -> None:
        db = self._session()
        try:
            entry = db.get(StorageEntry, key)
            if entry:
                entry.value = value
                entry.updated_at = utc_now()
            else:
                db.add(StorageEntry(key=key, value=value))
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            raise StorageError(f"Failed to write key {key!r}", [str(e)]) from e
        finally:
            db.close()

    def remove_item(self, key: str) -> None:
        db = self._session()
        try:
            db.query(StorageEntry).filter(StorageEntry.key == key).delete(synchronize_session=False)
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            raise StorageError(f"Failed to remove key {key!r}", [str(e)]) from e
        finally:
            db.close()


class SafeStorage:
    """JSON-aware wrapper that degrades instead of raising."""

    def __init__(self, store: KeyValueStore):
        self.store = store

    def get(self, key: str, default: Any = None) -> Any:
        try:
            raw = self.store.get_item(key)
        except StorageError as e:
            logger.warning("Failed to get item from storage (%s): %s", key, e)
            return default
        if not raw:
            return default
        try:
            return json.loads(raw)
        except (TypeError, ValueError) as e:
            logger.warning("Failed to parse JSON for key %s: %s", key, e)
            return default

    def set(self, key: str, value: Any) -> bool:
        try:
            payload = json.dumps(value)
        except (TypeError, ValueError) as e:
            logger.error("Value for key %s is not JSON-serializable: %s", key, e)
            return False
        try:
            self.store.set_item(key, payload)
            return True
        except StorageError as e:
            # Not retried: memory and storage stay divergent until the next successful write
            logger.error("Failed to set item in storage (%s): %s", key, e)
            return False

    def remove(self, key: str) -> bool:
        try:
            self.store.remove_item(key)
            return True
        except StorageError as e:
            logger.error("Failed to remove item from storage (%s): %s", key, e)
            return False
