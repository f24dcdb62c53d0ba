"""
Key-Value Store
Flat get/set/remove over the storage_entries table. Values are JSON.
"""

import json
from typing import Any, Callable, Optional

from sqlalchemy.orm import Session

from legallens.models.storage_entry import StorageEntry


class KeyValueStore:
    """JSON values under fixed string keys, one row per key."""

    def __init__(self, session_factory: Optional[Callable[[], Session]] = None):
        if session_factory is None:
            from legallens.database import SessionLocal
            session_factory = SessionLocal
        self.session_factory = session_factory

    def get(self, key: str) -> Any:
        """Return the decoded value for key, or None when absent."""
        with self.session_factory() as db:
            entry = db.get(StorageEntry, key)
            if entry is None:
                return None
            return json.loads(entry.value)

    def set(self, key: str, value: Any) -> None:
        payload = json.dumps(value, ensure_ascii=False)
        with self.session_factory() as db:
            entry = db.get(StorageEntry, key)
            if entry is None:
                db.add(StorageEntry(key=key, value=payload))
            else:
                entry.value = payload
            db.commit()

    def remove(self, key: str) -> None:
        with self.session_factory() as db:
            entry = db.get(StorageEntry, key)
            if entry is not None:
                db.delete(entry)
                db.commit()
