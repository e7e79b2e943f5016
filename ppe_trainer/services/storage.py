"""
JSON key-value store over the ``kv_entries`` table.

Every component receives the store it works on; nothing reaches for a
global. Reads are served from an in-memory cache of raw JSON text. Writers
hold ``store.lock`` for their whole read-modify-write so that a sequence
such as "load folders, append sample, save folders" is atomic to other
callers.
"""
import copy
import json
import threading
from typing import Any, Callable, Dict, Optional

from sqlalchemy.orm import Session

from ppe_trainer.core.logging import logger
from ppe_trainer.models.kv_entry import KeyValueEntry


class KeyValueStore:
    """
    Persisted JSON documents addressed by key.
    """

    def __init__(self, session_factory: Callable[[], Session]):
        """
        Initialize the store.

        Args:
            session_factory: SQLAlchemy session factory bound to a database
                where the ``kv_entries`` table exists
        """
        self._session_factory = session_factory
        self._cache: Dict[str, Optional[str]] = {}
        self.lock = threading.RLock()

    def _read_raw(self, key: str) -> Optional[str]:
        if key in self._cache:
            return self._cache[key]

        db = self._session_factory()
        try:
            entry = db.get(KeyValueEntry, key)
            raw = entry.value if entry is not None else None
        finally:
            db.close()

        self._cache[key] = raw
        return raw

    def get_json(self, key: str, default: Any = None) -> Any:
        """
        Load the JSON document stored under ``key``.

        A missing key returns ``default``. An unparseable document is
        treated as absent: a warning is logged, ``default`` is returned and
        the next write under the key replaces the corrupt value.
        """
        with self.lock:
            raw = self._read_raw(key)

        if raw is None:
            return copy.deepcopy(default)

        try:
            return json.loads(raw)
        except json.JSONDecodeError as e:
            logger.warning(f"Corrupt JSON under key '{key}', falling back to default: {e}")
            return copy.deepcopy(default)

    def set_json(self, key: str, value: Any) -> None:
        """Persist ``value`` under ``key``."""
        self.set_many({key: value})

    def set_many(self, values: Dict[str, Any]) -> None:
        """
        Persist several keys in one database transaction.

        Readers never observe a subset of ``values`` applied.
        """
        self._write({key: json.dumps(value) for key, value in values.items()})

    def write_raw(self, key: str, raw: str) -> None:
        """Store ``raw`` text verbatim under ``key``, bypassing serialization."""
        self._write({key: raw})

    def _write(self, serialized: Dict[str, str]) -> None:
        with self.lock:
            db = self._session_factory()
            try:
                for key, raw in serialized.items():
                    entry = db.get(KeyValueEntry, key)
                    if entry is None:
                        db.add(KeyValueEntry(key=key, value=raw))
                    else:
                        entry.value = raw
                db.commit()
            except Exception:
                db.rollback()
                raise
            finally:
                db.close()

            self._cache.update(serialized)

    def delete(self, *keys: str) -> None:
        """Remove keys; unknown keys are ignored."""
        with self.lock:
            db = self._session_factory()
            try:
                db.query(KeyValueEntry).filter(KeyValueEntry.key.in_(keys)).delete(synchronize_session=False)
                db.commit()
            except Exception:
                db.rollback()
                raise
            finally:
                db.close()

            for key in keys:
                self._cache[key] = None

    def invalidate(self) -> None:
        """Drop the in-memory cache so the next read goes to the database."""
        with self.lock:
            self._cache.clear()
