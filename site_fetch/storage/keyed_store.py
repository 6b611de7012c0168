# site_fetch/storage/keyed_store.py
"""
Transactional key -> value store on a single sqlite file.

Used to snapshot pages outside the fetch path. The store always starts
empty: an existing file at the given location is deleted on construction.
Values are pickled, so anything picklable (typically ``Page.to_snapshot()``
dicts) round-trips unchanged.
"""
from __future__ import annotations

import pickle
import sqlite3
import threading
from pathlib import Path
from typing import Any, Dict, Iterator, List, Mapping, Optional, Union

from site_fetch.logger import logger

__all__ = ("KeyedStore",)

# an update keeps the row (and its rowid), so values() stays in key order
_UPSERT = (
    "INSERT INTO entries (key, value) VALUES (?, ?) "
    "ON CONFLICT(key) DO UPDATE SET value = excluded.value"
)


class KeyedStore:
    """
    Persistent map with an in-memory key index.

    Every mutation is one sqlite transaction; the key index is updated
    under the same lock right after the commit, so ``has_key``/``keys``/``size``
    never need a query.
    """

    def __init__(self, path: Union[str, Path]) -> None:
        self.path = Path(path).expanduser()
        if self.path.exists():
            self.path.unlink()
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()
        self._keys: Dict[str, None] = {}
        self._conn: Optional[sqlite3.Connection] = sqlite3.connect(
            str(self.path), timeout=30.0, check_same_thread=False
        )
        with self._conn:
            self._conn.execute(
                "CREATE TABLE IF NOT EXISTS entries (key TEXT PRIMARY KEY, value BLOB NOT NULL)"
            )

    # ------------------------------------------------------------------ #
    # Backing store                                                      #
    # ------------------------------------------------------------------ #

    def _connection(self) -> sqlite3.Connection:
        if self._conn is None:
            raise RuntimeError(f"KeyedStore {self.path} is closed")
        return self._conn

    def get(self, key: str) -> Any:
        with self._lock:
            row = self._connection().execute(
                "SELECT value FROM entries WHERE key = ?", (key,)
            ).fetchone()
        return None if row is None else pickle.loads(row[0])

    def set(self, key: str, value: Any) -> None:
        blob = pickle.dumps(value, protocol=pickle.HIGHEST_PROTOCOL)
        with self._lock:
            with self._connection() as conn:
                conn.execute(_UPSERT, (key, blob))
            self._keys[key] = None
        logger.debug("Stored %s (%d bytes)", key, len(blob))

    def delete(self, key: str) -> None:
        with self._lock:
            with self._connection() as conn:
                conn.execute("DELETE FROM entries WHERE key = ?", (key,))
            self._keys.pop(key, None)
        logger.debug("Deleted %s", key)

    def values(self) -> List[Any]:
        with self._lock:
            rows = self._connection().execute("SELECT value FROM entries ORDER BY rowid").fetchall()
        return [pickle.loads(row[0]) for row in rows]

    def merge(self, mapping: Mapping[str, Any]) -> None:
        """Store every item of *mapping* in one transaction."""
        items = [(key, pickle.dumps(value, protocol=pickle.HIGHEST_PROTOCOL)) for key, value in mapping.items()]
        with self._lock:
            with self._connection() as conn:
                conn.executemany(_UPSERT, items)
            for key, _ in items:
                self._keys[key] = None
        logger.debug("Merged %d entries", len(items))

    # ------------------------------------------------------------------ #
    # Key index                                                          #
    # ------------------------------------------------------------------ #

    def has_key(self, key: str) -> bool:
        return key in self._keys

    def keys(self) -> List[str]:
        return list(self._keys)

    def size(self) -> int:
        return len(self._keys)

    # ------------------------------------------------------------------ #
    # Mapping sugar and lifecycle                                        #
    # ------------------------------------------------------------------ #

    def __getitem__(self, key: str) -> Any:
        return self.get(key)

    def __setitem__(self, key: str, value: Any) -> None:
        self.set(key, value)

    def __delitem__(self, key: str) -> None:
        self.delete(key)

    def __contains__(self, key: object) -> bool:
        return key in self._keys

    def __len__(self) -> int:
        return self.size()

    def __iter__(self) -> Iterator[str]:
        return iter(self.keys())

    def close(self) -> None:
        with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None

    def __enter__(self) -> KeyedStore:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
