# wishbridge/storage.py
import json
import os
import sqlite3
from abc import ABC, abstractmethod
from typing import Dict, List, Optional

from .errors import StorageError
from .logger import get_logger
from .merge import dedupe
from .models import Item, ItemKey
from .validation import is_valid_record, parse_timestamp

logger = get_logger(__name__)

DB_PATH = os.getenv("WISHBRIDGE_DB_PATH", "wishbridge_state.sqlite3")

# Persisted key names; changing them orphans existing guest wishlists.
ITEMS_KEY = "wishbridge_items"
LAST_SYNC_KEY = "wishbridge_last_sync"
_AVAILABILITY_KEY = "__wishbridge_test__"


class ByteStore(ABC):
    """Minimal key-value byte store. Implementations raise StorageError on failure."""

    @abstractmethod
    def get(self, key: str) -> Optional[bytes]:
        ...

    @abstractmethod
    def set(self, key: str, value: bytes) -> None:
        ...

    @abstractmethod
    def delete(self, key: str) -> None:
        ...


class MemoryByteStore(ByteStore):
    def __init__(self, data: Optional[Dict[str, bytes]] = None):
        self.data: Dict[str, bytes] = dict(data or {})

    def get(self, key: str) -> Optional[bytes]:
        return self.data.get(key)

    def set(self, key: str, value: bytes) -> None:
        self.data[key] = bytes(value)

    def delete(self, key: str) -> None:
        self.data.pop(key, None)


class SqliteByteStore(ByteStore):
    """Byte store kept in a single SQLite table."""

    def __init__(self, db_path: str = DB_PATH):
        self.db_path = db_path
        self.ensure_db()

    def _connect(self):
        db_dir = os.path.dirname(self.db_path)
        if db_dir:
            os.makedirs(db_dir, exist_ok=True)
        return sqlite3.connect(self.db_path)

    def ensure_db(self):
        try:
            with self._connect() as con:
                con.execute(
                    """
                    CREATE TABLE IF NOT EXISTS kv (
                        key TEXT PRIMARY KEY,
                        value BLOB
                    )
                """
                )
                con.commit()
        except (sqlite3.Error, OSError) as e:
            raise StorageError(f"Cannot open {self.db_path}: {e}") from e

    def get(self, key: str) -> Optional[bytes]:
        try:
            with self._connect() as con:
                row = con.execute("SELECT value FROM kv WHERE key=?", (key,)).fetchone()
        except (sqlite3.Error, OSError) as e:
            raise StorageError(f"Read of {key} failed: {e}") from e
        return bytes(row[0]) if row and row[0] is not None else None

    def set(self, key: str, value: bytes) -> None:
        try:
            with self._connect() as con:
                con.execute(
                    """
                    INSERT INTO kv (key, value) VALUES (?, ?)
                    ON CONFLICT(key) DO UPDATE SET value=excluded.value
                """,
                    (key, sqlite3.Binary(value)),
                )
                con.commit()
        except (sqlite3.Error, OSError) as e:
            raise StorageError(f"Write of {key} failed: {e}") from e

    def delete(self, key: str) -> None:
        try:
            with self._connect() as con:
                con.execute("DELETE FROM kv WHERE key=?", (key,))
                con.commit()
        except (sqlite3.Error, OSError) as e:
            raise StorageError(f"Delete of {key} failed: {e}") from e


class LocalStore:
    """
    Typed access to the guest wishlist held in a ByteStore.

    Reads never fail: unreadable data yields an empty collection and
    individual records that fail validation are dropped. save(), add_item()
    and remove_item() raise StorageError; a failed read never turns into a
    write that would overwrite the stored collection.
    """

    def __init__(self, backend: Optional[ByteStore] = None):
        self.backend = backend if backend is not None else MemoryByteStore()

    def is_available(self) -> bool:
        try:
            self.backend.set(_AVAILABILITY_KEY, _AVAILABILITY_KEY.encode("utf-8"))
            self.backend.delete(_AVAILABILITY_KEY)
            return True
        except StorageError:
            return False

    def load(self) -> List[Item]:
        try:
            return self._read()
        except StorageError as e:
            logger.warning("Local wishlist unreadable: %s", e)
            return []

    def _read(self) -> List[Item]:
        """Like load(), but a backend failure raises instead of reading as empty."""
        raw = self.backend.get(ITEMS_KEY)
        if not raw:
            return []

        try:
            parsed = json.loads(raw.decode("utf-8"))
        except (UnicodeDecodeError, ValueError) as e:
            logger.warning("Local wishlist is not valid JSON; ignoring it: %s", e)
            return []

        if not isinstance(parsed, list):
            logger.warning("Local wishlist is not a list (%s); ignoring it.", type(parsed).__name__)
            return []

        items = [Item.from_dict(rec) for rec in parsed if is_valid_record(rec)]
        dropped = len(parsed) - len(items)
        if dropped:
            logger.warning("Dropped %d invalid record(s) from local wishlist.", dropped)
        return dedupe(items)

    def save(self, items: List[Item]) -> None:
        payload = json.dumps([it.to_dict() for it in items]).encode("utf-8")
        self.backend.set(ITEMS_KEY, payload)

    def clear(self) -> None:
        for key in (ITEMS_KEY, LAST_SYNC_KEY):
            try:
                self.backend.delete(key)
            except StorageError as e:
                logger.warning("Failed to clear %s: %s", key, e)

    def get_last_sync_marker(self) -> Optional[str]:
        try:
            raw = self.backend.get(LAST_SYNC_KEY)
        except StorageError as e:
            logger.warning("Last sync marker unreadable: %s", e)
            return None
        if not raw:
            return None
        try:
            value = raw.decode("utf-8")
        except UnicodeDecodeError:
            return None
        return value if parse_timestamp(value) is not None else None

    def set_last_sync_marker(self, timestamp: str) -> None:
        try:
            self.backend.set(LAST_SYNC_KEY, timestamp.encode("utf-8"))
        except StorageError as e:
            logger.warning("Failed to record last sync marker: %s", e)

    def contains(self, key: ItemKey) -> bool:
        return any(it.key == key for it in self.load())

    def add_item(self, item: Item) -> List[Item]:
        items = self._read()
        if any(it.key == item.key for it in items):
            return items
        items.append(item)
        self.save(items)
        return items

    def remove_item(self, key: ItemKey) -> List[Item]:
        items = [it for it in self._read() if it.key != key]
        self.save(items)
        return items
