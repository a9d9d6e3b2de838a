# core/storage.py
import os
import json
import sqlite3
import datetime
import threading
import pytz
from typing import Callable, Dict, List, Optional, Tuple

from .errors import NotFoundError, StaleWriteError
from .models import InventoryItem, UserProfile
from .stats import profile_with_stats
from .logger import get_logger

logger = get_logger(__name__)

DB_PATH = os.getenv("DB_PATH", "/data/power_lister.sqlite3")
DB_TIMEOUT = float(os.getenv("DB_TIMEOUT", "30"))

ITEMS_KEY = "powerListerItems"
ITEMS_VERSION_KEY = "powerListerItemsVersion"
PROFILE_KEY = "powerListerProfile"
LOGGED_IN_KEY = "powerListerLoggedIn"
CONNECTED_KEY = "powerListerConnectedMarketplaces"
DEFAULT_CONNECTED = ("ebay", "facebook")


def now_utc_iso() -> str:
    return datetime.datetime.now(tz=pytz.UTC).isoformat()


def parse_version(raw: Optional[str]) -> int:
    try:
        return int(raw) if raw is not None else 0
    except ValueError:
        logger.warning("Ignoring corrupt version counter %r", raw)
        return 0


def _stale(key: str, expected: int, found: int) -> StaleWriteError:
    logger.warning(
        "Rejecting stale write to %s (expected version %d, stored %d).",
        key, expected, found,
    )
    return StaleWriteError(
        f"{key} changed (expected version {expected}, found {found})"
    )


class KeyValueStore:
    """String blobs under named keys. Missing keys read as None."""

    def get(self, key: str) -> Optional[str]:
        raise NotImplementedError

    def set(self, key: str, value: str) -> None:
        raise NotImplementedError

    def delete(self, key: str) -> None:
        raise NotImplementedError

    def compare_and_set(
        self, key: str, value: str, version_key: str, expected_version: Optional[int]
    ) -> int:
        """
        Atomically write ``value`` under ``key`` and bump the counter under
        ``version_key``. If ``expected_version`` is given and the stored counter
        differs, nothing is written and StaleWriteError is raised.
        Returns the new version.
        """
        raise NotImplementedError


class MemoryKeyValueStore(KeyValueStore):
    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def compare_and_set(
        self, key: str, value: str, version_key: str, expected_version: Optional[int]
    ) -> int:
        with self._lock:
            current = parse_version(self.get(version_key))
            if expected_version is not None and expected_version != current:
                raise _stale(key, expected_version, current)
            new_version = current + 1
            self.set(key, value)
            self.set(version_key, str(new_version))
        return new_version


class SqliteKeyValueStore(KeyValueStore):
    def __init__(self, path: str = DB_PATH, timeout: float = DB_TIMEOUT):
        self.path = path
        self.timeout = timeout
        self.ensure_db()

    def _connect(self, **kwargs):
        os.makedirs(os.path.dirname(self.path) or ".", exist_ok=True)
        return sqlite3.connect(self.path, timeout=self.timeout, **kwargs)

    def ensure_db(self):
        with self._connect() as con:
            cur = con.cursor()
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS kv (
                    key TEXT PRIMARY KEY,
                    value TEXT,
                    updated_at TEXT
                )
            """
            )
            con.commit()

    def get(self, key: str) -> Optional[str]:
        with self._connect() as con:
            cur = con.cursor()
            cur.execute("SELECT value FROM kv WHERE key=?", (key,))
            row = cur.fetchone()
        return row[0] if row else None

    @staticmethod
    def _upsert(cur, key: str, value: str) -> None:
        cur.execute(
            """
            INSERT INTO kv (key, value, updated_at)
            VALUES (?,?,?)
            ON CONFLICT(key) DO UPDATE SET
                value=excluded.value,
                updated_at=excluded.updated_at
        """,
            (key, value, now_utc_iso()),
        )

    def set(self, key: str, value: str) -> None:
        with self._connect() as con:
            self._upsert(con.cursor(), key, value)
            con.commit()

    def delete(self, key: str) -> None:
        with self._connect() as con:
            con.execute("DELETE FROM kv WHERE key=?", (key,))
            con.commit()

    def compare_and_set(
        self, key: str, value: str, version_key: str, expected_version: Optional[int]
    ) -> int:
        # Autocommit mode so BEGIN IMMEDIATE takes the write lock before the
        # version is read; other connections wait up to self.timeout.
        con = self._connect(isolation_level=None)
        try:
            cur = con.cursor()
            cur.execute("BEGIN IMMEDIATE")
            try:
                cur.execute("SELECT value FROM kv WHERE key=?", (version_key,))
                row = cur.fetchone()
                current = parse_version(row[0] if row else None)
                if expected_version is not None and expected_version != current:
                    raise _stale(key, expected_version, current)
                new_version = current + 1
                self._upsert(cur, key, value)
                self._upsert(cur, version_key, str(new_version))
            except Exception:
                cur.execute("ROLLBACK")
                raise
            cur.execute("COMMIT")
        finally:
            con.close()
        return new_version


class ItemStore:
    """
    Owns the persisted item collection, the profile and the logged-in flag.

    Every mutation round-trips the whole collection. The collection carries a
    version counter; a write that names the version it read is rejected with
    StaleWriteError if someone else wrote in between.
    """

    def __init__(self, kv: KeyValueStore):
        self.kv = kv
        self._lock = threading.RLock()

    # --- items ---

    def _read_version(self) -> int:
        return parse_version(self.kv.get(ITEMS_VERSION_KEY))

    def load_items_versioned(self) -> Tuple[List[InventoryItem], int]:
        # Version first: a blob newer than the version read can only make the
        # next conditional write fail, never succeed on stale data.
        with self._lock:
            version = self._read_version()
            raw = self.kv.get(ITEMS_KEY)

        if not raw:
            return [], version

        try:
            data = json.loads(raw)
        except ValueError as e:
            logger.error("Stored item collection is not valid JSON: %s", e)
            raise

        items: List[InventoryItem] = []
        for entry in data:
            if not isinstance(entry, dict) or "id" not in entry:
                logger.warning("Skipping malformed item record: %s", entry)
                continue
            items.append(InventoryItem.from_dict(entry))
        return items, version

    def load_items(self) -> List[InventoryItem]:
        items, _ = self.load_items_versioned()
        return items

    def save_items(
        self, items: List[InventoryItem], expected_version: Optional[int] = None
    ) -> int:
        """
        Replace the whole collection. Returns the new version.
        """
        blob = json.dumps([it.to_dict() for it in items])
        with self._lock:
            new_version = self.kv.compare_and_set(
                ITEMS_KEY, blob, ITEMS_VERSION_KEY, expected_version
            )

        logger.debug("Saved %d items (version %d).", len(items), new_version)
        return new_version

    def get_item(self, item_id: str) -> InventoryItem:
        for it in self.load_items():
            if it.id == item_id:
                return it
        raise NotFoundError(f"item {item_id} not found")

    def add_item(self, item: InventoryItem) -> InventoryItem:
        with self._lock:
            items, version = self.load_items_versioned()
            if any(it.id == item.id for it in items):
                raise ValueError(f"item id {item.id} already exists")
            items.append(item.copy())
            self.save_items(items, expected_version=version)
        logger.info("Added item %s (%s).", item.id, item.title)
        return item

    def update_item(
        self, item_id: str, mutate: Callable[[InventoryItem], None]
    ) -> InventoryItem:
        """
        Read the current record, apply ``mutate`` to a copy of it and write the
        collection back. Returns the updated copy.
        """
        with self._lock:
            items, version = self.load_items_versioned()
            for idx, it in enumerate(items):
                if it.id == item_id:
                    break
            else:
                raise NotFoundError(f"item {item_id} not found")

            updated = it.copy()
            mutate(updated)
            items[idx] = updated
            self.save_items(items, expected_version=version)
        return updated

    def delete_item(self, item_id: str) -> None:
        with self._lock:
            items, version = self.load_items_versioned()
            remaining = [it for it in items if it.id != item_id]
            if len(remaining) == len(items):
                raise NotFoundError(f"item {item_id} not found")
            self.save_items(remaining, expected_version=version)
        logger.info("Deleted item %s.", item_id)

    # --- profile ---

    def load_profile(self) -> UserProfile:
        raw = self.kv.get(PROFILE_KEY)
        profile = UserProfile()
        if raw:
            try:
                profile = UserProfile.from_dict(json.loads(raw))
            except ValueError as e:
                logger.warning("Stored profile is not valid JSON; using defaults: %s", e)

        return profile_with_stats(profile, self.load_items())

    def save_profile(self, profile: UserProfile) -> None:
        self.kv.set(PROFILE_KEY, json.dumps(profile.to_dict()))
        logger.info("Saved profile for %s.", profile.name)

    # --- session flag ---

    def is_logged_in(self) -> bool:
        return self.kv.get(LOGGED_IN_KEY) == "true"

    def set_logged_in(self, logged_in: bool) -> None:
        if logged_in:
            self.kv.set(LOGGED_IN_KEY, "true")
        else:
            self.kv.delete(LOGGED_IN_KEY)

    # --- connected marketplaces ---

    def load_connected(self) -> List[str]:
        raw = self.kv.get(CONNECTED_KEY)
        if raw is None:
            return list(DEFAULT_CONNECTED)
        try:
            data = json.loads(raw)
        except ValueError as e:
            logger.warning("Stored connected marketplaces are not valid JSON: %s", e)
            return []
        if not isinstance(data, list):
            return []
        return [m for m in data if isinstance(m, str)]

    def set_connected(self, marketplace_id: str, connected: bool) -> List[str]:
        current = self.load_connected()
        if connected and marketplace_id not in current:
            current.append(marketplace_id)
        elif not connected:
            current = [m for m in current if m != marketplace_id]
        self.kv.set(CONNECTED_KEY, json.dumps(current))
        logger.info(
            "Marketplace %s %s.", marketplace_id, "connected" if connected else "disconnected"
        )
        return current
