"""
Durable storage for the one directory capability the user granted.

The store survives restarts (SQLite under the app support directory) and
never fails its caller: persistence problems are logged and degrade to
"nothing stored". The storage engine sits behind KeyValueBackend so tests
can swap in an in-memory one.
"""

import json
import logging
import sqlite3
import threading
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from pathlib import Path

from vmx_monitor.core.constants import HANDLES_DB_PATH, HANDLE_KEY
from vmx_monitor.core.directory_access import DirectoryCapability, capability_from_record

logger = logging.getLogger(__name__)

_SCHEMA_VERSION = 1

_CREATE_TABLES = """
CREATE TABLE IF NOT EXISTS schema_version (
    version INTEGER PRIMARY KEY
);

CREATE TABLE IF NOT EXISTS handles (
    key TEXT PRIMARY KEY,
    record TEXT NOT NULL,
    saved_at TEXT
);
"""


def _migrate(conn: sqlite3.Connection):
    cur = conn.cursor()
    cur.executescript(_CREATE_TABLES)
    cur.execute(
        "INSERT OR REPLACE INTO schema_version (version) VALUES (?)",
        (_SCHEMA_VERSION,),
    )
    conn.commit()


class KeyValueBackend(ABC):
    """Minimal persistence contract used by HandleStore."""

    @abstractmethod
    def save(self, key: str, record: dict):
        ...

    @abstractmethod
    def load(self, key: str) -> dict | None:
        ...

    @abstractmethod
    def clear(self, key: str):
        ...

    def request_persistence(self) -> bool:
        """Ask the engine to keep data durable. Returns True if granted."""
        return False


class SqliteHandleBackend(KeyValueBackend):
    """SQLite-backed key/value table for capability records."""

    def __init__(self, db_path: Path | None = None):
        self.db_path = db_path or HANDLES_DB_PATH
        self.in_memory = False
        self._lock = threading.Lock()
        self.conn = self._open()

    def _open(self) -> sqlite3.Connection:
        """Open the store file; a damaged one is moved aside and recreated."""
        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            return self._connect(str(self.db_path))
        except sqlite3.DatabaseError as e:
            logger.error("Handle store %s is unreadable (%s); recreating it",
                         self.db_path, e)
            self._move_aside()
        except OSError as e:
            logger.error("Cannot create handle store at %s: %s", self.db_path, e)

        try:
            return self._connect(str(self.db_path))
        except (sqlite3.DatabaseError, OSError) as e:
            logger.error("Falling back to an in-memory handle store: %s", e)
            self.in_memory = True
            return self._connect(":memory:")

    @staticmethod
    def _connect(target: str) -> sqlite3.Connection:
        conn = sqlite3.connect(target, check_same_thread=False)
        conn.row_factory = sqlite3.Row
        try:
            _migrate(conn)
        except sqlite3.DatabaseError:
            conn.close()
            raise
        return conn

    def _move_aside(self):
        stamp = datetime.now().strftime("%Y%m%d-%H%M%S")
        broken = self.db_path.with_name(f"{self.db_path.name}.corrupt-{stamp}")
        try:
            self.db_path.replace(broken)
            logger.info("Moved damaged handle store to %s", broken)
        except OSError as e:
            logger.error("Could not move damaged handle store aside: %s", e)

    def close(self):
        if self.conn:
            self.conn.close()
            self.conn = None

    @staticmethod
    def _now() -> str:
        return datetime.now(timezone.utc).isoformat()

    def request_persistence(self) -> bool:
        with self._lock:
            self.conn.execute("PRAGMA synchronous=FULL")
            mode = self.conn.execute("PRAGMA synchronous").fetchone()[0]
        return mode == 2

    def save(self, key: str, record: dict):
        with self._lock:
            self.conn.execute(
                "INSERT OR REPLACE INTO handles (key, record, saved_at) VALUES (?, ?, ?)",
                (key, json.dumps(record), self._now()),
            )
            self.conn.commit()

    def load(self, key: str) -> dict | None:
        with self._lock:
            exists = self.conn.execute(
                "SELECT 1 FROM sqlite_master WHERE type = 'table' AND name = 'handles'"
            ).fetchone()
            if not exists:
                return None
            row = self.conn.execute(
                "SELECT record FROM handles WHERE key = ?", (key,)
            ).fetchone()
        return json.loads(row["record"]) if row else None

    def clear(self, key: str):
        with self._lock:
            self.conn.execute("DELETE FROM handles WHERE key = ?", (key,))
            self.conn.commit()


class HandleStore:
    """Persists, restores and re-validates the granted directory capability."""

    def __init__(self, backend: KeyValueBackend, key: str = HANDLE_KEY):
        self.backend = backend
        self.key = key

    def save(self, capability: DirectoryCapability):
        """Persist the capability, replacing any earlier one. Never raises."""
        try:
            if self.backend.request_persistence():
                logger.info("Storage persistence granted")
        except Exception as e:
            logger.warning("Storage persistence request failed: %s", e)

        try:
            self.backend.save(self.key, capability.to_record())
            logger.info("Directory handle saved (%s)", capability.name)
        except Exception as e:
            # The grant still works for this session
            logger.error("Failed to save directory handle: %s", e)

    def load(self) -> DirectoryCapability | None:
        """Return the stored capability, or None if there is none or it can't be read."""
        try:
            record = self.backend.load(self.key)
            capability = capability_from_record(record) if record else None
        except Exception as e:
            logger.error("Failed to load directory handle: %s", e)
            return None
        if capability is not None:
            logger.info("Directory handle restored (%s)", capability.name)
        return capability

    def clear(self):
        """Forget the stored capability. Absence is not an error."""
        try:
            self.backend.clear(self.key)
            logger.info("Directory handle cleared")
        except Exception as e:
            logger.error("Failed to clear directory handle: %s", e)

    @staticmethod
    def verify(capability: DirectoryCapability) -> bool:
        """True if the capability can still list its directory."""
        try:
            next(iter(capability.enumerate()), None)
            return True
        except Exception as e:
            logger.warning("Directory handle verification failed: %s", e)
            return False
