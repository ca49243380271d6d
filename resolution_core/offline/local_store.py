# =============================================================================
# resolution_core/offline/local_store.py
# Local Durable Store for Goal Records and Pending Updates
# =============================================================================
"""
LocalStore - key-value persistence of record collections and the queue of
not-yet-applied remote updates.

Features:
- Whole-collection replacement (no partial patches at this layer)
- FIFO pending-update queue that survives restarts
- SQLite backend with thread-local connections
- In-memory backend with the same contract, used when SQLite cannot be opened
"""

from __future__ import annotations
import json
import sqlite3
import threading
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Union
import logging

from resolution_core.errors import StorageUnavailable
from resolution_core.models import PendingUpdate

logger = logging.getLogger(__name__)


class SQLiteStore:
    """
    SQLite-backed durable store.

    Records are stored as JSON keyed by (collection, id). Pending updates get
    an auto-incrementing queue id.
    """

    SCHEMA = {
        "records": """
            CREATE TABLE IF NOT EXISTS records (
                collection TEXT NOT NULL,
                id TEXT NOT NULL,
                data_json TEXT NOT NULL,
                updated_at TEXT DEFAULT CURRENT_TIMESTAMP,
                PRIMARY KEY (collection, id)
            )
        """,
        "pending_updates": """
            CREATE TABLE IF NOT EXISTS pending_updates (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                target_remote_id TEXT NOT NULL,
                fields_json TEXT NOT NULL,
                enqueued_at TEXT NOT NULL
            )
        """,
    }

    def __init__(self, db_path: Union[str, Path]):
        """
        Initialize the store (call initialize() before use).

        Args:
            db_path: Path to SQLite database file
        """
        self.db_path = Path(db_path)
        self._local = threading.local()
        self._connections: List[sqlite3.Connection] = []
        self._connections_lock = threading.Lock()
        self._initialized = False

    def _get_connection(self) -> sqlite3.Connection:
        """Get thread-local database connection."""
        if getattr(self._local, "connection", None) is None:
            try:
                self._local.connection = sqlite3.connect(
                    str(self.db_path),
                    check_same_thread=False,
                )
            except sqlite3.Error as e:
                raise StorageUnavailable(
                    f"Cannot open local database: {e}", path=str(self.db_path)
                ) from e
            self._local.connection.row_factory = sqlite3.Row
            with self._connections_lock:
                self._connections.append(self._local.connection)
        return self._local.connection

    @contextmanager
    def transaction(self):
        """Context manager for database transactions."""
        conn = self._get_connection()
        try:
            yield conn
            conn.commit()
        except sqlite3.Error as e:
            conn.rollback()
            raise StorageUnavailable(
                f"Local database write failed: {e}", path=str(self.db_path)
            ) from e
        except Exception:
            conn.rollback()
            raise

    def _query(self, sql: str, params: Optional[List] = None) -> List[sqlite3.Row]:
        try:
            return self._get_connection().execute(sql, params or []).fetchall()
        except sqlite3.Error as e:
            raise StorageUnavailable(
                f"Local database read failed: {e}", path=str(self.db_path)
            ) from e

    def initialize(self) -> None:
        """
        Create the schema.

        Raises:
            StorageUnavailable: If the database file cannot be created or opened
        """
        if self._initialized:
            return

        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageUnavailable(
                f"Cannot create database directory: {e}", path=str(self.db_path)
            ) from e

        with self.transaction() as conn:
            for table_name, schema in self.SCHEMA.items():
                conn.execute(schema)
                logger.debug(f"Created/verified table: {table_name}")

        self._initialized = True
        logger.info(f"Local store initialized at: {self.db_path}")

    # =========================================================================
    # RECORD COLLECTIONS
    # =========================================================================

    def read_all(self, collection: str) -> List[Dict[str, Any]]:
        """Return every record of a collection, in insertion order."""
        rows = self._query(
            "SELECT data_json FROM records WHERE collection = ? ORDER BY rowid",
            [collection],
        )
        return [json.loads(row["data_json"]) for row in rows]

    def write_all(self, collection: str, records: Iterable[Dict[str, Any]]) -> int:
        """
        Replace a collection wholesale.

        Returns:
            Number of records written
        """
        now = datetime.now().isoformat()
        rows = [
            [collection, str(record["id"]), json.dumps(record, default=str), now]
            for record in records
        ]

        with self.transaction() as conn:
            conn.execute("DELETE FROM records WHERE collection = ?", [collection])
            conn.executemany(
                "INSERT INTO records (collection, id, data_json, updated_at) VALUES (?, ?, ?, ?)",
                rows,
            )

        return len(rows)

    # =========================================================================
    # PENDING UPDATE QUEUE
    # =========================================================================

    def enqueue(self, update: PendingUpdate) -> PendingUpdate:
        """Append an update to the queue and assign its queue id."""
        with self.transaction() as conn:
            cursor = conn.execute(
                """
                INSERT INTO pending_updates (target_remote_id, fields_json, enqueued_at)
                VALUES (?, ?, ?)
                """,
                [
                    update.target_remote_id,
                    json.dumps(update.fields, default=str),
                    update.enqueued_at.isoformat(),
                ],
            )
            update.queue_id = cursor.lastrowid

        logger.debug(f"Queued update {update.queue_id} for {update.target_remote_id}")
        return update

    def drain_queue(self) -> List[PendingUpdate]:
        """Read the queue in FIFO order. Entries stay queued until remove()."""
        rows = self._query(
            "SELECT * FROM pending_updates ORDER BY enqueued_at ASC, id ASC"
        )
        return [
            PendingUpdate(
                target_remote_id=row["target_remote_id"],
                fields=json.loads(row["fields_json"]),
                enqueued_at=datetime.fromisoformat(row["enqueued_at"]),
                queue_id=row["id"],
            )
            for row in rows
        ]

    def remove(self, update: PendingUpdate) -> None:
        """Delete a replayed update from the queue."""
        if update.queue_id is None:
            return
        with self.transaction() as conn:
            conn.execute("DELETE FROM pending_updates WHERE id = ?", [update.queue_id])

    def queue_length(self) -> int:
        result = self._query("SELECT COUNT(*) AS count FROM pending_updates")
        return result[0]["count"] if result else 0

    def close(self) -> None:
        """Close the connections of every thread that used this store."""
        with self._connections_lock:
            connections, self._connections = self._connections, []
        for conn in connections:
            conn.close()
        self._local = threading.local()


class MemoryStore:
    """Same contract as SQLiteStore, kept in process memory for one session."""

    def __init__(self, records: Optional[Dict[str, List[Dict[str, Any]]]] = None):
        self._collections: Dict[str, List[Dict[str, Any]]] = {
            name: [dict(r) for r in rows] for name, rows in (records or {}).items()
        }
        self._queue: List[PendingUpdate] = []
        self._next_id = 1
        self._lock = threading.Lock()

    def initialize(self) -> None:
        return None

    def read_all(self, collection: str) -> List[Dict[str, Any]]:
        with self._lock:
            return [dict(r) for r in self._collections.get(collection, [])]

    def write_all(self, collection: str, records: Iterable[Dict[str, Any]]) -> int:
        rows = [dict(r) for r in records]
        with self._lock:
            self._collections[collection] = rows
        return len(rows)

    def enqueue(self, update: PendingUpdate) -> PendingUpdate:
        with self._lock:
            update.queue_id = self._next_id
            self._next_id += 1
            self._queue.append(update)
        return update

    def drain_queue(self) -> List[PendingUpdate]:
        with self._lock:
            return sorted(self._queue, key=lambda u: (u.enqueued_at, u.queue_id))

    def remove(self, update: PendingUpdate) -> None:
        with self._lock:
            self._queue = [u for u in self._queue if u.queue_id != update.queue_id]

    def queue_length(self) -> int:
        with self._lock:
            return len(self._queue)

    def close(self) -> None:
        return None


LocalStore = Union[SQLiteStore, MemoryStore]


def open_store(db_path: Union[str, Path]) -> LocalStore:
    """
    Open the durable store, degrading to memory when it is unavailable.

    Args:
        db_path: Path to SQLite database file

    Returns:
        An initialized SQLiteStore, or a MemoryStore for this session
    """
    store = SQLiteStore(db_path)
    try:
        store.initialize()
        return store
    except StorageUnavailable as e:
        logger.warning(f"{e}. Falling back to in-memory storage for this session.")
        return MemoryStore()
