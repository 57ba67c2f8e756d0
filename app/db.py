"""
SQLite proof store for the canary server.

Keeps every accepted proof in a single table keyed by deadline. Writes use
synchronous=FULL so a committed proof survives power loss.
"""

import sqlite3
import threading
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional, Union

from canarychain.hashing import document_hash
from canarychain.store import ProofStore, StoreError, deadline_key


class SqliteProofStore(ProofStore):
    """Proof store backed by one SQLite database file."""

    def __init__(self, db_path: Union[str, Path]):
        self.db_path = Path(db_path)
        self._lock = threading.RLock()
        self._conn: Optional[sqlite3.Connection] = None
        self.init_db()

    def _get_connection(self) -> sqlite3.Connection:
        """Open the connection on first use; shared by all threads under the lock."""
        if self._conn is None:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            conn = sqlite3.connect(str(self.db_path), check_same_thread=False)
            conn.execute("PRAGMA journal_mode=WAL;")
            conn.execute("PRAGMA synchronous=FULL;")
            conn.row_factory = sqlite3.Row
            self._conn = conn
        return self._conn

    @contextmanager
    def _transaction(self):
        """
        Context manager for database transactions.
        Automatically commits on success, rolls back on failure.
        """
        with self._lock:
            conn = self._get_connection()
            try:
                yield conn
                conn.commit()
            except Exception:
                conn.rollback()
                raise

    def init_db(self) -> None:
        """
        Initialize database schema.
        Safe to call multiple times (uses IF NOT EXISTS).
        """
        try:
            with self._transaction() as conn:
                conn.execute("""
                CREATE TABLE IF NOT EXISTS proofs (
                    deadline_key TEXT PRIMARY KEY,
                    deadline_epoch INTEGER NOT NULL,
                    document_hash TEXT NOT NULL,
                    document TEXT NOT NULL,
                    stored_at INTEGER DEFAULT (strftime('%s', 'now'))
                );""")
        except sqlite3.Error as e:
            raise StoreError(f"Failed to initialize {self.db_path}: {e}") from e

    def store(self, document: str, deadline: datetime) -> None:
        try:
            with self._transaction() as conn:
                conn.execute(
                    "INSERT INTO proofs(deadline_key, deadline_epoch, document_hash, document) "
                    "VALUES(?,?,?,?)",
                    (deadline_key(deadline), int(deadline.timestamp()),
                     document_hash(document), document)
                )
        except sqlite3.IntegrityError as e:
            raise StoreError(f"Proof already stored for deadline {deadline_key(deadline)}") from e
        except sqlite3.Error as e:
            raise StoreError(f"Failed to store proof: {e}") from e

    def documents(self) -> List[str]:
        try:
            with self._lock:
                cur = self._get_connection().execute(
                    "SELECT document FROM proofs ORDER BY deadline_key ASC"
                )
                return [row["document"] for row in cur.fetchall()]
        except sqlite3.Error as e:
            raise StoreError(f"Failed to read proofs: {e}") from e

    def get_stats(self) -> Dict[str, int]:
        """Get database statistics for monitoring."""
        with self._lock:
            cur = self._get_connection().execute("SELECT COUNT(*) AS cnt FROM proofs")
            return {"proofs_count": cur.fetchone()["cnt"]}

    def close(self) -> None:
        with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None
