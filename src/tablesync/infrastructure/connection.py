"""SQLite access for tablesync's own files (the audit log)."""

import sqlite3
import threading
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Iterable, Iterator, Optional, Sequence

# Timestamps are stored as ISO 8601 text in TIMESTAMP columns
sqlite3.register_adapter(datetime, lambda value: value.isoformat())
sqlite3.register_converter("TIMESTAMP", lambda raw: datetime.fromisoformat(raw.decode()))

PRAGMAS = (
    "PRAGMA journal_mode = WAL",
    "PRAGMA synchronous = NORMAL",
)


class DatabaseConnection:
    """One WAL-mode SQLite connection shared by the threads of a process.

    Statements are serialized by an internal lock. Writes go through
    :meth:`transaction`, which opens ``BEGIN IMMEDIATE`` so a concurrent
    writer waits instead of failing halfway.
    """

    def __init__(self, path: Path):
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.RLock()
        self._conn: Optional[sqlite3.Connection] = sqlite3.connect(
            str(self.path),
            detect_types=sqlite3.PARSE_DECLTYPES,
            check_same_thread=False,
            isolation_level=None,
        )
        self._conn.row_factory = sqlite3.Row
        try:
            for pragma in PRAGMAS:
                self._conn.execute(pragma)
        except sqlite3.Error:
            self.close()
            raise

    @property
    def closed(self) -> bool:
        return self._conn is None

    def _live(self) -> sqlite3.Connection:
        if self._conn is None:
            raise RuntimeError(f"Connection to {self.path} is closed")
        return self._conn

    def execute(self, sql: str, params: Sequence = ()) -> sqlite3.Cursor:
        with self._lock:
            return self._live().execute(sql, tuple(params))

    def executemany(self, sql: str, rows: Iterable[Sequence]) -> sqlite3.Cursor:
        with self._lock:
            return self._live().executemany(sql, rows)

    @contextmanager
    def transaction(self) -> Iterator["DatabaseConnection"]:
        """Run the block in one transaction, rolled back if it raises."""
        with self._lock:
            conn = self._live()
            conn.execute("BEGIN IMMEDIATE")
            try:
                yield self
            except BaseException:
                conn.execute("ROLLBACK")
                raise
            conn.execute("COMMIT")

    def close(self) -> None:
        with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None
