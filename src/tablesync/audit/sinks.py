"""Append-only destinations for audit entries."""

import threading
from pathlib import Path
from typing import List, Optional, Protocol

from tablesync.infrastructure.connection import DatabaseConnection
from tablesync.models import AuditEntry


class AuditSink(Protocol):
    """Append-only audit destination."""

    def append(self, entry: AuditEntry) -> None: ...

    def append_many(self, entries: List[AuditEntry]) -> None: ...


class BaseAuditSink:
    """Sink whose batch append is a loop over :meth:`append`."""

    def append(self, entry: AuditEntry) -> None:
        raise NotImplementedError

    def append_many(self, entries: List[AuditEntry]) -> None:
        for entry in entries:
            self.append(entry)


class MemoryAuditSink(BaseAuditSink):
    """Keeps entries in a list."""

    def __init__(self):
        self.entries: List[AuditEntry] = []
        self._lock = threading.Lock()

    def append(self, entry: AuditEntry) -> None:
        with self._lock:
            self.entries.append(entry)

    def append_many(self, entries: List[AuditEntry]) -> None:
        with self._lock:
            self.entries.extend(entries)

    def clear(self) -> None:
        with self._lock:
            self.entries.clear()


SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS audit_log (
    seq INTEGER PRIMARY KEY AUTOINCREMENT,
    id TEXT NOT NULL UNIQUE,
    table_name TEXT NOT NULL,
    event TEXT NOT NULL,
    composite_id TEXT NOT NULL,
    value TEXT NOT NULL,
    old_value TEXT,
    created_at TIMESTAMP NOT NULL
)
"""


class SqliteAuditSink(BaseAuditSink):
    """Audit log stored in a SQLite database."""

    def __init__(self, path: Path):
        """Open (and create if needed) the audit database.

        Args:
            path: Path to the SQLite file
        """
        self.path = Path(path)
        self._conn = DatabaseConnection(self.path)
        self._lock = threading.Lock()
        with self._conn.transaction():
            self._conn.execute(SCHEMA_SQL)

    def append(self, entry: AuditEntry) -> None:
        self.append_many([entry])

    def append_many(self, entries: List[AuditEntry]) -> None:
        """Insert all entries in one transaction."""
        rows = [
            (
                e.id,
                e.table,
                e.event,
                e.composite_id,
                e.value,
                e.old_value,
                e.created_at,
            )
            for e in entries
        ]
        with self._lock, self._conn.transaction():
            self._conn.executemany(
                """
                INSERT INTO audit_log
                    (id, table_name, event, composite_id, value, old_value, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                rows,
            )

    def entries(self, table: Optional[str] = None, limit: Optional[int] = None) -> List[AuditEntry]:
        """Stored entries, oldest first.

        Args:
            table: Only entries of this table
            limit: Only the newest ``limit`` entries
        """
        query = "SELECT * FROM audit_log"
        params: tuple = ()
        if table is not None:
            query += " WHERE table_name = ?"
            params = (table,)
        query += " ORDER BY seq DESC"
        if limit:
            query += f" LIMIT {int(limit)}"

        with self._lock:
            rows = self._conn.execute(query, params).fetchall()

        return [
            AuditEntry(
                id=row["id"],
                table=row["table_name"],
                event=row["event"],
                composite_id=row["composite_id"],
                value=row["value"],
                old_value=row["old_value"],
                created_at=row["created_at"],
            )
            for row in reversed(rows)
        ]

    def close(self) -> None:
        self._conn.close()
