"""
Relational-batch adapter: every row operation of a batch goes through one
``executemany`` inside one transaction on a :mod:`sqlite3` connection.

Conflict policy on insert is replace-on-conflict (``INSERT OR REPLACE``).
Updates of identities that are not stored affect zero rows.
"""

from __future__ import annotations

import logging
import os
import sqlite3
from collections.abc import Sequence

from ..common.models import Record
from .base import BackendAdapter, register_adapter

logger = logging.getLogger(__name__)

SYNCHRONOUS_MODES: tuple[str, ...] = ("OFF", "NORMAL", "FULL", "EXTRA")

CREATE_TABLE_SQL = """
CREATE TABLE IF NOT EXISTS items (
    id INTEGER PRIMARY KEY,
    name TEXT NOT NULL,
    value TEXT NOT NULL
)
"""
INSERT_SQL = "INSERT OR REPLACE INTO items (id, name, value) VALUES (?, ?, ?)"
UPDATE_SQL = "UPDATE items SET name = ?, value = ? WHERE id = ?"


@register_adapter("sqlite_batch")
class SQLiteBatchAdapter(BackendAdapter):
    """Batched writes against a SQLite database file.

    Parameters
    ----------
    path:
        Database file, or ``":memory:"``.
    synchronous:
        ``PRAGMA synchronous`` level (one of :data:`SYNCHRONOUS_MODES`).
    journal_mode:
        ``PRAGMA journal_mode`` for file databases (default ``WAL``).
    """

    display_name = "SQLite"

    def __init__(
        self,
        path: str = ":memory:",
        synchronous: str = "NORMAL",
        journal_mode: str = "WAL",
    ):
        super().__init__()
        if path != ":memory:" and os.path.isdir(path):
            raise ValueError(f"Path points to a directory, expected file: {path}")
        synchronous = synchronous.upper()
        if synchronous not in SYNCHRONOUS_MODES:
            raise ValueError(
                f"synchronous must be one of {', '.join(SYNCHRONOUS_MODES)}; got {synchronous}"
            )
        self.path = path
        self.synchronous = synchronous
        self.journal_mode = journal_mode.upper()
        self._conn: sqlite3.Connection | None = None

    def _open(self) -> None:
        if self.path != ":memory:":
            parent = os.path.dirname(self.path)
            if parent:
                os.makedirs(parent, exist_ok=True)
        # Calls arrive on worker threads; the base class lock serializes them.
        conn = sqlite3.connect(self.path, check_same_thread=False)
        try:
            if self.path != ":memory:":
                jm = conn.execute(f"PRAGMA journal_mode={self.journal_mode}").fetchone()[0]
                if jm.upper() != self.journal_mode:
                    logger.warning(
                        f"journal_mode_unexpected: wanted {self.journal_mode}, got {jm}"
                    )
            conn.execute(f"PRAGMA synchronous={self.synchronous}")
            with conn:
                conn.execute(CREATE_TABLE_SQL)
        except Exception:
            conn.close()
            raise
        self._conn = conn

    def _close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    def _bulk_insert(self, records: Sequence[Record]) -> None:
        rows = [(r.id, r.name, r.value) for r in records]
        # ``with conn`` commits on success and rolls the whole batch back on error.
        with self._conn:
            self._conn.executemany(INSERT_SQL, rows)

    def _bulk_update(self, records: Sequence[Record]) -> None:
        rows = [(r.name, r.value, r.id) for r in records]
        with self._conn:
            cursor = self._conn.executemany(UPDATE_SQL, rows)
        logger.debug(f"{self.display_name} update matched {cursor.rowcount} of {len(rows)} rows")

    def _get(self, record_id: int) -> Record | None:
        row = self._conn.execute(
            "SELECT id, name, value FROM items WHERE id = ?", (record_id,)
        ).fetchone()
        if row is None:
            return None
        return Record(id=row[0], name=row[1], value=row[2])

    def _count(self) -> int:
        return self._conn.execute("SELECT COUNT(*) FROM items").fetchone()[0]
