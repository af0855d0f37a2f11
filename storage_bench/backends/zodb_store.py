"""
Embedded-object-database adapter on ZODB.

Records live as :class:`PersistentItem` objects in an ``LOBTree`` keyed by
identity at ``root["items"]``. Each bulk operation is one write transaction:
a failure anywhere aborts the whole batch. Updates do a point lookup by
identity inside the transaction and overwrite only objects that exist.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Sequence

import transaction
from BTrees.LOBTree import LOBTree
from persistent import Persistent

from ..common.models import Record
from .base import BackendAdapter, register_adapter

logger = logging.getLogger(__name__)

ROOT_KEY = "items"


class PersistentItem(Persistent):
    """Stored object; attribute writes mark it dirty for the next commit."""

    def __init__(self, id: int, name: str, value: str):
        self.id = id
        self.name = name
        self.value = value

    def to_record(self) -> Record:
        return Record(id=self.id, name=self.name, value=self.value)


@register_adapter("zodb_store")
class ZODBStoreAdapter(BackendAdapter):
    """Transactional object database backed by ZODB.

    Parameters
    ----------
    path:
        ``FileStorage`` file; ``None`` keeps the database in memory.
    """

    display_name = "ZODB"

    def __init__(self, path: str | None = None):
        super().__init__()
        if path is not None and os.path.isdir(path):
            raise ValueError(f"Path points to a directory, expected file: {path}")
        self.path = path
        self._db = None
        self._conn = None
        # Own manager, not the thread-local default: calls arrive on worker threads.
        self._tm = transaction.TransactionManager()

    @classmethod
    def is_available(cls) -> bool:
        try:
            import ZODB  # noqa: F401

            return True
        except ImportError:
            return False

    def _open(self) -> None:
        from ZODB import DB

        if self.path is None:
            db = DB(None)
        else:
            from ZODB.FileStorage import FileStorage

            parent = os.path.dirname(self.path)
            if parent:
                os.makedirs(parent, exist_ok=True)
            db = DB(FileStorage(self.path))

        try:
            conn = db.open(transaction_manager=self._tm)
            try:
                with self._tm:
                    root = conn.root()
                    if ROOT_KEY not in root:
                        root[ROOT_KEY] = LOBTree()
            except Exception:
                conn.close()
                raise
        except Exception:
            db.close()
            raise
        self._db = db
        self._conn = conn

    def _close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None
        if self._db is not None:
            self._db.close()
            self._db = None

    @property
    def _items(self) -> LOBTree:
        return self._conn.root()[ROOT_KEY]

    def _bulk_insert(self, records: Sequence[Record]) -> None:
        # ``with tm`` commits on success and aborts on any exception.
        with self._tm:
            items = self._items
            for record in records:
                existing = items.get(record.id)
                if existing is None:
                    items[record.id] = PersistentItem(record.id, record.name, record.value)
                else:
                    existing.name = record.name
                    existing.value = record.value

    def _bulk_update(self, records: Sequence[Record]) -> None:
        missing = 0
        with self._tm:
            items = self._items
            for record in records:
                existing = items.get(record.id)
                if existing is None:
                    missing += 1
                    continue
                existing.name = record.name
                existing.value = record.value
        if missing:
            logger.debug(f"{self.display_name} update skipped {missing} unknown identities")

    def _get(self, record_id: int) -> Record | None:
        with self._tm:
            item = self._items.get(record_id)
            return item.to_record() if item is not None else None

    def _count(self) -> int:
        with self._tm:
            return len(self._items)
