"""
Key-object-store adapter on KohakuVault: records are appended as serialized
objects to a :class:`kohakuvault.KVault` under auto-increment slot keys, the
way an append-only box stores them.

Finding a record by identity means scanning the stored objects unless the
adapter keeps its identity -> slot index (``use_index=True``, the default).
An update loads the object, mutates it and persists that single object.

Partial application
-------------------
This store has no transactions. Each record is written on its own; a write
that fails is logged at WARNING, counted in :attr:`KVaultStoreAdapter.skipped_writes`
and skipped, and the batch still reports success. Callers must not assume
all-or-nothing semantics from this backend.
"""

from __future__ import annotations

import json
import logging
import os
from collections.abc import Iterator, Sequence
from dataclasses import asdict, dataclass

from ..common.models import Record
from .base import BackendAdapter, register_adapter

logger = logging.getLogger(__name__)

SLOT_PREFIX = "slot:"
NEXT_SLOT_KEY = "meta:next_slot"


def slot_key(slot: int) -> str:
    return f"{SLOT_PREFIX}{slot:08d}"


@dataclass
class StoredItem:
    """Mutable object persisted in the vault; one per identity."""

    id: int
    name: str
    value: str

    def to_bytes(self) -> bytes:
        return json.dumps(asdict(self), separators=(",", ":")).encode("utf-8")

    @classmethod
    def from_bytes(cls, raw: bytes) -> StoredItem:
        data = json.loads(raw)
        return cls(id=int(data["id"]), name=data["name"], value=data["value"])

    def to_record(self) -> Record:
        return Record(id=self.id, name=self.name, value=self.value)


@register_adapter("kvault_store")
class KVaultStoreAdapter(BackendAdapter):
    """Append-and-mutate object store backed by KohakuVault.

    Parameters
    ----------
    path:
        Vault database file, or ``":memory:"``.
    use_index:
        Keep an in-memory identity -> slot index, built by one scan on
        :meth:`open`. When ``False`` every update scans the stored objects.
    cache_mb:
        Size of KVault's write-back cache; ``0`` disables it. The cache is
        flushed once at the end of every batch.
    """

    display_name = "KVault"

    def __init__(self, path: str = ":memory:", use_index: bool = True, cache_mb: int = 16):
        super().__init__()
        if path != ":memory:" and os.path.isdir(path):
            raise ValueError(f"Path points to a directory, expected file: {path}")
        if cache_mb < 0:
            raise ValueError(f"cache_mb must be >= 0; got {cache_mb}")
        self.path = path
        self.use_index = use_index
        self.cache_mb = cache_mb
        self.skipped_writes = 0
        self._vault = None
        self._index: dict[int, int] = {}
        self._next_slot = 0

    @classmethod
    def is_available(cls) -> bool:
        try:
            import kohakuvault  # noqa: F401

            return True
        except ImportError:
            return False

    def _open(self) -> None:
        from kohakuvault import KVault

        if self.path != ":memory:":
            parent = os.path.dirname(self.path)
            if parent:
                os.makedirs(parent, exist_ok=True)
        vault = KVault(self.path)
        try:
            self._vault = vault
            self._next_slot = self._read_next_slot()
            self._index = self._scan_index() if self.use_index else {}
            if self.cache_mb > 0:
                cap = self.cache_mb * 1024 * 1024
                vault.enable_cache(cap_bytes=cap, flush_threshold=cap // 4)
        except Exception:
            self._vault = None
            self._index = {}
            vault.close()
            raise
        logger.debug(f"{self.display_name} opened with {self._next_slot} stored objects")

    def _close(self) -> None:
        if self._vault is not None:
            try:
                self._flush()
            finally:
                self._vault.close()
                self._vault = None
        self._index = {}

    # -- lookup -------------------------------------------------------------

    def _read_next_slot(self) -> int:
        try:
            raw = self._vault[NEXT_SLOT_KEY]
        except KeyError:
            return 0
        return int(raw)

    def _load(self, slot: int) -> StoredItem:
        return StoredItem.from_bytes(self._vault[slot_key(slot)])

    def _iter_items(self) -> Iterator[tuple[int, StoredItem]]:
        for slot in range(self._next_slot):
            yield slot, self._load(slot)

    def _scan_index(self) -> dict[int, int]:
        return {item.id: slot for slot, item in self._iter_items()}

    def _find_slot(self, record_id: int) -> int | None:
        if self.use_index:
            return self._index.get(record_id)
        for slot, item in self._iter_items():
            if item.id == record_id:
                return slot
        return None

    # -- writes -------------------------------------------------------------

    def _put(self, slot: int, item: StoredItem) -> None:
        self._vault[slot_key(slot)] = item.to_bytes()

    def _flush(self) -> None:
        if self.cache_mb > 0:
            self._vault.flush_cache()

    def _skip(self, op: str, record: Record, error: Exception) -> None:
        self.skipped_writes += 1
        logger.warning(f"{self.display_name} {op} skipped id={record.id}: {error}")

    def _bulk_insert(self, records: Sequence[Record]) -> None:
        # Without a persistent index, one scan per batch finds existing slots.
        index = self._index if self.use_index else self._scan_index()
        start_slot = self._next_slot
        for record in records:
            slot = index.get(record.id)
            new_slot = slot is None
            if new_slot:
                slot = self._next_slot
            try:
                self._put(slot, StoredItem(record.id, record.name, record.value))
            except Exception as e:
                self._skip("insert", record, e)
                continue
            if new_slot:
                self._next_slot += 1
                index[record.id] = slot
        if self._next_slot != start_slot:
            self._vault[NEXT_SLOT_KEY] = str(self._next_slot).encode("ascii")
        self._flush()

    def _bulk_update(self, records: Sequence[Record]) -> None:
        missing = 0
        for record in records:
            slot = self._find_slot(record.id)
            if slot is None:
                missing += 1
                continue
            try:
                item = self._load(slot)
                item.name = record.name
                item.value = record.value
                self._put(slot, item)
            except Exception as e:
                self._skip("update", record, e)
        self._flush()
        if missing:
            logger.debug(f"{self.display_name} update skipped {missing} unknown identities")

    # -- reads --------------------------------------------------------------

    def _get(self, record_id: int) -> Record | None:
        slot = self._find_slot(record_id)
        if slot is None:
            return None
        return self._load(slot).to_record()

    def _count(self) -> int:
        return self._next_slot
