"""
Backend adapter interface for storage-bench.

Defines the uniform contract that lets the same dataset be written through
structurally different storage engines and timed comparably.

Architecture
------------
- :class:`BackendAdapter`      – ABC that each storage engine adapter implements.
- :func:`register_adapter`     – decorator to register an adapter class by name.
- :func:`get_adapter_class`    – look up a registered adapter class by name.
- :func:`create_adapter`       – factory returning an adapter instance by name.
- :func:`list_backends`        – enumerate all registered backend names.
- :func:`load_all_backends`    – import the built-in adapter modules.

Adding a new backend
--------------------
1. Create ``storage_bench/backends/<name>.py``.
2. Implement :class:`BackendAdapter` and decorate with ``@register_adapter("<name>")``.
3. Add the module to :data:`BUILTIN_BACKEND_MODULES` or import it yourself.

Contract notes
--------------
* ``bulk_update`` is a no-op for identities that are not stored, in every
  adapter. It never creates records.
* Operations on one adapter instance are serialized by ``self._write_lock``;
  adapters are called from worker threads, one call at a time.
  :meth:`BackendAdapter.timed_write` starts its clock once the lock is held.
* Engine exceptions are wrapped in :class:`StorageError` before they leave an
  operation.
"""

from __future__ import annotations

import importlib
import logging
import threading
from abc import ABC, abstractmethod
from collections.abc import Sequence
from typing import Any

from ..common.errors import StorageError
from ..common.models import Operation, Record
from ..common.timing import measure

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Adapter interface
# ---------------------------------------------------------------------------


class BackendAdapter(ABC):
    """Abstract base class for storage backend adapters.

    An adapter is a stateful handle bound to one opened storage resource. It
    owns its connection and any lookup index exclusively; nothing else holds
    the engine handle. Lifecycle: :meth:`open` once, many operation calls,
    :meth:`close` at session end.

    Subclasses implement the ``_open``/``_close``/``_bulk_insert``/
    ``_bulk_update``/``_get``/``_count`` hooks; the public methods add the
    open-state check, write serialization and error wrapping.
    """

    #: Registry key; set by :func:`register_adapter`.
    name: str = ""
    #: Human-readable label used in result labels (e.g. ``"SQLite"``).
    display_name: str = ""

    def __init__(self) -> None:
        self._write_lock = threading.Lock()
        self._is_open = False

    @classmethod
    def is_available(cls) -> bool:
        """Return ``True`` if the engine library is importable right now."""
        return True

    # -- lifecycle ----------------------------------------------------------

    @property
    def is_open(self) -> bool:
        return self._is_open

    def open(self) -> None:
        """Open the storage resource and create its schema if needed."""
        if self._is_open:
            return
        try:
            self._open()
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"{self.display_name}: open failed: {e}") from e
        self._is_open = True
        logger.debug(f"{self.display_name} opened")

    def close(self) -> None:
        """Release the storage resource. Safe to call more than once."""
        if not self._is_open:
            return
        with self._write_lock:
            self._is_open = False
            self._close()
        logger.debug(f"{self.display_name} closed")

    def __enter__(self) -> BackendAdapter:
        self.open()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    # -- operations ---------------------------------------------------------

    def bulk_insert(self, records: Sequence[Record]) -> None:
        """Insert or overwrite every record by identity.

        Raises
        ------
        StorageError
            If the batch could not be applied.
        """
        self._run_write("bulk_insert", self._bulk_insert, records)

    def bulk_update(self, records: Sequence[Record]) -> None:
        """Overwrite ``name``/``value`` of every stored record by identity.

        Identities that are not stored are skipped.

        Raises
        ------
        StorageError
            If the batch could not be applied.
        """
        self._run_write("bulk_update", self._bulk_update, records)

    def timed_write(self, operation: Operation | str, records: Sequence[Record]) -> int:
        """Apply one populate or update batch and return its duration in ms.

        The clock starts after this adapter's lock is acquired, so waiting
        behind another operation on the same adapter is not counted.

        Raises
        ------
        StorageError
            If the batch could not be applied.
        """
        op = Operation.parse(operation)
        if op is Operation.POPULATE:
            return self._run_write("bulk_insert", self._bulk_insert, records)
        return self._run_write("bulk_update", self._bulk_update, records)

    def get(self, record_id: int) -> Record | None:
        """Read one record back by identity, or ``None`` if absent."""
        self._ensure_open()
        with self._write_lock:
            try:
                return self._get(record_id)
            except Exception as e:
                raise StorageError(f"{self.display_name}: get({record_id}) failed: {e}") from e

    def count(self) -> int:
        """Number of stored records."""
        self._ensure_open()
        with self._write_lock:
            try:
                return self._count()
            except Exception as e:
                raise StorageError(f"{self.display_name}: count failed: {e}") from e

    # -- helpers ------------------------------------------------------------

    def _ensure_open(self) -> None:
        if not self._is_open:
            raise StorageError(f"{self.display_name} adapter is not open")

    def _run_write(self, op: str, impl: Any, records: Sequence[Record]) -> int:
        self._ensure_open()
        with self._write_lock:
            try:
                _, elapsed = measure(impl, records)
                return elapsed
            except StorageError:
                raise
            except Exception as e:
                raise StorageError(f"{self.display_name}: {op} failed: {e}") from e

    # -- hooks --------------------------------------------------------------

    @abstractmethod
    def _open(self) -> None: ...

    @abstractmethod
    def _close(self) -> None: ...

    @abstractmethod
    def _bulk_insert(self, records: Sequence[Record]) -> None: ...

    @abstractmethod
    def _bulk_update(self, records: Sequence[Record]) -> None: ...

    @abstractmethod
    def _get(self, record_id: int) -> Record | None: ...

    @abstractmethod
    def _count(self) -> int: ...


# ---------------------------------------------------------------------------
# Registry and factory
# ---------------------------------------------------------------------------

_REGISTRY: dict[str, type[BackendAdapter]] = {}

BUILTIN_BACKEND_MODULES: tuple[str, ...] = (
    "storage_bench.backends.sqlite_batch",
    "storage_bench.backends.sqlalchemy_core",
    "storage_bench.backends.kvault_store",
    "storage_bench.backends.zodb_store",
)


def register_adapter(name: str):
    """Class decorator: register a :class:`BackendAdapter` subclass by name.

    Example
    -------
    .. code-block:: python

        @register_adapter("my_engine")
        class MyEngineAdapter(BackendAdapter):
            ...
    """

    def decorator(cls: type[BackendAdapter]) -> type[BackendAdapter]:
        key = name.lower()
        cls.name = key
        if not cls.display_name:
            cls.display_name = key
        _REGISTRY[key] = cls
        return cls

    return decorator


def get_adapter_class(backend: str) -> type[BackendAdapter]:
    """Return the adapter class registered under *backend* (case-insensitive).

    Raises
    ------
    ValueError
        If *backend* has not been registered.
    """
    key = backend.lower()
    if key not in _REGISTRY:
        available = ", ".join(sorted(_REGISTRY)) or "(none registered)"
        raise ValueError(
            f"Unknown backend '{backend}'. Available backends: {available}. "
            f"Make sure the corresponding adapter module is imported."
        )
    return _REGISTRY[key]


def create_adapter(backend: str, **options: Any) -> BackendAdapter:
    """Instantiate the adapter registered under *backend* with *options*.

    The adapter is returned unopened.

    Raises
    ------
    ValueError
        If *backend* has not been registered.
    RuntimeError
        If the backend is registered but its engine library is not installed.
    """
    cls = get_adapter_class(backend)
    if not cls.is_available():
        raise RuntimeError(
            f"Backend '{backend}' is registered but not available in this environment. "
            f"Ensure the required packages are installed and try again."
        )
    return cls(**options)


def list_backends() -> list[str]:
    """Return sorted list of all currently registered backend names."""
    return sorted(_REGISTRY)


def load_all_backends() -> list[str]:
    """Import every built-in adapter module so they register themselves."""
    for module_name in BUILTIN_BACKEND_MODULES:
        importlib.import_module(module_name)
    return list_backends()
