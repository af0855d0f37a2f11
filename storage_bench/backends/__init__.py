"""
Storage backend adapters for storage-bench.

See backends/base.py for the BackendAdapter ABC and registry, and one module
per engine:

- backends/sqlite_batch.py    – batched sqlite3 writes ("relational-batch")
- backends/sqlalchemy_core.py – SQLAlchemy Core statements ("typed-query-builder")
- backends/kvault_store.py    – KohakuVault object slots ("key-object-store")
- backends/zodb_store.py      – ZODB transactions ("embedded-object-database")

Adapter modules register themselves on import; call
:func:`~storage_bench.backends.base.load_all_backends` to import them all:

    from storage_bench.backends.base import create_adapter, load_all_backends
    load_all_backends()
    adapter = create_adapter("sqlite_batch", path="bench.db")
"""

from .base import (
    BUILTIN_BACKEND_MODULES,
    BackendAdapter,
    create_adapter,
    get_adapter_class,
    list_backends,
    load_all_backends,
    register_adapter,
)

__all__ = [
    "BUILTIN_BACKEND_MODULES",
    "BackendAdapter",
    "create_adapter",
    "get_adapter_class",
    "list_backends",
    "load_all_backends",
    "register_adapter",
]
