"""Benchmark harness that drives one dataset through several storage engines.

The package times bulk insert and bulk update operations against structurally
different persistence backends (a batched relational engine, a typed query
builder over the same engine, a key-object store and an embedded object
database) behind one adapter contract, and reports comparable durations.
"""

from ._version import __author__, __email__, __version__

__all__ = ["__version__", "__author__", "__email__"]
