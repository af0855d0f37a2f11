"""Error taxonomy for storage-bench.

- :class:`BenchmarkError`        – base for everything the runner hands back.
- :class:`DatasetFetchError`     – the dataset could not be fetched or decoded.
- :class:`BackendOperationError` – an adapter write failed; carries the
  backend name, the operation and the underlying cause.
- :class:`StorageError`          – raised inside adapters; the runner wraps it
  into :class:`BackendOperationError` before it crosses the ``run`` boundary.
- :class:`ConfigError`           – invalid configuration file or options.
"""

from __future__ import annotations


class BenchmarkError(Exception):
    """Base class for errors returned by :meth:`BenchmarkRunner.run`."""


class DatasetFetchError(BenchmarkError):
    """Network, HTTP status or payload decode failure while fetching records."""

    def __init__(self, message: str, *, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class BackendOperationError(BenchmarkError):
    """Adapter-level write failure. Prior timing results stay intact."""

    def __init__(self, backend_name: str, operation_name: str, cause: BaseException):
        super().__init__(f"{backend_name} {operation_name} failed: {cause}")
        self.backend_name = backend_name
        self.operation_name = operation_name
        self.cause = cause


class StorageError(Exception):
    """Adapter-internal storage failure."""


class ConfigError(ValueError):
    """Invalid configuration."""
