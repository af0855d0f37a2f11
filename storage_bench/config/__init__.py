"""Configuration module for storage-bench."""

from .config_loader import (
    BackendConfig,
    BenchConfig,
    ConfigLoader,
    DatasetConfig,
    OutputConfig,
    StorageConfig,
)

__all__ = [
    "BackendConfig",
    "BenchConfig",
    "ConfigLoader",
    "DatasetConfig",
    "OutputConfig",
    "StorageConfig",
]
