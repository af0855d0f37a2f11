"""
storage-bench - Common Components
=================================

- models: data models (Record, Operation, TimingResult)
- errors: exception hierarchy
- timing: millisecond measurement helpers
- registry: last-write-wins result registry
- dataset: dataset sources (HTTP, static, synthetic)
- report: text/pandas/matplotlib rendering (import ``storage_bench.common.report``)
- cli_args: argparse helpers and logging setup
"""

from .cli_args import (
    add_bench_args,
    build_run_config,
    resolve_backends,
    resolve_operations,
    setup_logging,
    validate_bench_args,
)
from .dataset import (
    DatasetSource,
    HttpDatasetSource,
    StaticDatasetSource,
    SyntheticDatasetSource,
    decode_records,
)
from .errors import (
    BackendOperationError,
    BenchmarkError,
    ConfigError,
    DatasetFetchError,
    StorageError,
)
from .models import Operation, Record, TimingResult, default_label
from .registry import ResultRegistry
from .timing import Stopwatch, elapsed_millis, measure

__all__ = [
    # cli_args
    "add_bench_args",
    "build_run_config",
    "resolve_backends",
    "resolve_operations",
    "setup_logging",
    "validate_bench_args",
    # dataset
    "DatasetSource",
    "HttpDatasetSource",
    "StaticDatasetSource",
    "SyntheticDatasetSource",
    "decode_records",
    # errors
    "BackendOperationError",
    "BenchmarkError",
    "ConfigError",
    "DatasetFetchError",
    "StorageError",
    # models
    "Operation",
    "Record",
    "TimingResult",
    "default_label",
    # registry
    "ResultRegistry",
    # timing
    "Stopwatch",
    "elapsed_millis",
    "measure",
]
