"""CLI entry point for storage-bench.

Pushes one dataset through the selected storage backends and prints the
latest populate/update duration per backend.

Usage examples:

    python -m storage_bench --synthetic 1000
    python -m storage_bench --backend sqlite_batch --backend zodb_store --synthetic 500
    python -m storage_bench --backend all --operation populate --url http://localhost:8000/items
    python -m storage_bench --config my_bench.yaml --concurrent --plot results/bench.png
    python -m storage_bench --list-backends

"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from collections.abc import Sequence

logger = logging.getLogger("storage_bench")


def _build_source(args: argparse.Namespace, config):
    from storage_bench.common.dataset import HttpDatasetSource, SyntheticDatasetSource

    if args.synthetic is not None:
        return SyntheticDatasetSource(count=args.synthetic, seed=config.dataset.seed)
    url = args.url or config.dataset.url
    if not url:
        return SyntheticDatasetSource(
            count=config.dataset.synthetic_count, seed=config.dataset.seed
        )
    return HttpDatasetSource(url, timeout=config.dataset.timeout_s)


def _build_adapters(names: list[str], config, data_dir: str) -> tuple[dict, list[str]]:
    """Create adapters by name; returns the adapters and the names that failed."""
    from storage_bench.backends.base import create_adapter

    adapters = {}
    failed: list[str] = []
    for name in names:
        options = config.backend(name).resolve_options(data_dir)
        try:
            adapters[name] = create_adapter(name, **options)
        except (TypeError, ValueError, RuntimeError) as exc:
            logger.error(f"Cannot create backend '{name}': {exc}")
            failed.append(name)
    return adapters, failed


async def _run(harness, operations, concurrent: bool):
    return await harness.run_all(operations=operations, concurrent=concurrent)


def main(argv: Sequence[str] | None = None) -> int:
    from storage_bench.common.cli_args import (
        add_bench_args,
        build_run_config,
        resolve_backends,
        resolve_operations,
        setup_logging,
        validate_bench_args,
    )

    parser = argparse.ArgumentParser(
        prog="storage-bench",
        description="Multi-backend storage benchmark",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""\
Examples:
    # Populate then update 1000 generated records in every configured backend
    python -m storage_bench --synthetic 1000

    # Only the SQLite adapters, populate only, data fetched over HTTP
    python -m storage_bench -b sqlite_batch -b sqlalchemy_core -o populate \\
        --url http://localhost:8000/items

    # All registered backends at once, with a bar chart
    python -m storage_bench -b all --synthetic 5000 --concurrent --plot bench.png

    # Validate config and backend options only
    python -m storage_bench --dry-run
""",
    )
    add_bench_args(parser)
    args = parser.parse_args(argv)

    setup_logging(args.verbose, args.log_file)

    # Import here so --help is fast even without the engine libraries loaded.
    from storage_bench.backends.base import get_adapter_class, load_all_backends
    from storage_bench.common.errors import BenchmarkError, ConfigError
    from storage_bench.common.registry import ResultRegistry
    from storage_bench.common.report import format_snapshot, plot_results
    from storage_bench.config.config_loader import ConfigLoader
    from storage_bench.runner import BenchmarkHarness

    available = load_all_backends()

    if args.list_backends:
        for name in available:
            cls = get_adapter_class(name)
            status = "available" if cls.is_available() else "not installed"
            print(f"{name:<18} {cls.display_name:<12} {status}")
        return 0

    validate_bench_args(args, available)

    config_loader = ConfigLoader()
    try:
        config = (
            config_loader.load(args.config)
            if args.config
            else config_loader.get_default_config()
        )
    except (ConfigError, FileNotFoundError) as exc:
        logger.error(f"Configuration error: {exc}")
        return 1

    data_dir = args.data_dir or config.storage.data_dir
    backend_names = resolve_backends(
        args.backend, [b.name for b in config.enabled_backends()], available
    )
    operations = resolve_operations(args.operation)
    run_cfg = build_run_config(args, backends=backend_names, data_dir=data_dir)
    logger.debug(f"Run config: {run_cfg}")

    if not backend_names:
        logger.error("No backends selected")
        return 1

    adapters, failed = _build_adapters(backend_names, config, data_dir)

    if args.dry_run:
        print("[DRY RUN] Backends:")
        for name, adapter in adapters.items():
            print(f"  {name} ({adapter.display_name})")
        print(f"[DRY RUN] Operations: {', '.join(op.value for op in operations)}")
        print(f"[DRY RUN] Data dir: {data_dir}")
        if failed:
            print(f"[DRY RUN] Invalid backends: {', '.join(failed)}")
            return 1
        print("[DRY RUN] Config validation passed.")
        return 0

    opened = {}
    for name, adapter in adapters.items():
        try:
            adapter.open()
        except Exception as exc:  # noqa: BLE001
            logger.error(f"Cannot open backend '{name}': {exc}")
            failed.append(name)
            continue
        opened[name] = adapter

    registry = ResultRegistry()
    harness = BenchmarkHarness(_build_source(args, config), opened, registry=registry)
    try:
        outcomes = asyncio.run(_run(harness, operations, args.concurrent)) if opened else []
    finally:
        harness.close_all()

    errors = [o for o in outcomes if isinstance(o, BenchmarkError)]

    print()
    print(format_snapshot(harness.snapshot()))

    plot_path = args.plot or config.output.plot_path
    if plot_path:
        plot_results(registry, plot_path)

    if errors or failed:
        print(f"\n{len(errors)} run(s) failed; {len(failed)} backend(s) unavailable")
        return 1
    return 0


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
