"""Shared argparse helpers for the storage-bench entry point.

Flags
-----
- ``--backend NAME|all``            – backend(s) to run; repeatable
- ``--operation populate|update|all`` – operation(s) to trigger per backend
- ``--url`` / ``--synthetic N``     – dataset source (mutually exclusive)
- ``--config``                      – YAML config file
- ``--data-dir``                    – directory for backend storage files
- ``--concurrent``                  – run different backends at the same time
- ``--plot``                        – write a bar chart PNG
- ``--verbose`` / ``--log-file``    – logging
- ``--list-backends`` / ``--dry-run``

:func:`build_run_config` serialises the parsed args into a plain ``dict`` so a
run can be logged with the exact settings it used.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Any

from .models import Operation

ALL = "all"
OPERATION_CHOICES: tuple[str, ...] = tuple(op.value for op in Operation) + (ALL,)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logging(verbose: bool = False, log_file: str | None = None) -> None:
    """Configure root logging: DEBUG when *verbose*, INFO otherwise."""
    log_level = logging.DEBUG if verbose else logging.INFO

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        level=log_level,
        format=LOG_FORMAT,
        datefmt=LOG_DATE_FORMAT,
        handlers=handlers,
        force=True,
    )


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------


def add_bench_args(parser: argparse.ArgumentParser) -> argparse.ArgumentParser:
    """Add the storage-bench flag set to *parser* and return it."""
    # ── Selection ───────────────────────────────────────────────────────────
    selection = parser.add_argument_group("selection")
    selection.add_argument(
        "--backend",
        "-b",
        action="append",
        default=None,
        metavar="NAME",
        help=(
            "Backend to benchmark; repeat for several, or 'all'. "
            "(default: the backends enabled in the config)"
        ),
    )
    selection.add_argument(
        "--operation",
        "-o",
        type=str.lower,
        default=ALL,
        choices=OPERATION_CHOICES,
        help="Operation to trigger per backend (default: all, populate then update).",
    )

    # ── Dataset ─────────────────────────────────────────────────────────────
    dataset = parser.add_argument_group("dataset")
    source = dataset.add_mutually_exclusive_group()
    source.add_argument("--url", type=str, help="JSON endpoint returning the record array.")
    source.add_argument(
        "--synthetic",
        type=int,
        metavar="N",
        help="Generate N records locally instead of fetching them.",
    )

    # ── Configuration / storage ─────────────────────────────────────────────
    parser.add_argument("--config", "-c", type=str, help="Path to a config YAML file.")
    parser.add_argument(
        "--data-dir",
        type=str,
        metavar="DIR",
        help="Directory for backend storage files (overrides the config).",
    )

    # ── Execution ───────────────────────────────────────────────────────────
    parser.add_argument(
        "--concurrent",
        action="store_true",
        default=False,
        help="Run different backends concurrently; operations per backend stay ordered.",
    )
    parser.add_argument("--plot", type=str, metavar="PATH", help="Write a bar chart PNG.")

    # ── Modifiers ───────────────────────────────────────────────────────────
    parser.add_argument(
        "--list-backends",
        action="store_true",
        default=False,
        help="List registered backends and exit.",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        default=False,
        help="Enable debug logging.",
    )
    parser.add_argument("--log-file", type=str, metavar="PATH", help="Also log to a file.")
    parser.add_argument(
        "--dry-run",
        action="store_true",
        default=False,
        help="Validate configuration and backends without running anything.",
    )
    return parser


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


def validate_bench_args(args: argparse.Namespace, available_backends: list[str]) -> None:
    """Validate *args*; exits through argparse's error path on failure."""
    errors: list[str] = []

    for name in args.backend or []:
        if name.lower() != ALL and name.lower() not in available_backends:
            errors.append(
                f"unknown backend '{name}'. Available: {', '.join(available_backends)}."
            )

    synthetic = getattr(args, "synthetic", None)
    if synthetic is not None and synthetic < 0:
        errors.append(f"--synthetic must be >= 0; got {synthetic}.")

    if errors:
        _fake_parser = argparse.ArgumentParser()
        _fake_parser.error("argument validation failed:\n  " + "\n  ".join(errors))


def resolve_backends(
    requested: list[str] | None, configured: list[str], available: list[str]
) -> list[str]:
    """Backends to run: the requested ones, every registered one for ``all``,
    or the configured ones when nothing was requested. Duplicates are dropped."""
    if not requested:
        return list(dict.fromkeys(configured))
    names: list[str] = []
    for name in requested:
        if name.lower() == ALL:
            names.extend(available)
        else:
            names.append(name.lower())
    return list(dict.fromkeys(names))


def resolve_operations(operation: str) -> list[Operation]:
    if operation == ALL:
        return [Operation.POPULATE, Operation.UPDATE]
    return [Operation.parse(operation)]


# ---------------------------------------------------------------------------
# Run config serialisation
# ---------------------------------------------------------------------------


def build_run_config(args: argparse.Namespace, **extra: Any) -> dict[str, Any]:
    cfg: dict[str, Any] = {
        "backend": getattr(args, "backend", None),
        "operation": getattr(args, "operation", ALL),
        "url": getattr(args, "url", None),
        "synthetic": getattr(args, "synthetic", None),
        "config": getattr(args, "config", None),
        "data_dir": getattr(args, "data_dir", None),
        "concurrent": getattr(args, "concurrent", False),
        "plot": getattr(args, "plot", None),
        "dry_run": getattr(args, "dry_run", False),
        "verbose": getattr(args, "verbose", False),
    }
    cfg.update(extra)
    return cfg
