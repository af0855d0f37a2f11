"""Rendering of session results.

- :func:`format_snapshot` - text list of ``label  N ms`` lines
- :func:`results_frame`   - one row per recorded result
- :func:`pivot_frame`     - backend x operation table of milliseconds
- :func:`plot_results`    - grouped bar chart PNG
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from pathlib import Path

import matplotlib

matplotlib.use("Agg")

import matplotlib.pyplot as plt  # noqa: E402
import pandas as pd  # noqa: E402

from .registry import ResultRegistry  # noqa: E402

logger = logging.getLogger(__name__)

FRAME_COLUMNS: tuple[str, ...] = ("backend", "operation", "label", "elapsed_millis")
SNAPSHOT_HEADING = "Insert/Update times"


def format_snapshot(snapshot: Sequence[tuple[str, int]], heading: str = SNAPSHOT_HEADING) -> str:
    """Render ``(label, elapsed_millis)`` pairs as aligned text lines."""
    lines = [heading, "-" * len(heading)]
    if not snapshot:
        lines.append("(no results yet)")
        return "\n".join(lines)

    width = max(len(label) for label, _ in snapshot)
    for label, millis in snapshot:
        lines.append(f"{label.ljust(width)}  {millis} ms")
    return "\n".join(lines)


def results_frame(registry: ResultRegistry) -> pd.DataFrame:
    rows = [
        {
            "backend": r.backend_name,
            "operation": r.operation_name,
            "label": r.label,
            "elapsed_millis": r.elapsed_millis,
        }
        for r in registry.results()
    ]
    return pd.DataFrame(rows, columns=list(FRAME_COLUMNS))


def pivot_frame(registry: ResultRegistry) -> pd.DataFrame:
    """Backend x operation milliseconds; missing pairs are NaN.

    Rows and columns keep first-recorded order.
    """
    df = results_frame(registry)
    if df.empty:
        return pd.DataFrame()

    pivot = df.pivot(index="backend", columns="operation", values="elapsed_millis")
    pivot = pivot.reindex(index=list(dict.fromkeys(df["backend"])))
    pivot = pivot.reindex(columns=list(dict.fromkeys(df["operation"])))
    pivot.columns.name = None
    return pivot


def plot_results(registry: ResultRegistry, output_path: str | Path) -> Path | None:
    """Write a grouped bar chart of the current results.

    Returns the written path, or ``None`` when there is nothing to plot.
    """
    pivot = pivot_frame(registry)
    if pivot.empty:
        logger.warning("No results recorded; skipping plot")
        return None

    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    ax = pivot.plot(kind="bar", figsize=(10, 6))
    ax.set_title("Storage Backend Comparison")
    ax.set_xlabel("Backend")
    ax.set_ylabel("Elapsed (ms)")
    plt.xticks(rotation=30, ha="right")
    plt.tight_layout()
    plt.savefig(output_path, dpi=150)
    plt.close()

    logger.info(f"Plot written to {output_path}")
    return output_path
