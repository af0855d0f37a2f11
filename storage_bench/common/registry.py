"""Last-write-wins store of the most recent timing per (backend, operation)."""

from __future__ import annotations

import logging
import threading

from .models import TimingResult

logger = logging.getLogger(__name__)


class ResultRegistry:
    """Thread-safe mapping of ``(backend_name, operation_name)`` to a result.

    Only the latest run per key is kept. Iteration order is the order in which
    each key was first written; overwriting a key keeps its position so a
    display built from :meth:`snapshot` stays stable across reruns.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        # dict preserves insertion order and keeps it on value reassignment.
        self._results: dict[tuple[str, str], TimingResult] = {}

    def record(
        self,
        backend_name: str,
        operation_name: str,
        elapsed_millis: int,
        label: str | None = None,
    ) -> TimingResult:
        """Upsert the duration for a (backend, operation) pair."""
        result = TimingResult(
            backend_name=backend_name,
            operation_name=operation_name,
            elapsed_millis=int(elapsed_millis),
            label=label or "",
        )
        with self._lock:
            previous = self._results.get(result.key)
            self._results[result.key] = result
        if previous is not None:
            logger.debug(
                f"{result.label}: {previous.elapsed_millis} ms -> {result.elapsed_millis} ms"
            )
        return result

    def get(self, backend_name: str, operation_name: str) -> TimingResult | None:
        with self._lock:
            return self._results.get((backend_name, operation_name))

    def results(self) -> list[TimingResult]:
        """All results in first-write order."""
        with self._lock:
            return list(self._results.values())

    def snapshot(self) -> list[tuple[str, int]]:
        """Return ``(label, elapsed_millis)`` pairs for display."""
        return [(r.label, r.elapsed_millis) for r in self.results()]

    def __len__(self) -> int:
        with self._lock:
            return len(self._results)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._results
