"""Monotonic millisecond timing helpers."""

from __future__ import annotations

import time
from collections.abc import Callable
from typing import Any, TypeVar

T = TypeVar("T")


def elapsed_millis(start: float, end: float) -> int:
    """Whole milliseconds between two ``time.perf_counter()`` readings, >= 0."""
    return max(0, int((end - start) * 1000))


def measure(fn: Callable[..., T], *args: Any, **kwargs: Any) -> tuple[T, int]:
    """Call *fn* and return ``(result, elapsed_millis)``.

    Exceptions raised by *fn* propagate unchanged; use :class:`Stopwatch` when
    the duration of a failing call is also needed.
    """
    start = time.perf_counter()
    result = fn(*args, **kwargs)
    end = time.perf_counter()
    return result, elapsed_millis(start, end)


class Stopwatch:
    """Context manager measuring the enclosed block in milliseconds.

    The reading is taken on exit whether the block returns or raises::

        with Stopwatch() as sw:
            adapter.bulk_insert(records)
        sw.elapsed_millis
    """

    def __init__(self) -> None:
        self._start: float | None = None
        self._end: float | None = None

    def __enter__(self) -> Stopwatch:
        self._start = time.perf_counter()
        self._end = None
        return self

    def __exit__(self, *exc_info: object) -> None:
        self._end = time.perf_counter()

    @property
    def running(self) -> bool:
        return self._start is not None and self._end is None

    @property
    def elapsed_millis(self) -> int:
        if self._start is None:
            return 0
        end = self._end if self._end is not None else time.perf_counter()
        return elapsed_millis(self._start, end)
