"""Tests for the millisecond timing helpers."""

from __future__ import annotations

import time

import pytest

from storage_bench.common.timing import Stopwatch, elapsed_millis, measure


def test_elapsed_millis_rounds_down():
    assert elapsed_millis(1.0, 1.0159) == 15


def test_elapsed_millis_never_negative():
    assert elapsed_millis(5.0, 4.0) == 0


def test_measure_returns_result_and_duration():
    result, millis = measure(lambda a, b=0: a + b, 2, b=3)
    assert result == 5
    assert millis >= 0


def test_measure_counts_sleep():
    _, millis = measure(time.sleep, 0.02)
    assert millis >= 15


def test_measure_propagates_exceptions():
    def boom():
        raise KeyError("x")

    with pytest.raises(KeyError):
        measure(boom)


class TestStopwatch:
    def test_unstarted_reads_zero(self):
        sw = Stopwatch()
        assert sw.elapsed_millis == 0
        assert not sw.running

    def test_reading_is_frozen_after_exit(self):
        with Stopwatch() as sw:
            assert sw.running
            time.sleep(0.01)
        first = sw.elapsed_millis
        time.sleep(0.01)
        assert sw.elapsed_millis == first
        assert not sw.running

    def test_reading_taken_when_block_raises(self):
        sw = Stopwatch()
        with pytest.raises(RuntimeError):
            with sw:
                raise RuntimeError("fail")
        assert sw.elapsed_millis >= 0
        assert not sw.running
