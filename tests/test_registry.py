"""Tests for the last-write-wins ResultRegistry."""

from __future__ import annotations

import threading

from storage_bench.common.registry import ResultRegistry


def test_record_returns_result_with_label():
    registry = ResultRegistry()
    result = registry.record("sqlite_batch", "populate", 10, label="SQLite Populate")
    assert result.label == "SQLite Populate"
    assert registry.get("sqlite_batch", "populate") == result
    assert ("sqlite_batch", "populate") in registry
    assert len(registry) == 1


def test_get_missing_returns_none():
    assert ResultRegistry().get("sqlite_batch", "update") is None


def test_last_write_wins():
    registry = ResultRegistry()
    registry.record("zodb_store", "update", 50)
    registry.record("zodb_store", "update", 7)
    assert registry.get("zodb_store", "update").elapsed_millis == 7
    assert len(registry) == 1


def test_snapshot_keeps_first_write_order_across_overwrites():
    registry = ResultRegistry()
    registry.record("sqlite_batch", "populate", 10, label="SQLite Populate")
    registry.record("zodb_store", "populate", 20, label="ZODB Populate")
    registry.record("sqlite_batch", "update", 30, label="SQLite Update")
    registry.record("sqlite_batch", "populate", 5, label="SQLite Populate")

    assert registry.snapshot() == [
        ("SQLite Populate", 5),
        ("ZODB Populate", 20),
        ("SQLite Update", 30),
    ]


def test_results_returns_copy():
    registry = ResultRegistry()
    registry.record("a", "populate", 1)
    results = registry.results()
    results.clear()
    assert len(registry) == 1


def test_concurrent_records_are_all_kept():
    registry = ResultRegistry()
    backends = [f"backend_{i}" for i in range(16)]

    def worker(name: str) -> None:
        for millis in range(50):
            registry.record(name, "populate", millis)
            registry.record(name, "update", millis)

    threads = [threading.Thread(target=worker, args=(name,)) for name in backends]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(registry) == 32
    for name in backends:
        assert registry.get(name, "populate").elapsed_millis == 49
        assert registry.get(name, "update").elapsed_millis == 49
