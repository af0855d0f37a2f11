"""Tests for BenchmarkRunner and BenchmarkHarness.

Async code is driven with ``asyncio.run``; adapters are the in-memory fakes
from tests/conftest.py unless a real engine is needed.
"""

from __future__ import annotations

import asyncio
import time

import pytest
from conftest import FailingSource, FakeAdapter

from storage_bench.common.dataset import StaticDatasetSource, SyntheticDatasetSource
from storage_bench.common.errors import (
    BackendOperationError,
    BenchmarkError,
    DatasetFetchError,
)
from storage_bench.common.models import Operation, Record, TimingResult
from storage_bench.common.registry import ResultRegistry
from storage_bench.runner import BenchmarkHarness, BenchmarkRunner

# ---------------------------------------------------------------------------
# BenchmarkRunner
# ---------------------------------------------------------------------------


class TestBenchmarkRunner:
    def test_success_records_result(self, fake_adapter, sample_records):
        runner = BenchmarkRunner()
        result = asyncio.run(
            runner.run(fake_adapter, Operation.POPULATE, StaticDatasetSource(sample_records))
        )

        assert isinstance(result, TimingResult)
        assert result.elapsed_millis >= 0
        assert result.label == "Fake Populate"
        assert runner.registry.get("fake", "populate") == result
        assert fake_adapter.calls == [("bulk_insert", 2)]

    def test_operation_name_dispatches_update(self, fake_adapter, sample_records):
        runner = BenchmarkRunner()
        asyncio.run(runner.run(fake_adapter, "update", StaticDatasetSource(sample_records)))
        assert fake_adapter.calls == [("bulk_update", 2)]
        assert ("fake", "update") in runner.registry

    def test_unknown_operation_raises(self, fake_adapter, sample_records):
        with pytest.raises(ValueError):
            asyncio.run(
                BenchmarkRunner().run(fake_adapter, "delete", StaticDatasetSource(sample_records))
            )

    def test_fetch_error_short_circuits_adapter(self, fake_adapter):
        source = FailingSource()
        runner = BenchmarkRunner()

        outcome = asyncio.run(runner.run(fake_adapter, Operation.POPULATE, source))

        assert outcome is source.error
        assert isinstance(outcome, DatasetFetchError)
        assert outcome.status_code == 503
        assert fake_adapter.calls == []
        assert len(runner.registry) == 0

    def test_unexpected_source_exception_is_wrapped(self, fake_adapter):
        source = FailingSource(error=KeyError("boom"))

        outcome = asyncio.run(BenchmarkRunner().run(fake_adapter, "populate", source))

        assert isinstance(outcome, DatasetFetchError)
        assert isinstance(outcome.__cause__, KeyError)
        assert fake_adapter.calls == []

    def test_adapter_failure_returns_error_and_keeps_registry(self, sample_records):
        adapter = FakeAdapter(fail_on=["bulk_update"])
        adapter.open()
        registry = ResultRegistry()
        previous = registry.record("fake", "update", 11, label="Fake Update")
        runner = BenchmarkRunner(registry)

        outcome = asyncio.run(runner.run(adapter, "update", StaticDatasetSource(sample_records)))

        assert isinstance(outcome, BackendOperationError)
        assert outcome.backend_name == "fake"
        assert outcome.operation_name == "update"
        assert "constraint violated" in str(outcome)
        assert registry.get("fake", "update") is previous

    def test_adapter_failure_without_prior_result_stays_absent(self, sample_records):
        adapter = FakeAdapter(fail_on=["bulk_insert"])
        adapter.open()
        runner = BenchmarkRunner()

        outcome = asyncio.run(runner.run(adapter, "populate", StaticDatasetSource(sample_records)))

        assert isinstance(outcome, BenchmarkError)
        assert runner.registry.get("fake", "populate") is None

    def test_closed_adapter_is_a_backend_error(self, sample_records):
        adapter = FakeAdapter()
        outcome = asyncio.run(
            BenchmarkRunner().run(adapter, "populate", StaticDatasetSource(sample_records))
        )
        assert isinstance(outcome, BackendOperationError)

    def test_real_adapter_round_trip(self, adapter, sample_records):
        runner = BenchmarkRunner()
        source = StaticDatasetSource(sample_records)

        populate = asyncio.run(runner.run(adapter, Operation.POPULATE, source))
        update = asyncio.run(runner.run(adapter, Operation.UPDATE, source))

        assert isinstance(populate, TimingResult)
        assert isinstance(update, TimingResult)
        assert adapter.count() == 2
        assert [label for label, _ in runner.registry.snapshot()] == [
            f"{adapter.display_name} Populate",
            f"{adapter.display_name} Update",
        ]


# ---------------------------------------------------------------------------
# BenchmarkHarness
# ---------------------------------------------------------------------------


def _fake(name: str, display_name: str, fail_on=()) -> FakeAdapter:
    adapter = FakeAdapter(fail_on=fail_on)
    adapter.name = name
    adapter.display_name = display_name
    adapter.open()
    return adapter


class TestBenchmarkHarness:
    def test_adapters_from_iterable_are_keyed_by_name(self, sample_records):
        a, b = _fake("one", "One"), _fake("two", "Two")
        harness = BenchmarkHarness(StaticDatasetSource(sample_records), [a, b])
        assert harness.backend_names == ["one", "two"]

    def test_unknown_backend_raises(self, fake_adapter, sample_records):
        harness = BenchmarkHarness(StaticDatasetSource(sample_records), [fake_adapter])
        with pytest.raises(ValueError, match="Available backends: fake"):
            asyncio.run(harness.populate("missing"))
        with pytest.raises(ValueError):
            harness.actions("missing")

    def test_actions_are_bound_trigger_pair(self, fake_adapter, sample_records):
        harness = BenchmarkHarness(StaticDatasetSource(sample_records), [fake_adapter])
        actions = harness.actions("fake")

        assert set(actions) == {"populate", "update"}
        asyncio.run(actions["populate"]())
        asyncio.run(actions["update"]())

        assert fake_adapter.calls == [("bulk_insert", 2), ("bulk_update", 2)]
        assert [label for label, _ in harness.snapshot()] == ["Fake Populate", "Fake Update"]

    def test_failed_trigger_is_logged_and_previous_kept(self, sample_records, caplog):
        adapter = _fake("flaky", "Flaky", fail_on=["bulk_insert"])
        registry = ResultRegistry()
        registry.record("flaky", "populate", 9, label="Flaky Populate")
        harness = BenchmarkHarness(StaticDatasetSource(sample_records), [adapter], registry)

        outcome = asyncio.run(harness.populate("flaky"))

        assert isinstance(outcome, BackendOperationError)
        assert harness.snapshot() == [("Flaky Populate", 9)]
        assert "keeping previous result (9 ms)" in caplog.text

    def test_fetch_failure_never_reaches_adapter(self, fake_adapter):
        harness = BenchmarkHarness(FailingSource(), [fake_adapter])
        outcomes = asyncio.run(harness.run_all())
        assert all(isinstance(o, DatasetFetchError) for o in outcomes)
        assert fake_adapter.calls == []
        assert harness.snapshot() == []

    @pytest.mark.parametrize("concurrent", [False, True])
    def test_run_all_keeps_per_backend_order(self, concurrent):
        adapters = [_fake(f"b{i}", f"B{i}") for i in range(3)]
        harness = BenchmarkHarness(SyntheticDatasetSource(count=10, seed=1), adapters)

        outcomes = asyncio.run(harness.run_all(concurrent=concurrent))

        assert len(outcomes) == 6
        assert [(o.backend_name, o.operation_name) for o in outcomes] == [
            (name, op) for name in ("b0", "b1", "b2") for op in ("populate", "update")
        ]
        for adapter in adapters:
            assert [call for call, _ in adapter.calls] == ["bulk_insert", "bulk_update"]
        assert len(harness.registry) == 6

    def test_run_all_subset_and_single_operation(self, sample_records):
        adapters = [_fake("x", "X"), _fake("y", "Y")]
        harness = BenchmarkHarness(StaticDatasetSource(sample_records), adapters)

        outcomes = asyncio.run(harness.run_all(operations=["populate"], backends=["y"]))

        assert [o.key for o in outcomes] == [("y", "populate")]
        assert adapters[0].calls == []

    def test_concurrent_run_against_real_adapters(self, make_adapter):
        adapters = [make_adapter(name) for name in ("sqlite_batch", "zodb_store")]
        harness = BenchmarkHarness(SyntheticDatasetSource(count=50, seed=5), adapters)

        async def scenario():
            async with harness:
                return await harness.run_all(concurrent=True)

        outcomes = asyncio.run(scenario())

        assert all(isinstance(o, TimingResult) for o in outcomes)
        assert not any(a.is_open for a in adapters)
        assert sorted(label for label, _ in harness.snapshot()) == [
            "SQLite Populate",
            "SQLite Update",
            "ZODB Populate",
            "ZODB Update",
        ]

    def test_close_all_logs_and_continues(self, sample_records, caplog):
        class BrokenClose(FakeAdapter):
            def _close(self):
                raise OSError("busy")

        broken = BrokenClose()
        broken.name = "broken"
        broken.open()
        other = _fake("other", "Other")
        harness = BenchmarkHarness(StaticDatasetSource(sample_records), [broken, other])

        harness.close_all()

        assert not other.is_open
        assert "close failed" in caplog.text

    def test_shared_registry_from_runner(self, fake_adapter, sample_records):
        runner = BenchmarkRunner()
        harness = BenchmarkHarness(
            StaticDatasetSource(sample_records), [fake_adapter], runner=runner
        )
        asyncio.run(harness.update("fake"))
        assert harness.registry is runner.registry
        assert runner.registry.get("fake", "update") is not None

    def test_waiting_for_adapter_lock_is_not_timed(self, sample_records):
        class SlowAdapter(FakeAdapter):
            def _bulk_insert(self, records):
                time.sleep(0.3)
                super()._bulk_insert(records)

            def _bulk_update(self, records):
                time.sleep(0.3)
                super()._bulk_update(records)

        adapter = SlowAdapter()
        adapter.open()
        harness = BenchmarkHarness(StaticDatasetSource(sample_records), [adapter])

        async def both():
            return await asyncio.gather(harness.populate("fake"), harness.update("fake"))

        populate, update = asyncio.run(both())

        assert 300 <= populate.elapsed_millis < 450
        assert 300 <= update.elapsed_millis < 450


def test_records_round_trip_through_update(fake_adapter):
    harness = BenchmarkHarness(SyntheticDatasetSource(count=3, seed=2), [fake_adapter])
    asyncio.run(harness.populate("fake"))
    first = dict(fake_adapter.rows)
    asyncio.run(harness.update("fake"))
    assert set(fake_adapter.rows) == set(first)
    assert all(isinstance(r, Record) for r in fake_adapter.rows.values())
    assert fake_adapter.rows != first
