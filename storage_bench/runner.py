"""
Benchmark runner and trigger harness.

:class:`BenchmarkRunner` executes one operation against one adapter:

1. fetch the dataset (not timed),
2. time the adapter call alone, in a worker thread,
3. record the duration in the :class:`ResultRegistry` on success.

``run`` does not raise for fetch or storage failures; they come back as
:class:`~storage_bench.common.errors.BenchmarkError` values, the same way
``asyncio.gather(..., return_exceptions=True)`` hands back exceptions. A
failed run leaves the registry untouched.

:class:`BenchmarkHarness` binds a dataset source, the opened adapters and a
registry, and exposes the ``populate``/``update`` trigger pair per backend
that a display layer binds to.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Iterable, Mapping
from typing import Union

from .backends.base import BackendAdapter
from .common.dataset import DatasetSource
from .common.errors import BackendOperationError, BenchmarkError, DatasetFetchError
from .common.models import Operation, TimingResult, default_label
from .common.registry import ResultRegistry

logger = logging.getLogger(__name__)

RunOutcome = Union[TimingResult, BenchmarkError]


class BenchmarkRunner:
    """Times adapter operations and records successful durations."""

    def __init__(self, registry: ResultRegistry | None = None):
        self.registry = registry if registry is not None else ResultRegistry()

    async def run(
        self,
        adapter: BackendAdapter,
        operation: Operation | str,
        source: DatasetSource,
    ) -> RunOutcome:
        """Run *operation* against *adapter* with records from *source*.

        Returns
        -------
        TimingResult
            On success; also stored in :attr:`registry`.
        DatasetFetchError
            When the dataset could not be fetched. The adapter is not called.
        BackendOperationError
            When the adapter call failed. Carries the backend name and cause.

        Raises
        ------
        ValueError
            If *operation* is not a known operation name. Raised before any
            fetch or adapter call.
        """
        op = Operation.parse(operation)

        try:
            records = await source.fetch()
        except DatasetFetchError as e:
            logger.error(f"{adapter.display_name} {op.label}: dataset fetch failed: {e}")
            return e
        except Exception as e:  # noqa: BLE001
            err = DatasetFetchError(f"dataset source failed: {e}")
            err.__cause__ = e
            logger.error(f"{adapter.display_name} {op.label}: dataset fetch failed: {e}")
            return err

        logger.debug(f"{adapter.display_name} {op.label}: {len(records)} records")

        try:
            # Timed inside the worker thread, after the adapter lock is held.
            elapsed = await asyncio.to_thread(adapter.timed_write, op, records)
        except Exception as e:  # noqa: BLE001
            err = BackendOperationError(adapter.name, op.value, e)
            err.__cause__ = e
            logger.error(str(err))
            return err

        result = self.registry.record(
            adapter.name,
            op.value,
            elapsed,
            label=default_label(adapter.display_name, op.value),
        )
        logger.info(f"{result.label}: {result.display_value} ({len(records)} records)")
        return result


class BenchmarkHarness:
    """Trigger layer over a set of adapters sharing one dataset source.

    Parameters
    ----------
    source:
        Dataset source fetched once per triggered run.
    adapters:
        Adapters keyed by their registry name (or any iterable of adapters).
    registry:
        Result registry; a new one is created when omitted.
    runner:
        Runner to use; defaults to one writing into *registry*.
    """

    def __init__(
        self,
        source: DatasetSource,
        adapters: Mapping[str, BackendAdapter] | Iterable[BackendAdapter],
        registry: ResultRegistry | None = None,
        runner: BenchmarkRunner | None = None,
    ):
        self.source = source
        if isinstance(adapters, Mapping):
            self.adapters: dict[str, BackendAdapter] = dict(adapters)
        else:
            self.adapters = {adapter.name: adapter for adapter in adapters}
        if runner is not None:
            self.runner = runner
            self.registry = runner.registry
        else:
            self.registry = registry if registry is not None else ResultRegistry()
            self.runner = BenchmarkRunner(self.registry)

    @property
    def backend_names(self) -> list[str]:
        return list(self.adapters)

    def _adapter(self, backend_name: str) -> BackendAdapter:
        try:
            return self.adapters[backend_name]
        except KeyError:
            available = ", ".join(self.adapters) or "(none)"
            raise ValueError(
                f"Unknown backend '{backend_name}'. Available backends: {available}"
            ) from None

    # -- triggers -----------------------------------------------------------

    async def trigger(self, backend_name: str, operation: Operation | str) -> RunOutcome:
        """Run one (backend, operation) and log a failure instead of raising it."""
        adapter = self._adapter(backend_name)
        outcome = await self.runner.run(adapter, operation, self.source)
        if isinstance(outcome, BenchmarkError):
            previous = self.registry.get(adapter.name, Operation.parse(operation).value)
            kept = previous.display_value if previous is not None else "none"
            logger.error(f"Run failed, keeping previous result ({kept}): {outcome}")
        return outcome

    async def populate(self, backend_name: str) -> RunOutcome:
        return await self.trigger(backend_name, Operation.POPULATE)

    async def update(self, backend_name: str) -> RunOutcome:
        return await self.trigger(backend_name, Operation.UPDATE)

    def actions(self, backend_name: str) -> dict[str, Callable[[], Awaitable[RunOutcome]]]:
        """The trigger pair a display layer binds to buttons for one backend."""
        self._adapter(backend_name)

        async def _populate() -> RunOutcome:
            return await self.populate(backend_name)

        async def _update() -> RunOutcome:
            return await self.update(backend_name)

        return {Operation.POPULATE.value: _populate, Operation.UPDATE.value: _update}

    async def run_all(
        self,
        operations: Iterable[Operation | str] = (Operation.POPULATE, Operation.UPDATE),
        backends: Iterable[str] | None = None,
        concurrent: bool = False,
    ) -> list[RunOutcome]:
        """Trigger every operation for every backend.

        Operations for one backend always run in the given order. With
        ``concurrent=True`` different backends run at the same time.
        Outcomes are returned backend-major in input order.
        """
        ops = [Operation.parse(op) for op in operations]
        names = list(backends) if backends is not None else self.backend_names
        for name in names:
            self._adapter(name)

        async def _backend_sequence(name: str) -> list[RunOutcome]:
            return [await self.trigger(name, op) for op in ops]

        if concurrent:
            grouped = await asyncio.gather(*(_backend_sequence(name) for name in names))
        else:
            grouped = [await _backend_sequence(name) for name in names]
        return [outcome for group in grouped for outcome in group]

    def snapshot(self) -> list[tuple[str, int]]:
        return self.registry.snapshot()

    # -- lifecycle ----------------------------------------------------------

    def open_all(self) -> None:
        for adapter in self.adapters.values():
            adapter.open()

    def close_all(self) -> None:
        for adapter in self.adapters.values():
            try:
                adapter.close()
            except Exception as e:  # noqa: BLE001
                logger.warning(f"{adapter.display_name} close failed: {e}")

    async def __aenter__(self) -> BenchmarkHarness:
        self.open_all()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        self.close_all()
