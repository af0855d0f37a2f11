"""Pytest configuration and shared fixtures for storage-bench tests."""

from __future__ import annotations

import sys
from collections.abc import Sequence
from pathlib import Path

import pytest

# Make the package importable without installing it.
repo_root = Path(__file__).parent.parent
if str(repo_root) not in sys.path:
    sys.path.insert(0, str(repo_root))

from storage_bench.backends.base import BackendAdapter, create_adapter, load_all_backends  # noqa: E402
from storage_bench.common.errors import DatasetFetchError  # noqa: E402
from storage_bench.common.models import Record  # noqa: E402

load_all_backends()

ADAPTER_NAMES: tuple[str, ...] = (
    "sqlite_batch",
    "sqlalchemy_core",
    "kvault_store",
    "zodb_store",
)


def adapter_options(name: str, base: Path) -> dict:
    """File-backed options for each built-in adapter under *base*."""
    return {
        "sqlite_batch": {"path": str(base / "sqlite_batch.db")},
        "sqlalchemy_core": {"path": str(base / "sqlalchemy_core.db")},
        "kvault_store": {"path": str(base / "kvault_store.db")},
        "zodb_store": {"path": str(base / "zodb_store.fs")},
    }[name]


# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------


class FakeAdapter(BackendAdapter):
    """In-memory adapter that counts calls and can be told to fail."""

    name = "fake"
    display_name = "Fake"

    def __init__(self, fail_on: Sequence[str] = ()):
        super().__init__()
        self.fail_on = set(fail_on)
        self.calls: list[tuple[str, int]] = []
        self.rows: dict[int, Record] = {}

    def _open(self) -> None:
        pass

    def _close(self) -> None:
        pass

    def _bulk_insert(self, records):
        self.calls.append(("bulk_insert", len(records)))
        if "bulk_insert" in self.fail_on:
            raise RuntimeError("disk full")
        for r in records:
            self.rows[r.id] = r

    def _bulk_update(self, records):
        self.calls.append(("bulk_update", len(records)))
        if "bulk_update" in self.fail_on:
            raise RuntimeError("constraint violated")
        for r in records:
            if r.id in self.rows:
                self.rows[r.id] = r

    def _get(self, record_id):
        return self.rows.get(record_id)

    def _count(self):
        return len(self.rows)


class FailingSource:
    """Dataset source whose fetch always fails."""

    def __init__(self, error: Exception | None = None):
        self.error = error or DatasetFetchError("HTTP 503 from test", status_code=503)
        self.fetch_count = 0

    async def fetch(self):
        self.fetch_count += 1
        raise self.error


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def sample_records() -> list[Record]:
    return [Record(1, "a", "x"), Record(2, "b", "y")]


@pytest.fixture
def make_adapter(tmp_path: Path):
    """Factory creating unopened built-in adapters under ``tmp_path``."""

    def _make(name: str, **overrides) -> BackendAdapter:
        options = adapter_options(name, tmp_path)
        options.update(overrides)
        return create_adapter(name, **options)

    return _make


@pytest.fixture(params=ADAPTER_NAMES)
def adapter(request, make_adapter):
    """Each built-in adapter, opened on a fresh file under ``tmp_path``."""
    instance = make_adapter(request.param)
    instance.open()
    yield instance
    instance.close()


@pytest.fixture
def fake_adapter() -> FakeAdapter:
    instance = FakeAdapter()
    instance.open()
    return instance
