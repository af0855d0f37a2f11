"""Dataset sources: where the records pushed through every backend come from.

Every source implements ``async fetch() -> list[Record]`` and raises
:class:`~storage_bench.common.errors.DatasetFetchError` on failure. The runner
awaits the fetch before starting its timer, so fetch time never counts
towards a measured duration.
"""

from __future__ import annotations

import logging
import random
import string
from typing import Protocol

import httpx

from .errors import DatasetFetchError
from .models import Record

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_S = 30.0


class DatasetSource(Protocol):
    async def fetch(self) -> list[Record]:
        """Return the ordered records of the dataset."""
        ...


def decode_records(payload: object) -> list[Record]:
    """Decode a JSON array of ``{id, name, value}`` objects.

    Raises
    ------
    DatasetFetchError
        If *payload* is not a list or any element is invalid.
    """
    if not isinstance(payload, list):
        raise DatasetFetchError(
            f"expected a JSON array of records, got {type(payload).__name__}"
        )
    records: list[Record] = []
    for index, item in enumerate(payload):
        try:
            records.append(Record.from_json(item))
        except ValueError as e:
            raise DatasetFetchError(f"invalid record at index {index}: {e}") from e
    return records


class HttpDatasetSource:
    """Fetches the dataset with one HTTP GET returning a JSON array.

    Any non-2xx status, transport error, timeout or decode failure surfaces as
    :class:`DatasetFetchError`. Timeout policy lives here, not in the runner.
    """

    def __init__(
        self,
        url: str,
        timeout: float = DEFAULT_TIMEOUT_S,
        headers: dict[str, str] | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.url = url
        self.timeout = timeout
        self.headers = headers or {"Accept": "application/json"}
        # Injected in tests (httpx.MockTransport); None uses the network.
        self._transport = transport

    async def fetch(self) -> list[Record]:
        logger.debug(f"GET {self.url} (timeout={self.timeout}s)")
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, transport=self._transport
            ) as client:
                response = await client.get(self.url, headers=self.headers)
        except httpx.TimeoutException as e:
            raise DatasetFetchError(f"timed out fetching {self.url}: {e}") from e
        except httpx.HTTPError as e:
            raise DatasetFetchError(f"request to {self.url} failed: {e}") from e

        if not response.is_success:
            raise DatasetFetchError(
                f"HTTP {response.status_code} from {self.url}: {response.text[:200]}",
                status_code=response.status_code,
            )

        try:
            payload = response.json()
        except ValueError as e:
            raise DatasetFetchError(
                f"malformed JSON from {self.url}: {e}", status_code=response.status_code
            ) from e

        records = decode_records(payload)
        logger.info(f"Fetched {len(records)} records from {self.url}")
        return records


class StaticDatasetSource:
    """Serves a fixed list of records; useful for scripted runs and tests."""

    def __init__(self, records: list[Record]):
        self._records = list(records)
        self.fetch_count = 0

    async def fetch(self) -> list[Record]:
        self.fetch_count += 1
        return list(self._records)


class SyntheticDatasetSource:
    """Deterministic generated dataset for offline runs.

    ``fetch`` returns ``count`` records with identities ``1..count``. Each call
    draws new ``name``/``value`` strings from a seeded stream, so consecutive
    fetches share identities but differ in content - a populate followed by
    an update really overwrites every field. Two sources with the same seed
    yield the same sequence of datasets.
    """

    def __init__(self, count: int = 1000, seed: int = 42, field_length: int = 12):
        if count < 0:
            raise ValueError("count must be non-negative")
        if field_length <= 0:
            raise ValueError("field_length must be positive")
        self.count = count
        self.seed = seed
        self.field_length = field_length
        self._rng = random.Random(seed)

    def _token(self) -> str:
        alphabet = string.ascii_lowercase + string.digits
        return "".join(self._rng.choice(alphabet) for _ in range(self.field_length))

    async def fetch(self) -> list[Record]:
        return [
            Record(id=i, name=f"name_{self._token()}", value=f"value_{self._token()}")
            for i in range(1, self.count + 1)
        ]
