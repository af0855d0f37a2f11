"""Data models shared by the dataset sources, adapters and the runner."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any


@dataclass(frozen=True)
class Record:
    """The unit of data exchanged with every backend.

    ``id`` is assigned by the caller and is the join key across backends: the
    same ``id`` refers to the same logical record in every storage engine.
    """

    id: int
    name: str
    value: str

    @classmethod
    def from_json(cls, obj: Any) -> Record:
        """Build a record from one decoded JSON object.

        Raises
        ------
        ValueError
            If *obj* is not an object with an integer ``id`` and string
            ``name`` / ``value`` fields.
        """
        if not isinstance(obj, dict):
            raise ValueError(f"expected a JSON object, got {type(obj).__name__}")

        missing = [key for key in ("id", "name", "value") if key not in obj]
        if missing:
            raise ValueError(f"missing field(s): {', '.join(missing)}")

        record_id = obj["id"]
        # bool is a subclass of int; JSON true/false is never an identity.
        if isinstance(record_id, bool) or not isinstance(record_id, int):
            raise ValueError(f"'id' must be an integer, got {record_id!r}")
        for key in ("name", "value"):
            if not isinstance(obj[key], str):
                raise ValueError(f"'{key}' must be a string, got {obj[key]!r}")

        return cls(id=record_id, name=obj["name"], value=obj["value"])

    def to_json(self) -> dict[str, Any]:
        return {"id": self.id, "name": self.name, "value": self.value}


class Operation(str, Enum):
    """Benchmarked operations."""

    POPULATE = "populate"
    UPDATE = "update"

    @property
    def label(self) -> str:
        """Title-case label used in result labels (``"Populate"``)."""
        return self.value.capitalize()

    @classmethod
    def parse(cls, text: str | Operation) -> Operation:
        """Accept an :class:`Operation`, its value or its label (any case)."""
        if isinstance(text, Operation):
            return text
        candidate = str(text).strip().lower()
        for op in cls:
            if op.value == candidate:
                return op
        valid = ", ".join(op.value for op in cls)
        raise ValueError(f"Unknown operation: {text}. Supported values: {valid}")


@dataclass(frozen=True)
class TimingResult:
    """Latest measured duration of one (backend, operation) pair.

    Attributes
    ----------
    backend_name:
        Registry name of the adapter (e.g. ``"sqlite_batch"``).
    operation_name:
        :class:`Operation` value (``"populate"`` or ``"update"``).
    elapsed_millis:
        Whole milliseconds spent inside the adapter call. Never negative.
    label:
        Display label, e.g. ``"SQLite Populate"``.
    """

    backend_name: str
    operation_name: str
    elapsed_millis: int
    label: str = ""

    def __post_init__(self) -> None:
        if self.elapsed_millis < 0:
            raise ValueError(f"elapsed_millis must be >= 0; got {self.elapsed_millis}")
        if not self.label:
            object.__setattr__(
                self, "label", default_label(self.backend_name, self.operation_name)
            )

    @property
    def key(self) -> tuple[str, str]:
        return (self.backend_name, self.operation_name)

    @property
    def display_value(self) -> str:
        return f"{self.elapsed_millis} ms"


def default_label(backend_display_name: str, operation_name: str) -> str:
    """Build the ``"<Backend> <Operation>"`` label shown next to a duration."""
    try:
        op_label = Operation.parse(operation_name).label
    except ValueError:
        op_label = operation_name
    return f"{backend_display_name} {op_label}"
