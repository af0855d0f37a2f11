"""
Typed-query-builder adapter: the same relational engine as ``sqlite_batch``,
but statements are built through SQLAlchemy Core table objects instead of raw
SQL strings. Semantically equivalent to the relational-batch adapter.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Sequence

from sqlalchemy import (
    Column,
    Integer,
    MetaData,
    String,
    Table,
    bindparam,
    create_engine,
    func,
    select,
    update,
)
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool

from ..common.models import Record
from .base import BackendAdapter, register_adapter

logger = logging.getLogger(__name__)

metadata = MetaData()

items_table = Table(
    "items",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=False),
    Column("name", String, nullable=False),
    Column("value", String, nullable=False),
)


@register_adapter("sqlalchemy_core")
class SQLAlchemyCoreAdapter(BackendAdapter):
    """Insert/update through typed SQLAlchemy Core statements.

    Parameters
    ----------
    path:
        SQLite database file; ``None`` keeps the database in memory.
    url:
        Full SQLAlchemy URL; overrides *path*. Only the SQLite dialect is
        supported because inserts use its ``ON CONFLICT DO UPDATE`` clause.
    echo:
        Log emitted SQL through SQLAlchemy's logger.
    """

    display_name = "SQLAlchemy"

    def __init__(self, path: str | None = None, url: str | None = None, echo: bool = False):
        super().__init__()
        if path and path != ":memory:" and os.path.isdir(path):
            raise ValueError(f"Path points to a directory, expected file: {path}")
        if url is None:
            url = f"sqlite:///{path}" if path else "sqlite://"
        if not url.startswith("sqlite"):
            raise ValueError(f"sqlalchemy_core only supports sqlite URLs; got {url}")
        self.path = path
        self.url = url
        self.echo = echo
        self._engine: Engine | None = None

        self._insert_stmt = sqlite_insert(items_table)
        self._insert_stmt = self._insert_stmt.on_conflict_do_update(
            index_elements=[items_table.c.id],
            set_={
                "name": self._insert_stmt.excluded.name,
                "value": self._insert_stmt.excluded.value,
            },
        )
        self._update_stmt = (
            update(items_table)
            .where(items_table.c.id == bindparam("b_id"))
            .values(name=bindparam("b_name"), value=bindparam("b_value"))
        )

    def _open(self) -> None:
        if self.path and not self.url.startswith("sqlite:///:memory:"):
            parent = os.path.dirname(self.path)
            if parent:
                os.makedirs(parent, exist_ok=True)
        if self.url in ("sqlite://", "sqlite:///:memory:"):
            # One shared connection, otherwise every pooled connection would
            # see its own empty in-memory database.
            engine = create_engine(
                self.url,
                echo=self.echo,
                poolclass=StaticPool,
                connect_args={"check_same_thread": False},
            )
        else:
            engine = create_engine(
                self.url, echo=self.echo, connect_args={"check_same_thread": False}
            )
        metadata.create_all(engine)
        self._engine = engine

    def _close(self) -> None:
        if self._engine is not None:
            self._engine.dispose()
            self._engine = None

    def _bulk_insert(self, records: Sequence[Record]) -> None:
        if not records:
            return
        params = [{"id": r.id, "name": r.name, "value": r.value} for r in records]
        with self._engine.begin() as conn:
            conn.execute(self._insert_stmt, params)

    def _bulk_update(self, records: Sequence[Record]) -> None:
        if not records:
            return
        params = [{"b_id": r.id, "b_name": r.name, "b_value": r.value} for r in records]
        with self._engine.begin() as conn:
            result = conn.execute(self._update_stmt, params)
        logger.debug(
            f"{self.display_name} update matched {result.rowcount} of {len(params)} rows"
        )

    def _get(self, record_id: int) -> Record | None:
        stmt = select(items_table).where(items_table.c.id == record_id)
        with self._engine.connect() as conn:
            row = conn.execute(stmt).first()
        if row is None:
            return None
        return Record(id=row.id, name=row.name, value=row.value)

    def _count(self) -> int:
        with self._engine.connect() as conn:
            return conn.execute(select(func.count()).select_from(items_table)).scalar_one()
