"""Ordered key-value pack store backed by SQLite."""

from __future__ import annotations

import contextlib
import json
import logging
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Tuple

from pydantic_core import to_jsonable_python
from sqlalchemy import JSON, Column, MetaData, Table, Text, delete, select
from sqlalchemy.dialects.sqlite import insert
from sqlalchemy.engine import URL
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from .errors import StoreError
from .models import DEFAULT_STORE_FILENAME

LOGGER = logging.getLogger("pack_compiler.store")
DELETE_CHUNK_SIZE = 500

metadata = MetaData()

entries = Table(
    "entries",
    metadata,
    Column("key", Text, primary_key=True),
    Column("value", JSON, nullable=False),
    comment="Normalized pack entries keyed by document key",
)


def encode_value(value: Any) -> str:
    # YAML timestamps decode to date/datetime; persist them as ISO strings.
    return json.dumps(to_jsonable_python(value))


@contextlib.contextmanager
def _store_errors(action: str) -> Iterator[None]:
    try:
        yield
    except (SQLAlchemyError, OSError) as exc:
        raise StoreError(f"Failed to {action}: {exc}") from exc


class WriteBatch:
    """Puts and deletes staged in memory until :meth:`PackStore.write`."""

    def __init__(self) -> None:
        self._puts: Dict[str, Any] = {}
        self._deletes: Dict[str, None] = {}

    def put(self, key: str, value: Any) -> None:
        self._deletes.pop(key, None)
        self._puts[key] = value

    def delete(self, key: str) -> None:
        self._puts.pop(key, None)
        self._deletes[key] = None

    @property
    def puts(self) -> Dict[str, Any]:
        return dict(self._puts)

    @property
    def deletes(self) -> List[str]:
        return list(self._deletes)

    def __len__(self) -> int:
        return len(self._puts) + len(self._deletes)


class PackStore:
    """Own the async engine for a pack directory.

    Use as ``async with PackStore(path) as store`` so the engine is disposed
    on every exit path.
    """

    def __init__(self, path: Path, filename: str = DEFAULT_STORE_FILENAME) -> None:
        self.path = Path(path)
        self.file = self.path / filename
        self._engine: Optional[AsyncEngine] = None

    async def __aenter__(self) -> "PackStore":
        return await self.open()

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def open(self) -> "PackStore":
        if self._engine is not None:
            return self

        with _store_errors(f"open pack store at {self.path}"):
            self.path.mkdir(parents=True, exist_ok=True)
            engine = create_async_engine(
                URL.create("sqlite+aiosqlite", database=str(self.file)),
                json_serializer=encode_value,
            )
            try:
                async with engine.begin() as conn:
                    await conn.run_sync(metadata.create_all)
            except BaseException:
                await engine.dispose()
                raise
        self._engine = engine
        LOGGER.debug("Opened pack store %s", self.file)
        return self

    async def close(self) -> None:
        if self._engine is not None:
            await self._engine.dispose()
            LOGGER.debug("Closed pack store %s", self.file)
        self._engine = None

    @property
    def is_open(self) -> bool:
        return self._engine is not None

    @property
    def engine(self) -> AsyncEngine:
        if self._engine is None:
            raise RuntimeError("Pack store not opened; call open() first")
        return self._engine

    def batch(self) -> WriteBatch:
        return WriteBatch()

    async def get(self, key: str) -> Optional[Any]:
        with _store_errors(f"read key {key!r}"):
            async with self.engine.connect() as conn:
                result = await conn.execute(
                    select(entries.c.value).where(entries.c.key == key)
                )
                return result.scalar_one_or_none()

    async def put(self, key: str, value: Any) -> None:
        batch = self.batch()
        batch.put(key, value)
        await self.write(batch)

    async def delete(self, key: str) -> None:
        batch = self.batch()
        batch.delete(key)
        await self.write(batch)

    async def write(self, batch: WriteBatch) -> None:
        """Apply every operation of ``batch`` in a single transaction."""
        deletes = batch.deletes
        rows = [{"key": key, "value": value} for key, value in batch.puts.items()]
        with _store_errors("commit batch"):
            async with self.engine.begin() as conn:
                for start in range(0, len(deletes), DELETE_CHUNK_SIZE):
                    chunk = deletes[start : start + DELETE_CHUNK_SIZE]
                    await conn.execute(delete(entries).where(entries.c.key.in_(chunk)))
                if rows:
                    stmt = insert(entries)
                    stmt = stmt.on_conflict_do_update(
                        index_elements=[entries.c.key],
                        set_={"value": stmt.excluded.value},
                    )
                    await conn.execute(stmt, rows)
        LOGGER.debug(
            "Committed %s puts and %s deletes to %s", len(rows), len(deletes), self.file
        )

    async def keys(self, reverse: bool = False, limit: Optional[int] = None) -> List[str]:
        order = entries.c.key.desc() if reverse else entries.c.key.asc()
        stmt = select(entries.c.key).order_by(order)
        if limit is not None:
            stmt = stmt.limit(limit)
        with _store_errors("enumerate keys"):
            async with self.engine.connect() as conn:
                result = await conn.execute(stmt)
                return list(result.scalars())

    async def items(self) -> List[Tuple[str, Any]]:
        with _store_errors("read entries"):
            async with self.engine.connect() as conn:
                result = await conn.execute(
                    select(entries.c.key, entries.c.value).order_by(entries.c.key)
                )
                return [(row.key, row.value) for row in result]

    async def first_key(self) -> Optional[str]:
        found = await self.keys(limit=1)
        return found[0] if found else None

    async def last_key(self) -> Optional[str]:
        found = await self.keys(reverse=True, limit=1)
        return found[0] if found else None

    async def compact_range(self, start: str, end: str) -> None:
        # SQLite can only rebuild the whole file, which covers any range.
        LOGGER.debug("Compacting %s from %r to %r", self.file, start, end)
        with _store_errors("compact pack store"):
            async with self.engine.connect() as conn:
                conn = await conn.execution_options(isolation_level="AUTOCOMMIT")
                await conn.exec_driver_sql("VACUUM")

    async def compact(self) -> None:
        """Compact from the first to the last key; no-op for an empty store."""
        first = await self.first_key()
        last = await self.last_key()
        if first is not None and last is not None:
            await self.compact_range(first, last)
