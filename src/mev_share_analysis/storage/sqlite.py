"""SQLite implementation of the EventStore protocol.

Each row is one Event document. The hint hash is stored in its canonical hex
form and indexed without a uniqueness constraint: updates target every row
sharing a hash.
"""

from __future__ import annotations

import asyncio
import json
import logging
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import AsyncIterator

import aiosqlite

from mev_share_analysis.errors import StoreError
from mev_share_analysis.models.events import Event, Hint
from mev_share_analysis.models.records import (
    EventFilter,
    FindOptions,
    Landing,
    Refund,
    StoreStats,
)

log = logging.getLogger(__name__)

_IDENT_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

SCHEMA = """
CREATE TABLE IF NOT EXISTS {table} (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    hint_hash TEXT NOT NULL,
    block INTEGER NOT NULL,
    timestamp INTEGER NOT NULL,
    hint TEXT NOT NULL,
    landing TEXT,
    refund TEXT,
    landed INTEGER,
    created_at TEXT NOT NULL DEFAULT (datetime('now')),
    updated_at TEXT
);
CREATE INDEX IF NOT EXISTS idx_{table}_hint_hash ON {table}(hint_hash);
CREATE INDEX IF NOT EXISTS idx_{table}_block ON {table}(block);
"""

_UPDATABLE = ("landing", "refund", "landed")


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _ident(name: str) -> str:
    if not _IDENT_RE.match(name):
        raise ValueError(f"invalid SQL identifier: {name!r}")
    return name


def _encode(key: str, value: object) -> object:
    if value is None:
        return None
    if key == "landed":
        return int(bool(value))
    if isinstance(value, (Landing, Refund)):
        return json.dumps(value.to_dict())
    return json.dumps(value)


def _row_to_event(row: aiosqlite.Row) -> Event:
    landing = json.loads(row["landing"]) if row["landing"] else None
    refund = json.loads(row["refund"]) if row["refund"] else None
    return Event(
        block=row["block"],
        timestamp=row["timestamp"],
        hint=Hint.from_dict(json.loads(row["hint"])),
        landing=Landing.from_dict(landing) if landing else None,
        refund=Refund.from_dict(refund) if refund else None,
        landed=None if row["landed"] is None else bool(row["landed"]),
    )


def _where(filter: EventFilter | None) -> tuple[str, list]:
    if filter is None:
        return "", []
    clauses: list[str] = []
    params: list = []
    if filter.block_start is not None:
        clauses.append("block >= ?")
        params.append(filter.block_start)
    if filter.block_end is not None:
        clauses.append("block <= ?")
        params.append(filter.block_end)
    if filter.landed is True:
        clauses.append("landed = 1")
    elif filter.landed is False:
        clauses.append("(landed IS NULL OR landed = 0)")
    if not clauses:
        return "", []
    return " WHERE " + " AND ".join(clauses), params


class EventCursor:
    """Async iterator over a find_events() query, one round trip per batch.

    Batches are fetched with LIMIT/OFFSET so no statement stays open between
    batches; callers may write to the store while iterating. A round trip never
    loads more than ``max_fetch`` rows, whatever the requested batch size.
    """

    max_fetch = 10_000

    def __init__(
        self,
        store: SQLiteEventStore,
        where: str,
        params: list,
        options: FindOptions,
    ) -> None:
        self._store = store
        self._where = where
        self._params = params
        self._options = options

    def __aiter__(self) -> AsyncIterator[Event]:
        return self._iterate()

    async def _iterate(self) -> AsyncIterator[Event]:
        opts = self._options
        remaining = opts.limit
        if remaining == 0:
            return
        offset = opts.skip
        batch_size = max(1, min(opts.batch_size, self.max_fetch))
        source = self._store.table
        if opts.index_hint:
            source = f"{source} INDEXED BY {_ident(opts.index_hint)}"

        db = self._store.db
        if opts.allow_disk_use:
            await db.execute("PRAGMA temp_store = FILE")

        while True:
            size = batch_size if remaining is None else min(batch_size, remaining)
            if size <= 0:
                return
            try:
                async with db.execute(
                    f"SELECT * FROM {source}{self._where}"
                    " ORDER BY hint_hash, id LIMIT ? OFFSET ?",
                    (*self._params, size, offset),
                ) as cur:
                    rows = await cur.fetchall()
            except aiosqlite.Error as exc:
                raise StoreError(f"find_events failed at offset {offset}: {exc}") from exc

            for row in rows:
                yield _row_to_event(row)

            if len(rows) < size:
                return
            offset += len(rows)
            if remaining is not None:
                remaining -= len(rows)

    async def to_list(self) -> list[Event]:
        return [event async for event in self]


class SQLiteEventStore:
    """SQLite-backed implementation of the EventStore protocol."""

    def __init__(self, db_path: str, table: str = "events") -> None:
        self._db_path = db_path
        self._table = _ident(table)
        self._db: aiosqlite.Connection | None = None
        # writes share one connection: execute+commit/rollback must not interleave
        self._write_lock = asyncio.Lock()

    @property
    def table(self) -> str:
        return self._table

    @property
    def hash_index(self) -> str:
        return f"idx_{self._table}_hint_hash"

    async def initialize(self) -> None:
        if self._db_path != ":memory:":
            Path(self._db_path).parent.mkdir(parents=True, exist_ok=True)
        self._db = await aiosqlite.connect(self._db_path)
        self._db.row_factory = aiosqlite.Row
        await self._db.executescript(SCHEMA.format(table=self._table))
        await self._db.commit()

    async def close(self) -> None:
        if self._db:
            await self._db.close()
            self._db = None

    @property
    def db(self) -> aiosqlite.Connection:
        assert self._db is not None, "Store not initialized. Call initialize() first."
        return self._db

    # ── Writes ─────────────────────────────────────────────

    @staticmethod
    def _event_row(event: Event) -> tuple:
        return (
            event.hash,
            event.block,
            event.timestamp,
            json.dumps(event.hint.to_dict()),
            _encode("landing", event.landing),
            _encode("refund", event.refund),
            _encode("landed", event.landed),
            _now(),
        )

    _INSERT = (
        "INSERT INTO {table}"
        " (hint_hash, block, timestamp, hint, landing, refund, landed, created_at)"
        " VALUES (?, ?, ?, ?, ?, ?, ?, ?)"
    )

    async def insert_event(self, event: Event) -> None:
        async with self._write_lock:
            try:
                await self.db.execute(
                    self._INSERT.format(table=self._table), self._event_row(event),
                )
                await self.db.commit()
            except aiosqlite.Error as exc:
                await self.db.rollback()
                raise StoreError(f"insert_event({event.hash}) failed: {exc}") from exc
        log.debug("Inserted event %s", event.hash)

    async def insert_events(self, events: list[Event]) -> int:
        """Insert a batch atomically. Returns the number of rows inserted."""
        if not events:
            return 0
        rows = [self._event_row(e) for e in events]
        async with self._write_lock:
            try:
                await self.db.executemany(self._INSERT.format(table=self._table), rows)
                await self.db.commit()
            except aiosqlite.Error as exc:
                await self.db.rollback()
                raise StoreError(f"insert_events({len(rows)}) failed: {exc}") from exc
        return len(rows)

    async def update_event(self, tx_hash: str, fields: dict) -> int:
        """Partial update of landing/refund/landed on every row with this hash."""
        unknown = set(fields) - set(_UPDATABLE)
        if unknown:
            raise ValueError(f"cannot update fields: {sorted(unknown)}")
        if not fields:
            return 0

        keys = [k for k in _UPDATABLE if k in fields]
        assignments = ", ".join(f"{k}=?" for k in keys)
        params = [_encode(k, fields[k]) for k in keys]
        async with self._write_lock:
            try:
                async with self.db.execute(
                    f"UPDATE {self._table} INDEXED BY {self.hash_index}"
                    f" SET {assignments}, updated_at=? WHERE hint_hash=?",
                    (*params, _now(), tx_hash),
                ) as cur:
                    modified = cur.rowcount
                await self.db.commit()
            except aiosqlite.Error as exc:
                await self.db.rollback()
                raise StoreError(f"update_event({tx_hash}) failed: {exc}") from exc
        return modified

    # ── Reads ──────────────────────────────────────────────

    async def find_event(self, tx_hash: str) -> Event | None:
        async with self.db.execute(
            f"SELECT * FROM {self._table} WHERE hint_hash=? ORDER BY id LIMIT 1",
            (tx_hash,),
        ) as cur:
            row = await cur.fetchone()
            return _row_to_event(row) if row else None

    def find_events(
        self,
        filter: EventFilter | None = None,
        options: FindOptions | None = None,
    ) -> EventCursor:
        where, params = _where(filter)
        return EventCursor(self, where, params, options or FindOptions())

    async def count(self) -> int:
        async with self.db.execute(f"SELECT COUNT(*) AS c FROM {self._table}") as cur:
            row = await cur.fetchone()
            return row["c"] if row else 0

    async def stats(self) -> StoreStats:
        async with self.db.execute(
            "SELECT COUNT(*) AS total,"
            " COUNT(landed) AS scanned,"
            " COALESCE(SUM(landed = 1), 0) AS landed,"
            " COUNT(refund) AS refunds"
            f" FROM {self._table}"
        ) as cur:
            row = await cur.fetchone()

        # refund values are u64 and may not fit SQLite's signed integer SUM
        total_refunded = 0
        async with self.db.execute(
            f"SELECT refund FROM {self._table} WHERE refund IS NOT NULL"
        ) as cur:
            async for r in cur:
                total_refunded += int(json.loads(r["refund"])["value"])

        return StoreStats(
            total=row["total"],
            scanned=row["scanned"],
            landed=row["landed"],
            refunds=row["refunds"],
            total_refunded=total_refunded,
        )
