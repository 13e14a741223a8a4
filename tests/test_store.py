"""SQLite event store: inserts, partial updates, batched cursors, stats."""

from __future__ import annotations

import asyncio

import pytest

from mev_share_analysis.errors import StoreError
from mev_share_analysis.models.events import Event, Hint
from mev_share_analysis.models.records import EventFilter, FindOptions, Landing, Refund
from mev_share_analysis.storage.sqlite import EventCursor, SQLiteEventStore

from tests.factories import BUILDER, make_event, make_hash, make_hint


# ── Inserts ──────────────────────────────────────────────────────


async def test_insert_and_find_event(store):
    event = Event(block=17_000_001, timestamp=1_680_000_000, hint=make_hint(1, with_payload=True))
    await store.insert_event(event)

    found = await store.find_event(event.hash)
    assert found is not None
    assert found.block == 17_000_001
    assert found.hint == event.hint
    assert found.landed is None
    assert found.landing is None
    assert found.refund is None


async def test_insert_events_returns_count(store):
    inserted = await store.insert_events([make_event(i) for i in range(5)])
    assert inserted == 5
    assert await store.count() == 5


async def test_insert_events_empty_batch(store):
    assert await store.insert_events([]) == 0
    assert await store.count() == 0


async def test_duplicate_hashes_are_kept(store):
    """The hash index is not unique: the same hint may be stored twice."""
    await store.insert_events([make_event(1), make_event(1, block=17_000_002)])
    assert await store.count() == 2


async def test_find_event_missing(store):
    assert await store.find_event(make_hash("nope")) is None


async def test_write_before_initialize_fails():
    s = SQLiteEventStore(":memory:")
    with pytest.raises(AssertionError):
        await s.insert_event(make_event(1))


async def test_insert_failure_raises_store_error(store):
    await store.db.execute(f"DROP TABLE {store.table}")
    with pytest.raises(StoreError):
        await store.insert_events([make_event(1)])


def test_invalid_table_name_rejected():
    with pytest.raises(ValueError):
        SQLiteEventStore(":memory:", table="events; DROP TABLE x")


# ── Updates ──────────────────────────────────────────────────────


async def test_update_event_touches_every_duplicate(store):
    await store.insert_events([make_event(1), make_event(1), make_event(2)])
    landing = Landing(block=17_000_010, timestamp=1_680_000_120, builder=BUILDER)

    modified = await store.update_event(make_hash(1), {"landed": True, "landing": landing})
    assert modified == 2

    async for event in store.find_events():
        if event.hash == make_hash(1):
            assert event.landed is True
            assert event.landing == landing
        else:
            assert event.landed is None


async def test_update_event_is_partial(store):
    await store.insert_event(make_event(1))
    landing = Landing(block=1, timestamp=2, builder=BUILDER)
    refund = Refund(signal_tx=make_hash(1), refund_tx=make_hash("r"), value=42)

    await store.update_event(make_hash(1), {"landed": True, "landing": landing})
    await store.update_event(make_hash(1), {"refund": refund})

    found = await store.find_event(make_hash(1))
    assert found.landing == landing
    assert found.refund == refund
    assert found.landed is True


async def test_update_event_unknown_hash(store):
    await store.insert_event(make_event(1))
    assert await store.update_event(make_hash(99), {"landed": True}) == 0


async def test_update_event_rejects_other_fields(store):
    with pytest.raises(ValueError):
        await store.update_event(make_hash(1), {"block": 5})


async def test_failed_update_does_not_undo_concurrent_update(store):
    """One worker's rollback must never discard another worker's committed write."""
    good, bad = make_hash("good"), make_hash("bad")
    await store.insert_events([make_event("good"), make_event("bad")])
    await store.db.execute(
        f"CREATE TRIGGER reject_bad BEFORE UPDATE ON {store.table}"
        f" WHEN OLD.hint_hash = '{bad}'"
        " BEGIN SELECT RAISE(ABORT, 'rejected'); END"
    )
    await store.db.commit()

    results = await asyncio.gather(
        store.update_event(good, {"landed": True}),
        store.update_event(bad, {"landed": True}),
        return_exceptions=True,
    )

    assert results[0] == 1
    assert isinstance(results[1], StoreError)
    assert (await store.find_event(good)).landed is True
    assert (await store.find_event(bad)).landed is None


async def test_concurrent_inserts_and_updates_all_persist(store):
    await store.insert_events([make_event(i) for i in range(5)])

    await asyncio.gather(
        *(store.update_event(make_hash(i), {"landed": True}) for i in range(5)),
        store.insert_events([make_event(i) for i in range(5, 8)]),
    )

    stats = await store.stats()
    assert stats.total == 8
    assert stats.landed == 5


# ── Cursors ──────────────────────────────────────────────────────


async def test_find_events_ordered_by_hash(store):
    await store.insert_events([make_event(i) for i in range(10)])
    hashes = [e.hash async for e in store.find_events(options=FindOptions(batch_size=3))]
    assert hashes == sorted(make_hash(i) for i in range(10))


async def test_find_events_skip_limit_windows_cover_prefix(store):
    await store.insert_events([make_event(i) for i in range(10)])
    everything = await store.find_events().to_list()

    windows = []
    for skip in (0, 4):
        opts = FindOptions(batch_size=3, skip=skip, limit=4, index_hint=store.hash_index)
        windows.extend(await store.find_events(options=opts).to_list())

    assert [e.hash for e in windows] == [e.hash for e in everything[:8]]


async def test_find_events_limit_zero_yields_nothing(store):
    await store.insert_events([make_event(i) for i in range(3)])
    assert await store.find_events(options=FindOptions(limit=0)).to_list() == []


async def test_find_events_allow_disk_use(store):
    await store.insert_events([make_event(i) for i in range(3)])
    opts = FindOptions(allow_disk_use=True, index_hint=store.hash_index)
    assert len(await store.find_events(options=opts).to_list()) == 3


async def test_find_events_filters(store):
    await store.insert_events(
        [make_event(i, block=17_000_000 + i) for i in range(6)]
    )
    await store.update_event(make_hash(0), {"landed": True})

    in_range = await store.find_events(EventFilter(block_start=17_000_002, block_end=17_000_003)).to_list()
    assert sorted(e.block for e in in_range) == [17_000_002, 17_000_003]

    landed = await store.find_events(EventFilter(landed=True)).to_list()
    assert [e.hash for e in landed] == [make_hash(0)]

    unlanded = await store.find_events(EventFilter(landed=False)).to_list()
    assert len(unlanded) == 5


async def test_writes_during_iteration(store):
    """Updating rows while a cursor is open neither loses nor repeats rows."""
    await store.insert_events([make_event(i) for i in range(7)])
    seen = []
    async for event in store.find_events(options=FindOptions(batch_size=2)):
        seen.append(event.hash)
        await store.update_event(event.hash, {"landed": True})
    assert sorted(seen) == sorted(make_hash(i) for i in range(7))


async def test_round_trips_capped_below_batch_size(store, monkeypatch):
    """A huge batch_size is still fetched in bounded round trips."""
    monkeypatch.setattr(EventCursor, "max_fetch", 3)
    await store.insert_events([make_event(i) for i in range(10)])
    statements: list[str] = []
    await store.db.set_trace_callback(statements.append)

    opts = FindOptions(batch_size=10_000_000, skip=2, limit=7)
    found = await store.find_events(options=opts).to_list()

    await store.db.set_trace_callback(None)
    assert [e.hash for e in found] == sorted(make_hash(i) for i in range(10))[2:9]
    selects = [s for s in statements if s.lstrip().upper().startswith("SELECT * FROM")]
    assert len(selects) == 3


# ── Stats ────────────────────────────────────────────────────────


async def test_stats(store):
    await store.insert_events([make_event(i) for i in range(4)])
    big = (1 << 64) - 1
    await store.update_event(make_hash(0), {
        "landed": True,
        "landing": Landing(block=1, timestamp=1, builder=BUILDER),
        "refund": Refund(signal_tx=make_hash(0), refund_tx=make_hash("r0"), value=big),
    })
    await store.update_event(make_hash(1), {
        "landed": True,
        "landing": Landing(block=1, timestamp=1, builder=BUILDER),
        "refund": Refund(signal_tx=make_hash(1), refund_tx=make_hash("r1"), value=5),
    })

    stats = await store.stats()
    assert stats.total == 4
    assert stats.scanned == 2
    assert stats.landed == 2
    assert stats.refunds == 2
    assert stats.total_refunded == big + 5


async def test_hint_payload_roundtrip_through_row(store):
    hint = Hint.from_dict({
        "hash": make_hash(3).upper().replace("0X", "0x"),
        "txs": [{"to": "0xabc", "callData": "0x12", "functionSelector": "0x12345678"}],
        "logs": [{"address": "0xdef", "topics": ["0x01"], "data": "0x"}],
        "mevGasPrice": "0x3b9aca00",
        "gasUsed": "0x5208",
    })
    await store.insert_event(Event(block=1, timestamp=2, hint=hint))
    found = await store.find_event(make_hash(3))
    assert found.hint.mev_gas_price == 1_000_000_000
    assert found.hint.gas_used == 21_000
    assert found.hint.txs[0].function_selector == "0x12345678"
