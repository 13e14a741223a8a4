"""Historical sync - pages through the MEV-Share event log into the store."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass

from mev_share_analysis.errors import DisclosureError, StoreError
from mev_share_analysis.interfaces.disclosure import DisclosureAPI
from mev_share_analysis.interfaces.store import EventStore
from mev_share_analysis.models.config import SyncConfig
from mev_share_analysis.models.events import Event, HistoryEvent, HistoryInfo, HistoryParams

log = logging.getLogger(__name__)


@dataclass
class SyncCursor:
    """Paging state of one sync run. Offset only moves by rows actually stored."""

    block_start: int
    block_end: int
    offset: int
    limit: int
    sync_complete: bool = False
    pages: int = 0
    inserted: int = 0

    def to_params(self) -> HistoryParams:
        return HistoryParams(
            block_start=self.block_start,
            block_end=self.block_end,
            limit=self.limit,
            offset=self.offset,
        )


class HistoricalSync:
    """Tails the remote event log.

    Pages are requested strictly in offset order. An empty page means the
    head of the log was reached: the window is extended to the API's new max
    block and the loop sleeps ``backoff_seconds`` before asking again. With a
    caller-supplied ``block_end`` the run ends once the live head has moved
    past it. Failed fetches are retried without advancing the offset.
    """

    def __init__(
        self,
        api: DisclosureAPI,
        store: EventStore,
        config: SyncConfig | None = None,
    ) -> None:
        self._api = api
        self._store = store
        self._cfg = config or SyncConfig()
        self._running = False
        self._stopped = asyncio.Event()

    async def stop(self) -> None:
        """Make run() return at its next suspension point."""
        log.info("Stop requested")
        self._running = False
        self._stopped.set()

    async def _sleep(self, seconds: float) -> None:
        if seconds <= 0:
            return
        try:
            await asyncio.wait_for(self._stopped.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            pass

    async def run(
        self,
        block_start: int | None = None,
        block_end: int | None = None,
        offset: int = 0,
    ) -> SyncCursor | None:
        """Sync until the requested window is consumed or stop() is called.

        Without ``block_end`` this never finishes on its own.
        """
        self._running = True
        self._stopped.clear()

        info = await self._initial_info()
        if info is None:
            return None

        cursor = SyncCursor(
            block_start=block_start if block_start is not None else info.min_block,
            block_end=block_end if block_end is not None else info.max_block,
            offset=offset,
            limit=info.max_limit,
        )
        log.info(
            "Fetching MEV-Share events from block %d to block %d (offset %d, %d indexed)",
            cursor.block_start, cursor.block_end, cursor.offset, info.count,
        )

        while self._running:
            if not await self.step(cursor, block_end, info.count):
                break

        self._running = False
        return cursor

    async def _initial_info(self) -> HistoryInfo | None:
        while self._running:
            try:
                return await self._api.get_info()
            except DisclosureError as exc:
                log.warning("History info unavailable: %s", exc)
                await self._sleep(self._cfg.error_backoff)
        return None

    async def step(self, cursor: SyncCursor, block_end: int | None, total: int) -> bool:
        """One fetch/apply iteration. Returns False once the run is done."""
        try:
            page = await self._api.get_events(cursor.to_params())
        except DisclosureError as exc:
            # offset untouched: the same page is requested again
            log.warning("History fetch failed at offset %d: %s", cursor.offset, exc)
            await self._sleep(self._cfg.error_backoff)
            return True

        if not page:
            return await self._on_caught_up(cursor, block_end)

        inserted = await self._persist(page)
        if inserted is None:
            return True

        cursor.offset += inserted
        cursor.pages += 1
        cursor.inserted += inserted
        log.info(
            "Stored %d/%d events, offset now %d (blocks %d-%d)",
            inserted, len(page), cursor.offset, cursor.block_start, cursor.block_end,
        )

        if not cursor.sync_complete and cursor.offset >= total:
            cursor.sync_complete = True
            log.info("Sync complete! %d events stored", cursor.offset)
        return True

    async def _on_caught_up(self, cursor: SyncCursor, block_end: int | None) -> bool:
        try:
            info = await self._api.get_info()
        except DisclosureError as exc:
            log.warning("History info refresh failed: %s", exc)
            await self._sleep(self._cfg.error_backoff)
            return True

        if block_end is not None and block_end < info.max_block:
            log.info("Fetched events till block %d", block_end)
            log.info("Exiting...")
            return False

        cursor.block_end = info.max_block
        cursor.limit = info.max_limit
        log.info(
            "Sleeping for %d seconds...waiting for events to be indexed",
            self._cfg.backoff_seconds,
        )
        await self._sleep(self._cfg.backoff_seconds)
        return True

    async def _persist(self, page: list[HistoryEvent]) -> int | None:
        """Insert a page. Returns the inserted count, or None if every attempt failed."""
        events = [Event.from_history(raw) for raw in page]
        attempts = max(1, self._cfg.write_retries)
        for attempt in range(1, attempts + 1):
            try:
                return await self._store.insert_events(events)
            except StoreError as exc:
                if attempt < attempts:
                    log.warning(
                        "Insert of %d events failed (attempt %d/%d): %s",
                        len(events), attempt, attempts, exc,
                    )
                    continue
                log.error("Insert of %d events failed, page will be refetched: %s", len(events), exc)
        return None
