"""EventStore protocol - document persistence keyed by the hint hash."""

from __future__ import annotations

from typing import AsyncIterator, Protocol

from mev_share_analysis.models.events import Event
from mev_share_analysis.models.records import EventFilter, FindOptions, StoreStats


class EventStore(Protocol):
    """Persists disclosed events and the facts derived from them."""

    @property
    def hash_index(self) -> str:
        """Name of the index over the hint hash, usable as a find hint."""
        ...

    # ── Lifecycle ──────────────────────────────────────────

    async def initialize(self) -> None:
        ...

    async def close(self) -> None:
        ...

    # ── Writes ─────────────────────────────────────────────

    async def insert_event(self, event: Event) -> None:
        ...

    async def insert_events(self, events: list[Event]) -> int:
        """Insert a batch. Returns the number of documents actually inserted."""
        ...

    async def update_event(self, tx_hash: str, fields: dict) -> int:
        """Apply a partial update to every document with this hash."""
        ...

    # ── Reads ──────────────────────────────────────────────

    async def find_event(self, tx_hash: str) -> Event | None:
        ...

    def find_events(
        self,
        filter: EventFilter | None = None,
        options: FindOptions | None = None,
    ) -> AsyncIterator[Event]:
        """Ordered, batched cursor over stored events."""
        ...

    async def count(self) -> int:
        ...

    async def stats(self) -> StoreStats:
        ...
