"""DisclosureAPI protocol - the MEV-Share event history endpoints."""

from __future__ import annotations

from typing import Protocol

from mev_share_analysis.models.events import HistoryEvent, HistoryInfo, HistoryParams


class DisclosureAPI(Protocol):
    async def get_info(self) -> HistoryInfo:
        """Indexable block range, page ceiling and total event count."""
        ...

    async def get_events(self, params: HistoryParams) -> list[HistoryEvent]:
        """One page of history, ordered as the API returns it."""
        ...

    async def close(self) -> None:
        ...
