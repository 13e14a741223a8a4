"""MEV-Share event history client over the public HTTP API."""

from __future__ import annotations

import logging

import httpx

from mev_share_analysis.errors import DisclosureError
from mev_share_analysis.models.config import MEV_SHARE_HISTORY_URL
from mev_share_analysis.models.events import HistoryEvent, HistoryInfo, HistoryParams

log = logging.getLogger(__name__)


class MevShareHistoryClient:
    """Queries the MEV-Share history endpoints.

    - GET {history_url}/info: indexable block range, max page size, event count
    - GET {history_url}: one page of events for blockStart/blockEnd/offset/limit
    """

    def __init__(
        self,
        history_url: str = MEV_SHARE_HISTORY_URL,
        request_timeout: int = 30,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._history_url = history_url.rstrip("/")
        self._client = httpx.AsyncClient(
            timeout=httpx.Timeout(request_timeout, connect=10),
            follow_redirects=True,
            transport=transport,
        )

    async def close(self) -> None:
        await self._client.aclose()

    async def _get_json(self, url: str, params: dict | None = None) -> object:
        try:
            resp = await self._client.get(url, params=params)
            resp.raise_for_status()
            return resp.json()
        except httpx.HTTPStatusError as exc:
            raise DisclosureError(f"{url}: HTTP {exc.response.status_code}") from exc
        except httpx.HTTPError as exc:
            raise DisclosureError(f"{url}: {type(exc).__name__}: {exc}") from exc
        except ValueError as exc:
            raise DisclosureError(f"{url}: invalid JSON: {exc}") from exc

    async def get_info(self) -> HistoryInfo:
        raw = await self._get_json(f"{self._history_url}/info")
        if not isinstance(raw, dict):
            raise DisclosureError(f"history info: expected object, got {type(raw).__name__}")
        try:
            return HistoryInfo.from_dict(raw)
        except (KeyError, TypeError, ValueError) as exc:
            raise DisclosureError(f"history info: missing or bad field {exc}") from exc

    async def get_events(self, params: HistoryParams) -> list[HistoryEvent]:
        raw = await self._get_json(self._history_url, params=params.to_query())
        if not isinstance(raw, list):
            raise DisclosureError(f"history: expected list, got {type(raw).__name__}")
        try:
            events = [HistoryEvent.from_dict(item) for item in raw]
        except (KeyError, TypeError, ValueError) as exc:
            raise DisclosureError(f"history: malformed event {exc}") from exc
        log.debug("Fetched %d events (offset=%s)", len(events), params.offset)
        return events
