"""Settlement scanner - landing + refund classification for one event."""

from __future__ import annotations

import asyncio
import logging

from mev_share_analysis.errors import ChainError, StoreError
from mev_share_analysis.interfaces.chain import ChainReader
from mev_share_analysis.interfaces.store import EventStore
from mev_share_analysis.models.config import ScanConfig
from mev_share_analysis.models.events import Event
from mev_share_analysis.models.records import ErrorKind, Refund, ScanOutcome, ScanResult
from mev_share_analysis.scan.landing import LandingLookup, find_landing
from mev_share_analysis.scan.refund import scan_refund

log = logging.getLogger(__name__)


class SettlementScanner:
    """Determines whether an event's transaction landed and was refunded.

    Results are written back by hash and rescans rewrite the same fields, so
    scanning an event twice is harmless. Unlanded events are not written.
    Transient chain errors are retried ``chain_retries`` times; events that
    still cannot be classified are skipped and stay unscanned. Only FATAL
    chain errors propagate.
    """

    def __init__(
        self,
        chain: ChainReader,
        store: EventStore,
        config: ScanConfig | None = None,
    ) -> None:
        self._chain = chain
        self._store = store
        self._cfg = config or ScanConfig()

    async def scan_event(self, event: Event) -> ScanResult:
        tx_hash = event.hash
        try:
            found, refund = await self._classify_with_retries(tx_hash)
        except ChainError as exc:
            if exc.kind == ErrorKind.FATAL:
                raise
            log.warning("Skipping %s: %s", tx_hash, exc)
            return ScanResult(
                tx_hash=tx_hash,
                outcome=ScanOutcome.SKIPPED,
                error_kind=exc.kind,
                error=str(exc),
            )

        if found is None:
            log.debug("%s did not land", tx_hash)
            return ScanResult(tx_hash=tx_hash, outcome=ScanOutcome.NOT_LANDED)

        fields: dict = {"landed": True, "landing": found.landing}
        if refund is not None:
            fields["refund"] = refund

        outcome = ScanOutcome.REFUNDED if refund is not None else ScanOutcome.LANDED
        updated = await self._write_back(tx_hash, fields)
        if updated is None:
            outcome = ScanOutcome.FAILED

        return ScanResult(
            tx_hash=tx_hash,
            outcome=outcome,
            landing=found.landing,
            refund=refund,
            error="write-back failed" if updated is None else None,
            updated=updated or 0,
        )

    async def _classify(self, tx_hash: str) -> tuple[LandingLookup | None, Refund | None]:
        found = await find_landing(tx_hash, self._chain)
        if found is None:
            return None, None
        refund = await scan_refund(found.transaction, found.block, self._chain)
        return found, refund

    async def _classify_with_retries(
        self, tx_hash: str
    ) -> tuple[LandingLookup | None, Refund | None]:
        attempts = max(1, self._cfg.chain_retries)
        for attempt in range(1, attempts + 1):
            try:
                return await self._classify(tx_hash)
            except ChainError as exc:
                if exc.kind != ErrorKind.TRANSIENT or attempt == attempts:
                    raise
                log.warning(
                    "Chain lookup for %s failed (attempt %d/%d): %s",
                    tx_hash, attempt, attempts, exc,
                )
                await asyncio.sleep(self._cfg.retry_backoff)
        raise AssertionError("unreachable")

    async def _write_back(self, tx_hash: str, fields: dict) -> int | None:
        attempts = max(1, self._cfg.write_retries)
        for attempt in range(1, attempts + 1):
            try:
                return await self._store.update_event(tx_hash, fields)
            except StoreError as exc:
                if attempt < attempts:
                    log.warning(
                        "Update of %s failed (attempt %d/%d): %s",
                        tx_hash, attempt, attempts, exc,
                    )
                    continue
                log.error("Update of %s failed, leaving it unscanned: %s", tx_hash, exc)
        return None
