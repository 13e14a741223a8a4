"""Wires real collaborators into the sync pipeline and the scan orchestrator."""

from __future__ import annotations

import asyncio
import logging
import signal

from mev_share_analysis.ethereum.reader import Web3ChainReader
from mev_share_analysis.mevshare.client import MevShareHistoryClient
from mev_share_analysis.models.config import AnalysisConfig
from mev_share_analysis.models.records import ScanReport, StoreStats
from mev_share_analysis.scan.orchestrator import PartitionedScanOrchestrator
from mev_share_analysis.scan.scanner import SettlementScanner
from mev_share_analysis.storage.sqlite import SQLiteEventStore
from mev_share_analysis.sync.pipeline import HistoricalSync, SyncCursor

log = logging.getLogger(__name__)


def _open_store(cfg: AnalysisConfig) -> SQLiteEventStore:
    return SQLiteEventStore(cfg.storage.db_path, cfg.storage.table)


async def run_sync(
    cfg: AnalysisConfig,
    block_start: int | None = None,
    block_end: int | None = None,
    offset: int = 0,
) -> SyncCursor | None:
    """Entry point for the `events` command."""
    store = _open_store(cfg)
    api = MevShareHistoryClient(cfg.api.history_url, cfg.api.request_timeout)
    pipeline = HistoricalSync(api, store, cfg.sync)

    loop = asyncio.get_running_loop()

    def _signal_handler():
        asyncio.ensure_future(pipeline.stop())

    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, _signal_handler)
        except NotImplementedError:
            # Windows doesn't support add_signal_handler
            pass

    await store.initialize()
    try:
        return await pipeline.run(block_start=block_start, block_end=block_end, offset=offset)
    finally:
        await api.close()
        await store.close()


async def run_scan(cfg: AnalysisConfig, workers: int | None = None) -> ScanReport:
    """Entry point for the `scan-refunds` command."""
    store = _open_store(cfg)
    chain = Web3ChainReader(cfg.chain.rpc_url, cfg.chain.rpc_timeout)
    scanner = SettlementScanner(chain, store, cfg.scan)
    orchestrator = PartitionedScanOrchestrator(store, scanner, cfg.scan, workers=workers)

    await store.initialize()
    try:
        log.info("Retrieving refunds for events in db (%d workers)", orchestrator.workers)
        return await orchestrator.run()
    finally:
        await chain.close()
        await store.close()


async def read_stats(cfg: AnalysisConfig) -> StoreStats:
    store = _open_store(cfg)
    await store.initialize()
    try:
        return await store.stats()
    finally:
        await store.close()
