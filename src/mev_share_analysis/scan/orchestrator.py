"""Partitioned scan - runs the settlement scanner over the whole store in parallel."""

from __future__ import annotations

import asyncio
import logging
import time

from mev_share_analysis.interfaces.store import EventStore
from mev_share_analysis.models.config import ScanConfig, default_workers
from mev_share_analysis.models.records import (
    FindOptions,
    Partition,
    PartitionTotals,
    ScanReport,
)
from mev_share_analysis.scan.scanner import SettlementScanner

log = logging.getLogger(__name__)


def plan_partitions(count: int, workers: int) -> list[Partition]:
    """Split ``count`` documents into ``workers`` equal contiguous ranges.

    The ``count % workers`` trailing documents belong to no partition.
    """
    workers = max(1, workers)
    per_partition = count // workers
    return [
        Partition(index=i, skip=i * per_partition, limit=per_partition)
        for i in range(workers)
    ]


class PartitionedScanOrchestrator:
    """Scans the stored backlog with one asyncio worker per partition.

    Workers share the store handle but nothing else; totals are summed only
    after every worker has finished.
    """

    def __init__(
        self,
        store: EventStore,
        scanner: SettlementScanner,
        config: ScanConfig | None = None,
        workers: int | None = None,
    ) -> None:
        self._store = store
        self._scanner = scanner
        self._cfg = config or ScanConfig()
        self._workers = max(1, workers if workers is not None else default_workers())

    @property
    def workers(self) -> int:
        return self._workers

    async def run(self) -> ScanReport:
        start = time.monotonic()
        count = await self._store.count()
        partitions = plan_partitions(count, self._workers)
        per_partition = partitions[0].limit
        uncovered = count - per_partition * self._workers
        log.info(
            "Scanning %d events: %d workers x %d events (%d not assigned)",
            count, self._workers, per_partition, uncovered,
        )

        tasks = [asyncio.create_task(self._scan_partition(p)) for p in partitions]
        try:
            results = await asyncio.gather(*tasks)
        except BaseException:
            for task in tasks:
                task.cancel()
            # siblings must finish unwinding before the caller closes the store
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

        report = ScanReport(
            workers=self._workers,
            total_documents=count,
            uncovered=uncovered,
            partitions=partitions,
        )
        for totals in results:
            report.landings += totals.landings
            report.refunded += totals.refunded
            report.refunds += totals.refunds
            report.iterations += totals.iterations
            report.skipped += totals.skipped
            report.failed += totals.failed
        report.duration_ms = int((time.monotonic() - start) * 1000)

        log.info(
            "Scan complete: %d iterated, %d landed, %d refunds (%d wei), "
            "%d skipped, %d failed in %dms",
            report.iterations, report.landings, report.refunds, report.refunded,
            report.skipped, report.failed, report.duration_ms,
        )
        return report

    async def _scan_partition(self, partition: Partition) -> PartitionTotals:
        totals = PartitionTotals()
        if partition.limit == 0:
            return totals

        options = FindOptions(
            batch_size=self._cfg.batch_size,
            allow_disk_use=self._cfg.allow_disk_use,
            index_hint=self._store.hash_index,
            skip=partition.skip,
            limit=partition.limit,
        )
        async for event in self._store.find_events(options=options):
            totals.add(await self._scanner.scan_event(event))

        log.info(
            "Partition %d (skip=%d) done: %d iterated, %d landed, %d refunds",
            partition.index, partition.skip, totals.iterations, totals.landings, totals.refunds,
        )
        return totals
