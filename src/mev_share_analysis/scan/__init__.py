"""Landing and refund scanning."""

from mev_share_analysis.scan.landing import LandingLookup, find_landing
from mev_share_analysis.scan.orchestrator import PartitionedScanOrchestrator, plan_partitions
from mev_share_analysis.scan.refund import is_refund, scan_refund
from mev_share_analysis.scan.scanner import SettlementScanner

__all__ = [
    "LandingLookup", "find_landing",
    "PartitionedScanOrchestrator", "plan_partitions",
    "is_refund", "scan_refund",
    "SettlementScanner",
]
