"""Data models for mev_share_analysis."""

from mev_share_analysis.models.events import (
    Event,
    Hint,
    HintLog,
    HintTx,
    HistoryEvent,
    HistoryInfo,
    HistoryParams,
    narrow_u64,
    normalize_hash,
)
from mev_share_analysis.models.records import (
    ChainBlock,
    ChainTransaction,
    ErrorKind,
    EventFilter,
    FindOptions,
    Landing,
    Partition,
    PartitionTotals,
    Refund,
    ScanOutcome,
    ScanReport,
    ScanResult,
    StoreStats,
)
from mev_share_analysis.models.config import (
    AnalysisConfig,
    ApiConfig,
    ChainConfig,
    ScanConfig,
    StorageConfig,
    SyncConfig,
)

__all__ = [
    "Event", "Hint", "HintLog", "HintTx",
    "HistoryEvent", "HistoryInfo", "HistoryParams",
    "narrow_u64", "normalize_hash",
    "ChainBlock", "ChainTransaction", "ErrorKind",
    "EventFilter", "FindOptions", "StoreStats",
    "Landing", "Refund",
    "Partition", "PartitionTotals", "ScanOutcome", "ScanReport", "ScanResult",
    "AnalysisConfig", "ApiConfig", "ChainConfig", "ScanConfig",
    "StorageConfig", "SyncConfig",
]
