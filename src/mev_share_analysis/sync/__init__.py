"""Historical event ingestion."""

from mev_share_analysis.sync.pipeline import HistoricalSync, SyncCursor

__all__ = ["HistoricalSync", "SyncCursor"]
