"""MEV-Share history API integration."""

from mev_share_analysis.mevshare.client import MevShareHistoryClient

__all__ = ["MevShareHistoryClient"]
