"""MEV-Share hint ingestion and on-chain landing/refund analysis."""

__version__ = "0.1.0"
