"""Configuration models."""

from __future__ import annotations

import os
from dataclasses import dataclass, field

MEV_SHARE_HISTORY_URL = "https://mev-share.flashbots.net/api/v1/history"


def default_workers() -> int:
    """One scan worker per available core; 4 if undetectable."""
    return max(1, os.cpu_count() or 4)


@dataclass
class ApiConfig:
    """MEV-Share history API."""

    history_url: str = MEV_SHARE_HISTORY_URL
    request_timeout: int = 30  # seconds


@dataclass
class ChainConfig:
    rpc_url: str = "http://localhost:8545"
    rpc_timeout: int = 30  # seconds per call


@dataclass
class StorageConfig:
    db_path: str = "~/.mev_share_analysis/mev-share.db"
    table: str = "events"


@dataclass
class SyncConfig:
    """Historical sync pipeline tuning."""

    backoff_seconds: int = 12  # wait for the API to index new blocks
    error_backoff: int = 0  # seconds after a failed fetch; 0 = retry at once
    write_retries: int = 3


@dataclass
class ScanConfig:
    """Partitioned landing/refund scan tuning."""

    batch_size: int = 10_000_000
    allow_disk_use: bool = True
    chain_retries: int = 3
    retry_backoff: float = 1.0  # seconds between transient chain retries
    write_retries: int = 3


@dataclass
class AnalysisConfig:
    """Complete application configuration."""

    api: ApiConfig = field(default_factory=ApiConfig)
    chain: ChainConfig = field(default_factory=ChainConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    sync: SyncConfig = field(default_factory=SyncConfig)
    scan: ScanConfig = field(default_factory=ScanConfig)
    log_level: str = "info"
