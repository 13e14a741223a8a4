"""Shared fixtures for mev_share_analysis tests."""

from __future__ import annotations

import pytest
from pytest_metadata.plugin import metadata_key

from mev_share_analysis.models.config import (
    AnalysisConfig,
    ScanConfig,
    StorageConfig,
    SyncConfig,
)
from mev_share_analysis.scan.scanner import SettlementScanner
from mev_share_analysis.storage.sqlite import SQLiteEventStore

from tests.mocks import MockChainReader, MockDisclosureAPI


# ── Report metadata ──────────────────────────────────────────────


def pytest_configure(config):
    """Add run info to the report Environment table."""
    meta = config.stash.setdefault(metadata_key, {})
    meta["History API"] = "mocked"
    meta["Chain"] = "mocked"
    meta["Store"] = "SQLite :memory:"


def make_test_config(**overrides) -> AnalysisConfig:
    """Build an AnalysisConfig suitable for testing: in-memory store, no sleeps."""
    defaults = dict(
        storage=StorageConfig(db_path=":memory:"),
        sync=SyncConfig(backoff_seconds=12, error_backoff=0, write_retries=3),
        scan=ScanConfig(batch_size=3, allow_disk_use=False, chain_retries=3, retry_backoff=0),
    )
    defaults.update(overrides)
    return AnalysisConfig(**defaults)


@pytest.fixture
def test_config():
    """Default AnalysisConfig for tests."""
    return make_test_config()


@pytest.fixture
async def store():
    """Initialized in-memory SQLiteEventStore."""
    s = SQLiteEventStore(":memory:")
    await s.initialize()
    yield s
    await s.close()


@pytest.fixture
def mock_api():
    return MockDisclosureAPI()


@pytest.fixture
def mock_chain():
    return MockChainReader()


@pytest.fixture
def scanner(mock_chain, store, test_config):
    return SettlementScanner(mock_chain, store, test_config.scan)
