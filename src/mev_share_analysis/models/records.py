"""Derived facts, chain snapshots, and operation results."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class ErrorKind(str, Enum):
    """Classification of a failed external call."""

    NOT_FOUND = "not_found"  # a referenced block is missing, skip the event
    TRANSIENT = "transient"  # retry may succeed
    MALFORMED = "malformed"  # data present but unusable, skip the event
    FATAL = "fatal"  # abort the run


class ScanOutcome(str, Enum):
    NOT_LANDED = "not_landed"
    LANDED = "landed"
    REFUNDED = "refunded"
    SKIPPED = "skipped"  # could not determine, left unscanned
    FAILED = "failed"  # determined, but write-back did not stick


# ---------------------------------------------------------------------------
# Facts attached to an Event
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Landing:
    """On-chain placement of a disclosed transaction."""

    block: int
    timestamp: int
    builder: str  # lower-case 0x address

    def to_dict(self) -> dict:
        return {"block": self.block, "timestamp": self.timestamp, "builder": self.builder}

    @classmethod
    def from_dict(cls, raw: dict) -> Landing:
        return cls(
            block=int(raw["block"]),
            timestamp=int(raw["timestamp"]),
            builder=str(raw["builder"]).lower(),
        )


@dataclass(frozen=True)
class Refund:
    """Builder -> sender payment following the disclosed transaction."""

    signal_tx: str
    refund_tx: str
    value: int  # wei, narrowed to u64

    def to_dict(self) -> dict:
        return {"signalTx": self.signal_tx, "refundTx": self.refund_tx, "value": self.value}

    @classmethod
    def from_dict(cls, raw: dict) -> Refund:
        return cls(
            signal_tx=str(raw["signalTx"]),
            refund_tx=str(raw["refundTx"]),
            value=int(raw["value"]),
        )


# ---------------------------------------------------------------------------
# Chain snapshots
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ChainTransaction:
    hash: str
    sender: str
    to: str | None  # None for contract creation
    value: int
    block_number: int | None = None  # None while pending
    transaction_index: int | None = None


@dataclass(frozen=True)
class ChainBlock:
    number: int
    timestamp: int
    author: str | None
    transactions: tuple[str, ...] = ()  # tx hashes in block order


# ---------------------------------------------------------------------------
# Store query options
# ---------------------------------------------------------------------------


@dataclass
class FindOptions:
    """Cursor options for EventStore.find_events()."""

    batch_size: int = 1_000
    allow_disk_use: bool = False
    index_hint: str | None = None  # index name, e.g. "idx_events_hint_hash"
    skip: int = 0
    limit: int | None = None  # None = unlimited, 0 = nothing


@dataclass
class EventFilter:
    block_start: int | None = None
    block_end: int | None = None
    landed: bool | None = None


@dataclass
class StoreStats:
    total: int = 0
    scanned: int = 0
    landed: int = 0
    refunds: int = 0
    total_refunded: int = 0  # wei


# ---------------------------------------------------------------------------
# Scan results
# ---------------------------------------------------------------------------


@dataclass
class ScanResult:
    """Result of scanning a single event."""

    tx_hash: str
    outcome: ScanOutcome
    landing: Landing | None = None
    refund: Refund | None = None
    error_kind: ErrorKind | None = None
    error: str | None = None
    updated: int = 0  # documents rewritten


@dataclass
class PartitionTotals:
    """Counters accumulated by one scan worker."""

    landings: int = 0
    refunded: int = 0  # wei
    refunds: int = 0
    iterations: int = 0
    skipped: int = 0
    failed: int = 0

    def add(self, result: ScanResult) -> None:
        self.iterations += 1
        if result.outcome in (ScanOutcome.LANDED, ScanOutcome.REFUNDED):
            self.landings += 1
        if result.outcome == ScanOutcome.REFUNDED and result.refund is not None:
            self.refunds += 1
            self.refunded += result.refund.value
        elif result.outcome == ScanOutcome.SKIPPED:
            self.skipped += 1
        elif result.outcome == ScanOutcome.FAILED:
            self.failed += 1


@dataclass(frozen=True)
class Partition:
    index: int
    skip: int
    limit: int


@dataclass
class ScanReport:
    """Aggregate of all partitions, built after every worker has finished."""

    landings: int = 0
    refunded: int = 0
    refunds: int = 0
    iterations: int = 0
    skipped: int = 0
    failed: int = 0
    workers: int = 0
    total_documents: int = 0
    uncovered: int = 0  # count mod workers, never visited
    duration_ms: int = 0
    partitions: list[Partition] = field(default_factory=list)
