"""MEV-Share history records and the persisted Event document."""

from __future__ import annotations

import re
from dataclasses import dataclass

from mev_share_analysis.models.records import Landing, Refund

U64_MASK = (1 << 64) - 1

_HASH_RE = re.compile(r"^0x[0-9a-f]{64}$")


def normalize_hash(value: str | bytes) -> str:
    """Canonical key form of a 32-byte hash: lower-case, 0x-prefixed hex.

    Raises ValueError if the input is not a 32-byte hash.
    """
    if isinstance(value, (bytes, bytearray)):
        if len(value) != 32:
            raise ValueError(f"expected 32 bytes, got {len(value)}")
        return "0x" + bytes(value).hex()
    text = str(value).strip().lower()
    if not text.startswith("0x"):
        text = "0x" + text
    if not _HASH_RE.match(text):
        raise ValueError(f"not a 32-byte hex hash: {value!r}")
    return text


def narrow_u64(value: int) -> int:
    """Truncate an on-chain integer to the stored unsigned 64-bit width."""
    return int(value) & U64_MASK


def _hex_int(value: object) -> int | None:
    if value is None:
        return None
    if isinstance(value, int):
        return value
    text = str(value)
    return int(text, 16) if text.startswith("0x") else int(text)


# ---------------------------------------------------------------------------
# Hint payload
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class HintTx:
    to: str | None = None
    call_data: str | None = None
    function_selector: str | None = None


@dataclass(frozen=True)
class HintLog:
    address: str
    topics: tuple[str, ...] = ()
    data: str | None = None


@dataclass(frozen=True)
class Hint:
    """Partial preview of a private transaction or bundle."""

    hash: str
    txs: tuple[HintTx, ...] = ()
    logs: tuple[HintLog, ...] = ()
    mev_gas_price: int | None = None
    gas_used: int | None = None

    @classmethod
    def from_dict(cls, raw: dict) -> Hint:
        return cls(
            hash=normalize_hash(raw["hash"]),
            txs=tuple(
                HintTx(
                    to=tx.get("to"),
                    call_data=tx.get("callData"),
                    function_selector=tx.get("functionSelector"),
                )
                for tx in raw.get("txs") or []
            ),
            logs=tuple(
                HintLog(
                    address=lg["address"],
                    topics=tuple(lg.get("topics") or []),
                    data=lg.get("data"),
                )
                for lg in raw.get("logs") or []
            ),
            mev_gas_price=_hex_int(raw.get("mevGasPrice")),
            gas_used=_hex_int(raw.get("gasUsed")),
        )

    def to_dict(self) -> dict:
        return {
            "hash": self.hash,
            "txs": [
                {"to": t.to, "callData": t.call_data, "functionSelector": t.function_selector}
                for t in self.txs
            ],
            "logs": [
                {"address": lg.address, "topics": list(lg.topics), "data": lg.data}
                for lg in self.logs
            ],
            "mevGasPrice": hex(self.mev_gas_price) if self.mev_gas_price is not None else None,
            "gasUsed": hex(self.gas_used) if self.gas_used is not None else None,
        }


# ---------------------------------------------------------------------------
# History API shapes
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class HistoryEvent:
    """One record from GET /api/v1/history."""

    block: int
    timestamp: int
    hint: Hint

    @classmethod
    def from_dict(cls, raw: dict) -> HistoryEvent:
        return cls(
            block=int(raw["block"]),
            timestamp=int(raw["timestamp"]),
            hint=Hint.from_dict(raw["hint"]),
        )


@dataclass(frozen=True)
class HistoryInfo:
    """GET /api/v1/history/info: indexable range and page ceiling."""

    count: int
    min_block: int
    max_block: int
    max_limit: int
    min_timestamp: int = 0
    max_timestamp: int = 0

    @classmethod
    def from_dict(cls, raw: dict) -> HistoryInfo:
        return cls(
            count=int(raw["count"]),
            min_block=int(raw["minBlock"]),
            max_block=int(raw["maxBlock"]),
            max_limit=int(raw["maxLimit"]),
            min_timestamp=int(raw.get("minTimestamp", 0)),
            max_timestamp=int(raw.get("maxTimestamp", 0)),
        )


@dataclass
class HistoryParams:
    block_start: int | None = None
    block_end: int | None = None
    timestamp_start: int | None = None
    timestamp_end: int | None = None
    limit: int | None = None
    offset: int | None = None

    def to_query(self) -> dict[str, int]:
        pairs = {
            "blockStart": self.block_start,
            "blockEnd": self.block_end,
            "timestampStart": self.timestamp_start,
            "timestampEnd": self.timestamp_end,
            "limit": self.limit,
            "offset": self.offset,
        }
        return {k: v for k, v in pairs.items() if v is not None}


# ---------------------------------------------------------------------------
# Persisted document
# ---------------------------------------------------------------------------


@dataclass
class Event:
    """A disclosed hint as stored; landing/refund/landed are filled by the scanner."""

    block: int
    timestamp: int
    hint: Hint
    refund: Refund | None = None
    landing: Landing | None = None
    landed: bool | None = None  # None = never scanned

    @property
    def hash(self) -> str:
        return self.hint.hash

    @classmethod
    def from_history(cls, event: HistoryEvent) -> Event:
        return cls(block=event.block, timestamp=event.timestamp, hint=event.hint)
