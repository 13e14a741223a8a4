"""Ethereum JSON-RPC chain reader built on web3's async provider."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Mapping, TypeVar

import aiohttp
from web3 import AsyncWeb3
from web3.exceptions import BlockNotFound, TransactionNotFound, Web3Exception

from mev_share_analysis.errors import ChainError
from mev_share_analysis.models.events import normalize_hash
from mev_share_analysis.models.records import ChainBlock, ChainTransaction, ErrorKind

log = logging.getLogger(__name__)

T = TypeVar("T")

# the node refuses our credentials; retrying cannot help
_FATAL_STATUSES = (401, 403)


def _address(value: Any) -> str | None:
    if value is None:
        return None
    return str(value).lower()


def _tx_hash(value: Any) -> str:
    if isinstance(value, Mapping):
        value = value["hash"]
    return normalize_hash(value)


def to_transaction(raw: Mapping[str, Any]) -> ChainTransaction:
    """Convert a web3 transaction AttributeDict into a ChainTransaction."""
    try:
        block_number = raw.get("blockNumber")
        tx_index = raw.get("transactionIndex")
        return ChainTransaction(
            hash=_tx_hash(raw["hash"]),
            sender=str(raw["from"]).lower(),
            to=_address(raw.get("to")),
            value=int(raw["value"]),
            block_number=int(block_number) if block_number is not None else None,
            transaction_index=int(tx_index) if tx_index is not None else None,
        )
    except (KeyError, TypeError, ValueError) as exc:
        raise ChainError(ErrorKind.MALFORMED, f"unusable transaction: {exc}") from exc


def to_block(raw: Mapping[str, Any]) -> ChainBlock:
    """Convert a web3 block AttributeDict into a ChainBlock.

    Nodes that expose ``author`` (Parity/Reth style) take precedence over ``miner``.
    """
    try:
        return ChainBlock(
            number=int(raw["number"]),
            timestamp=int(raw["timestamp"]),
            author=_address(raw.get("author") or raw.get("miner")),
            transactions=tuple(_tx_hash(tx) for tx in raw.get("transactions") or []),
        )
    except (KeyError, TypeError, ValueError) as exc:
        raise ChainError(ErrorKind.MALFORMED, f"unusable block: {exc}") from exc


class Web3ChainReader:
    """Read-only access to an Ethereum node.

    Every call is bounded by ``rpc_timeout`` seconds. Failures surface as
    ChainError; a transaction the node does not know is returned as None.
    """

    def __init__(self, rpc_url: str, rpc_timeout: int = 30) -> None:
        self._rpc_url = rpc_url
        self._rpc_timeout = rpc_timeout
        self._w3 = AsyncWeb3(AsyncWeb3.AsyncHTTPProvider(rpc_url))

    async def close(self) -> None:
        """Close the provider's HTTP session."""
        try:
            await self._w3.provider.disconnect()
        except Exception as exc:
            log.debug("Provider disconnect failed: %s", exc)

    async def _call(self, what: str, call: Awaitable[T]) -> T:
        try:
            return await asyncio.wait_for(call, timeout=self._rpc_timeout)
        except asyncio.TimeoutError as exc:
            raise ChainError(
                ErrorKind.TRANSIENT, f"{what} timed out after {self._rpc_timeout}s",
            ) from exc
        except aiohttp.ClientResponseError as exc:
            kind = ErrorKind.FATAL if exc.status in _FATAL_STATUSES else ErrorKind.TRANSIENT
            raise ChainError(kind, f"{what} rejected: HTTP {exc.status}") from exc
        except (aiohttp.ClientError, OSError) as exc:
            raise ChainError(ErrorKind.TRANSIENT, f"{what} connection error: {exc}") from exc

    async def get_transaction(self, tx_hash: str) -> ChainTransaction | None:
        try:
            key = normalize_hash(tx_hash)
        except ValueError as exc:
            raise ChainError(ErrorKind.MALFORMED, str(exc)) from exc

        try:
            raw = await self._call(f"get_transaction({key})", self._w3.eth.get_transaction(key))
        except TransactionNotFound:
            return None
        except Web3Exception as exc:
            raise ChainError(ErrorKind.TRANSIENT, f"get_transaction({key}): {exc}") from exc

        if raw is None:
            return None
        return to_transaction(raw)

    async def get_block(self, number: int) -> ChainBlock:
        try:
            raw = await self._call(f"get_block({number})", self._w3.eth.get_block(number))
        except BlockNotFound as exc:
            raise ChainError(ErrorKind.NOT_FOUND, f"block {number} not found") from exc
        except Web3Exception as exc:
            raise ChainError(ErrorKind.TRANSIENT, f"get_block({number}): {exc}") from exc
        return to_block(raw)
