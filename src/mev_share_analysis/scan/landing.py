"""Landing detection: did a disclosed transaction make it on-chain, and where."""

from __future__ import annotations

from dataclasses import dataclass

from mev_share_analysis.errors import ChainError
from mev_share_analysis.interfaces.chain import ChainReader
from mev_share_analysis.models.events import narrow_u64
from mev_share_analysis.models.records import ChainBlock, ChainTransaction, ErrorKind, Landing


@dataclass(frozen=True)
class LandingLookup:
    landing: Landing
    transaction: ChainTransaction
    block: ChainBlock


async def find_landing(tx_hash: str, chain: ChainReader) -> LandingLookup | None:
    """Resolve the block containing ``tx_hash``.

    None if the node does not know the transaction or it is still pending.
    """
    tx = await chain.get_transaction(tx_hash)
    if tx is None or tx.block_number is None:
        return None

    block = await chain.get_block(tx.block_number)
    if block.author is None:
        raise ChainError(ErrorKind.MALFORMED, f"block {tx.block_number} has no author")

    landing = Landing(
        block=narrow_u64(tx.block_number),
        timestamp=narrow_u64(block.timestamp),
        builder=block.author,
    )
    return LandingLookup(landing=landing, transaction=tx, block=block)
