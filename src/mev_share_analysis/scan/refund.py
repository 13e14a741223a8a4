"""Refund detection.

The first transaction after the landed one, in the same block, sent by the
block author to the landed transaction's sender is taken as the refund. No
later or larger match is considered.
"""

from __future__ import annotations

from mev_share_analysis.errors import ChainError
from mev_share_analysis.interfaces.chain import ChainReader
from mev_share_analysis.models.events import narrow_u64
from mev_share_analysis.models.records import ChainBlock, ChainTransaction, ErrorKind, Refund


def is_refund(candidate: ChainTransaction, builder: str, sender: str) -> bool:
    """builder -> sender transfer. Contract creations (no recipient) never match."""
    if candidate.to is None:
        return False
    return candidate.sender == builder and candidate.to == sender


async def scan_refund(
    tx: ChainTransaction,
    block: ChainBlock,
    chain: ChainReader,
) -> Refund | None:
    """Scan the transactions following ``tx`` in ``block`` in block order."""
    if tx.transaction_index is None:
        raise ChainError(ErrorKind.MALFORMED, f"{tx.hash} has no transaction index")
    if block.author is None:
        raise ChainError(ErrorKind.MALFORMED, f"block {block.number} has no author")

    for candidate_hash in block.transactions[tx.transaction_index + 1:]:
        candidate = await chain.get_transaction(candidate_hash)
        if candidate is None:
            raise ChainError(
                ErrorKind.MALFORMED,
                f"block {block.number} lists {candidate_hash} but the node does not know it",
            )
        if is_refund(candidate, block.author, tx.sender):
            return Refund(
                signal_tx=tx.hash,
                refund_tx=candidate.hash,
                value=narrow_u64(candidate.value),
            )
    return None
