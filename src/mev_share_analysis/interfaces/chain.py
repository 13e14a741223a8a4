"""ChainReader protocol - read access to an Ethereum node."""

from __future__ import annotations

from typing import Protocol

from mev_share_analysis.models.records import ChainBlock, ChainTransaction


class ChainReader(Protocol):
    """Fetches transactions and blocks.

    Implementations raise ChainError with an ErrorKind on failure.
    """

    async def get_transaction(self, tx_hash: str) -> ChainTransaction | None:
        """None if the node does not know the transaction."""
        ...

    async def get_block(self, number: int) -> ChainBlock:
        ...
