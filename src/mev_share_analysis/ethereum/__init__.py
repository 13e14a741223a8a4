"""Ethereum node integration."""

from mev_share_analysis.ethereum.reader import Web3ChainReader, to_block, to_transaction

__all__ = ["Web3ChainReader", "to_block", "to_transaction"]
