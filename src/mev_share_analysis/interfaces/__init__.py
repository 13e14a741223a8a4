"""Protocol interfaces for the external collaborators."""

from mev_share_analysis.interfaces.chain import ChainReader
from mev_share_analysis.interfaces.disclosure import DisclosureAPI
from mev_share_analysis.interfaces.store import EventStore

__all__ = ["ChainReader", "DisclosureAPI", "EventStore"]
