"""Event persistence."""

from mev_share_analysis.storage.sqlite import EventCursor, SQLiteEventStore

__all__ = ["EventCursor", "SQLiteEventStore"]
