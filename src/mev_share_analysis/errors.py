"""Exception taxonomy shared by all components."""

from __future__ import annotations

from mev_share_analysis.models.records import ErrorKind


class AnalysisError(Exception):
    """Base class for all mev_share_analysis errors."""


class ConfigError(AnalysisError):
    """Configuration file or environment value is invalid."""


class DisclosureError(AnalysisError):
    """The MEV-Share history API could not be queried or returned garbage."""


class StoreError(AnalysisError):
    """A store read or write did not complete."""


class ChainError(AnalysisError):
    """A chain provider call failed.

    ``kind`` tells the caller whether to retry, skip the event, or abort.
    """

    def __init__(self, kind: ErrorKind, message: str) -> None:
        super().__init__(message)
        self.kind = kind

    def __str__(self) -> str:
        return f"[{self.kind.value}] {super().__str__()}"
