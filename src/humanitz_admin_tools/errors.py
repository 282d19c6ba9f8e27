"""
Exceptions raised by the HumanitZ stats importer.

Per-line and per-record problems (malformed lines, unresolved names, filtered raids)
are never raised; they are absorbed and reported through counters. Only the
conditions below escalate.
"""


class StatsImportError(Exception):
    """Base class for errors that abort a stats import run."""


class MissingEventLogError(StatsImportError):
    """Raised when no event log (HMZLog.log) is available, so nothing can be computed."""


class RemoteFetchError(StatsImportError):
    """Raised when a file cannot be fetched from the game server file API."""

    def __init__(self, remote_path: str, reason: str):
        self.remote_path = remote_path
        self.reason = reason
        super().__init__(f"Failed to fetch {remote_path}: {reason}")
