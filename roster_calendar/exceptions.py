"""Exception hierarchy for the roster calendar engine."""


class RosterCalendarError(Exception):
    """Base exception for roster calendar errors."""


class AggregationRequestError(RosterCalendarError):
    """Raised when the caller violates the aggregation contract (e.g. no window)."""


class SnapshotLoadError(RosterCalendarError):
    """Raised when a snapshot document cannot be read or validated."""

    def __init__(self, message: str, path: str = ""):
        super().__init__(message)
        self.path = path
