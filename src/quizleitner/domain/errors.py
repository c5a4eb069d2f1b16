"""Domain errors raised by snapshot handling."""


class SnapshotError(Exception):
    """Base class for problems with a persisted snapshot."""


class UnrecognizedSnapshotError(SnapshotError):
    """The payload is not a snapshot shape this version knows how to read."""
