class TrackerError(Exception):
    """Base class for all errors raised by the tracker core."""


class ValidationError(TrackerError, ValueError):
    """A domain value is malformed (negative reps, unknown import mode, ...)."""


class FormatError(TrackerError, ValueError):
    """CSV or stored data does not match the expected layout."""

    def __init__(self, message: str, line: int | None = None) -> None:
        super().__init__(message)
        self.line = line


class NotFoundError(TrackerError, LookupError):
    """A referenced routine, day, session or set does not exist."""


class InvalidStateError(TrackerError):
    """The operation is not allowed in the current session state."""
