"""
Error kinds raised by the availability and scheduling engine.

None of these are retried internally. The HTTP layer maps them to responses.
"""


class SchedulingError(Exception):
    """Base class for all engine errors."""


class InvalidArgument(SchedulingError):
    """A value is semantically invalid (bad weekday, end before start, bad horizon...)."""

    def __init__(self, field: str, message: str):
        super().__init__(message)
        self.field = field
        self.message = message


class NotFound(SchedulingError):
    """
    The technician or entry does not exist, or belongs to another company.

    Both cases are reported identically.
    """


class Overlap(SchedulingError):
    """A new or updated entry would overlap one of its siblings."""

    def __init__(self, message: str, conflicting_entry=None):
        super().__init__(message)
        self.message = message
        self.conflicting_entry = conflicting_entry
