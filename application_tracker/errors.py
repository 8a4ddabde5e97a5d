"""
Typed failures raised by the repository and the record stores.
"""

from typing import Iterable, Mapping, Optional


class TrackerError(Exception):
    """Base class for every error the tracker reports to its caller."""


class ValidationError(TrackerError):
    """User input failed a required-field or enumeration check."""

    def __init__(self, fields: Iterable[str], messages: Optional[Mapping[str, str]] = None):
        self.fields = tuple(sorted(set(fields)))
        self.messages = dict(messages or {})
        super().__init__(f"Invalid fields: {', '.join(self.fields)}")


class NotFound(TrackerError):
    """The targeted record does not exist (locally or in the store)."""

    def __init__(self, record_id: str):
        self.record_id = record_id
        super().__init__(f"Application not found: {record_id}")


class StoreUnavailable(TrackerError):
    """The record store could not be reached or failed to answer."""

    def __init__(self, message: str = "Record store unavailable"):
        super().__init__(message)
