"""
Data models for the Application Tracker.
"""

from application_tracker.models.application import (
    ApplicationRecord,
    ApplicationStatus,
    NewApplication,
    PENDING_STATUSES,
    STATUS_ALL,
    validate_fields,
)

__all__ = [
    "ApplicationRecord",
    "ApplicationStatus",
    "NewApplication",
    "PENDING_STATUSES",
    "STATUS_ALL",
    "validate_fields",
]
