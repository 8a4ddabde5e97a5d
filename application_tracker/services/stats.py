"""
Dashboard statistics derived from a collection of application records.
"""

from dataclasses import dataclass, field
from typing import Iterable

from application_tracker.models.application import (
    ApplicationRecord,
    ApplicationStatus,
    PENDING_STATUSES,
)

DEFAULT_RECENT_LIMIT = 5


@dataclass(frozen=True)
class ApplicationStats:
    """Summary counters for a user's applications."""

    total_applications: int = 0
    pending_applications: int = 0
    accepted_applications: int = 0
    rejected_applications: int = 0
    success_rate: int = 0
    by_status: dict[ApplicationStatus, int] = field(default_factory=dict)
    recent: list[ApplicationRecord] = field(default_factory=list)

    def to_dict(self) -> dict:
        """JSON-friendly rendering, recent applications included."""
        return {
            "total_applications": self.total_applications,
            "pending_applications": self.pending_applications,
            "accepted_applications": self.accepted_applications,
            "rejected_applications": self.rejected_applications,
            "success_rate": self.success_rate,
            "by_status": {status.value: count for status, count in self.by_status.items()},
            "recent": [record.to_dict() for record in self.recent],
        }


def percentage(part: int, whole: int) -> int:
    """``100 * part / whole`` rounded half up to an integer; 0 when ``whole`` is 0."""
    if whole <= 0:
        return 0
    return (200 * part + whole) // (2 * whole)


def recent(records: Iterable[ApplicationRecord], n: int = DEFAULT_RECENT_LIMIT) -> list[ApplicationRecord]:
    """The ``n`` most recently created records, newest first."""
    if n <= 0:
        return []
    ordered = sorted(records, key=lambda record: record.created_at, reverse=True)
    return ordered[:n]


def summarize(
    records: Iterable[ApplicationRecord],
    recent_limit: int = DEFAULT_RECENT_LIMIT,
) -> ApplicationStats:
    """
    Reduce ``records`` into dashboard counters.

    Pending covers applied and interview; accepted is offer. The input is
    never modified and may be empty.
    """
    records = list(records)
    by_status = {status: 0 for status in ApplicationStatus}
    for record in records:
        by_status[record.status] += 1

    total = sum(by_status.values())
    accepted = by_status[ApplicationStatus.OFFER]

    return ApplicationStats(
        total_applications=total,
        pending_applications=sum(by_status[status] for status in PENDING_STATUSES),
        accepted_applications=accepted,
        rejected_applications=by_status[ApplicationStatus.REJECTED],
        success_rate=percentage(accepted, total),
        by_status=by_status,
        recent=recent(records, recent_limit),
    )
