"""
Search and status filtering over a collection of application records.
"""

from typing import Iterable, Optional, Union

from application_tracker.errors import ValidationError
from application_tracker.models.application import ApplicationRecord, ApplicationStatus, STATUS_ALL

StatusFilter = Union[ApplicationStatus, str]


def resolve_status_filter(status_filter: StatusFilter) -> Optional[ApplicationStatus]:
    """Return the status to match, or None when every status passes."""
    if status_filter is None or status_filter == STATUS_ALL:
        return None
    try:
        return ApplicationStatus(status_filter)
    except (TypeError, ValueError):
        raise ValidationError(["status_filter"], {"status_filter": f"unknown status: {status_filter}"})


def matches_search(record: ApplicationRecord, term: str) -> bool:
    """Case-insensitive substring match against company or position."""
    if not term:
        return True
    return term in record.company.lower() or term in record.position.lower()


def visible(
    records: Iterable[ApplicationRecord],
    search_term: str = "",
    status_filter: StatusFilter = STATUS_ALL,
) -> list[ApplicationRecord]:
    """
    Derive the visible subset of ``records``.

    Args:
        records: Collection to filter; its order is preserved.
        search_term: Text looked up in company and position, ignoring case.
            Matched as typed; only an empty term matches everything.
        status_filter: ``"all"`` or one of the application statuses.

    Returns:
        Records passing both the search and the status test.

    Raises:
        ValidationError: If ``status_filter`` is not a known selector.
    """
    status = resolve_status_filter(status_filter)
    term = (search_term or "").lower()

    return [
        record
        for record in records
        if (status is None or record.status == status) and matches_search(record, term)
    ]
