"""
Application record model, status enumeration and input validation.
"""

from dataclasses import dataclass, fields as dataclass_fields
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Mapping, Optional

from application_tracker.errors import ValidationError


class ApplicationStatus(str, Enum):
    """Lifecycle stage of an application."""

    APPLIED = "applied"
    INTERVIEW = "interview"
    OFFER = "offer"
    REJECTED = "rejected"

    @property
    def label(self) -> str:
        return self.value.capitalize()


# Statuses still waiting on an outcome
PENDING_STATUSES = frozenset({ApplicationStatus.APPLIED, ApplicationStatus.INTERVIEW})

# Status selector that matches every record
STATUS_ALL = "all"

REQUIRED_TEXT_FIELDS = ("company", "position", "location")
EDITABLE_FIELDS = ("company", "position", "location", "status", "application_date", "notes")
READ_ONLY_FIELDS = ("id", "owner_id", "created_at", "updated_at")


def parse_date(value: Any) -> date:
    """
    Coerce a calendar date from a date object or an ISO ``YYYY-MM-DD`` string.

    Raises:
        ValueError: On empty or malformed strings.
        TypeError: On any other type.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        text = value.strip()
        if not text:
            raise ValueError("empty date")
        return date.fromisoformat(text[:10])
    raise TypeError(f"Unsupported date value: {value!r}")


def parse_datetime(value: Any) -> Optional[datetime]:
    """Parse a stored timestamp; naive values are taken as UTC."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def storage_value(value: Any) -> Any:
    """Convert a validated field value to its stored representation."""
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    return value


@dataclass(frozen=True)
class ApplicationRecord:
    """One tracked job application, as persisted by a record store."""

    id: str
    owner_id: str
    company: str
    position: str
    location: str
    application_date: date
    created_at: datetime
    status: ApplicationStatus = ApplicationStatus.APPLIED
    notes: str = ""
    updated_at: Optional[datetime] = None

    @classmethod
    def from_row(cls, row) -> "ApplicationRecord":
        """Create a record from a database row."""
        data = dict(zip(row.keys(), row)) if hasattr(row, "keys") else dict(row)
        return cls.from_dict(data)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ApplicationRecord":
        """Create a record from a dictionary, ignoring unknown keys."""
        known_fields = {f.name for f in dataclass_fields(cls)}
        filtered = {k: v for k, v in data.items() if k in known_fields}

        filtered["id"] = str(filtered["id"])
        filtered["owner_id"] = str(filtered["owner_id"])
        filtered["status"] = ApplicationStatus(filtered.get("status") or ApplicationStatus.APPLIED)
        filtered["application_date"] = parse_date(filtered["application_date"])
        filtered["created_at"] = parse_datetime(filtered["created_at"])
        if filtered["created_at"] is None:
            raise ValueError("created_at is required")
        filtered["updated_at"] = parse_datetime(filtered.get("updated_at"))
        filtered["notes"] = filtered.get("notes") or ""

        return cls(**filtered)

    def to_dict(self) -> dict:
        """Convert the record to a dictionary of storage values."""
        return {
            "id": self.id,
            "owner_id": self.owner_id,
            "company": self.company,
            "position": self.position,
            "location": self.location,
            "status": self.status.value,
            "application_date": self.application_date.isoformat(),
            "notes": self.notes,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

    @property
    def is_pending(self) -> bool:
        return self.status in PENDING_STATUSES


@dataclass(frozen=True)
class NewApplication:
    """A validated record that has not been assigned an id by the store yet."""

    owner_id: str
    company: str
    position: str
    location: str
    application_date: date
    status: ApplicationStatus = ApplicationStatus.APPLIED
    notes: str = ""

    @classmethod
    def from_fields(cls, owner_id: str, fields: Mapping[str, Any]) -> "NewApplication":
        return cls(owner_id=owner_id, **validate_fields(fields))

    def to_dict(self) -> dict:
        return {
            "owner_id": self.owner_id,
            "company": self.company,
            "position": self.position,
            "location": self.location,
            "status": self.status.value,
            "application_date": self.application_date.isoformat(),
            "notes": self.notes,
        }

    def to_record(self, record_id: str, created_at: datetime) -> ApplicationRecord:
        return ApplicationRecord(
            id=record_id,
            owner_id=self.owner_id,
            company=self.company,
            position=self.position,
            location=self.location,
            application_date=self.application_date,
            created_at=created_at,
            status=self.status,
            notes=self.notes,
        )


def validate_fields(fields: Mapping[str, Any], partial: bool = False) -> dict[str, Any]:
    """
    Validate and normalize user-supplied application fields.

    Args:
        fields: Raw input keyed by field name.
        partial: When True only the keys present are checked (an edit delta);
            otherwise every required field must be present (a new record).

    Returns:
        Normalized values: stripped text, ``date`` objects, ``ApplicationStatus``.

    Raises:
        ValidationError: Listing every offending field.
    """
    errors: dict[str, str] = {}
    cleaned: dict[str, Any] = {}

    for key in fields:
        if key in READ_ONLY_FIELDS:
            errors[key] = "field cannot be changed"
        elif key not in EDITABLE_FIELDS:
            errors[key] = "unknown field"

    for name in REQUIRED_TEXT_FIELDS:
        if name not in fields:
            if not partial:
                errors[name] = "required"
            continue
        value = fields[name]
        if not isinstance(value, str) or not value.strip():
            errors[name] = "must not be empty"
        else:
            cleaned[name] = value.strip()

    if "application_date" in fields:
        try:
            cleaned["application_date"] = parse_date(fields["application_date"])
        except (TypeError, ValueError):
            errors["application_date"] = "must be a date (YYYY-MM-DD)"
    elif not partial:
        errors["application_date"] = "required"

    if "status" in fields:
        try:
            cleaned["status"] = ApplicationStatus(fields["status"])
        except (TypeError, ValueError):
            allowed = ", ".join(s.value for s in ApplicationStatus)
            errors["status"] = f"must be one of: {allowed}"
    elif not partial:
        cleaned["status"] = ApplicationStatus.APPLIED

    if "notes" in fields:
        notes = fields["notes"]
        if notes is None:
            cleaned["notes"] = ""
        elif isinstance(notes, str):
            cleaned["notes"] = notes
        else:
            errors["notes"] = "must be text"
    elif not partial:
        cleaned["notes"] = ""

    if errors:
        raise ValidationError(errors.keys(), errors)

    return cleaned
