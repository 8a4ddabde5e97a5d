"""
Pytest configuration and fixtures for Application Tracker tests.
"""

from __future__ import annotations

import os
import tempfile
from dataclasses import replace
from datetime import date, datetime, timedelta, timezone
from pathlib import Path

import pytest

# Set test database path before importing any modules
os.environ["TRACKER_DATABASE_PATH"] = str(Path(tempfile.gettempdir()) / "test_applications.db")

from application_tracker.errors import NotFound, StoreUnavailable
from application_tracker.models.application import (
    ApplicationRecord,
    ApplicationStatus,
    EDITABLE_FIELDS,
)
from application_tracker.stores.base import RecordStore

BASE_TIME = datetime(2024, 3, 1, 9, 0, tzinfo=timezone.utc)


class InMemoryRecordStore(RecordStore):
    """Record store keeping rows in a dict; created_at advances one minute per insert."""

    def __init__(self):
        self.rows: dict[str, ApplicationRecord] = {}
        self.calls: list[str] = []
        self.unavailable = False
        self.closed = False
        self._next_id = 1
        self._clock = BASE_TIME

    def _tick(self) -> datetime:
        self._clock += timedelta(minutes=1)
        return self._clock

    def _check(self, operation: str) -> None:
        self.calls.append(operation)
        if self.unavailable:
            raise StoreUnavailable("store is down")

    async def close(self):
        self.closed = True

    def add(self, record: ApplicationRecord) -> ApplicationRecord:
        """Seed a row directly, bypassing the call log."""
        self.rows[record.id] = record
        return record

    async def list(self, owner_id):
        self._check("list")
        owned = [r for r in self.rows.values() if r.owner_id == owner_id]
        return sorted(owned, key=lambda r: r.created_at, reverse=True)

    async def insert(self, new):
        self._check("insert")
        record = new.to_record(record_id=f"app-{self._next_id}", created_at=self._tick())
        self._next_id += 1
        self.rows[record.id] = record
        return record

    async def update(self, record_id, fields):
        self._check("update")
        if record_id not in self.rows:
            raise NotFound(record_id)
        changes = {k: v for k, v in fields.items() if k in EDITABLE_FIELDS}
        record = replace(self.rows[record_id], **changes, updated_at=self._tick())
        self.rows[record_id] = record
        return record

    async def delete(self, record_id):
        self._check("delete")
        if self.rows.pop(record_id, None) is None:
            raise NotFound(record_id)


def make_record(
    record_id: str = "app-1",
    owner_id: str = "user-1",
    company: str = "Acme",
    position: str = "Engineer",
    location: str = "Remote",
    status: ApplicationStatus = ApplicationStatus.APPLIED,
    minutes: int = 0,
    **extra,
) -> ApplicationRecord:
    """Build a stored record created ``minutes`` after the base time."""
    return ApplicationRecord(
        id=record_id,
        owner_id=owner_id,
        company=company,
        position=position,
        location=location,
        application_date=extra.pop("application_date", date(2024, 2, 28)),
        created_at=BASE_TIME + timedelta(minutes=minutes),
        status=ApplicationStatus(status),
        **extra,
    )


@pytest.fixture
def record_factory():
    return make_record


@pytest.fixture
def memory_store():
    return InMemoryRecordStore()


@pytest.fixture
def valid_fields():
    return {
        "company": "Acme",
        "position": "Backend Engineer",
        "location": "Berlin",
        "application_date": "2024-03-01",
        "notes": "Referred by Sam",
    }


@pytest.fixture(scope="function")
def test_db_path():
    """Create a temporary database path for testing."""
    with tempfile.NamedTemporaryFile(suffix=".db", delete=False) as f:
        db_path = Path(f.name)

    yield db_path

    # Cleanup, including WAL files
    for path in (db_path, Path(str(db_path) + "-wal"), Path(str(db_path) + "-shm")):
        if path.exists():
            path.unlink()


@pytest.fixture(scope="function")
def test_db(test_db_path):
    """Create and initialize a test database."""
    from application_tracker.database.connection import init_database

    init_database(test_db_path)
    yield test_db_path


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "integration: marks integration tests")
    config.addinivalue_line("markers", "slow: marks slow tests")
