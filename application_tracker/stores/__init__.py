"""
Record stores: persistence backends for application records.
"""

from typing import Optional

from application_tracker.config.settings import settings
from application_tracker.stores.base import RecordStore
from application_tracker.stores.rest_store import RestRecordStore
from application_tracker.stores.sqlite_store import SQLiteRecordStore

__all__ = ["RecordStore", "RestRecordStore", "SQLiteRecordStore", "create_store"]


def create_store(backend: Optional[str] = None) -> RecordStore:
    """Build the record store selected by ``backend`` (defaults to settings)."""
    backend = backend or settings.store_backend
    if backend == "sqlite":
        return SQLiteRecordStore(settings.database_path)
    if backend == "rest":
        return RestRecordStore()
    raise ValueError(f"Unknown store backend: {backend}")
