"""
SQLite-backed record store.

The blocking ``sqlite3`` work runs in a worker thread via ``asyncio.to_thread``
so callers awaiting the store never block the event loop.
"""

from __future__ import annotations

import asyncio
import sqlite3
import uuid
from pathlib import Path
from typing import Any, Mapping, Optional

import structlog

from application_tracker.database.connection import get_db_connection, init_database
from application_tracker.errors import NotFound, StoreUnavailable
from application_tracker.models.application import (
    ApplicationRecord,
    EDITABLE_FIELDS,
    NewApplication,
    storage_value,
    utcnow,
)
from application_tracker.stores.base import RecordStore

logger = structlog.get_logger()


class SQLiteRecordStore(RecordStore):
    """Record store persisting to the ``applications`` table of a SQLite file."""

    def __init__(self, db_path: Optional[Path] = None, initialize: bool = True):
        self.db_path = db_path
        self._initialized = not initialize
        self.logger = structlog.get_logger().bind(store="sqlite")

    async def _run(self, func, *args):
        try:
            if not self._initialized:
                await asyncio.to_thread(init_database, self.db_path)
                self._initialized = True
            return await asyncio.to_thread(func, *args)
        except sqlite3.Error as e:
            self.logger.error("SQLite store failure", operation=func.__name__, error=str(e))
            raise StoreUnavailable(f"SQLite store failure: {e}") from e

    # Blocking implementations

    def _list_sync(self, owner_id: str) -> list[ApplicationRecord]:
        with get_db_connection(self.db_path) as conn:
            cursor = conn.execute(
                """
                SELECT * FROM applications
                WHERE owner_id = ?
                ORDER BY created_at DESC, rowid DESC
                """,
                (owner_id,),
            )
            return [ApplicationRecord.from_row(row) for row in cursor.fetchall()]

    def _insert_sync(self, new: NewApplication) -> ApplicationRecord:
        record = new.to_record(record_id=uuid.uuid4().hex, created_at=utcnow())
        data = record.to_dict()
        columns = ", ".join(data)
        placeholders = ", ".join("?" for _ in data)

        with get_db_connection(self.db_path) as conn:
            conn.execute(
                f"INSERT INTO applications ({columns}) VALUES ({placeholders})",
                tuple(data.values()),
            )
        return record

    def _fetch_row(self, conn: sqlite3.Connection, record_id: str) -> Optional[sqlite3.Row]:
        return conn.execute("SELECT * FROM applications WHERE id = ?", (record_id,)).fetchone()

    def _update_sync(self, record_id: str, fields: Mapping[str, Any]) -> ApplicationRecord:
        changes = {k: storage_value(v) for k, v in fields.items() if k in EDITABLE_FIELDS}

        with get_db_connection(self.db_path) as conn:
            row = self._fetch_row(conn, record_id)
            if row is not None:
                created_at = ApplicationRecord.from_row(row).created_at
                changes["updated_at"] = max(utcnow(), created_at).isoformat()

                assignments = ", ".join(f"{column} = ?" for column in changes)
                conn.execute(
                    f"UPDATE applications SET {assignments} WHERE id = ?",
                    (*changes.values(), record_id),
                )
                row = self._fetch_row(conn, record_id)

        if row is None:
            raise NotFound(record_id)
        return ApplicationRecord.from_row(row)

    def _delete_sync(self, record_id: str) -> None:
        with get_db_connection(self.db_path) as conn:
            deleted = conn.execute("DELETE FROM applications WHERE id = ?", (record_id,)).rowcount

        if deleted == 0:
            raise NotFound(record_id)

    # RecordStore interface

    async def list(self, owner_id: str) -> list[ApplicationRecord]:
        return await self._run(self._list_sync, owner_id)

    async def insert(self, new: NewApplication) -> ApplicationRecord:
        record = await self._run(self._insert_sync, new)
        self.logger.debug("Inserted application", id=record.id, owner_id=record.owner_id)
        return record

    async def update(self, record_id: str, fields: Mapping[str, Any]) -> ApplicationRecord:
        return await self._run(self._update_sync, record_id, fields)

    async def delete(self, record_id: str) -> None:
        await self._run(self._delete_sync, record_id)
