"""
Session-scoped repository of application records.

The repository owns the in-memory collection for one signed-in user. It
validates input, forwards mutations to the record store and keeps the local
collection in step with what the store reports back.
"""

import asyncio
from typing import Any, Iterator, Mapping, Optional

import structlog

from application_tracker.errors import NotFound, StoreUnavailable, ValidationError
from application_tracker.models.application import (
    ApplicationRecord,
    NewApplication,
    STATUS_ALL,
    validate_fields,
)
from application_tracker.services import filters, stats
from application_tracker.stores.base import RecordStore


def _newest_first(records) -> list[ApplicationRecord]:
    return sorted(records, key=lambda record: record.created_at, reverse=True)


class ApplicationRepository:
    """
    In-memory collection of one owner's applications, backed by a record store.

    Usage:
        repo = ApplicationRepository(store)
        await repo.load(owner_id)
        record = await repo.create(owner_id, {...})
        stats = repo.summary()

    Mutations are serialized: a second call waits until the one in flight
    completes. ``busy`` tells a caller that one is pending.
    """

    def __init__(self, store: RecordStore):
        self.store = store
        self.owner_id: Optional[str] = None
        self._records: list[ApplicationRecord] = []
        self._lock = asyncio.Lock()
        self.logger = structlog.get_logger().bind(component="repository")

    @property
    def records(self) -> tuple[ApplicationRecord, ...]:
        """Snapshot of the collection, newest first."""
        return tuple(self._records)

    @property
    def busy(self) -> bool:
        return self._lock.locked()

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[ApplicationRecord]:
        return iter(self.records)

    def _index_of(self, record_id: str) -> int:
        for index, record in enumerate(self._records):
            if record.id == record_id:
                return index
        raise NotFound(record_id)

    def _drop_stale(self, record_id: str) -> None:
        self._records = [record for record in self._records if record.id != record_id]
        self.logger.warning("Dropped stale application", id=record_id)

    def get(self, record_id: str) -> ApplicationRecord:
        """Look up a record in the current collection."""
        return self._records[self._index_of(record_id)]

    async def load(self, owner_id: str) -> tuple[ApplicationRecord, ...]:
        """
        Replace the collection with every record the store holds for ``owner_id``.

        Raises:
            StoreUnavailable: The previous collection is kept.
        """
        async with self._lock:
            try:
                fetched = await self.store.list(owner_id)
            except StoreUnavailable:
                self.logger.warning("Load failed, keeping collection", owner_id=owner_id, kept=len(self._records))
                raise

            owned = []
            for record in fetched:
                if record.owner_id != owner_id:
                    self.logger.warning("Ignoring foreign application", id=record.id, owner_id=owner_id)
                    continue
                owned.append(record)

            self._records = _newest_first(owned)
            self.owner_id = owner_id
            self.logger.info("Loaded applications", owner_id=owner_id, count=len(self._records))
            return self.records

    async def create(self, owner_id: str, fields: Mapping[str, Any]) -> ApplicationRecord:
        """
        Validate ``fields`` and store them as a new application for ``owner_id``.

        Returns:
            The stored record, also inserted into the collection.

        Raises:
            ValidationError: Nothing was sent to the store.
            StoreUnavailable: The collection is unchanged.
        """
        if not owner_id or (self.owner_id is not None and owner_id != self.owner_id):
            raise ValidationError(["owner_id"], {"owner_id": "does not match the signed-in user"})

        new = NewApplication.from_fields(owner_id, fields)

        async with self._lock:
            record = await self.store.insert(new)
            self.owner_id = owner_id
            self._records = _newest_first([record, *self._records])

        self.logger.info("Created application", id=record.id, company=record.company, status=record.status.value)
        return record

    async def update(self, record_id: str, fields: Mapping[str, Any]) -> ApplicationRecord:
        """
        Apply an edit to a record of the collection.

        Args:
            record_id: Id of a loaded record.
            fields: Changed fields only; the rest of the record is kept.

        Raises:
            NotFound: Unknown locally (collection unchanged) or gone from the
                store (the stale entry is dropped).
            ValidationError: Nothing was sent to the store.
            StoreUnavailable: The collection is unchanged.
        """
        async with self._lock:
            current = self.get(record_id)
            changes = validate_fields(fields, partial=True)
            validate_fields({**_editable_values(current), **changes})

            try:
                updated = await self.store.update(record_id, changes)
            except NotFound:
                self._drop_stale(record_id)
                raise

            # The session may have been reset while the store call was pending
            self._records = [updated if record.id == record_id else record for record in self._records]

        self.logger.info("Updated application", id=record_id, fields=sorted(changes))
        return updated

    async def remove(self, record_id: str) -> None:
        """
        Delete a record of the collection. There is no undo.

        Raises:
            NotFound: Unknown locally, or already gone from the store (the
                stale entry is dropped).
            StoreUnavailable: The collection is unchanged.
        """
        async with self._lock:
            self._index_of(record_id)

            try:
                await self.store.delete(record_id)
            except NotFound:
                self._drop_stale(record_id)
                raise

            self._records = [record for record in self._records if record.id != record_id]

        self.logger.info("Deleted application", id=record_id)

    def visible(self, search_term: str = "", status_filter=STATUS_ALL) -> list[ApplicationRecord]:
        """Filtered view of the collection."""
        return filters.visible(self._records, search_term, status_filter)

    def summary(self, recent_limit: int = stats.DEFAULT_RECENT_LIMIT) -> stats.ApplicationStats:
        """Dashboard statistics for the collection."""
        return stats.summarize(self.records, recent_limit)

    def reset(self) -> None:
        """Forget the session's collection (sign-out)."""
        self._records = []
        self.owner_id = None

    async def close(self) -> None:
        """End the session: forget the collection and release the store."""
        self.reset()
        await self.store.close()


def _editable_values(record: ApplicationRecord) -> dict:
    return {
        "company": record.company,
        "position": record.position,
        "location": record.location,
        "status": record.status,
        "application_date": record.application_date,
        "notes": record.notes,
    }
