"""
Record store contract.

A record store persists application records on behalf of the repository.
Implementations are always called with an owner id obtained from the
external authentication provider and report failures as ``NotFound`` or
``StoreUnavailable``.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Mapping

from application_tracker.models.application import ApplicationRecord, NewApplication


class RecordStore(ABC):
    """Abstract persistence boundary for application records."""

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def close(self) -> None:
        """Release any held resources."""

    @abstractmethod
    async def list(self, owner_id: str) -> list[ApplicationRecord]:
        """
        List every record owned by ``owner_id``, newest first.

        Raises:
            StoreUnavailable: On transport or backend failure.
        """

    @abstractmethod
    async def insert(self, new: NewApplication) -> ApplicationRecord:
        """
        Persist a new record.

        Returns:
            The stored record with ``id`` and ``created_at`` assigned.

        Raises:
            StoreUnavailable: On transport or backend failure.
        """

    @abstractmethod
    async def update(self, record_id: str, fields: Mapping[str, Any]) -> ApplicationRecord:
        """
        Apply validated ``fields`` to a stored record and refresh ``updated_at``.

        Returns:
            The updated record.

        Raises:
            NotFound: If no record has this id.
            StoreUnavailable: On transport or backend failure.
        """

    @abstractmethod
    async def delete(self, record_id: str) -> None:
        """
        Delete a stored record.

        Raises:
            NotFound: If no record has this id.
            StoreUnavailable: On transport or backend failure.
        """
