"""
Record store for a hosted PostgREST endpoint (e.g. a Supabase project).

Rows live in the ``applications`` table of the hosted schema, which names the
owner column ``user_id``. Row level security on the server limits every
request to the signed-in user's rows; the access token comes from the
external authentication provider.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Any, Mapping, Optional

import httpx
import structlog
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from application_tracker.config.settings import settings
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

TABLE_PATH = "/rest/v1/applications"


def record_from_row(row: Mapping[str, Any]) -> ApplicationRecord:
    """
    Build a record from a hosted row, mapping ``user_id`` to ``owner_id``.

    Raises:
        StoreUnavailable: If the row is missing a column or holds a value
            the record model rejects.
    """
    try:
        data = dict(row)
        data["owner_id"] = data.pop("user_id", data.get("owner_id"))
        record = ApplicationRecord.from_dict(data)
    except (KeyError, TypeError, ValueError) as e:
        logger.error("Malformed hosted row", row=repr(row)[:200], error=str(e))
        raise StoreUnavailable("Hosted store returned a malformed row") from e
    if record.updated_at and record.updated_at < record.created_at:
        record = replace(record, updated_at=record.created_at)
    return record


def row_from_new(new: NewApplication) -> dict:
    data = new.to_dict()
    data["user_id"] = data.pop("owner_id")
    return data


class RestRecordStore(RecordStore):
    """Record store speaking the PostgREST dialect over HTTPS."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        access_token: Optional[str] = None,
        timeout: Optional[float] = None,
        max_retries: Optional[int] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        retry_wait=None,
    ):
        base_url = base_url or settings.rest_url
        if not base_url:
            raise ValueError("A base URL is required for the hosted record store")

        api_key = api_key or settings.rest_api_key
        access_token = access_token or settings.rest_access_token or api_key

        headers = {
            "Accept": "application/json",
            "Content-Type": "application/json",
        }
        if api_key:
            headers["apikey"] = api_key
        if access_token:
            headers["Authorization"] = f"Bearer {access_token}"

        self.client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            headers=headers,
            timeout=httpx.Timeout(timeout or settings.store_timeout_seconds),
            transport=transport,
        )
        self.max_retries = max_retries or settings.store_max_retries
        self.retry_wait = retry_wait or wait_exponential(multiplier=1, min=2, max=10)
        self.logger = structlog.get_logger().bind(store="rest")

    async def close(self) -> None:
        await self.client.aclose()

    async def _request(self, method: str, params: dict, **kwargs) -> Any:
        """
        Send a request to the applications table and decode the JSON body.

        Transport errors are retried with exponential backoff; anything left
        over, and any non-2xx response, becomes ``StoreUnavailable``.
        """
        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(self.max_retries),
                wait=self.retry_wait,
                retry=retry_if_exception_type(httpx.TransportError),
                before_sleep=lambda retry_state: self.logger.warning(
                    "Retrying request",
                    method=method,
                    attempt=retry_state.attempt_number,
                ),
                reraise=True,
            ):
                with attempt:
                    response = await self.client.request(method, TABLE_PATH, params=params, **kwargs)
        except httpx.TransportError as e:
            self.logger.error("Hosted store unreachable", method=method, error=str(e))
            raise StoreUnavailable(f"Hosted store unreachable: {e}") from e

        if response.is_error:
            self.logger.error(
                "Hosted store error",
                method=method,
                status_code=response.status_code,
                body=response.text[:200],
            )
            raise StoreUnavailable(f"Hosted store returned HTTP {response.status_code}")

        if not response.content:
            return []
        try:
            return response.json()
        except ValueError as e:
            raise StoreUnavailable("Hosted store returned malformed JSON") from e

    async def list(self, owner_id: str) -> list[ApplicationRecord]:
        rows = await self._request(
            "GET",
            {"select": "*", "user_id": f"eq.{owner_id}", "order": "created_at.desc"},
        )
        return [record_from_row(row) for row in rows]

    async def insert(self, new: NewApplication) -> ApplicationRecord:
        row = row_from_new(new)
        row["created_at"] = utcnow().isoformat()
        rows = await self._request(
            "POST",
            {"select": "*"},
            json=[row],
            headers={"Prefer": "return=representation"},
        )
        if not rows:
            raise StoreUnavailable("Hosted store did not return the inserted row")
        return record_from_row(rows[0])

    async def update(self, record_id: str, fields: Mapping[str, Any]) -> ApplicationRecord:
        body = {k: storage_value(v) for k, v in fields.items() if k in EDITABLE_FIELDS}
        body["updated_at"] = utcnow().isoformat()
        rows = await self._request(
            "PATCH",
            {"id": f"eq.{record_id}", "select": "*"},
            json=body,
            headers={"Prefer": "return=representation"},
        )
        if not rows:
            raise NotFound(record_id)
        return record_from_row(rows[0])

    async def delete(self, record_id: str) -> None:
        rows = await self._request(
            "DELETE",
            {"id": f"eq.{record_id}"},
            headers={"Prefer": "return=representation"},
        )
        if not rows:
            raise NotFound(record_id)
