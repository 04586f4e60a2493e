"""
Record store clients.

Every table is a list of Airtable-shaped records:
``{"id": "rec...", "createdTime": "2024-01-01T00:00:00.000Z", "fields": {...}}``.
Writes use PATCH semantics: only the given fields change.
"""

import copy
import logging
import threading
from datetime import datetime, timezone
from typing import Any, Optional
from urllib.parse import quote
from uuid import uuid4

import httpx

from .config import Settings
from .exceptions import NotFoundError, StorageError

logger = logging.getLogger(__name__)


class RecordStore:
    name = "abstract"

    def list_records(self, table: str) -> list[dict]:
        raise NotImplementedError

    def get_record(self, table: str, record_id: str) -> dict:
        raise NotImplementedError

    def create_record(self, table: str, fields: dict) -> dict:
        raise NotImplementedError

    def update_record(self, table: str, record_id: str, fields: dict) -> dict:
        raise NotImplementedError


class InMemoryRecordStore(RecordStore):
    name = "memory"

    def __init__(self):
        self.tables: dict[str, dict[str, dict]] = {}
        self._lock = threading.Lock()

    def list_records(self, table: str) -> list[dict]:
        with self._lock:
            return [copy.deepcopy(r) for r in self.tables.get(table, {}).values()]

    def get_record(self, table: str, record_id: str) -> dict:
        with self._lock:
            record = self.tables.get(table, {}).get(record_id)
            if record is None:
                raise NotFoundError(f"Record {record_id} not found in {table}")
            return copy.deepcopy(record)

    def create_record(self, table: str, fields: dict) -> dict:
        record = {
            "id": f"rec{uuid4().hex[:14]}",
            "createdTime": _now_iso(),
            "fields": copy.deepcopy(fields),
        }
        with self._lock:
            self.tables.setdefault(table, {})[record["id"]] = record
            return copy.deepcopy(record)

    def update_record(self, table: str, record_id: str, fields: dict) -> dict:
        with self._lock:
            record = self.tables.get(table, {}).get(record_id)
            if record is None:
                raise NotFoundError(f"Record {record_id} not found in {table}")
            record["fields"].update(copy.deepcopy(fields))
            return copy.deepcopy(record)


class AirtableRecordStore(RecordStore):
    name = "airtable"

    def __init__(
        self,
        api_key: str,
        base_id: str,
        api_url: str = "https://api.airtable.com/v0",
        timeout: float = 10.0,
        page_size: int = 100,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.page_size = page_size
        self._client = httpx.Client(
            base_url=f"{api_url.rstrip('/')}/{base_id}",
            headers={
                "Authorization": f"Bearer {api_key}",
                "Content-Type": "application/json",
            },
            timeout=httpx.Timeout(timeout),
            transport=transport,
        )

    def list_records(self, table: str) -> list[dict]:
        records: list[dict] = []
        params: dict[str, Any] = {"pageSize": self.page_size}
        while True:
            data = self._request("GET", _table_path(table), params=params)
            records.extend(data.get("records") or [])
            offset = data.get("offset")
            if not offset:
                return records
            params = {"pageSize": self.page_size, "offset": offset}

    def get_record(self, table: str, record_id: str) -> dict:
        return self._request("GET", _record_path(table, record_id), single_record=True)

    def create_record(self, table: str, fields: dict) -> dict:
        return self._request("POST", _table_path(table), json={"fields": fields})

    def update_record(self, table: str, record_id: str, fields: dict) -> dict:
        return self._request(
            "PATCH", _record_path(table, record_id), json={"fields": fields}, single_record=True
        )

    def close(self):
        self._client.close()

    def _request(self, method: str, path: str, single_record: bool = False, **kwargs) -> dict:
        try:
            response = self._client.request(method, path, **kwargs)
        except httpx.TimeoutException as e:
            logger.error(f"Airtable {method} {path} timed out")
            raise StorageError(f"Record store timed out: {method} {path}") from e
        except httpx.HTTPError as e:
            logger.error(f"Airtable {method} {path} failed: {e}")
            raise StorageError(f"Record store request failed: {method} {path}: {e}") from e

        if single_record and response.status_code == 404:
            raise NotFoundError(f"Record not found: {path}")
        if response.is_error:
            logger.error(f"Airtable {method} {path} -> {response.status_code}: {response.text}")
            raise StorageError(
                f"Record store returned {response.status_code} for {method} {path}: {response.text}"
            )
        try:
            return response.json()
        except ValueError as e:
            raise StorageError(f"Record store returned invalid JSON for {method} {path}") from e


def build_store(settings: Settings) -> RecordStore:
    if not settings.airtable_configured:
        logger.warning(
            "AIRTABLE_API_KEY / AIRTABLE_BASE_ID not set; using an in-memory record store"
        )
        return InMemoryRecordStore()
    return AirtableRecordStore(
        api_key=settings.AIRTABLE_API_KEY,
        base_id=settings.AIRTABLE_BASE_ID,
        api_url=settings.AIRTABLE_API_URL,
        timeout=settings.STORE_TIMEOUT_SECONDS,
        page_size=settings.STORE_PAGE_SIZE,
    )


def _table_path(table: str) -> str:
    return f"/{quote(table, safe='')}"


def _record_path(table: str, record_id: str) -> str:
    return f"{_table_path(table)}/{quote(record_id, safe='')}"


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")
