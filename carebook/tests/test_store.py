"""
Unit Tests for the record store clients

Tests cover:
1. Airtable pagination, auth header and request shapes
2. Error, timeout and not-found mapping
3. In-memory store PATCH semantics
"""

import json

import httpx
import pytest

from carebook.config import Settings
from carebook.exceptions import NotFoundError, StorageError
from carebook.store import (
    AirtableRecordStore,
    InMemoryRecordStore,
    build_store,
)


def make_store(handler, page_size=100):
    return AirtableRecordStore(
        api_key="key123",
        base_id="appBASE",
        page_size=page_size,
        transport=httpx.MockTransport(handler),
    )


class TestAirtableRecordStore:
    """Tests for the Airtable REST client."""

    def test_list_follows_offset(self):
        seen = []

        def handler(request):
            seen.append(request)
            if "offset" not in request.url.params:
                return httpx.Response(200, json={
                    "records": [{"id": "rec1", "createdTime": "2024-01-01T00:00:00.000Z", "fields": {}}],
                    "offset": "itrNEXT",
                })
            return httpx.Response(200, json={
                "records": [{"id": "rec2", "createdTime": "2024-01-02T00:00:00.000Z", "fields": {}}],
            })

        records = make_store(handler, page_size=1).list_records("tblMembers")

        assert [r["id"] for r in records] == ["rec1", "rec2"]
        assert seen[0].url.path == "/v0/appBASE/tblMembers"
        assert seen[0].url.params["pageSize"] == "1"
        assert seen[1].url.params["offset"] == "itrNEXT"
        assert seen[0].headers["Authorization"] == "Bearer key123"

    def test_create_sends_fields(self):
        def handler(request):
            assert request.method == "POST"
            body = json.loads(request.content)
            return httpx.Response(200, json={
                "id": "recNEW", "createdTime": "2024-01-01T00:00:00.000Z", "fields": body["fields"],
            })

        record = make_store(handler).create_record("tblTx", {"Amount": 50})

        assert record["id"] == "recNEW"
        assert record["fields"] == {"Amount": 50}

    def test_update_uses_patch(self):
        def handler(request):
            assert request.method == "PATCH"
            assert request.url.path == "/v0/appBASE/tblBookings/rec42"
            return httpx.Response(200, json={"id": "rec42", "fields": json.loads(request.content)["fields"]})

        record = make_store(handler).update_record("tblBookings", "rec42", {"狀態": "已確認"})

        assert record["fields"]["狀態"] == "已確認"

    def test_missing_record_is_not_found(self):
        store = make_store(lambda request: httpx.Response(404, json={"error": "NOT_FOUND"}))

        with pytest.raises(NotFoundError):
            store.get_record("tblBookings", "recMissing")

    def test_missing_table_is_storage_error(self):
        store = make_store(lambda request: httpx.Response(404, json={"error": "NOT_FOUND"}))

        with pytest.raises(StorageError):
            store.list_records("tblUnknown")

    def test_server_error_is_storage_error(self):
        store = make_store(lambda request: httpx.Response(503, text="Service Unavailable"))

        with pytest.raises(StorageError) as exc:
            store.create_record("tblTx", {"Amount": 1})

        assert "503" in str(exc.value)

    def test_timeout_is_storage_error(self):
        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        with pytest.raises(StorageError) as exc:
            make_store(handler).list_records("tblMembers")

        assert "timed out" in str(exc.value)

    def test_connection_error_is_storage_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(StorageError):
            make_store(handler).get_record("tblMembers", "rec1")


class TestInMemoryRecordStore:
    """Tests for the development store."""

    def test_update_merges_fields(self):
        store = InMemoryRecordStore()
        record = store.create_record("members", {"電話": "0912", "點數": 1})

        updated = store.update_record("members", record["id"], {"點數": 5})

        assert updated["fields"] == {"電話": "0912", "點數": 5}
        assert updated["createdTime"].endswith("Z")

    def test_returned_records_are_copies(self):
        store = InMemoryRecordStore()
        record = store.create_record("members", {"電話": "0912"})
        record["fields"]["電話"] = "changed"

        assert store.get_record("members", record["id"])["fields"]["電話"] == "0912"

    def test_unknown_record(self):
        with pytest.raises(NotFoundError):
            InMemoryRecordStore().update_record("members", "recNope", {})


class TestBuildStore:
    def test_without_credentials_uses_memory(self):
        store = build_store(Settings(_env_file=None, AIRTABLE_API_KEY="", AIRTABLE_BASE_ID=""))

        assert isinstance(store, InMemoryRecordStore)

    def test_with_credentials_uses_airtable(self):
        store = build_store(Settings(_env_file=None, AIRTABLE_API_KEY="key", AIRTABLE_BASE_ID="app"))

        assert isinstance(store, AirtableRecordStore)
        store.close()
