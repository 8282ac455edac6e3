"""Tests for the PostgREST record store, against a mocked transport."""

import json

import httpx
import pytest

from keyhaven.backend import RestRecordStore
from keyhaven.vault import EntryNotFoundError, GroupNotFoundError, StoreError


BASE_URL = "https://project.example.co"

GROUP_ROW = {
    "id": "group-1",
    "user_id": "user-1",
    "name": "Work",
    "icon_type": "📁",
    "created_at": "2026-03-15T12:00:00+00:00",
}


class MockBackend:
    """Records requests and replies with a canned response."""

    def __init__(self, status_code=200, body=None, error=None):
        self.status_code = status_code
        self.body = body
        self.error = error
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.error is not None:
            raise self.error(f"{self.error.__name__}", request=request)
        return httpx.Response(self.status_code, json=self.body)

    def store(self) -> RestRecordStore:
        client = httpx.AsyncClient(transport=httpx.MockTransport(self))
        return RestRecordStore(BASE_URL, api_key="anon-key", access_token="user-token", client=client)


class TestRestRecordStore:
    """Tests for RestRecordStore requests and error mapping."""

    @pytest.mark.asyncio
    async def test_select_request(self):
        backend = MockBackend(body=[GROUP_ROW])

        async with backend.store() as store:
            rows = await store.select("groups", "user-1", filters={"name": "Work"}, descending=True)

        [request] = backend.requests
        assert rows == [GROUP_ROW]
        assert request.method == "GET"
        assert request.url.path == "/rest/v1/groups"
        assert request.url.params["user_id"] == "eq.user-1"
        assert request.url.params["name"] == "eq.Work"
        assert request.url.params["order"] == "created_at.desc"
        assert request.url.params["select"] == "created_at,icon_type,id,name,user_id"
        assert request.headers["apikey"] == "anon-key"
        assert request.headers["authorization"] == "Bearer user-token"

    @pytest.mark.asyncio
    async def test_insert_returns_representation(self):
        backend = MockBackend(status_code=201, body=[GROUP_ROW])

        async with backend.store() as store:
            row = await store.insert("groups", {"name": "Work", "user_id": "user-1", "icon_type": "📁"})

        [request] = backend.requests
        assert row == GROUP_ROW
        assert request.method == "POST"
        assert request.headers["prefer"] == "return=representation"
        assert json.loads(request.content) == {"name": "Work", "user_id": "user-1", "icon_type": "📁"}

    @pytest.mark.asyncio
    async def test_update_scoped_to_owner(self):
        backend = MockBackend(body=[{**GROUP_ROW, "name": "Office"}])

        async with backend.store() as store:
            row = await store.update("groups", "group-1", "user-1", {"name": "Office"})

        [request] = backend.requests
        assert row["name"] == "Office"
        assert request.method == "PATCH"
        assert request.url.params["id"] == "eq.group-1"
        assert request.url.params["user_id"] == "eq.user-1"

    @pytest.mark.asyncio
    async def test_update_nothing_matched(self):
        """An empty representation means no owned row had that id."""
        backend = MockBackend(body=[])

        async with backend.store() as store:
            with pytest.raises(EntryNotFoundError):
                await store.update("vault", "nope", "user-1", {"is_favorite": True})

    @pytest.mark.asyncio
    async def test_delete_nothing_matched(self):
        backend = MockBackend(body=[])

        async with backend.store() as store:
            with pytest.raises(GroupNotFoundError):
                await store.delete("groups", "nope", "user-1")

    @pytest.mark.asyncio
    async def test_http_error(self):
        backend = MockBackend(status_code=401, body={"message": "JWT expired"})

        async with backend.store() as store:
            with pytest.raises(StoreError, match="JWT expired"):
                await store.select("vault", "user-1")

    @pytest.mark.asyncio
    async def test_transport_error(self):
        backend = MockBackend(error=httpx.ConnectError)

        async with backend.store() as store:
            with pytest.raises(StoreError, match="failed"):
                await store.select("vault", "user-1")

    @pytest.mark.asyncio
    async def test_unexpected_body(self):
        backend = MockBackend(body={"not": "a list"})

        async with backend.store() as store:
            with pytest.raises(StoreError, match="expected a list"):
                await store.select("vault", "user-1")

    @pytest.mark.asyncio
    async def test_unknown_collection(self):
        backend = MockBackend(body=[])

        async with backend.store() as store:
            with pytest.raises(StoreError, match="Unknown collection"):
                await store.select("notes", "user-1")

        assert backend.requests == []
