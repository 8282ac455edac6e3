"""REST record store for PostgREST-style backends (e.g. Supabase).

Talks to ``{base_url}/rest/v1/{collection}`` with:
- ``apikey`` and bearer-token headers
- filters as ``column=eq.value`` query parameters
- ``Prefer: return=representation`` so writes echo the stored rows
"""

from typing import Any, Optional

import httpx

from ..utils.logging import get_logger
from ..vault.exceptions import StoreError
from ..vault.models import GROUP_RECORD_FIELDS, VAULT_RECORD_FIELDS
from .base import GROUPS_COLLECTION, VAULT_COLLECTION, Record
from .errors import check_collection, not_found

logger = get_logger(__name__)

SELECT_COLUMNS = {
    VAULT_COLLECTION: ",".join(sorted(VAULT_RECORD_FIELDS)),
    GROUPS_COLLECTION: ",".join(sorted(GROUP_RECORD_FIELDS)),
}

RETURN_REPRESENTATION = {"Prefer": "return=representation"}


class RestRecordStore:
    """Record store client for a PostgREST API."""

    def __init__(
        self,
        base_url: str,
        api_key: str,
        access_token: Optional[str] = None,
        timeout: float = 30.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        """
        Initialize the REST client.

        Args:
            base_url: Project URL (without /rest/v1)
            api_key: Public API key sent as the ``apikey`` header
            access_token: User access token (defaults to the API key)
            timeout: Request timeout in seconds
            client: Pre-built httpx client (tests inject a MockTransport here)
        """
        self.base_url = base_url.rstrip("/")
        headers = {
            "apikey": api_key,
            "Authorization": f"Bearer {access_token or api_key}",
            "Accept": "application/json",
        }
        self._client = client or httpx.AsyncClient(timeout=timeout)
        self._client.headers.update(headers)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "RestRecordStore":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    def _url(self, collection: str) -> str:
        check_collection(collection)
        return f"{self.base_url}/rest/v1/{collection}"

    async def _request(
        self,
        method: str,
        collection: str,
        params: Optional[dict[str, str]] = None,
        json: Any = None,
        headers: Optional[dict[str, str]] = None,
    ) -> Any:
        url = self._url(collection)
        try:
            response = await self._client.request(method, url, params=params, json=json, headers=headers)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            detail = _error_detail(e.response)
            logger.warning("%s %s failed with HTTP %s", method, collection, e.response.status_code)
            raise StoreError(f"{method} {collection} failed ({e.response.status_code}): {detail}") from e
        except httpx.HTTPError as e:
            logger.warning("%s %s failed: %s", method, collection, type(e).__name__)
            raise StoreError(f"{method} {collection} failed: {e}") from e

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise StoreError(f"{method} {collection} returned invalid JSON") from e

    async def insert(self, collection: str, record: Record) -> Record:
        check_collection(collection)
        params = {"select": SELECT_COLUMNS[collection]}
        rows = await self._request("POST", collection, params=params, json=record, headers=RETURN_REPRESENTATION)
        return _single_row(rows, collection)

    async def update(
        self,
        collection: str,
        record_id: str,
        owner_id: str,
        changes: Record,
    ) -> Record:
        check_collection(collection)
        params = {
            "id": f"eq.{record_id}",
            "user_id": f"eq.{owner_id}",
            "select": SELECT_COLUMNS[collection],
        }
        rows = await self._request("PATCH", collection, params=params, json=changes, headers=RETURN_REPRESENTATION)
        if not rows:
            raise not_found(collection, record_id)
        return _single_row(rows, collection)

    async def delete(self, collection: str, record_id: str, owner_id: str) -> None:
        params = {"id": f"eq.{record_id}", "user_id": f"eq.{owner_id}"}
        rows = await self._request("DELETE", collection, params=params, headers=RETURN_REPRESENTATION)
        if not rows:
            raise not_found(collection, record_id)

    async def select(
        self,
        collection: str,
        owner_id: str,
        filters: Optional[Record] = None,
        order_by: str = "created_at",
        descending: bool = False,
    ) -> list[Record]:
        check_collection(collection)
        params = {
            "select": SELECT_COLUMNS[collection],
            "user_id": f"eq.{owner_id}",
            "order": f"{order_by}.{'desc' if descending else 'asc'}",
        }
        for key, value in (filters or {}).items():
            params[key] = f"eq.{value}"

        rows = await self._request("GET", collection, params=params)
        if rows is None:
            return []
        if not isinstance(rows, list):
            raise StoreError(f"GET {collection} returned {type(rows).__name__}, expected a list")
        return rows


def _single_row(rows: Any, collection: str) -> Record:
    if isinstance(rows, list) and len(rows) == 1:
        return rows[0]
    raise StoreError(f"Expected one {collection} row in response")


def _error_detail(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text[:200]
    if isinstance(body, dict):
        return str(body.get("message") or body.get("error") or body)
    return str(body)
