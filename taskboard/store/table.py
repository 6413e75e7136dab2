"""
Table client — async PostgREST row store over httpx.

Pipeline (per call):
    1. Build the URL: {rest_url}/{table}?select=*&col=eq.value&order=col.asc
    2. Attach apikey + bearer headers (session token when signed in)
    3. Execute via httpx.AsyncClient (one pooled client per TableClient)
    4. Map status >= 400 and transport failures to StoreError
    5. Log the round trip to the tasks/ event log

No retries. Row-level security is enforced by the backend against the bearer
token, never here.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Dict, List, Mapping, Optional

import httpx

from taskboard.engine.errors import StoreError
from taskboard.engine.logging import AsyncLogQueue, LogEntry, log, log_store_call

logger = logging.getLogger("taskboard.store.table")

RETURN_REPRESENTATION = {"Prefer": "return=representation"}


def _filter_params(filters: Optional[Mapping[str, Any]]) -> Dict[str, str]:
    params: Dict[str, str] = {}
    for column, value in (filters or {}).items():
        if hasattr(value, "value"):
            value = value.value
        params[column] = f"eq.{value}"
    return params


def _error_message(response: httpx.Response) -> str:
    """Pull the provider's message out of an error response."""
    try:
        body = response.json()
    except ValueError:
        return response.text or f"HTTP {response.status_code}"
    if isinstance(body, dict):
        for key in ("message", "msg", "error_description", "error", "details", "hint"):
            if body.get(key):
                return str(body[key])
    return response.text or f"HTTP {response.status_code}"


class TableClient:
    """
    Generic filterable/orderable row store for one table.

    Args:
        rest_url: Base REST URL, e.g. ``https://xyz.supabase.co/rest/v1``.
        table: Table name.
        api_key: Project API key, sent as ``apikey`` and as the fallback bearer.
        access_token: Signed-in user's session token (preferred bearer).
        timeout: Transport timeout in seconds.
        transport: Optional httpx transport (tests use httpx.MockTransport).
        log_queue: Optional event log queue; the global queue is used otherwise.
    """

    def __init__(
        self,
        rest_url: str,
        table: str,
        api_key: str = "",
        access_token: Optional[str] = None,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        log_queue: Optional[AsyncLogQueue] = None,
    ):
        self._base_url = rest_url.rstrip("/")
        self._table = table
        self._api_key = api_key
        self._access_token = access_token
        self._log_queue = log_queue
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            timeout=timeout,
            transport=transport,
        )

    @property
    def table(self) -> str:
        return self._table

    def set_access_token(self, token: Optional[str]) -> None:
        self._access_token = token

    def _headers(self, extra: Optional[Dict[str, str]] = None) -> Dict[str, str]:
        headers = {"Accept": "application/json"}
        if self._api_key:
            headers["apikey"] = self._api_key
        bearer = self._access_token or self._api_key
        if bearer:
            headers["Authorization"] = f"Bearer {bearer}"
        if extra:
            headers.update(extra)
        return headers

    def _emit(self, entry: LogEntry) -> None:
        if self._log_queue is not None:
            self._log_queue.push(entry)
        else:
            log(entry)

    async def _request(
        self,
        operation: str,
        method: str,
        params: Dict[str, str],
        json_body: Optional[Any] = None,
        extra_headers: Optional[Dict[str, str]] = None,
        record_id: Optional[Any] = None,
    ) -> Any:
        path = f"/{self._table}"
        start = time.monotonic()
        try:
            response = await self._client.request(
                method,
                path,
                params=params,
                json=json_body,
                headers=self._headers(extra_headers),
            )
        except httpx.HTTPError as e:
            duration_ms = (time.monotonic() - start) * 1000
            logger.error("%s %s failed: %s", method, path, e)
            self._emit(log_store_call(
                operation, self._table, method, path, 0, duration_ms, False,
                record_id=record_id, error=str(e),
            ))
            raise StoreError(
                f"Transport failure on {operation} {self._table}: {e}",
                table=self._table,
                operation=operation,
            ) from e

        duration_ms = (time.monotonic() - start) * 1000
        fields_changed = sorted(json_body.keys()) if isinstance(json_body, dict) else None

        if response.status_code >= 400:
            message = _error_message(response)
            logger.warning("%s %s -> %d: %s", method, path, response.status_code, message)
            self._emit(log_store_call(
                operation, self._table, method, path, response.status_code, duration_ms, False,
                record_id=record_id, fields_changed=fields_changed, error=message,
            ))
            raise StoreError(
                message,
                table=self._table,
                operation=operation,
                status_code=response.status_code,
                response_body=response.text,
            )

        self._emit(log_store_call(
            operation, self._table, method, path, response.status_code, duration_ms, True,
            record_id=record_id, fields_changed=fields_changed,
        ))
        logger.debug("%s %s -> %d (%.1fms)", method, path, response.status_code, duration_ms)

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise StoreError(
                f"Malformed response from {self._table}",
                table=self._table,
                operation=operation,
                status_code=response.status_code,
                response_body=response.text,
            ) from e

    # ------------------------------------------------------------------
    # Row operations
    # ------------------------------------------------------------------

    async def select(
        self,
        filters: Optional[Mapping[str, Any]] = None,
        order: Optional[str] = None,
        ascending: bool = True,
    ) -> List[Dict[str, Any]]:
        """Select all rows matching every equality filter."""
        params = {"select": "*", **_filter_params(filters)}
        if order:
            params["order"] = f"{order}.{'asc' if ascending else 'desc'}"
        rows = await self._request("select", "GET", params, record_id=(filters or {}).get("id"))
        return list(rows or [])

    async def insert(self, row: Mapping[str, Any]) -> Optional[Dict[str, Any]]:
        """Insert one row and return the stored representation (None if the store returned nothing)."""
        rows = await self._request(
            "insert", "POST", {"select": "*"},
            json_body=dict(row), extra_headers=RETURN_REPRESENTATION,
        )
        return rows[0] if rows else None

    async def update(
        self,
        values: Mapping[str, Any],
        filters: Mapping[str, Any],
    ) -> Optional[Dict[str, Any]]:
        """Update matching rows and return the first updated row (None when nothing matched)."""
        params = {"select": "*", **_filter_params(filters)}
        rows = await self._request(
            "update", "PATCH", params,
            json_body=dict(values), extra_headers=RETURN_REPRESENTATION,
            record_id=filters.get("id"),
        )
        return rows[0] if rows else None

    async def delete(self, filters: Mapping[str, Any]) -> None:
        """Delete matching rows. Matching nothing is not an error."""
        await self._request("delete", "DELETE", _filter_params(filters), record_id=filters.get("id"))

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "TableClient":
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.aclose()
